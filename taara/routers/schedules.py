"""Kapon schedule API routes: admin management and capacity-checked registration."""
import logging
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from taara.database import get_db
from taara.dependencies import get_ledger
from taara.schemas.request import RequestOut
from taara.schemas.schedule import (
    ScheduleCreate, ScheduleStatusUpdate, ScheduleOut, RegistrationCreate, OwnerRegistrationOut,
)
from taara.services import auth_service
from taara.services.capacity_service import CapacityLedger

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=ScheduleOut, status_code=status.HTTP_201_CREATED)
def create_schedule(
    payload: ScheduleCreate,
    actor_user_id: str = Query(...),
    db: Session = Depends(get_db),
    ledger: CapacityLedger = Depends(get_ledger),
):
    """Create a kapon schedule (admin only)."""
    auth_service.require_admin(db, actor_user_id)
    return ledger.create_schedule(
        title=payload.title,
        schedule_date=payload.date,
        start_time=payload.start_time,
        end_time=payload.end_time,
        location=payload.location,
        description=payload.description,
        requirements=payload.requirements,
        capacity=payload.capacity,
    )


@router.get("/", response_model=list[ScheduleOut])
def list_schedules(active_only: bool = Query(False), ledger: CapacityLedger = Depends(get_ledger)):
    return ledger.list_schedules(active_only=active_only)


@router.get("/registrations/owner/{user_id}", response_model=list[OwnerRegistrationOut])
def owner_registrations(user_id: str, ledger: CapacityLedger = Depends(get_ledger)):
    """A user's registrations; deleted schedules show as unavailable."""
    return [
        OwnerRegistrationOut(
            registration=RequestOut.model_validate(req),
            schedule=ScheduleOut.model_validate(schedule) if schedule else None,
            schedule_available=schedule is not None,
        )
        for req, schedule in ledger.registrations_for_owner(user_id)
    ]


@router.get("/{schedule_id}", response_model=ScheduleOut)
def get_schedule(schedule_id: str, ledger: CapacityLedger = Depends(get_ledger)):
    return ledger.get_schedule(schedule_id)


@router.patch("/{schedule_id}/status", response_model=ScheduleOut)
def set_schedule_status(
    schedule_id: str,
    payload: ScheduleStatusUpdate,
    actor_user_id: str = Query(...),
    db: Session = Depends(get_db),
    ledger: CapacityLedger = Depends(get_ledger),
):
    """Activate or cancel a schedule (admin only)."""
    auth_service.require_admin(db, actor_user_id)
    return ledger.set_schedule_status(schedule_id, payload.status)


@router.delete("/{schedule_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_schedule(
    schedule_id: str,
    actor_user_id: str = Query(...),
    db: Session = Depends(get_db),
    ledger: CapacityLedger = Depends(get_ledger),
):
    """Hard-delete a schedule (admin only). Existing registrations are kept."""
    auth_service.require_admin(db, actor_user_id)
    ledger.delete_schedule(schedule_id)


@router.post("/{schedule_id}/register", response_model=RequestOut, status_code=status.HTTP_201_CREATED)
def register(schedule_id: str, payload: RegistrationCreate, ledger: CapacityLedger = Depends(get_ledger)):
    """Register a pet for a schedule; refused once the schedule is full."""
    return ledger.register(schedule_id, payload.owner_user_id, payload.details)


@router.get("/{schedule_id}/registrations", response_model=list[RequestOut])
def schedule_registrations(schedule_id: str, ledger: CapacityLedger = Depends(get_ledger)):
    ledger.get_schedule(schedule_id)
    return ledger.registrations(schedule_id)
