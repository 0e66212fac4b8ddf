"""Pet catalogue API routes."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from taara.database import get_db
from taara.dependencies import get_dispatcher
from taara.schemas.pet import PetCreate, PetUpdate, PetOut, PetCounts
from taara.services import auth_service, pet_service
from taara.services.notification_service import NotificationDispatcher

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=PetOut, status_code=status.HTTP_201_CREATED)
def create_pet(
    payload: PetCreate,
    actor_user_id: str = Query(..., description="ID of the admin adding the pet"),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Add a pet (admin only) and announce it to every user."""
    auth_service.require_admin(db, actor_user_id)
    return pet_service.create_pet(db, dispatcher, actor_user_id, payload.model_dump())


@router.get("/", response_model=list[PetOut])
def list_pets(
    status_filter: Optional[str] = Query(None, alias="status"),
    pet_type: Optional[str] = Query(None, alias="type"),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """List pets, newest first, with optional filters."""
    return pet_service.list_pets(db, status=status_filter, pet_type=pet_type, search=search)


@router.get("/counts", response_model=PetCounts)
def pet_counts(db: Session = Depends(get_db)):
    """Dashboard counters by adoption status."""
    return pet_service.count_by_status(db)


@router.get("/{pet_id}", response_model=PetOut)
def get_pet(pet_id: str, db: Session = Depends(get_db)):
    return pet_service.get_pet(db, pet_id)


@router.patch("/{pet_id}", response_model=PetOut)
def update_pet(
    pet_id: str,
    payload: PetUpdate,
    actor_user_id: str = Query(...),
    db: Session = Depends(get_db),
):
    """Partial update (admin only)."""
    auth_service.require_admin(db, actor_user_id)
    return pet_service.update_pet(db, pet_id, payload.model_dump(exclude_unset=True))


@router.delete("/{pet_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_pet(pet_id: str, actor_user_id: str = Query(...), db: Session = Depends(get_db)):
    auth_service.require_admin(db, actor_user_id)
    pet_service.delete_pet(db, pet_id)
