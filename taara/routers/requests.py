"""Request lifecycle API routes: submission, admin review and listings.

Kapon registrations always go through the capacity ledger so the schedule's
slot accounting stays in step with the registration rows.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from taara.database import get_db
from taara.dependencies import get_engine, get_ledger
from taara.errors import ValidationError
from taara.models.request import RequestKind, RequestStatus
from taara.schemas.request import RequestCreate, RequestTransition, RequestOut, RequestSummary
from taara.services import auth_service
from taara.services.capacity_service import CapacityLedger
from taara.services.lifecycle_service import RequestLifecycleEngine, parse_kind

logger = logging.getLogger(__name__)
router = APIRouter()


def _status(value: str) -> RequestStatus:
    try:
        return RequestStatus(value)
    except ValueError:
        raise ValidationError(invalid_fields={"status": f"unknown request status '{value}'"})


@router.post("/", response_model=RequestOut, status_code=status.HTTP_201_CREATED)
def submit_request(
    payload: RequestCreate,
    engine: RequestLifecycleEngine = Depends(get_engine),
    ledger: CapacityLedger = Depends(get_ledger),
):
    """Submit an adoption, volunteer, donation or kapon request (status pending)."""
    kind = parse_kind(payload.kind)
    if kind == RequestKind.kapon_registration:
        if not payload.subject_ref:
            raise ValidationError(missing_fields=["subject_ref"])
        return ledger.register(payload.subject_ref, payload.owner_user_id, payload.payload)
    return engine.submit(kind, payload.owner_user_id, payload.subject_ref, payload.payload)


@router.get("/", response_model=list[RequestOut])
def list_requests(
    kind: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    include_hidden: bool = Query(False),
    engine: RequestLifecycleEngine = Depends(get_engine),
):
    """List requests newest first, optionally filtered by kind and status."""
    return engine.list_by_status(
        kind=parse_kind(kind) if kind else None,
        status=_status(status_filter) if status_filter else None,
        include_hidden=include_hidden,
    )


@router.get("/summary", response_model=RequestSummary)
def request_summary(engine: RequestLifecycleEngine = Depends(get_engine)):
    """Per-kind status counters and the confirmed donation total."""
    return engine.summary()


@router.get("/owner/{user_id}", response_model=list[RequestOut])
def list_owner_requests(user_id: str, engine: RequestLifecycleEngine = Depends(get_engine)):
    return engine.list_by_owner(user_id)


@router.get("/{request_id}", response_model=RequestOut)
def get_request(request_id: str, engine: RequestLifecycleEngine = Depends(get_engine)):
    return engine.get(request_id)


@router.post("/{request_id}/transition", response_model=RequestOut)
def transition_request(
    request_id: str,
    payload: RequestTransition,
    db: Session = Depends(get_db),
    engine: RequestLifecycleEngine = Depends(get_engine),
):
    """Move a request to a new status (admin only)."""
    role = auth_service.resolve_role(db, payload.actor_user_id)
    return engine.transition(request_id, role, payload.status, payload.admin_notes)


@router.post("/{request_id}/approve", response_model=RequestOut)
def approve_request(
    request_id: str,
    actor_user_id: str = Query(..., description="ID of the reviewing admin"),
    admin_notes: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    engine: RequestLifecycleEngine = Depends(get_engine),
):
    """Approve a pending request."""
    role = auth_service.resolve_role(db, actor_user_id)
    return engine.transition(request_id, role, RequestStatus.approved, admin_notes)


@router.post("/{request_id}/reject", response_model=RequestOut)
def reject_request(
    request_id: str,
    actor_user_id: str = Query(..., description="ID of the reviewing admin"),
    admin_notes: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    engine: RequestLifecycleEngine = Depends(get_engine),
):
    """Reject a pending request; notes are passed on to the applicant."""
    role = auth_service.resolve_role(db, actor_user_id)
    return engine.transition(request_id, role, RequestStatus.rejected, admin_notes)


@router.post("/{request_id}/complete", response_model=RequestOut)
def complete_request(
    request_id: str,
    actor_user_id: str = Query(..., description="ID of the reviewing admin"),
    admin_notes: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    engine: RequestLifecycleEngine = Depends(get_engine),
):
    """Mark an approved kapon registration as completed."""
    role = auth_service.resolve_role(db, actor_user_id)
    return engine.transition(request_id, role, RequestStatus.completed, admin_notes)


@router.post("/{request_id}/hide", response_model=RequestOut)
def hide_request(
    request_id: str,
    actor_user_id: str = Query(...),
    db: Session = Depends(get_db),
    engine: RequestLifecycleEngine = Depends(get_engine),
):
    """Hide an adoption request from admin listings (no lifecycle change)."""
    role = auth_service.resolve_role(db, actor_user_id)
    return engine.hide(request_id, role)
