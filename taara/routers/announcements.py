"""Announcement API routes."""
import logging
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from taara.database import get_db
from taara.dependencies import get_dispatcher
from taara.schemas.announcement import (
    AnnouncementCreate, AnnouncementUpdate, AnnouncementActive, AnnouncementOut,
)
from taara.services import announcement_service, auth_service
from taara.services.notification_service import NotificationDispatcher

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=AnnouncementOut, status_code=status.HTTP_201_CREATED)
def create_announcement(
    payload: AnnouncementCreate,
    actor_user_id: str = Query(..., description="ID of the admin posting the announcement"),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Post an announcement (admin only); active ones notify every user."""
    author = auth_service.require_admin(db, actor_user_id)
    return announcement_service.create_announcement(
        db, dispatcher, author, payload.title, payload.content, payload.is_active,
    )


@router.get("/", response_model=list[AnnouncementOut])
def list_announcements(active_only: bool = Query(False), db: Session = Depends(get_db)):
    return announcement_service.list_announcements(db, active_only=active_only)


@router.get("/{announcement_id}", response_model=AnnouncementOut)
def get_announcement(announcement_id: str, db: Session = Depends(get_db)):
    return announcement_service.get_announcement(db, announcement_id)


@router.patch("/{announcement_id}", response_model=AnnouncementOut)
def update_announcement(
    announcement_id: str,
    payload: AnnouncementUpdate,
    actor_user_id: str = Query(...),
    db: Session = Depends(get_db),
):
    auth_service.require_admin(db, actor_user_id)
    return announcement_service.update_announcement(
        db, announcement_id, payload.model_dump(exclude_unset=True),
    )


@router.patch("/{announcement_id}/active", response_model=AnnouncementOut)
def set_announcement_active(
    announcement_id: str,
    payload: AnnouncementActive,
    actor_user_id: str = Query(...),
    db: Session = Depends(get_db),
):
    """Show or hide an announcement in the banner (admin only)."""
    auth_service.require_admin(db, actor_user_id)
    return announcement_service.set_active(db, announcement_id, payload.is_active)


@router.delete("/{announcement_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_announcement(announcement_id: str, actor_user_id: str = Query(...), db: Session = Depends(get_db)):
    auth_service.require_admin(db, actor_user_id)
    announcement_service.delete_announcement(db, announcement_id)
