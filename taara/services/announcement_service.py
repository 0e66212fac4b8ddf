"""Announcements: admin CRUD plus the active toggle that drives the app banner.

Publishing an active announcement notifies every user; like the new-pet
broadcast it is best-effort and never fails the create.
"""
import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.orm import Session

from taara.errors import NotFoundError, ValidationError
from taara.models.announcement import Announcement
from taara.models.user import User
from taara.services.notification_service import NotificationDispatcher

logger = logging.getLogger(__name__)

_EDITABLE = ("title", "content")


def _check_text(fields: dict[str, Any], names) -> None:
    blank = [f for f in names if not str(fields.get(f) or "").strip()]
    if blank:
        raise ValidationError(missing_fields=blank)


def create_announcement(
    db: Session,
    dispatcher: NotificationDispatcher,
    author: User,
    title: str,
    content: str,
    is_active: bool = True,
) -> Announcement:
    _check_text({"title": title, "content": content}, ("title", "content"))
    announcement = Announcement(
        title=title.strip(),
        content=content.strip(),
        is_active=is_active,
        author_id=author.user_id,
        author_name=author.display_name or author.email,
    )
    db.add(announcement)
    db.commit()
    db.refresh(announcement)
    logger.info("Created announcement '%s' (%s)", announcement.title, announcement.announcement_id)

    if announcement.is_active:
        _broadcast(db, dispatcher, announcement)
    return announcement


def _broadcast(db: Session, dispatcher: NotificationDispatcher, announcement: Announcement) -> None:
    preview = announcement.content[:100] + ("..." if len(announcement.content) > 100 else "")
    try:
        user_ids = [uid for (uid,) in db.query(User.user_id).all()]
        dispatcher.notify_many(
            user_ids,
            notification_type="announcement",
            title="New Announcement",
            message=announcement.title,
            related_id=announcement.announcement_id,
            metadata={
                "announcement_id": announcement.announcement_id,
                "title": announcement.title,
                "content": preview,
                "author_name": announcement.author_name,
            },
        )
    except Exception:
        db.rollback()
        logger.exception("Announcement broadcast failed for %s", announcement.announcement_id)


def get_announcement(db: Session, announcement_id: str) -> Announcement:
    announcement = db.get(Announcement, announcement_id)
    if announcement is None:
        raise NotFoundError("Announcement not found")
    return announcement


def list_announcements(db: Session, active_only: bool = False) -> list[Announcement]:
    """Newest first; the banner asks for active ones only."""
    query = db.query(Announcement)
    if active_only:
        query = query.filter(Announcement.is_active.is_(True))
    return query.order_by(Announcement.created_at.desc()).all()


def update_announcement(db: Session, announcement_id: str, updates: dict[str, Any]) -> Announcement:
    announcement = get_announcement(db, announcement_id)
    changes = {k: v for k, v in updates.items() if k in _EDITABLE}
    _check_text(changes, changes.keys())
    for field, value in changes.items():
        setattr(announcement, field, value.strip())
    announcement.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(announcement)
    logger.info("Updated announcement %s", announcement_id)
    return announcement


def set_active(db: Session, announcement_id: str, is_active: bool) -> Announcement:
    announcement = get_announcement(db, announcement_id)
    announcement.is_active = is_active
    announcement.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(announcement)
    logger.info("Announcement %s %s", announcement_id, "activated" if is_active else "deactivated")
    return announcement


def delete_announcement(db: Session, announcement_id: str) -> None:
    announcement = get_announcement(db, announcement_id)
    db.delete(announcement)
    db.commit()
    logger.info("Deleted announcement %s", announcement_id)
