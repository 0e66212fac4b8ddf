"""Pet catalogue: CRUD, filtering and adoption-status counters.

New pets are announced to every registered user through the notification
dispatcher; the broadcast is best-effort and never fails the create.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from taara.errors import NotFoundError, ValidationError
from taara.models.pet import Pet, PetStatus
from taara.models.user import User
from taara.services.notification_service import NotificationDispatcher

logger = logging.getLogger(__name__)

_IMMUTABLE = ("pet_id", "created_at", "adopted_by", "adopted_at", "added_by")
_REQUIRED = ("name", "type", "status")


def _parse_status(value: str) -> PetStatus:
    try:
        return PetStatus(value.strip().lower())
    except ValueError:
        raise ValidationError(invalid_fields={"status": f"unknown pet status '{value}'"})


def create_pet(
    db: Session,
    dispatcher: NotificationDispatcher,
    added_by: str,
    fields: dict[str, Any],
) -> Pet:
    """Add a pet and broadcast a ``new_pet`` notification to all users."""
    data = dict(fields)
    missing = [f for f in ("name", "type") if not str(data.get(f) or "").strip()]
    if missing:
        raise ValidationError(missing_fields=missing)
    data["status"] = _parse_status(data.get("status") or PetStatus.available.value)

    pet = Pet(**data, added_by=added_by)
    db.add(pet)
    db.commit()
    db.refresh(pet)
    logger.info("Added pet '%s' (%s)", pet.name, pet.pet_id)

    try:
        user_ids = [uid for (uid,) in db.query(User.user_id).all()]
        dispatcher.notify_many(
            user_ids,
            notification_type="new_pet",
            title="New Pet Available!",
            message=f"{pet.name}, a {pet.type}, is now available for adoption!",
            related_id=pet.pet_id,
            metadata={"pet_id": pet.pet_id, "pet_name": pet.name, "pet_type": pet.type, "pet_breed": pet.breed},
        )
    except Exception:
        db.rollback()
        logger.exception("New-pet broadcast failed for pet %s", pet.pet_id)
    return pet


def get_pet(db: Session, pet_id: str) -> Pet:
    pet = db.get(Pet, pet_id)
    if pet is None:
        raise NotFoundError("Pet not found")
    return pet


def list_pets(
    db: Session,
    status: Optional[str] = None,
    pet_type: Optional[str] = None,
    search: Optional[str] = None,
) -> list[Pet]:
    """List pets newest first, optionally filtered by status, type and free text."""
    query = db.query(Pet)
    if status:
        query = query.filter(Pet.status == _parse_status(status))
    if pet_type and pet_type != "all":
        query = query.filter(Pet.type == pet_type)
    if search:
        pattern = f"%{search.lower()}%"
        query = query.filter(or_(
            func.lower(Pet.name).like(pattern),
            func.lower(Pet.breed).like(pattern),
            func.lower(Pet.description).like(pattern),
        ))
    return query.order_by(Pet.created_at.desc()).all()


def update_pet(db: Session, pet_id: str, updates: dict[str, Any]) -> Pet:
    pet = get_pet(db, pet_id)
    nulled = [f for f in _REQUIRED if f in updates and updates[f] is None]
    if nulled:
        raise ValidationError(invalid_fields={f: "cannot be null" for f in nulled})
    for field, value in updates.items():
        if field in _IMMUTABLE or not hasattr(pet, field):
            continue
        if field == "status":
            value = _parse_status(value)
        setattr(pet, field, value)
    pet.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(pet)
    logger.info("Updated pet %s", pet_id)
    return pet


def delete_pet(db: Session, pet_id: str) -> None:
    pet = get_pet(db, pet_id)
    db.delete(pet)
    db.commit()
    logger.info("Deleted pet %s", pet_id)


def count_by_status(db: Session) -> dict[str, int]:
    counts = {"total": 0, **{s.value: 0 for s in PetStatus}}
    for status, count in db.query(Pet.status, func.count(Pet.pet_id)).group_by(Pet.status).all():
        counts[status.value] = count
        counts["total"] += count
    return counts
