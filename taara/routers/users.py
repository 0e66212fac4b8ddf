"""User API routes."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from taara.config import settings
from taara.database import get_db
from taara.errors import ConflictError, NotFoundError, ValidationError
from taara.models.user import User, UserRole
from taara.schemas.user import UserCreate, UserUpdate, UserOut
from taara.services import auth_service

logger = logging.getLogger(__name__)
router = APIRouter()


def _role(value: Optional[str]) -> UserRole:
    try:
        return UserRole(value)
    except ValueError:
        raise ValidationError(invalid_fields={"role": f"unknown role '{value}'"})


def _initial_role(email: str) -> UserRole:
    admins = {e.strip().lower() for e in settings.ADMIN_EMAILS.split(",") if e.strip()}
    return UserRole.admin if email.strip().lower() in admins else UserRole.user


@router.post("/", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    """Register the auth provider's user. Only configured admin emails start as admins."""
    if db.query(User).filter(User.email == payload.email).first():
        raise ConflictError("Email is already registered")
    user = User(
        email=payload.email,
        display_name=payload.display_name,
        phone_number=payload.phone_number,
        role=_initial_role(payload.email),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Created user %s (%s, %s)", user.user_id, user.email, user.role.value)
    return user


@router.get("/", response_model=list[UserOut])
def list_users(db: Session = Depends(get_db)):
    """List all users."""
    return db.query(User).order_by(User.created_at).all()


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: str, db: Session = Depends(get_db)):
    """Fetch a single user by ID."""
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


@router.patch("/{user_id}", response_model=UserOut)
def update_user(
    user_id: str,
    payload: UserUpdate,
    actor_user_id: Optional[str] = Query(None, description="Admin changing the role"),
    db: Session = Depends(get_db),
):
    """Update profile fields (partial update). Changing the role requires an admin actor."""
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    updates = payload.model_dump(exclude_unset=True)
    if "role" in updates:
        auth_service.require_admin(db, actor_user_id)
        updates["role"] = _role(updates["role"])
    for field, value in updates.items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    logger.info("Updated user %s", user_id)
    return user
