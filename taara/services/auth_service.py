"""Actor resolution: the auth provider issues ids, roles live on the users table."""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from taara.errors import ForbiddenError
from taara.models.user import User, UserRole

logger = logging.getLogger(__name__)


def resolve_role(db: Session, user_id: Optional[str]) -> Optional[UserRole]:
    """Return the actor's role, or None for unknown actors."""
    if not user_id:
        return None
    user = db.get(User, user_id)
    return user.role if user else None


def require_admin(db: Session, user_id: Optional[str]) -> User:
    user = db.get(User, user_id) if user_id else None
    if user is None or user.role != UserRole.admin:
        logger.warning("Admin action refused for actor %s", user_id)
        raise ForbiddenError("Admin privileges required")
    return user
