"""Request ORM model: adoption, volunteer, kapon registration and donation
requests share one table and one lifecycle."""
import uuid
import enum
from sqlalchemy import (
    Column, String, Text, Boolean, DateTime, JSON, ForeignKey, Index, Enum as SAEnum,
)
from taara.database import Base


class RequestKind(str, enum.Enum):
    adoption = "adoption"
    volunteer = "volunteer"
    kapon_registration = "kapon_registration"
    donation = "donation"


class RequestStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    completed = "completed"


class Request(Base):
    __tablename__ = "requests"
    __table_args__ = (
        Index("ix_requests_kind_status", "kind", "status"),
        Index("ix_requests_owner", "owner_user_id"),
        Index("ix_requests_subject", "subject_ref"),
    )

    request_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    kind = Column(SAEnum(RequestKind), nullable=False)
    owner_user_id = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    # Pet id or schedule id; not a foreign key because schedules are hard-deleted
    subject_ref = Column(String(36), nullable=True)
    status = Column(SAEnum(RequestStatus), nullable=False, default=RequestStatus.pending)
    hidden = Column(Boolean, nullable=False, default=False)
    payload = Column(JSON, nullable=False, default=dict)
    admin_notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
