"""Pet ORM model."""
import uuid
import enum
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Enum as SAEnum
from sqlalchemy.sql import func
from taara.database import Base


class PetStatus(str, enum.Enum):
    available = "available"
    pending = "pending"
    adopted = "adopted"


class Pet(Base):
    __tablename__ = "pets"

    pet_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False)
    type = Column(String(30), nullable=False)  # dog, cat, ...
    breed = Column(String(100), nullable=True)
    age = Column(String(30), nullable=True)
    gender = Column(String(20), nullable=True)
    description = Column(Text, nullable=True)
    image_ref = Column(Text, nullable=True)  # blob URL or inline data URL
    status = Column(SAEnum(PetStatus), nullable=False, default=PetStatus.available)
    adopted_by = Column(String(36), ForeignKey("users.user_id"), nullable=True)
    adopted_at = Column(DateTime(timezone=True), nullable=True)
    added_by = Column(String(36), ForeignKey("users.user_id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
