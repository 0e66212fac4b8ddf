"""Kapon (spay/neuter) schedule ORM model."""
import uuid
import enum
from sqlalchemy import (
    Column, String, Text, Date, DateTime, Integer, CheckConstraint, Enum as SAEnum,
)
from sqlalchemy.sql import func
from taara.database import Base


class ScheduleStatus(str, enum.Enum):
    active = "active"
    cancelled = "cancelled"


class KaponSchedule(Base):
    __tablename__ = "kapon_schedules"
    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_kapon_schedules_capacity_positive"),
        CheckConstraint("registered_count >= 0", name="ck_kapon_schedules_count_non_negative"),
    )

    schedule_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(200), nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(String(20), nullable=False)
    end_time = Column(String(20), nullable=True)
    location = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    requirements = Column(Text, nullable=True)
    capacity = Column(Integer, nullable=False, default=50)
    registered_count = Column(Integer, nullable=False, default=0)
    status = Column(SAEnum(ScheduleStatus), nullable=False, default=ScheduleStatus.active)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def is_full(self) -> bool:
        return self.registered_count >= self.capacity
