"""Capacity ledger for kapon (spay/neuter) schedules.

Registration reserves a slot with one conditional UPDATE:

    registered_count = registered_count + 1
    WHERE registered_count < capacity AND status = 'active'

and inserts the registration request in the same transaction, so the
ledger never exceeds ``capacity`` (overshoot bound: 0) no matter how many
registrations race. The earlier optimistic read only rejects obviously
full schedules before any write is attempted.
"""
import logging
from datetime import date, datetime, timezone
from typing import Any, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from taara.config import settings
from taara.errors import CapacityExceededError, NotFoundError, ValidationError
from taara.models.request import Request, RequestKind
from taara.models.schedule import KaponSchedule, ScheduleStatus
from taara.services.lifecycle_service import RequestLifecycleEngine

logger = logging.getLogger(__name__)


class CapacityLedger:
    def __init__(self, db: Session, engine: RequestLifecycleEngine):
        self.db = db
        self.engine = engine

    # ── registration ───────────────────────────────────────────────
    def register(self, schedule_id: str, owner_user_id: str, details: dict[str, Any]) -> Request:
        schedule = self.get_schedule(schedule_id)
        if schedule.status != ScheduleStatus.active:
            raise ValidationError("Schedule is not accepting registrations")
        self.engine.validate_submission(RequestKind.kapon_registration, owner_user_id, schedule_id, details)

        if schedule.is_full:
            logger.warning("Registration refused: schedule %s is full (%d/%d)",
                           schedule_id, schedule.registered_count, schedule.capacity)
            raise CapacityExceededError("This schedule is already full")

        reserved = self.db.execute(
            update(KaponSchedule)
            .where(
                KaponSchedule.schedule_id == schedule_id,
                KaponSchedule.registered_count < KaponSchedule.capacity,
                KaponSchedule.status == ScheduleStatus.active,
            )
            .values(
                registered_count=KaponSchedule.registered_count + 1,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        if reserved.rowcount == 0:
            self.db.rollback()
            logger.warning("Registration refused: schedule %s filled up concurrently", schedule_id)
            raise CapacityExceededError("This schedule is already full")

        try:
            # submit() commits the reserved slot together with the request
            registration = self.engine.submit(
                RequestKind.kapon_registration, owner_user_id, schedule_id, details,
            )
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(schedule)
        logger.info("Schedule %s now has %d/%d registrations",
                    schedule_id, schedule.registered_count, schedule.capacity)
        return registration

    def registrations(self, schedule_id: str) -> list[Request]:
        return self.engine.list_by_subject(RequestKind.kapon_registration, schedule_id)

    def registrations_for_owner(self, owner_user_id: str) -> list[tuple[Request, Optional[KaponSchedule]]]:
        """Pair each of the user's registrations with its schedule.

        Deleted schedules yield ``None`` ("schedule unavailable").
        """
        pairs = []
        for req in self.engine.list_by_owner(owner_user_id):
            if req.kind != RequestKind.kapon_registration:
                continue
            schedule = self.db.get(KaponSchedule, req.subject_ref) if req.subject_ref else None
            pairs.append((req, schedule))
        return pairs

    # ── schedule management ────────────────────────────────────────
    def create_schedule(
        self,
        title: str,
        schedule_date: date,
        start_time: str,
        location: str,
        end_time: Optional[str] = None,
        description: Optional[str] = None,
        requirements: Optional[str] = None,
        capacity: Optional[int] = None,
    ) -> KaponSchedule:
        capacity = capacity if capacity is not None else settings.KAPON_DEFAULT_CAPACITY
        if capacity <= 0:
            raise ValidationError(invalid_fields={"capacity": "must be greater than zero"})

        schedule = KaponSchedule(
            title=title,
            date=schedule_date,
            start_time=start_time,
            end_time=end_time,
            location=location,
            description=description,
            requirements=requirements,
            capacity=capacity,
            registered_count=0,
            status=ScheduleStatus.active,
        )
        self.db.add(schedule)
        self.db.commit()
        self.db.refresh(schedule)
        logger.info("Created kapon schedule '%s' (%s) with capacity %d", title, schedule.schedule_id, capacity)
        return schedule

    def get_schedule(self, schedule_id: str) -> KaponSchedule:
        schedule = self.db.get(KaponSchedule, schedule_id)
        if schedule is None:
            raise NotFoundError("Schedule not found")
        return schedule

    def list_schedules(self, active_only: bool = False) -> list[KaponSchedule]:
        query = self.db.query(KaponSchedule)
        if active_only:
            query = query.filter(KaponSchedule.status == ScheduleStatus.active)
        return query.order_by(KaponSchedule.date).all()

    def set_schedule_status(self, schedule_id: str, status: str) -> KaponSchedule:
        try:
            new_status = ScheduleStatus(status)
        except ValueError:
            raise ValidationError(invalid_fields={"status": f"unknown schedule status '{status}'"})
        schedule = self.get_schedule(schedule_id)
        schedule.status = new_status
        schedule.updated_at = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(schedule)
        logger.info("Schedule %s set to %s", schedule_id, new_status.value)
        return schedule

    def delete_schedule(self, schedule_id: str) -> None:
        """Hard delete. Registrations keep their dangling subject_ref."""
        schedule = self.get_schedule(schedule_id)
        self.db.delete(schedule)
        self.db.commit()
        logger.info("Deleted schedule %s", schedule_id)
