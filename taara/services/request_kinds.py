"""Per-kind configuration for the request lifecycle engine.

Each request kind (adoption, volunteer, kapon registration, donation) is
described by one ``KindConfig``: which payload fields are required, which
status transitions are allowed, which notification is written for each
target status, and which secondary writes run after a transition commits.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Optional

from taara.config import settings
from taara.models.pet import Pet, PetStatus
from taara.models.request import Request, RequestKind, RequestStatus
from taara.models.schedule import KaponSchedule

if TYPE_CHECKING:
    from taara.services.lifecycle_service import RequestLifecycleEngine

logger = logging.getLogger(__name__)

SideEffect = Callable[["RequestLifecycleEngine", Request], None]
PayloadValidator = Callable[[dict[str, Any]], Optional[str]]


class _Blank(dict):
    """Format mapping that renders unknown placeholders as empty strings."""

    def __missing__(self, key):
        return ""


@dataclass(frozen=True)
class NotificationTemplate:
    type: str
    title: str
    message: str
    append_notes: bool = False

    def render(self, context: dict[str, Any]) -> tuple[str, str]:
        values = _Blank({k: v for k, v in context.items() if v is not None})
        message = self.message.format_map(values).strip()
        notes = context.get("admin_notes")
        if self.append_notes and notes:
            message = f"{message} Reason: {notes}"
        return self.title.format_map(values), message


@dataclass(frozen=True)
class KindConfig:
    kind: RequestKind
    required_fields: tuple[str, ...]
    allowed_transitions: dict[RequestStatus, frozenset[RequestStatus]]
    notification_templates: dict[RequestStatus, NotificationTemplate] = field(default_factory=dict)
    side_effects: dict[RequestStatus, tuple[SideEffect, ...]] = field(default_factory=dict)
    subject_model: Optional[type] = None
    hideable: bool = False
    validators: dict[str, PayloadValidator] = field(default_factory=dict)
    subject_validator: Optional[Callable[[Any], Optional[str]]] = None
    missing_subject_label: str = "(unavailable)"

    @property
    def requires_subject(self) -> bool:
        return self.subject_model is not None

    def can_transition(self, current: RequestStatus, target: RequestStatus) -> bool:
        return target in self.allowed_transitions.get(current, frozenset())

    def subject_title(self, subject: Any) -> Optional[str]:
        if subject is None:
            return self.missing_subject_label
        return getattr(subject, "title", None) or getattr(subject, "name", None)


# ── state machines ─────────────────────────────────────────────────
REVIEW_ONLY = {
    RequestStatus.pending: frozenset({RequestStatus.approved, RequestStatus.rejected}),
}

REVIEW_THEN_COMPLETE = {
    RequestStatus.pending: frozenset({RequestStatus.approved, RequestStatus.rejected}),
    RequestStatus.approved: frozenset({RequestStatus.completed}),
}


# ── payload validators ─────────────────────────────────────────────
def _positive_amount(payload: dict[str, Any]) -> Optional[str]:
    value = payload.get("amount")
    if isinstance(value, bool):
        return "must be a number"
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return "must be a number"
    if not math.isfinite(amount):
        return "must be a finite number"
    if amount <= 0:
        return "must be greater than zero"
    return None


def _pet_adoptable(pet: Pet) -> Optional[str]:
    if pet.status == PetStatus.adopted:
        return "pet has already been adopted"
    return None


# ── side effects ───────────────────────────────────────────────────
def _pet_for(engine: RequestLifecycleEngine, request: Request) -> Pet:
    pet = engine.db.get(Pet, request.subject_ref)
    if pet is None:
        raise LookupError(f"Pet {request.subject_ref} no longer exists")
    return pet


def mark_pet_adopted(engine: RequestLifecycleEngine, request: Request) -> None:
    pet = _pet_for(engine, request)
    if pet.status == PetStatus.adopted and pet.adopted_by != request.owner_user_id:
        raise LookupError(f"Pet {pet.pet_id} was already adopted by {pet.adopted_by}")
    now = datetime.now(timezone.utc)
    pet.status = PetStatus.adopted
    pet.adopted_by = request.owner_user_id
    pet.adopted_at = now
    pet.updated_at = now
    logger.info("Pet %s marked adopted by %s", pet.pet_id, request.owner_user_id)


def release_reserved_pet(engine: RequestLifecycleEngine, request: Request) -> None:
    pet = _pet_for(engine, request)
    if pet.status != PetStatus.pending:
        return
    pet.status = PetStatus.available
    pet.updated_at = datetime.now(timezone.utc)
    logger.info("Pet %s released back to available", pet.pet_id)


def _pet_name(engine: RequestLifecycleEngine, request: Request) -> str:
    pet = engine.db.get(Pet, request.subject_ref) if request.subject_ref else None
    return pet.name if pet is not None else request.payload.get("pet_name", "")


def sms_new_adoption(engine: RequestLifecycleEngine, request: Request) -> None:
    if engine.sms is None or not settings.SHELTER_OWNER_PHONE:
        return
    engine.sms.send_adoption_notification(
        owner_phone=settings.SHELTER_OWNER_PHONE,
        pet_name=_pet_name(engine, request),
        adopter_name=request.payload.get("full_name", ""),
        adopter_contact=request.payload.get("phone_number", ""),
        adoption_id=request.request_id,
    )


def sms_adoption_approved(engine: RequestLifecycleEngine, request: Request) -> None:
    phone = request.payload.get("phone_number")
    if engine.sms is None or not phone:
        return
    engine.sms.send_approval_notification(phone, _pet_name(engine, request), settings.ORGANIZATION_NAME)


def sms_adoption_rejected(engine: RequestLifecycleEngine, request: Request) -> None:
    phone = request.payload.get("phone_number")
    if engine.sms is None or not phone:
        return
    engine.sms.send_rejection_notification(
        phone,
        _pet_name(engine, request),
        settings.ORGANIZATION_NAME,
        request.admin_notes or "Thank you for your interest",
    )


# ── kind table ─────────────────────────────────────────────────────
ADOPTION = KindConfig(
    kind=RequestKind.adoption,
    required_fields=("reason", "valid_id_ref", "proof_of_residence_ref"),
    allowed_transitions=REVIEW_ONLY,
    notification_templates={
        RequestStatus.approved: NotificationTemplate(
            "adoption_approved",
            "Adoption Request Approved",
            "Your adoption request for {subject_title} has been approved! "
            "Our team will contact you to arrange the home visit.",
        ),
        RequestStatus.rejected: NotificationTemplate(
            "adoption_rejected",
            "Adoption Request Update",
            "Your adoption request for {subject_title} was not approved.",
            append_notes=True,
        ),
    },
    side_effects={
        RequestStatus.pending: (sms_new_adoption,),
        RequestStatus.approved: (mark_pet_adopted, sms_adoption_approved),
        RequestStatus.rejected: (release_reserved_pet, sms_adoption_rejected),
    },
    subject_model=Pet,
    hideable=True,
    subject_validator=_pet_adoptable,
    missing_subject_label="your selected pet",
)

VOLUNTEER = KindConfig(
    kind=RequestKind.volunteer,
    required_fields=("first_name", "last_name", "email", "phone", "motivation"),
    allowed_transitions=REVIEW_ONLY,
    notification_templates={
        RequestStatus.approved: NotificationTemplate(
            "volunteer",
            "Volunteer Application Update",
            "Hi {first_name}, your volunteer application has been approved. Welcome to TAARA!",
        ),
        RequestStatus.rejected: NotificationTemplate(
            "volunteer",
            "Volunteer Application Update",
            "Hi {first_name}, your volunteer application was not approved this time.",
            append_notes=True,
        ),
    },
)

KAPON_REGISTRATION = KindConfig(
    kind=RequestKind.kapon_registration,
    required_fields=("owner_name", "contact_number", "pet_name", "pet_type"),
    allowed_transitions=REVIEW_THEN_COMPLETE,
    notification_templates={
        RequestStatus.approved: NotificationTemplate(
            "kapon_approved",
            "Kapon Request Approved",
            "Your kapon request for {pet_name} has been approved for {subject_title}!",
        ),
        RequestStatus.rejected: NotificationTemplate(
            "kapon_rejected",
            "Kapon Request Declined",
            "Your kapon request for {pet_name} could not be approved.",
            append_notes=True,
        ),
        RequestStatus.completed: NotificationTemplate(
            "kapon_completed",
            "Kapon Event Completed",
            "The kapon event for {pet_name} has been completed! "
            "Thank you for participating in {subject_title}.",
        ),
    },
    subject_model=KaponSchedule,
    missing_subject_label="a schedule that is no longer available",
)

DONATION = KindConfig(
    kind=RequestKind.donation,
    required_fields=("amount", "payment_method"),
    allowed_transitions=REVIEW_ONLY,
    notification_templates={
        RequestStatus.approved: NotificationTemplate(
            "donation_confirmed",
            "Donation Confirmed",
            "Thank you! Your donation of PHP {amount} via {payment_method} has been confirmed.",
        ),
    },
    validators={"amount": _positive_amount},
)

KIND_CONFIGS: dict[RequestKind, KindConfig] = {
    cfg.kind: cfg for cfg in (ADOPTION, VOLUNTEER, KAPON_REGISTRATION, DONATION)
}
