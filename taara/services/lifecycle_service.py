"""Request lifecycle engine: one state machine for every request kind.

Responsibilities:
- Submission: kind-specific required-field validation, owner/subject checks
- Authorization hook: only admins may transition or hide requests
- Transition rules from the kind's configuration (no reversals, no self-loops)
- Secondary writes and notifications run after the status change commits;
  their failures are logged as DependentWriteError and never roll it back
"""
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from taara.errors import (
    DependentWriteError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from taara.models.request import Request, RequestKind, RequestStatus
from taara.models.user import User, UserRole
from taara.services.notification_service import NotificationDispatcher
from taara.services.request_kinds import KIND_CONFIGS, KindConfig, SideEffect
from taara.services.sms_client import SmsClient

logger = logging.getLogger(__name__)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_kind(value: Any) -> RequestKind:
    try:
        return RequestKind(value)
    except ValueError:
        raise ValidationError(invalid_fields={"kind": f"unknown request kind '{value}'"})


class RequestLifecycleEngine:
    def __init__(
        self,
        db: Session,
        dispatcher: NotificationDispatcher,
        sms: Optional[SmsClient] = None,
        kinds: Optional[dict[RequestKind, KindConfig]] = None,
    ):
        self.db = db
        self.dispatcher = dispatcher
        self.sms = sms
        self.kinds = kinds if kinds is not None else KIND_CONFIGS

    def config_for(self, kind: RequestKind) -> KindConfig:
        cfg = self.kinds.get(kind)
        if cfg is None:
            raise ValidationError(invalid_fields={"kind": f"request kind '{kind.value}' is not enabled"})
        return cfg

    # ── submission ─────────────────────────────────────────────────
    def validate_submission(
        self,
        kind: RequestKind,
        owner_user_id: str,
        subject_ref: Optional[str],
        payload: dict[str, Any],
    ) -> KindConfig:
        """Run every submission check without writing anything."""
        cfg = self.config_for(kind)

        missing = [f for f in cfg.required_fields if _is_blank(payload.get(f))]
        if cfg.requires_subject and _is_blank(subject_ref):
            missing.append("subject_ref")
        invalid = {}
        for field_name, check in cfg.validators.items():
            if field_name in missing:
                continue
            problem = check(payload)
            if problem:
                invalid[field_name] = problem
        if missing or invalid:
            raise ValidationError(missing_fields=missing, invalid_fields=invalid)

        if self.db.get(User, owner_user_id) is None:
            raise NotFoundError("Owner user not found")
        if cfg.requires_subject:
            subject = self.db.get(cfg.subject_model, subject_ref)
            if subject is None:
                raise NotFoundError(f"{cfg.subject_model.__name__} {subject_ref} not found")
            problem = cfg.subject_validator(subject) if cfg.subject_validator else None
            if problem:
                raise ValidationError(invalid_fields={"subject_ref": problem})
        return cfg

    def submit(
        self,
        kind: RequestKind,
        owner_user_id: str,
        subject_ref: Optional[str],
        payload: dict[str, Any],
    ) -> Request:
        """Validate and insert a new request in ``pending``."""
        cfg = self.validate_submission(kind, owner_user_id, subject_ref, payload)

        now = datetime.now(timezone.utc)
        request = Request(
            kind=kind,
            owner_user_id=owner_user_id,
            subject_ref=subject_ref if cfg.requires_subject else None,
            status=RequestStatus.pending,
            hidden=False,
            payload=dict(payload),
            created_at=now,
            updated_at=now,
        )
        self.db.add(request)
        self.db.commit()
        self.db.refresh(request)
        logger.info("Request %s (%s) submitted by user %s", request.request_id, kind.value, owner_user_id)

        self._run_side_effects(cfg, request, RequestStatus.pending)
        return request

    # ── transitions ────────────────────────────────────────────────
    def transition(
        self,
        request_id: str,
        actor_role: Any,
        new_status: Any,
        admin_notes: Optional[str] = None,
    ) -> Request:
        """Move a request along its kind's state machine (admin only)."""
        request = self.get(request_id)
        self._require_admin(actor_role)
        cfg = self.config_for(request.kind)

        try:
            target = RequestStatus(new_status)
        except ValueError:
            raise InvalidTransitionError(f"'{new_status}' is not a request status")

        current = request.status
        if not cfg.can_transition(current, target):
            raise InvalidTransitionError(
                f"Cannot move {request.kind.value} request from {current.value} to {target.value}"
            )

        now = datetime.now(timezone.utc)
        request.status = target
        request.updated_at = now
        if current == RequestStatus.pending:
            request.reviewed_at = now
        if admin_notes is not None:
            request.admin_notes = admin_notes
        self.db.commit()
        self.db.refresh(request)
        logger.info("Request %s moved %s -> %s", request_id, current.value, target.value)

        self._run_side_effects(cfg, request, target)
        self._dispatch(cfg, request, target)
        return request

    def hide(self, request_id: str, actor_role: Any) -> Request:
        """Hide a request from admin listings. Not a lifecycle state."""
        request = self.get(request_id)
        self._require_admin(actor_role)
        cfg = self.config_for(request.kind)
        if not cfg.hideable:
            raise InvalidTransitionError(f"{request.kind.value} requests cannot be hidden")
        if request.hidden:
            return request

        request.hidden = True
        request.updated_at = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(request)
        logger.info("Request %s hidden", request_id)
        return request

    # ── queries ────────────────────────────────────────────────────
    def get(self, request_id: str) -> Request:
        request = self.db.get(Request, request_id)
        if request is None:
            raise NotFoundError("Request not found")
        return request

    def list_by_status(
        self,
        kind: Optional[RequestKind] = None,
        status: Optional[RequestStatus] = None,
        include_hidden: bool = False,
    ) -> list[Request]:
        query = self.db.query(Request)
        if kind is not None:
            query = query.filter(Request.kind == kind)
        if status is not None:
            query = query.filter(Request.status == status)
        if not include_hidden:
            query = query.filter(Request.hidden.is_(False))
        return query.order_by(Request.created_at.desc()).all()

    def list_by_owner(self, owner_user_id: str) -> list[Request]:
        return (
            self.db.query(Request)
            .filter(Request.owner_user_id == owner_user_id)
            .order_by(Request.created_at.desc())
            .all()
        )

    def list_by_subject(self, kind: RequestKind, subject_ref: str) -> list[Request]:
        return (
            self.db.query(Request)
            .filter(Request.kind == kind, Request.subject_ref == subject_ref)
            .order_by(Request.created_at.desc())
            .all()
        )

    def summary(self) -> dict[str, Any]:
        """Dashboard counters: requests per kind and status, confirmed donations."""
        counts: dict[str, dict[str, int]] = {
            kind.value: {status.value: 0 for status in RequestStatus} for kind in self.kinds
        }
        rows = (
            self.db.query(Request.kind, Request.status, func.count(Request.request_id))
            .filter(Request.hidden.is_(False))
            .group_by(Request.kind, Request.status)
            .all()
        )
        for kind, status, count in rows:
            counts.setdefault(kind.value, {})[status.value] = count

        donations = self.list_by_status(RequestKind.donation, RequestStatus.approved)
        total = 0.0
        for donation in donations:
            try:
                total += float(donation.payload.get("amount", 0))
            except (TypeError, ValueError):
                logger.warning("Donation %s has a malformed amount", donation.request_id)
        return {"counts": counts, "donation_total": total}

    # ── helpers ────────────────────────────────────────────────────
    @staticmethod
    def _require_admin(actor_role: Any) -> None:
        if actor_role != UserRole.admin:
            raise ForbiddenError("Only admins may review requests")

    def _run_side_effects(self, cfg: KindConfig, request: Request, status: RequestStatus) -> None:
        for effect in cfg.side_effects.get(status, ()):
            self._run_side_effect(effect, request)

    def _run_side_effect(self, effect: SideEffect, request: Request) -> None:
        try:
            effect(self, request)
            self.db.commit()
        except Exception as exc:
            self.db.rollback()
            err = DependentWriteError(
                f"{effect.__name__} failed for request {request.request_id}", cause=exc,
            )
            logger.error("%s: %s", err.message, exc)

    def _dispatch(self, cfg: KindConfig, request: Request, status: RequestStatus) -> None:
        template = cfg.notification_templates.get(status)
        if template is None:
            return

        try:
            subject = None
            if cfg.requires_subject and request.subject_ref:
                subject = self.db.get(cfg.subject_model, request.subject_ref)
            subject_title = cfg.subject_title(subject)
            context = dict(request.payload)
            context.update(subject_title=subject_title, admin_notes=request.admin_notes)
            title, message = template.render(context)

            self.dispatcher.notify(
                user_id=request.owner_user_id,
                notification_type=template.type,
                title=title,
                message=message,
                related_id=request.request_id,
                metadata={
                    "kind": request.kind.value,
                    "status": status.value,
                    "subject_ref": request.subject_ref,
                    "subject_title": subject_title,
                    "admin_notes": request.admin_notes,
                },
            )
        except Exception as exc:
            self.db.rollback()
            err = DependentWriteError(f"notification failed for request {request.request_id}", cause=exc)
            logger.error("%s: %s", err.message, exc)
