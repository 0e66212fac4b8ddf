"""Service-level tests for the request lifecycle engine."""
from datetime import date

import pytest

from taara.errors import ForbiddenError, InvalidTransitionError, NotFoundError, ValidationError
from taara.models.notification import Notification
from taara.models.pet import Pet, PetStatus
from taara.models.request import RequestKind, RequestStatus
from taara.models.schedule import KaponSchedule
from taara.models.user import UserRole
from taara.services.lifecycle_service import RequestLifecycleEngine
from taara.services.request_kinds import KIND_CONFIGS, NotificationTemplate
from tests.conftest import (
    make_user, make_pet,
    ADOPTION_PAYLOAD, VOLUNTEER_PAYLOAD, KAPON_PAYLOAD, DONATION_PAYLOAD,
)

ADMIN = UserRole.admin


def _notification_count(db, user_id):
    return db.query(Notification).filter(Notification.user_id == user_id).count()


@pytest.fixture
def owner(db):
    return make_user(db, "owner@example.com", name="Owner")


@pytest.fixture
def subjects(db, ledger):
    """A subject id for every kind that needs one."""
    pet = make_pet(db)
    schedule = ledger.create_schedule(
        title="Kapon Day", schedule_date=date(2026, 11, 14), start_time="08:00", location="Hall",
    )
    return {RequestKind.adoption: pet.pet_id, RequestKind.kapon_registration: schedule.schedule_id}


PAYLOADS = {
    RequestKind.adoption: ADOPTION_PAYLOAD,
    RequestKind.volunteer: VOLUNTEER_PAYLOAD,
    RequestKind.kapon_registration: KAPON_PAYLOAD,
    RequestKind.donation: DONATION_PAYLOAD,
}


def _submit(lifecycle, kind, owner, subjects):
    return lifecycle.submit(kind, owner.user_id, subjects.get(kind), PAYLOADS[kind])


class TestTransitions:

    @pytest.mark.parametrize("kind", list(RequestKind))
    def test_approved_to_approved_is_invalid(self, db, lifecycle, owner, subjects, kind):
        req = _submit(lifecycle, kind, owner, subjects)
        lifecycle.transition(req.request_id, ADMIN, "approved")
        with pytest.raises(InvalidTransitionError):
            lifecycle.transition(req.request_id, ADMIN, "approved")
        assert lifecycle.get(req.request_id).status == RequestStatus.approved

    @pytest.mark.parametrize("kind", list(RequestKind))
    def test_pending_is_never_a_target(self, lifecycle, owner, subjects, kind):
        req = _submit(lifecycle, kind, owner, subjects)
        with pytest.raises(InvalidTransitionError):
            lifecycle.transition(req.request_id, ADMIN, "pending")

    def test_unknown_target_status(self, lifecycle, owner, subjects):
        req = _submit(lifecycle, RequestKind.volunteer, owner, subjects)
        with pytest.raises(InvalidTransitionError):
            lifecycle.transition(req.request_id, ADMIN, "archived")

    def test_kapon_completes_after_approval(self, lifecycle, owner, subjects):
        req = _submit(lifecycle, RequestKind.kapon_registration, owner, subjects)
        with pytest.raises(InvalidTransitionError):
            lifecycle.transition(req.request_id, ADMIN, "completed")
        lifecycle.transition(req.request_id, ADMIN, "approved")
        done = lifecycle.transition(req.request_id, ADMIN, "completed")
        assert done.status == RequestStatus.completed

    def test_reviewed_at_set_only_when_leaving_pending(self, lifecycle, owner, subjects):
        req = _submit(lifecycle, RequestKind.kapon_registration, owner, subjects)
        approved = lifecycle.transition(req.request_id, ADMIN, "approved")
        reviewed_at = approved.reviewed_at
        assert reviewed_at is not None
        completed = lifecycle.transition(req.request_id, ADMIN, "completed")
        assert completed.reviewed_at == reviewed_at


class TestAuthorization:

    @pytest.mark.parametrize("role", [UserRole.user, None])
    def test_non_admin_forbidden_status_unchanged(self, db, lifecycle, owner, subjects, role):
        req = _submit(lifecycle, RequestKind.adoption, owner, subjects)
        with pytest.raises(ForbiddenError):
            lifecycle.transition(req.request_id, role, "approved")
        db.expire_all()
        assert lifecycle.get(req.request_id).status == RequestStatus.pending
        assert _notification_count(db, owner.user_id) == 0

    def test_not_found_checked_before_role(self, lifecycle):
        with pytest.raises(NotFoundError):
            lifecycle.transition("missing", UserRole.user, "approved")

    def test_role_checked_before_transition_rules(self, lifecycle, owner, subjects):
        req = _submit(lifecycle, RequestKind.donation, owner, subjects)
        with pytest.raises(ForbiddenError):
            lifecycle.transition(req.request_id, UserRole.user, "completed")


class TestNotifications:

    @pytest.mark.parametrize("kind,status", [
        (RequestKind.donation, "rejected"),
    ])
    def test_template_less_pair_writes_nothing(self, db, lifecycle, owner, subjects, kind, status):
        assert RequestStatus(status) not in KIND_CONFIGS[kind].notification_templates
        req = _submit(lifecycle, kind, owner, subjects)
        moved = lifecycle.transition(req.request_id, ADMIN, status)
        assert moved.status == RequestStatus(status)
        assert _notification_count(db, owner.user_id) == 0

    @pytest.mark.parametrize("kind", list(RequestKind))
    def test_submission_writes_no_notification(self, db, lifecycle, owner, subjects, kind):
        _submit(lifecycle, kind, owner, subjects)
        assert _notification_count(db, owner.user_id) == 0

    def test_adoption_approval_scenario(self, db, lifecycle, owner, subjects):
        pet_id = subjects[RequestKind.adoption]
        req = _submit(lifecycle, RequestKind.adoption, owner, subjects)

        approved = lifecycle.transition(req.request_id, ADMIN, "approved")
        assert approved.status == RequestStatus.approved
        assert approved.reviewed_at is not None

        pet = db.get(Pet, pet_id)
        assert pet.status == PetStatus.adopted
        assert pet.adopted_by == owner.user_id
        assert pet.adopted_at is not None

        notes = db.query(Notification).filter(Notification.user_id == owner.user_id).all()
        assert [n.type for n in notes] == ["adoption_approved"]
        assert notes[0].related_id == req.request_id
        assert notes[0].meta["status"] == "approved"

    def test_donation_message_uses_payload(self, db, lifecycle, owner, subjects):
        req = _submit(lifecycle, RequestKind.donation, owner, subjects)
        lifecycle.transition(req.request_id, ADMIN, "approved")
        note = db.query(Notification).filter(Notification.user_id == owner.user_id).one()
        assert note.type == "donation_confirmed"
        assert "PHP 500 via gcash" in note.message


class TestDependentWrites:

    def test_notification_failure_keeps_status(self, db, lifecycle, owner, subjects, monkeypatch, caplog):
        def boom(**kwargs):
            raise RuntimeError("notification store unavailable")

        monkeypatch.setattr(lifecycle.dispatcher, "notify", boom)
        req = _submit(lifecycle, RequestKind.volunteer, owner, subjects)
        moved = lifecycle.transition(req.request_id, ADMIN, "approved")

        assert moved.status == RequestStatus.approved
        db.expire_all()
        assert lifecycle.get(req.request_id).status == RequestStatus.approved
        assert "notification failed" in caplog.text

    def test_side_effect_failure_keeps_status_and_notifies(self, db, lifecycle, owner, subjects, caplog):
        req = _submit(lifecycle, RequestKind.adoption, owner, subjects)
        # Pet removed before review: marking it adopted fails
        db.delete(db.get(Pet, subjects[RequestKind.adoption]))
        db.commit()

        moved = lifecycle.transition(req.request_id, ADMIN, "approved")
        assert moved.status == RequestStatus.approved
        assert "mark_pet_adopted failed" in caplog.text

        note = db.query(Notification).filter(Notification.user_id == owner.user_id).one()
        assert "your selected pet" in note.message

    def test_render_failure_keeps_status(self, db, lifecycle, owner, subjects, monkeypatch, caplog):
        def broken_render(self, context):
            raise KeyError("subject_title")

        monkeypatch.setattr(NotificationTemplate, "render", broken_render)
        req = _submit(lifecycle, RequestKind.adoption, owner, subjects)
        moved = lifecycle.transition(req.request_id, ADMIN, "approved")

        assert moved.status == RequestStatus.approved
        assert "notification failed" in caplog.text
        assert _notification_count(db, owner.user_id) == 0

    def test_subject_lookup_failure_keeps_status(self, db, lifecycle, owner, subjects, monkeypatch, caplog):
        req = _submit(lifecycle, RequestKind.kapon_registration, owner, subjects)
        real_get = db.get

        def failing_get(model, ident, *args, **kwargs):
            if model is KaponSchedule:
                raise RuntimeError("schedule store unavailable")
            return real_get(model, ident, *args, **kwargs)

        monkeypatch.setattr(db, "get", failing_get)
        moved = lifecycle.transition(req.request_id, ADMIN, "rejected")

        assert moved.status == RequestStatus.rejected
        assert "notification failed" in caplog.text

    def test_second_approval_does_not_steal_adopted_pet(self, db, lifecycle, owner, caplog):
        rival = make_user(db, "rival@example.com", name="Rival")
        pet = make_pet(db)
        first = lifecycle.submit(RequestKind.adoption, owner.user_id, pet.pet_id, ADOPTION_PAYLOAD)
        second = lifecycle.submit(RequestKind.adoption, rival.user_id, pet.pet_id, ADOPTION_PAYLOAD)

        lifecycle.transition(first.request_id, ADMIN, "approved")
        lifecycle.transition(second.request_id, ADMIN, "approved")

        db.refresh(pet)
        assert pet.status == PetStatus.adopted
        assert pet.adopted_by == owner.user_id
        assert "mark_pet_adopted failed" in caplog.text

    def test_rejection_releases_pending_pet(self, db, lifecycle, owner):
        pet = make_pet(db, status=PetStatus.pending)
        req = lifecycle.submit(RequestKind.adoption, owner.user_id, pet.pet_id, ADOPTION_PAYLOAD)
        lifecycle.transition(req.request_id, ADMIN, "rejected", admin_notes="Home visit failed")
        db.refresh(pet)
        assert pet.status == PetStatus.available


class TestSubmission:

    def test_missing_fields_reported_together(self, lifecycle, owner):
        with pytest.raises(ValidationError) as exc:
            lifecycle.submit(RequestKind.volunteer, owner.user_id, None, {"first_name": "Maria", "email": "  "})
        assert exc.value.missing_fields == ["last_name", "email", "phone", "motivation"]

    def test_unknown_owner(self, lifecycle):
        with pytest.raises(NotFoundError):
            lifecycle.submit(RequestKind.donation, "nobody", None, DONATION_PAYLOAD)

    def test_non_numeric_amount(self, lifecycle, owner):
        with pytest.raises(ValidationError) as exc:
            lifecycle.submit(RequestKind.donation, owner.user_id, None, {"amount": "lots", "payment_method": "cash"})
        assert exc.value.invalid_fields == {"amount": "must be a number"}

    @pytest.mark.parametrize("amount, problem", [
        ("nan", "must be a finite number"),
        ("inf", "must be a finite number"),
        (float("-inf"), "must be a finite number"),
        (True, "must be a number"),
        ("0", "must be greater than zero"),
    ])
    def test_amount_must_be_a_finite_positive_number(self, db, lifecycle, owner, amount, problem):
        with pytest.raises(ValidationError) as exc:
            lifecycle.submit(RequestKind.donation, owner.user_id, None, {"amount": amount, "payment_method": "gcash"})
        assert exc.value.invalid_fields == {"amount": problem}
        assert lifecycle.list_by_owner(owner.user_id) == []

    def test_adopted_pet_cannot_be_requested(self, db, lifecycle, owner):
        pet = make_pet(db, status=PetStatus.adopted)
        with pytest.raises(ValidationError) as exc:
            lifecycle.submit(RequestKind.adoption, owner.user_id, pet.pet_id, ADOPTION_PAYLOAD)
        assert exc.value.invalid_fields == {"subject_ref": "pet has already been adopted"}

    def test_subject_ignored_for_kinds_without_subject(self, lifecycle, owner):
        req = lifecycle.submit(RequestKind.volunteer, owner.user_id, "something", VOLUNTEER_PAYLOAD)
        assert req.subject_ref is None


class TestHide:

    def test_hide_is_idempotent_and_silent(self, db, lifecycle, owner, subjects):
        req = _submit(lifecycle, RequestKind.adoption, owner, subjects)
        lifecycle.hide(req.request_id, ADMIN)
        again = lifecycle.hide(req.request_id, ADMIN)
        assert again.hidden is True
        assert again.status == RequestStatus.pending
        assert _notification_count(db, owner.user_id) == 0
        assert lifecycle.list_by_status(RequestKind.adoption) == []

    def test_hide_requires_admin(self, lifecycle, owner, subjects):
        req = _submit(lifecycle, RequestKind.adoption, owner, subjects)
        with pytest.raises(ForbiddenError):
            lifecycle.hide(req.request_id, UserRole.user)


def test_custom_kind_table(db, dispatcher, owner):
    """The engine runs on whatever kind table it is given."""
    engine = RequestLifecycleEngine(db, dispatcher, kinds={RequestKind.donation: KIND_CONFIGS[RequestKind.donation]})
    with pytest.raises(ValidationError):
        engine.submit(RequestKind.volunteer, owner.user_id, None, VOLUNTEER_PAYLOAD)
    assert engine.submit(RequestKind.donation, owner.user_id, None, DONATION_PAYLOAD).status == RequestStatus.pending
