"""
Test registration, event and user service functions.
"""
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from campusconnect.core.errors import (
    CapacityExceededError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from campusconnect.core.qr import build_qr_payload
from campusconnect.models.registrations import Registration
from campusconnect.models.users import UserRole
from campusconnect.schemas.events import EventCreate, EventUpdate
from campusconnect.schemas.users import LoginRequest, ProfileUpdate, SignupRequest
from campusconnect.services import events as event_service
from campusconnect.services import registrations as registration_service
from campusconnect.services import users as user_service
from campusconnect.services.capacity import is_full, registered_count
from campusconnect.services.registrations import (
    cancel_registration,
    create_registration,
    get_registration,
    list_user_registrations,
    verify_registration,
)


class TestCapacityGuard:
    """Test the capacity predicate and counter."""

    def test_is_full(self):
        assert is_full(0, 1) is False
        assert is_full(1, 1) is True
        assert is_full(5, 3) is True

    def test_registered_count_is_recomputed(self, db_session, redis_client, settings, make_event, make_user):
        event = make_event(capacity=5)
        assert registered_count(db_session, event.id) == 0

        for _ in range(3):
            create_registration(db_session, redis_client, settings, user_id=make_user().id, event_id=event.id)

        assert registered_count(db_session, event.id) == 3


class TestCreateRegistration:
    """Test the registration ledger's create operation."""

    def test_create_registration_success(self, db_session, redis_client, settings, make_event, make_user):
        event = make_event(capacity=10)
        user = make_user()

        registration = create_registration(db_session, redis_client, settings, user_id=user.id, event_id=event.id)

        assert registration.id is not None
        assert registration.user_id == user.id
        assert registration.event_id == event.id
        assert registration.attended is False
        assert registration.qr_code_data.startswith(f"CAMPUSCONNECT:{user.id}:{event.id}:")
        assert registration.qr_code.startswith("data:image/png;base64,")
        assert registration.event.id == event.id
        assert registration.user.id == user.id

    def test_create_registration_unknown_event(self, db_session, redis_client, settings, make_user):
        with pytest.raises(NotFoundError, match="Event not found"):
            create_registration(db_session, redis_client, settings, user_id=make_user().id, event_id=99999)

    def test_create_registration_twice(self, db_session, redis_client, settings, make_event, make_user):
        event = make_event()
        user = make_user()
        create_registration(db_session, redis_client, settings, user_id=user.id, event_id=event.id)

        with pytest.raises(ConflictError, match="Already registered"):
            create_registration(db_session, redis_client, settings, user_id=user.id, event_id=event.id)

    def test_create_registration_event_full(self, db_session, redis_client, settings, make_event, make_user):
        event = make_event(capacity=1)
        create_registration(db_session, redis_client, settings, user_id=make_user().id, event_id=event.id)

        with pytest.raises(CapacityExceededError, match="Event is full"):
            create_registration(db_session, redis_client, settings, user_id=make_user().id, event_id=event.id)

        assert registered_count(db_session, event.id) == 1

    def test_last_seat(self, db_session, redis_client, settings, make_event, make_user):
        event = make_event(capacity=5)
        users = [make_user() for _ in range(6)]

        for user in users[:5]:
            create_registration(db_session, redis_client, settings, user_id=user.id, event_id=event.id)

        with pytest.raises(CapacityExceededError):
            create_registration(db_session, redis_client, settings, user_id=users[5].id, event_id=event.id)

    def test_concurrent_registrations_respect_capacity(
        self, session_factory, redis_client, settings, make_event, make_user
    ):
        """The lock and the conditional insert keep concurrent registrations within capacity."""
        event = make_event(capacity=3)
        event_id = event.id
        user_ids = [make_user().id for _ in range(10)]

        def attempt(user_id: int) -> str:
            db: Session = session_factory()
            try:
                create_registration(db, redis_client, settings, user_id=user_id, event_id=event_id)
                return "ok"
            except CapacityExceededError:
                return "full"
            finally:
                db.close()

        with ThreadPoolExecutor(max_workers=10) as executor:
            results = list(executor.map(attempt, user_ids))

        assert results.count("ok") == 3
        assert results.count("full") == 7

        db = session_factory()
        try:
            assert registered_count(db, event_id) == 3
        finally:
            db.close()


class TestCancelRegistration:
    """Test cancellation rules."""

    def test_owner_cancels_and_can_register_again(self, db_session, redis_client, settings, make_event, make_user):
        event = make_event(capacity=1)
        user = make_user()
        registration = create_registration(db_session, redis_client, settings, user_id=user.id, event_id=event.id)

        cancel_registration(db_session, registration_id=registration.id, actor=user)

        assert registered_count(db_session, event.id) == 0
        again = create_registration(db_session, redis_client, settings, user_id=user.id, event_id=event.id)
        assert again.attended is False
        assert registered_count(db_session, event.id) == 1

    def test_admin_cancels_for_someone_else(self, db_session, redis_client, settings, make_event, make_user):
        event = make_event()
        user = make_user()
        admin = make_user(role=UserRole.ADMIN.value)
        registration = create_registration(db_session, redis_client, settings, user_id=user.id, event_id=event.id)

        cancel_registration(db_session, registration_id=registration.id, actor=admin)

        assert registered_count(db_session, event.id) == 0

    def test_other_user_forbidden(self, db_session, redis_client, settings, make_event, make_user):
        event = make_event()
        owner, other = make_user(), make_user()
        registration = create_registration(db_session, redis_client, settings, user_id=owner.id, event_id=event.id)

        with pytest.raises(ForbiddenError):
            cancel_registration(db_session, registration_id=registration.id, actor=other)
        assert registered_count(db_session, event.id) == 1

    def test_cannot_cancel_after_attendance(self, db_session, redis_client, settings, make_event, make_user):
        event = make_event()
        user = make_user()
        admin = make_user(role=UserRole.ADMIN.value)
        registration = create_registration(db_session, redis_client, settings, user_id=user.id, event_id=event.id)
        verify_registration(db_session, registration.qr_code_data)

        for actor in (user, admin):
            with pytest.raises(ConflictError, match="after attendance"):
                cancel_registration(db_session, registration_id=registration.id, actor=actor)
        assert registered_count(db_session, event.id) == 1

    def test_cancel_missing(self, db_session, make_user):
        with pytest.raises(NotFoundError):
            cancel_registration(db_session, registration_id=12345, actor=make_user())


class TestVerifyRegistration:
    """Test the attendance verifier."""

    def test_verify_is_idempotent(self, db_session, redis_client, settings, make_event, make_user):
        event = make_event()
        user = make_user()
        registration = create_registration(db_session, redis_client, settings, user_id=user.id, event_id=event.id)

        first, checked_in = verify_registration(db_session, registration.qr_code_data)
        assert checked_in is True
        assert first.attended is True
        stamped_at = first.attended_at
        assert stamped_at is not None

        second, checked_in = verify_registration(db_session, registration.qr_code_data)
        assert checked_in is False
        assert second.attended is True
        assert second.attended_at == stamped_at

    def test_verify_registration_cancelled_mid_scan(
        self, db_session, session_factory, redis_client, settings, make_event, make_user, monkeypatch
    ):
        event = make_event()
        registration = create_registration(db_session, redis_client, settings, user_id=make_user().id, event_id=event.id)
        registration_id = registration.id
        original_query = registration_service._registration_query

        def query_after_cancel():
            other: Session = session_factory()
            try:
                other.execute(delete(Registration).where(Registration.id == registration_id))
                other.commit()
            finally:
                other.close()
            return original_query()

        monkeypatch.setattr(registration_service, "_registration_query", query_after_cancel)

        with pytest.raises(NotFoundError, match="Invalid QR code"):
            verify_registration(db_session, registration.qr_code_data)

    def test_verify_unknown_token(self, db_session, redis_client, settings, make_event, make_user):
        event = make_event()
        registration = create_registration(db_session, redis_client, settings, user_id=make_user().id, event_id=event.id)

        with pytest.raises(NotFoundError, match="Invalid QR code"):
            verify_registration(db_session, build_qr_payload("CAMPUSCONNECT", 999, 999, 0))

        db_session.expire_all()
        stored = db_session.get(Registration, registration.id)
        assert stored.attended is False
        assert stored.attended_at is None


class TestRegistrationReads:
    """Test registration lookups."""

    def test_get_registration_owner_or_admin(self, db_session, redis_client, settings, make_event, make_user):
        event = make_event()
        owner, other = make_user(), make_user()
        admin = make_user(role=UserRole.ADMIN.value)
        registration = create_registration(db_session, redis_client, settings, user_id=owner.id, event_id=event.id)

        assert get_registration(db_session, registration_id=registration.id, actor=owner).id == registration.id
        assert get_registration(db_session, registration_id=registration.id, actor=admin).id == registration.id
        with pytest.raises(ForbiddenError):
            get_registration(db_session, registration_id=registration.id, actor=other)

    def test_list_user_registrations(self, db_session, redis_client, settings, make_event, make_user):
        user = make_user()
        first, second = make_event(title="First"), make_event(title="Second")
        create_registration(db_session, redis_client, settings, user_id=user.id, event_id=first.id)
        create_registration(db_session, redis_client, settings, user_id=user.id, event_id=second.id)
        create_registration(db_session, redis_client, settings, user_id=make_user().id, event_id=first.id)

        registrations = list_user_registrations(db_session, user.id)

        assert [r.event.title for r in registrations] == ["Second", "First"]


class TestEventService:
    """Test event catalog operations."""

    def _payload(self, **overrides) -> EventCreate:
        data = {
            "title": "Hackathon",
            "description": "24 hours of code",
            "venue": "Lab B",
            "date": "2099-05-01",
            "time": "9:00 AM",
            "capacity": "10",
            "organizer": "Coding Club",
        }
        data.update(overrides)
        return EventCreate(**data)

    def test_create_event_coerces_capacity(self, db_session):
        event = event_service.create_event(db_session, self._payload())

        assert event.capacity == 10
        assert event.date.year == 2099

    def test_update_event_partial(self, db_session, redis_client, settings, make_event):
        event = make_event(title="Old", capacity=5)

        updated = event_service.update_event(
            db_session, redis_client, settings, event.id, EventUpdate(title="New", image_url="")
        )

        assert updated.title == "New"
        assert updated.capacity == 5
        assert updated.image_url is None

    def test_capacity_cannot_drop_below_registrations(
        self, db_session, redis_client, settings, make_event, make_user
    ):
        event = make_event(capacity=3)
        for _ in range(2):
            create_registration(db_session, redis_client, settings, user_id=make_user().id, event_id=event.id)

        with pytest.raises(ConflictError, match=r"current registrations \(2\)"):
            event_service.update_event(db_session, redis_client, settings, event.id, EventUpdate(capacity=1))

        updated = event_service.update_event(db_session, redis_client, settings, event.id, EventUpdate(capacity=2))
        assert updated.capacity == 2

    def test_update_missing_event(self, db_session, redis_client, settings):
        with pytest.raises(NotFoundError):
            event_service.update_event(db_session, redis_client, settings, 4242, EventUpdate(title="x"))

    def test_delete_event_cascades(self, db_session, redis_client, settings, make_event, make_user):
        event = make_event()
        create_registration(db_session, redis_client, settings, user_id=make_user().id, event_id=event.id)

        event_service.delete_event(db_session, event.id)

        assert db_session.scalars(select(Registration)).all() == []
        with pytest.raises(NotFoundError):
            event_service.delete_event(db_session, event.id)

    def test_list_events_status_flags(self, db_session, redis_client, settings, make_event, make_user):
        user = make_user()
        full = make_event(title="Full", capacity=1)
        open_event = make_event(title="Open", capacity=5)
        create_registration(db_session, redis_client, settings, user_id=user.id, event_id=full.id)

        result = event_service.list_events(db_session, user_id=user.id)
        by_title = {event["title"]: event for event in result["events"]}

        assert by_title["Full"]["is_full"] is True
        assert by_title["Full"]["is_registered"] is True
        assert by_title["Full"]["registered_count"] == 1
        assert by_title["Open"]["is_full"] is False
        assert by_title["Open"]["is_registered"] is False
        assert result["metadata"]["total_events"] == 2
        assert open_event.id in {event["id"] for event in result["events"]}

    def test_list_events_rejects_bad_arguments(self, db_session, make_user):
        user = make_user()

        with pytest.raises(ValidationError, match="filter must be one of"):
            event_service.list_events(db_session, user_id=user.id, when="someday")
        with pytest.raises(ValidationError):
            event_service.list_events(db_session, user_id=user.id, limit=0)


class TestUserService:
    """Test signup, login and profile rules."""

    def test_signup_and_login(self, db_session, settings):
        user, token = user_service.signup(
            db_session, settings, SignupRequest(email="Ann@Example.com", password="pass123", name="Ann")
        )
        assert user.email == "ann@example.com"
        assert user.role == UserRole.USER.value
        assert token

        logged_in, _ = user_service.login(db_session, settings, LoginRequest(email="ann@example.com", password="pass123"))
        assert logged_in.id == user.id

    def test_signup_duplicate_email(self, db_session, settings):
        payload = SignupRequest(email="dup@example.com", password="pass123", name="Dup")
        user_service.signup(db_session, settings, payload)

        with pytest.raises(ConflictError, match="email already exists"):
            user_service.signup(db_session, settings, payload)

    def test_signup_duplicate_roll_number(self, db_session, settings):
        user_service.signup(
            db_session, settings, SignupRequest(email="a@example.com", password="pass123", name="A", roll_number="R9")
        )
        with pytest.raises(ConflictError, match="Roll number already registered"):
            user_service.signup(
                db_session,
                settings,
                SignupRequest(email="b@example.com", password="pass123", name="B", roll_number="R9"),
            )

    def test_login_wrong_password(self, db_session, settings, make_user):
        user = make_user()
        with pytest.raises(UnauthorizedError, match="Invalid credentials"):
            user_service.login(db_session, settings, LoginRequest(email=user.email, password="nope"))
        with pytest.raises(UnauthorizedError, match="Invalid credentials"):
            user_service.login(db_session, settings, LoginRequest(email="ghost@example.com", password="nope"))

    def test_update_profile_roll_number_collision(self, db_session, make_user):
        make_user(roll_number="TAKEN")
        user = make_user(roll_number="MINE")

        with pytest.raises(ConflictError):
            user_service.update_profile(db_session, user, ProfileUpdate(name="Me", roll_number="TAKEN"))

        updated = user_service.update_profile(db_session, user, ProfileUpdate(name="Me", roll_number="MINE"))
        assert updated.name == "Me"
        cleared = user_service.update_profile(db_session, user, ProfileUpdate(name="Me", roll_number=""))
        assert cleared.roll_number is None

    def test_update_profile_concurrent_roll_number_claim(self, db_session, make_user, monkeypatch):
        """A claim that slips past the lookup is still rejected by the unique index."""
        make_user(roll_number="RACE")
        user = make_user()
        monkeypatch.setattr(user_service, "_roll_number_taken", lambda *args, **kwargs: False)

        with pytest.raises(ConflictError, match="Roll number already registered"):
            user_service.update_profile(db_session, user, ProfileUpdate(name="Me", roll_number="RACE"))

        db_session.refresh(user)
        assert user.roll_number is None

    def test_update_user_role(self, db_session, make_user):
        user = make_user()

        promoted = user_service.update_user_role(db_session, user.id, UserRole.ADMIN)

        assert promoted.role == UserRole.ADMIN.value
        with pytest.raises(NotFoundError):
            user_service.update_user_role(db_session, 999, UserRole.USER)
