from datetime import datetime, timedelta, timezone

import pytest

from slotbook.core.results import ErrorKind
from slotbook.models import Booking, BookingStatus
from slotbook.services.booking_service import BookingRules, BookingService
from tests.helpers import at


@pytest.fixture
def service(db, clock) -> BookingService:
    return BookingService(db, rules=BookingRules(), clock=clock)


def _row_count(db) -> int:
    return db.query(Booking).count()


def test_create_snaps_start_to_grid_and_holds_slot(service, clock, resource, offering, client_id, future_day):
    requested = at(future_day, 10, 17).replace(second=42, microsecond=123)

    result = service.create_booking(resource.id, client_id, offering.id, requested, "k1")

    assert result.ok
    outcome = result.value
    assert outcome.created is True
    booking = outcome.booking
    assert booking.status == BookingStatus.PENDING.value
    assert booking.start_at == at(future_day, 10)
    assert booking.end_at == at(future_day, 11)
    assert booking.hold_expires_at == clock.now() + timedelta(hours=24)
    assert booking.client_id == client_id
    assert len(booking.id) == 26


def test_create_converts_offset_to_utc(service, resource, offering, client_id, future_day):
    kyiv_summer = timezone(timedelta(hours=3))
    requested = at(future_day, 10, 40).astimezone(kyiv_summer)

    booking = service.create_booking(resource.id, client_id, offering.id, requested, "k1").value.booking

    assert booking.start_at == at(future_day, 10, 30)
    assert booking.start_at.tzinfo is not None


def test_same_key_twice_returns_same_booking(db, service, resource, offering, client_id, future_day):
    first = service.create_booking(resource.id, client_id, offering.id, at(future_day, 10), "k1").value
    second = service.create_booking(resource.id, client_id, offering.id, at(future_day, 10), "k1").value

    assert first.created is True
    assert second.created is False
    assert second.booking.id == first.booking.id
    assert (second.booking.start_at, second.booking.end_at) == (
        first.booking.start_at,
        first.booking.end_at,
    )
    assert _row_count(db) == 1


def test_replay_skips_validation_and_overlap_checks(db, service, clock, resource, offering, client_id, future_day):
    first = service.create_booking(resource.id, client_id, offering.id, at(future_day, 10), "k1").value

    # Different start, and the original start is now in the past
    clock.set(at(future_day, 12))
    replay = service.create_booking(resource.id, client_id, offering.id, at(future_day, 15), "k1")

    assert replay.ok
    assert replay.value.created is False
    assert replay.value.booking.id == first.booking.id
    assert _row_count(db) == 1


def test_same_key_from_another_client_is_independent(db, service, resource, offering, client_id, future_day):
    service.create_booking(resource.id, client_id, offering.id, at(future_day, 10), "k1")
    other = service.create_booking(resource.id, "01HOTHERCLIENT000000000000", offering.id, at(future_day, 12), "k1")

    assert other.value.created is True
    assert _row_count(db) == 2


def test_overlap_with_confirmed_booking_is_conflict(
    db, service, resource, offering, client_id, future_day, make_booking
):
    make_booking(at(future_day, 10), status=BookingStatus.CONFIRMED)

    result = service.create_booking(resource.id, client_id, offering.id, at(future_day, 10, 10), "k1")

    assert result.error.kind == ErrorKind.CONFLICT
    assert result.error.status_code == 409
    assert _row_count(db) == 1


def test_overlap_with_active_hold_is_conflict(db, service, resource, offering, client_id, future_day, make_booking):
    make_booking(at(future_day, 10, 30), status=BookingStatus.PENDING)

    result = service.create_booking(resource.id, client_id, offering.id, at(future_day, 10), "k1")

    assert result.error.kind == ErrorKind.CONFLICT


def test_back_to_back_booking_is_allowed(service, resource, offering, client_id, future_day, make_booking):
    make_booking(at(future_day, 10), status=BookingStatus.CONFIRMED)

    result = service.create_booking(resource.id, client_id, offering.id, at(future_day, 11), "k1")

    assert result.ok
    assert result.value.booking.start_at == at(future_day, 11)


def test_lapsed_hold_does_not_block(service, resource, offering, client_id, future_day, make_booking):
    make_booking(
        at(future_day, 10),
        status=BookingStatus.PENDING,
        hold_expires_at=datetime.now(timezone.utc) - timedelta(hours=2),
    )

    result = service.create_booking(resource.id, client_id, offering.id, at(future_day, 10), "k1")

    assert result.ok


def test_offering_of_another_resource_is_rejected(service, offering, other_resource, client_id, future_day):
    result = service.create_booking(other_resource.id, client_id, offering.id, at(future_day, 10), "k1")

    assert result.error.kind == ErrorKind.VALIDATION
    assert result.error.code == "OFFERING_RESOURCE_MISMATCH"


def test_unknown_offering_is_not_found(service, resource, client_id, future_day):
    result = service.create_booking(
        resource.id, client_id, "01HZZZZZZZZZZZZZZZZZZZZZZZ", at(future_day, 10), "k1"
    )

    assert result.error.kind == ErrorKind.NOT_FOUND
    assert result.error.code == "OFFERING_NOT_FOUND"


def test_start_in_past_is_rejected(db, service, clock, resource, offering, client_id):
    result = service.create_booking(
        resource.id, client_id, offering.id, clock.now() - timedelta(hours=2), "k1"
    )

    assert result.error.kind == ErrorKind.VALIDATION
    assert result.error.code == "START_IN_PAST"
    assert _row_count(db) == 0


def test_slot_in_progress_can_be_booked(service, clock, resource, offering, client_id, future_day):
    clock.set(at(future_day, 10, 14))

    result = service.create_booking(resource.id, client_id, offering.id, at(future_day, 10, 15), "k1")

    assert result.ok
    assert result.value.booking.start_at == at(future_day, 10)
    assert result.value.booking.end_at == at(future_day, 11)


def test_past_start_is_judged_before_flooring(service, clock, resource, offering, client_id, future_day):
    clock.set(at(future_day, 10, 14))

    half_minute_ago = at(future_day, 10, 13) + timedelta(seconds=30)

    within_grace = service.create_booking(resource.id, client_id, offering.id, half_minute_ago, "k1")
    too_old = service.create_booking(resource.id, client_id, offering.id, at(future_day, 10, 12), "k2")

    assert within_grace.ok
    assert too_old.error.code == "START_IN_PAST"


@pytest.mark.parametrize("key", ["", "   ", "x" * 101])
def test_invalid_idempotency_key_is_rejected(service, resource, offering, client_id, future_day, key):
    result = service.create_booking(resource.id, client_id, offering.id, at(future_day, 10), key)

    assert result.error.kind == ErrorKind.VALIDATION
    assert result.error.details["field"] == "idempotency_key"


def test_missing_start_is_rejected(service, resource, offering, client_id):
    result = service.create_booking(resource.id, client_id, offering.id, None, "k1")

    assert result.error.kind == ErrorKind.VALIDATION
    assert result.error.details["field"] == "start_at"


class TestConcurrentWriters:
    """The advisory check is bypassed to simulate a competitor committing first."""

    def test_storage_guard_turns_overlap_into_conflict(
        self, db, service, monkeypatch, resource, offering, client_id, future_day, make_booking
    ):
        make_booking(at(future_day, 10), status=BookingStatus.CONFIRMED)
        monkeypatch.setattr(service.repository, "find_active_overlapping", lambda *a, **k: [])

        result = service.create_booking(resource.id, client_id, offering.id, at(future_day, 10, 30), "k1")

        assert result.error.kind == ErrorKind.CONFLICT
        assert _row_count(db) == 1

    def _hide_first_lookup(self, monkeypatch, service):
        real_lookup = service.repository.find_by_idempotency_key
        calls = {"n": 0}

        def lookup(client_id, key):
            calls["n"] += 1
            if calls["n"] == 1:
                return None
            return real_lookup(client_id, key)

        monkeypatch.setattr(service.repository, "find_by_idempotency_key", lookup)
        monkeypatch.setattr(service.repository, "find_active_overlapping", lambda *a, **k: [])

    def test_duplicate_key_race_returns_winner(
        self, db, service, monkeypatch, resource, offering, client_id, future_day, make_booking
    ):
        winner = make_booking(
            at(future_day, 14), status=BookingStatus.PENDING, client_id=client_id, idempotency_key="k1"
        )
        self._hide_first_lookup(monkeypatch, service)

        result = service.create_booking(resource.id, client_id, offering.id, at(future_day, 10), "k1")

        assert result.ok
        assert result.value.created is False
        assert result.value.booking.id == winner.id
        assert _row_count(db) == 1

    def test_duplicate_key_race_for_same_slot_returns_winner(
        self, db, service, monkeypatch, resource, offering, client_id, future_day, make_booking
    ):
        winner = make_booking(
            at(future_day, 10), status=BookingStatus.PENDING, client_id=client_id, idempotency_key="k1"
        )
        self._hide_first_lookup(monkeypatch, service)

        result = service.create_booking(resource.id, client_id, offering.id, at(future_day, 10), "k1")

        assert result.ok
        assert result.value.booking.id == winner.id
        assert _row_count(db) == 1
