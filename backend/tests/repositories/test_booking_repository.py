from datetime import datetime, timedelta, timezone

from slotbook.models import Booking, BookingStatus
from slotbook.repositories import RepositoryFactory
from tests.helpers import at


def test_busy_intervals_only_returns_active_rows_touching_window(db, resource, make_booking, future_day):
    make_booking(at(future_day, 8), status=BookingStatus.CONFIRMED)
    make_booking(at(future_day, 9, 30), minutes=90, status=BookingStatus.CONFIRMED)
    make_booking(at(future_day, 12), status=BookingStatus.PENDING)
    make_booking(
        at(future_day, 14),
        status=BookingStatus.PENDING,
        hold_expires_at=datetime.now(timezone.utc) - timedelta(minutes=1),
    )
    make_booking(at(future_day, 16), status=BookingStatus.CANCELLED)
    repository = RepositoryFactory.create_booking_repository(db)

    busy = repository.busy_intervals(
        resource.id, at(future_day, 10), at(future_day, 18), datetime.now(timezone.utc)
    )

    assert busy == [
        (at(future_day, 9, 30), at(future_day, 11)),
        (at(future_day, 12), at(future_day, 13)),
    ]


def test_find_active_overlapping_can_exclude_and_restrict(db, resource, make_booking, future_day):
    confirmed = make_booking(at(future_day, 10), status=BookingStatus.CONFIRMED)
    held = make_booking(at(future_day, 11), status=BookingStatus.PENDING)
    repository = RepositoryFactory.create_booking_repository(db)
    now = datetime.now(timezone.utc)

    everything = repository.find_active_overlapping(resource.id, at(future_day, 10), at(future_day, 12), now)
    confirmed_only = repository.find_active_overlapping(
        resource.id, at(future_day, 10), at(future_day, 12), now, confirmed_only=True
    )
    excluded = repository.find_active_overlapping(
        resource.id, at(future_day, 10), at(future_day, 12), now, exclude_booking_id=confirmed.id
    )

    assert [b.id for b in everything] == [confirmed.id, held.id]
    assert [b.id for b in confirmed_only] == [confirmed.id]
    assert [b.id for b in excluded] == [held.id]


def test_lock_resource_is_noop_on_sqlite(db, resource):
    repository = RepositoryFactory.create_booking_repository(db)

    assert repository.dialect_name == "sqlite"
    repository.lock_resource(resource.id)


def test_get_for_update_overwrites_stale_copy(db, second_session, make_booking, future_day):
    booking = make_booking(at(future_day, 10), status=BookingStatus.PENDING)
    second_session.get(Booking, booking.id).status = BookingStatus.CANCELLED.value
    second_session.commit()
    assert booking.status == BookingStatus.PENDING.value

    current = RepositoryFactory.create_booking_repository(db).get_for_update(booking.id)

    assert current is booking
    assert current.status == BookingStatus.CANCELLED.value


def test_get_for_update_unknown_id(db):
    assert RepositoryFactory.create_booking_repository(db).get_for_update("01HNOPE0000000000000000000") is None
