"""Booking services: conflicts, ownership, idempotency, outbox, points."""

from dataclasses import replace
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from intranet.domains.gamification.services import count_by_category, get_profile
from intranet.domains.reservations.errors import (
    BookingConflictError,
    BookingNotFoundError,
    BookingPermissionError,
    BookingValidationError,
    WriteInProgressError,
)
from intranet.domains.reservations.events import (
    RESERVATIONS_BOOKING_CREATED,
    RESERVATIONS_BOOKING_DELETED,
    RESERVATIONS_BOOKING_UPDATED,
)
from intranet.domains.reservations.models import Booking
from intranet.domains.reservations.services import (
    create_booking,
    delete_booking,
    get_booking,
    list_bookings,
    update_booking,
)
from intranet.domains.reservations.services import booking_service
from intranet.portal_platform.outbox.models import OutboxMessage

pytestmark = pytest.mark.integration


def at(hour, minute=0, day=10):
    return datetime(2025, 3, day, hour, minute)


class TestCreateBooking:
    def test_create_stores_owner_and_awards_points(self, app, ana_principal):
        booking, created = create_booking(ana_principal, "aquario", at(9), at(10), "Daily")

        assert created is True
        assert booking.id is not None
        assert booking.owner_email == "ana@example.com"
        assert booking.owner_name == "Ana Souza"
        assert booking.duration_minutes == 60
        profile = get_profile(ana_principal.id)
        assert profile.total_points == 8
        assert count_by_category("room_reservation") == 1

    def test_overlap_in_same_room_is_rejected_with_interval(self, app, ana_principal, bruno_principal):
        first, _ = create_booking(ana_principal, "aquario", at(9), at(10), "Daily")

        with pytest.raises(BookingConflictError) as excinfo:
            create_booking(bruno_principal, "aquario", at(9, 30), at(10, 30), "Sync")

        assert str(excinfo.value) == "overlap exists"
        assert excinfo.value.conflict == {
            "id": first.id,
            "room": "aquario",
            "start": "2025-03-10T09:00:00",
            "end": "2025-03-10T10:00:00",
        }
        assert Booking.query.count() == 1
        assert get_profile(bruno_principal.id).total_points == 0

    def test_touching_bookings_are_allowed(self, app, ana_principal, bruno_principal):
        create_booking(ana_principal, "aquario", at(9), at(10), "Daily")
        _, created = create_booking(bruno_principal, "aquario", at(10), at(11), "Sync")
        assert created is True

    def test_same_interval_other_room_is_allowed(self, app, ana_principal):
        create_booking(ana_principal, "aquario", at(9), at(10), "Daily")
        _, created = create_booking(ana_principal, "grande", at(9), at(10), "All hands")
        assert created is True

    @pytest.mark.parametrize(
        "room,start,end,title",
        [
            ("aquario", at(10), at(10), "Zero length"),
            ("aquario", at(11), at(10), "Backwards"),
            ("sotao", at(9), at(10), "Unknown room"),
            ("aquario", at(9), at(10), "   "),
        ],
    )
    def test_invalid_input_is_rejected(self, app, ana_principal, room, start, end, title):
        with pytest.raises(BookingValidationError):
            create_booking(ana_principal, room, start, end, title)
        assert Booking.query.count() == 0

    def test_replayed_idempotency_key_returns_existing_booking(self, app, ana_principal):
        first, created = create_booking(
            ana_principal, "pequena", at(14), at(15), "1:1", idempotency_key="offline-key-0001"
        )
        again, created_again = create_booking(
            ana_principal, "pequena", at(14), at(15), "1:1", idempotency_key="offline-key-0001"
        )

        assert created is True
        assert created_again is False
        assert again.id == first.id
        assert Booking.query.count() == 1
        assert count_by_category("room_reservation") == 1
        assert get_profile(ana_principal.id).total_points == 8

    def test_idempotency_key_of_another_user_conflicts(self, app, ana_principal, bruno_principal):
        create_booking(ana_principal, "pequena", at(14), at(15), "1:1", idempotency_key="shared-key-0001")
        with pytest.raises(BookingConflictError):
            create_booking(bruno_principal, "grande", at(8), at(9), "Other", idempotency_key="shared-key-0001")

    def test_aware_datetimes_are_stored_as_portal_wall_clock(self, app, ana_principal):
        sp = ZoneInfo("America/Sao_Paulo")
        booking, _ = create_booking(
            ana_principal,
            "grande",
            datetime(2025, 3, 10, 9, tzinfo=sp),
            datetime(2025, 3, 10, 10, tzinfo=sp),
            "Planning",
        )
        # Testing config uses UTC as the portal timezone.
        assert booking.start_time == datetime(2025, 3, 10, 12)
        assert booking.start_time.tzinfo is None

    def test_create_stages_outbox_event(self, app, ana_principal):
        booking, _ = create_booking(ana_principal, "aquario", at(9), at(10), "Daily", external_ref="cal-123")
        message = OutboxMessage.query.filter_by(event_type=RESERVATIONS_BOOKING_CREATED).one()
        assert message.payload["booking_id"] == booking.id
        assert message.payload["external_ref"] == "cal-123"
        assert message.user_id == ana_principal.id


class TestListBookings:
    def test_list_orders_by_start_and_filters(self, app, ana_principal, bruno_principal):
        create_booking(bruno_principal, "grande", at(11), at(12), "Late")
        create_booking(ana_principal, "aquario", at(9), at(10), "Early")
        create_booking(ana_principal, "aquario", at(9, day=11), at(10, day=11), "Next day")

        titles = [b.title for b in list_bookings()]
        assert titles == ["Early", "Late", "Next day"]
        assert [b.title for b in list_bookings(room="grande")] == ["Late"]
        assert [b.title for b in list_bookings(start=at(10, 30), end=at(23))] == ["Late"]

    def test_every_user_sees_every_booking(self, app, ana_principal, bruno_principal):
        create_booking(ana_principal, "aquario", at(9), at(10), "Ana")
        create_booking(bruno_principal, "grande", at(9), at(10), "Bruno")
        assert {b.owner_email for b in list_bookings()} == {"ana@example.com", "bruno@example.com"}


class TestUpdateBooking:
    def test_owner_can_move_booking(self, app, ana_principal):
        booking, _ = create_booking(ana_principal, "aquario", at(9), at(10), "Daily")
        updated = update_booking(ana_principal, booking.id, room="grande", start=at(15), end=at(16), title="Moved")

        assert (updated.room, updated.start_time, updated.end_time, updated.title) == (
            "grande",
            at(15),
            at(16),
            "Moved",
        )
        message = OutboxMessage.query.filter_by(event_type=RESERVATIONS_BOOKING_UPDATED).one()
        assert set(message.payload["changed_fields"]) == {"room", "title", "start_time", "end_time"}

    def test_shifting_within_own_slot_does_not_conflict_with_itself(self, app, ana_principal):
        booking, _ = create_booking(ana_principal, "aquario", at(9), at(11), "Workshop")
        updated = update_booking(ana_principal, booking.id, start=at(9, 30))
        assert updated.start_time == at(9, 30)

    def test_update_conflicting_with_other_booking(self, app, ana_principal, bruno_principal):
        create_booking(bruno_principal, "aquario", at(10), at(11), "Bruno")
        mine, _ = create_booking(ana_principal, "aquario", at(9), at(10), "Ana")
        with pytest.raises(BookingConflictError):
            update_booking(ana_principal, mine.id, end=at(10, 30))
        assert get_booking(mine.id).end_time == at(10)

    def test_merged_interval_is_validated(self, app, ana_principal):
        booking, _ = create_booking(ana_principal, "aquario", at(9), at(10), "Daily")
        with pytest.raises(BookingValidationError):
            update_booking(ana_principal, booking.id, start=at(10))

    def test_non_owner_cannot_update(self, app, ana_principal, bruno_principal):
        booking, _ = create_booking(ana_principal, "aquario", at(9), at(10), "Daily")
        with pytest.raises(BookingPermissionError):
            update_booking(bruno_principal, booking.id, title="Hijacked")
        assert get_booking(booking.id).title == "Daily"

    def test_owner_match_ignores_email_case(self, app, ana_principal):
        booking, _ = create_booking(ana_principal, "aquario", at(9), at(10), "Daily")
        shouting = replace(ana_principal, email="ANA@Example.COM")
        assert update_booking(shouting, booking.id, title="Renamed").title == "Renamed"

    def test_missing_booking(self, app, ana_principal):
        with pytest.raises(BookingNotFoundError):
            update_booking(ana_principal, 999, title="Ghost")

    def test_concurrent_write_to_same_booking_is_rejected(self, app, ana_principal):
        booking, _ = create_booking(ana_principal, "aquario", at(9), at(10), "Daily")
        with booking_service._booking_locks.try_hold(booking.id):
            with pytest.raises(WriteInProgressError):
                update_booking(ana_principal, booking.id, title="Second writer")
            with pytest.raises(WriteInProgressError):
                delete_booking(ana_principal, booking.id)
        assert update_booking(ana_principal, booking.id, title="After").title == "After"


class TestDeleteBooking:
    def test_owner_deletes_and_event_is_staged(self, app, ana_principal):
        booking, _ = create_booking(ana_principal, "aquario", at(9), at(10), "Daily")
        assert delete_booking(ana_principal, booking.id) is True
        assert get_booking(booking.id) is None
        assert OutboxMessage.query.filter_by(event_type=RESERVATIONS_BOOKING_DELETED).count() == 1

    def test_delete_is_idempotent(self, app, ana_principal):
        booking, _ = create_booking(ana_principal, "aquario", at(9), at(10), "Daily")
        assert delete_booking(ana_principal, booking.id) is True
        assert delete_booking(ana_principal, booking.id) is False
        assert delete_booking(ana_principal, 4242) is False

    def test_non_owner_cannot_delete(self, app, ana_principal, bruno_principal):
        booking, _ = create_booking(ana_principal, "aquario", at(9), at(10), "Daily")
        with pytest.raises(BookingPermissionError):
            delete_booking(bruno_principal, booking.id)
        assert get_booking(booking.id) is not None

    def test_slot_is_free_after_delete(self, app, ana_principal, bruno_principal):
        booking, _ = create_booking(ana_principal, "aquario", at(9), at(10), "Daily")
        delete_booking(ana_principal, booking.id)
        _, created = create_booking(bruno_principal, "aquario", at(9), at(10), "Mine now")
        assert created is True
