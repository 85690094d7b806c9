"""Offline-capable client scheduler against an in-memory fake portal."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List

import pytest

from intranet.client.local_store import LocalStore, MemoryStore
from intranet.client.reconciler import BackgroundReconciler
from intranet.client.scheduler import STATUS_CONFIRMED, STATUS_PENDING, ReservationScheduler
from intranet.core.auth.principal import Principal
from intranet.domains.reservations.errors import (
    BookingConflictError,
    BookingNotFoundError,
    BookingPermissionError,
    BookingValidationError,
    TransportError,
    WriteInProgressError,
)
from intranet.domains.reservations.intervals import overlaps

pytestmark = pytest.mark.unit

ANA = Principal(id=1, name="Ana", email="ana@example.com")
BRUNO = Principal(id=2, name="Bruno", email="bruno@example.com")


def at(hour, minute=0):
    return datetime(2025, 3, 10, hour, minute)


class FakePortal:
    """Server stand-in: overlap checks, owner checks, idempotent creates."""

    def __init__(self, principal: Principal = ANA) -> None:
        self.principal = principal
        self.online = True
        self.lose_responses = False
        self.fail_after: int | None = None
        self.bookings: Dict[int, Dict[str, Any]] = {}
        self.calls: List[str] = []
        self._next_id = 1

    def _call(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_after is not None:
            if self.fail_after <= 0:
                raise TransportError("connection reset")
            self.fail_after -= 1
        if not self.online:
            raise TransportError("portal unreachable")

    @staticmethod
    def _public(row: Dict[str, Any]) -> Dict[str, Any]:
        return {k: v for k, v in row.items() if not k.startswith("_")}

    def seed(self, owner: Principal, room: str, start: datetime, end: datetime, title: str) -> int:
        booking_id = self._next_id
        self._next_id += 1
        self.bookings[booking_id] = {
            "id": booking_id,
            "room": room,
            "title": title,
            "start": start.isoformat(),
            "end": end.isoformat(),
            "owner_email": owner.email,
            "owner_name": owner.name,
            "external_ref": None,
            "_key": None,
        }
        return booking_id

    def _collides(self, room, start, end, exclude=None):
        for row in self.bookings.values():
            if row["id"] == exclude or row["room"] != room:
                continue
            if overlaps(start, end, datetime.fromisoformat(row["start"]), datetime.fromisoformat(row["end"])):
                return row
        return None

    def list_bookings(self):
        self._call("list")
        return [self._public(row) for row in self.bookings.values()]

    def create_booking(self, payload):
        self._call("create")
        key = payload.get("idempotency_key")
        for row in self.bookings.values():
            if key and row["_key"] == key:
                return self._public(row)
        start = datetime.fromisoformat(payload["start"])
        end = datetime.fromisoformat(payload["end"])
        hit = self._collides(payload["room"], start, end)
        if hit:
            raise BookingConflictError({"id": hit["id"], "room": hit["room"], "start": hit["start"], "end": hit["end"]})
        booking_id = self.seed(self.principal, payload["room"], start, end, payload["title"])
        self.bookings[booking_id]["_key"] = key
        if self.lose_responses:
            raise TransportError("response lost")
        return self._public(self.bookings[booking_id])

    def update_booking(self, booking_id, changes):
        self._call("update")
        row = self.bookings.get(booking_id)
        if row is None:
            raise BookingNotFoundError("gone")
        if row["owner_email"] != self.principal.email:
            raise BookingPermissionError("not_owner")
        start = datetime.fromisoformat(changes.get("start", row["start"]))
        end = datetime.fromisoformat(changes.get("end", row["end"]))
        if self._collides(changes.get("room", row["room"]), start, end, exclude=booking_id):
            raise BookingConflictError({"id": booking_id})
        row.update(changes)
        return self._public(row)

    def delete_booking(self, booking_id):
        self._call("delete")
        return self.bookings.pop(booking_id, None) is not None


@pytest.fixture
def portal():
    return FakePortal()


@pytest.fixture
def scheduler(portal):
    return ReservationScheduler(portal, MemoryStore(), ANA)


class TestOnline:
    def test_propose_confirms_with_server_id(self, scheduler, portal):
        record = scheduler.propose_booking("aquario", at(9), at(10), "Daily")
        assert record.status == STATUS_CONFIRMED
        assert record.server_id == 1
        assert record.key == "1"
        assert scheduler.pending_count() == 0

    def test_local_conflict_is_not_submitted(self, scheduler, portal):
        portal.seed(BRUNO, "aquario", at(9), at(10), "Bruno")
        scheduler.list_bookings()
        calls_before = len(portal.calls)

        with pytest.raises(BookingConflictError) as excinfo:
            scheduler.propose_booking("aquario", at(9, 30), at(10, 30), "Clash")
        assert excinfo.value.conflict["room"] == "aquario"
        assert len(portal.calls) == calls_before

    def test_server_conflict_is_surfaced_not_queued(self, scheduler, portal):
        portal.seed(BRUNO, "aquario", at(9), at(10), "Unseen")
        with pytest.raises(BookingConflictError):
            scheduler.propose_booking("aquario", at(9), at(10), "Clash")
        assert scheduler.pending_count() == 0

    def test_local_validation(self, scheduler, portal):
        with pytest.raises(BookingValidationError):
            scheduler.propose_booking("aquario", at(10), at(9), "Backwards")
        with pytest.raises(BookingValidationError):
            scheduler.propose_booking("", at(9), at(10), "No room")
        assert portal.calls == []

    def test_update_and_delete_owner_checks(self, scheduler, portal):
        theirs = portal.seed(BRUNO, "grande", at(9), at(10), "Bruno")
        mine = scheduler.propose_booking("aquario", at(9), at(10), "Daily")
        scheduler.list_bookings()

        with pytest.raises(BookingPermissionError):
            scheduler.update_booking(str(theirs), title="Mine now")
        with pytest.raises(BookingPermissionError):
            scheduler.delete_booking(str(theirs))

        updated = scheduler.update_booking(mine.key, title="Retro")
        assert updated.title == "Retro"
        assert portal.bookings[mine.server_id]["title"] == "Retro"

        assert scheduler.delete_booking(mine.key) is True
        assert mine.server_id not in portal.bookings
        assert scheduler.delete_booking("does-not-exist") is False

    def test_update_excludes_itself_from_overlap(self, scheduler):
        record = scheduler.propose_booking("aquario", at(9), at(11), "Workshop")
        assert scheduler.update_booking(record.key, start=at(9, 30)).start == at(9, 30)

    def test_aware_times_become_portal_wall_clock(self, portal):
        scheduler = ReservationScheduler(portal, MemoryStore(), ANA, timezone="America/Sao_Paulo")
        portal.seed(BRUNO, "aquario", at(9), at(10), "Bruno")
        scheduler.list_bookings()

        with pytest.raises(BookingConflictError):
            scheduler.propose_booking(
                "aquario",
                datetime(2025, 3, 10, 12, 30, tzinfo=timezone.utc),
                datetime(2025, 3, 10, 13, 30, tzinfo=timezone.utc),
                "Clash",
            )

        record = scheduler.propose_booking(
            "aquario",
            datetime(2025, 3, 10, 14, tzinfo=timezone.utc),
            datetime(2025, 3, 10, 15, tzinfo=timezone.utc),
            "Planning",
        )
        assert record.start == at(11)
        assert record.end == at(12)
        assert portal.bookings[record.server_id]["start"] == "2025-03-10T11:00:00"

        moved = scheduler.update_booking(record.key, start=datetime(2025, 3, 10, 13, 30, tzinfo=timezone.utc))
        assert moved.start == at(10, 30)

    def test_aware_times_offline_are_queued_naive(self, portal):
        scheduler = ReservationScheduler(portal, MemoryStore(), ANA, timezone="UTC")
        portal.online = False
        record = scheduler.propose_booking(
            "aquario",
            datetime(2025, 3, 10, 9, tzinfo=timezone.utc),
            datetime(2025, 3, 10, 10, tzinfo=timezone.utc),
            "Daily",
        )
        assert record.start == at(9) and record.start.tzinfo is None
        with pytest.raises(BookingConflictError):
            scheduler.propose_booking("aquario", at(9, 30), at(10, 30), "Clash")

    def test_write_in_flight_blocks_second_write(self, scheduler):
        record = scheduler.propose_booking("aquario", at(9), at(10), "Daily")
        with scheduler._inflight.try_hold(record.key):
            with pytest.raises(WriteInProgressError):
                scheduler.update_booking(record.key, title="Second")
            with pytest.raises(WriteInProgressError):
                scheduler.delete_booking(record.key)


class TestOffline:
    def test_list_falls_back_to_snapshot(self, scheduler, portal):
        portal.seed(BRUNO, "grande", at(9), at(10), "Bruno")
        assert len(scheduler.list_bookings()) == 1

        portal.online = False
        snapshot = scheduler.list_bookings()
        assert [r.title for r in snapshot] == ["Bruno"]
        assert scheduler.offline is True

    def test_list_offline_without_snapshot_is_empty(self, scheduler, portal):
        portal.online = False
        assert scheduler.list_bookings() == []

    def test_propose_offline_queues_pending_record(self, scheduler, portal):
        portal.online = False
        record = scheduler.propose_booking("aquario", at(9), at(10), "Daily")

        assert record.status == STATUS_PENDING
        assert record.key.startswith("local-")
        assert record.server_id is None
        assert record.idempotency_key
        assert scheduler.pending_count() == 1
        assert portal.bookings == {}
        assert [r.key for r in scheduler.list_bookings()] == [record.key]

    def test_pending_records_take_part_in_local_overlap(self, scheduler, portal):
        portal.online = False
        scheduler.propose_booking("aquario", at(9), at(10), "Daily")
        with pytest.raises(BookingConflictError):
            scheduler.propose_booking("aquario", at(9, 30), at(10, 30), "Clash")
        assert scheduler.pending_count() == 1

    def test_update_of_pending_rewrites_queued_create(self, scheduler, portal):
        portal.online = False
        record = scheduler.propose_booking("aquario", at(9), at(10), "Daily")
        scheduler.update_booking(record.key, title="Standup", end=at(9, 30))

        assert scheduler.pending_count() == 1
        portal.online = True
        result = scheduler.reconcile_pending()

        assert len(result.replayed) == 1
        (row,) = portal.bookings.values()
        assert row["title"] == "Standup"
        assert row["end"] == "2025-03-10T09:30:00"

    def test_delete_of_pending_never_reaches_server(self, scheduler, portal):
        portal.online = False
        record = scheduler.propose_booking("aquario", at(9), at(10), "Daily")
        assert scheduler.delete_booking(record.key) is True
        assert scheduler.pending_count() == 0
        portal.online = True
        scheduler.reconcile_pending()
        assert portal.bookings == {}
        assert portal.calls.count("create") == 1

    def test_offline_update_and_delete_of_confirmed_are_queued(self, scheduler, portal):
        first = scheduler.propose_booking("aquario", at(9), at(10), "Daily")
        second = scheduler.propose_booking("grande", at(9), at(10), "Sync")
        portal.online = False

        edited = scheduler.update_booking(first.key, title="Daily (moved)")
        assert edited.status == STATUS_PENDING
        assert scheduler.delete_booking(second.key) is True
        assert scheduler.pending_count() == 2

        portal.online = True
        result = scheduler.reconcile_pending()
        assert result.remaining == 0
        assert portal.bookings[first.server_id]["title"] == "Daily (moved)"
        assert second.server_id not in portal.bookings
        assert scheduler.get(first.key).status == STATUS_CONFIRMED


class TestReconcile:
    def test_promotes_pending_without_duplicates(self, scheduler, portal):
        portal.online = False
        pending = scheduler.propose_booking("aquario", at(9), at(10), "Daily")
        portal.online = True

        result = scheduler.reconcile_pending()

        assert result.replayed == [pending.key]
        assert result.remaining == 0
        known = scheduler.list_bookings()
        assert len(known) == 1
        assert known[0].status == STATUS_CONFIRMED
        assert scheduler.get(pending.key).server_id == known[0].server_id

    def test_stops_at_first_transport_failure(self, scheduler, portal):
        portal.online = False
        scheduler.propose_booking("aquario", at(9), at(10), "One")
        scheduler.propose_booking("grande", at(9), at(10), "Two")
        portal.online = True
        portal.fail_after = 1

        result = scheduler.reconcile_pending()

        assert len(result.replayed) == 1
        assert result.interrupted is True
        assert result.remaining == 1
        assert len(portal.bookings) == 1

    def test_permanent_rejection_is_dropped(self, scheduler, portal):
        portal.online = False
        pending = scheduler.propose_booking("aquario", at(9), at(10), "Daily")
        portal.seed(BRUNO, "aquario", at(9, 30), at(10, 30), "Got there first")
        portal.online = True

        result = scheduler.reconcile_pending()

        assert result.rejected == [(pending.key, "conflict")]
        assert result.remaining == 0
        assert [r.title for r in scheduler.known_bookings()] == ["Got there first"]

    def test_lost_response_replays_idempotently(self, scheduler, portal):
        portal.lose_responses = True
        record = scheduler.propose_booking("aquario", at(9), at(10), "Daily")
        assert record.status == STATUS_PENDING
        assert len(portal.bookings) == 1

        portal.lose_responses = False
        scheduler.reconcile_pending()

        assert len(portal.bookings) == 1
        assert [r.status for r in scheduler.known_bookings()] == [STATUS_CONFIRMED]

    def test_reconnect_triggers_reconcile(self, scheduler, portal):
        portal.online = False
        scheduler.propose_booking("aquario", at(9), at(10), "Daily")
        portal.online = True

        scheduler.list_bookings()

        assert scheduler.pending_count() == 0
        assert len(portal.bookings) == 1

    def test_start_replays_queue_from_previous_session(self, portal, tmp_path):
        store = LocalStore(tmp_path / "state.json")
        portal.online = False
        first = ReservationScheduler(portal, store, ANA)
        first.propose_booking("aquario", at(9), at(10), "Daily")

        portal.online = True
        second = ReservationScheduler(portal, store, ANA)
        assert second.pending_count() == 1
        result = second.start()

        assert result.remaining == 0
        assert len(portal.bookings) == 1
        assert store.load()["queue"] == []

    def test_background_reconciler_single_pass(self, scheduler, portal):
        portal.online = False
        scheduler.propose_booking("aquario", at(9), at(10), "Daily")
        reconciler = BackgroundReconciler(scheduler, interval=60)

        assert reconciler.run_once() == 1
        portal.online = True
        assert reconciler.run_once() == 0
        assert len(portal.bookings) == 1

    def test_background_reconciler_thread_starts_and_stops(self, scheduler):
        reconciler = BackgroundReconciler(scheduler, interval=0.01)
        reconciler.start()
        assert reconciler.running
        reconciler.stop(timeout=2)
        assert not reconciler.running
