"""Client-side reservation scheduler with an offline write queue.

The server stays authoritative. This side keeps the last known booking set
so users can keep viewing and booking while the portal is unreachable:
writes that fail in transit are applied optimistically, tagged ``pending``
and replayed in order by ``reconcile_pending``.
"""

from __future__ import annotations

import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Tuple
from zoneinfo import ZoneInfo

from intranet.core.auth.principal import Principal
from intranet.core.utils.keyed_locks import KeyBusyError, KeyedLocks
from intranet.domains.reservations.errors import (
    BookingConflictError,
    BookingNotFoundError,
    BookingPermissionError,
    BookingValidationError,
    ReservationError,
    TransportError,
    WriteInProgressError,
)
from intranet.domains.reservations.intervals import find_conflict, validate_interval

logger = logging.getLogger(__name__)

STATUS_CONFIRMED = "confirmed"
STATUS_PENDING = "pending"

OP_CREATE = "create"
OP_UPDATE = "update"
OP_DELETE = "delete"


@dataclass(frozen=True)
class BookingRecord:
    """A booking as the client knows it; ``server_id`` is None until confirmed."""

    key: str
    room: str
    title: str
    start: datetime
    end: datetime
    owner_email: str
    owner_name: str
    status: str = STATUS_CONFIRMED
    server_id: Optional[int] = None
    external_ref: Optional[str] = None
    idempotency_key: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status == STATUS_PENDING

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["start"] = self.start.isoformat()
        data["end"] = self.end.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BookingRecord":
        values = dict(data)
        values["start"] = datetime.fromisoformat(values["start"])
        values["end"] = datetime.fromisoformat(values["end"])
        return cls(**values)

    @classmethod
    def from_server(cls, data: Dict[str, Any]) -> "BookingRecord":
        return cls(
            key=str(data["id"]),
            server_id=int(data["id"]),
            room=data["room"],
            title=data["title"],
            start=datetime.fromisoformat(data["start"]),
            end=datetime.fromisoformat(data["end"]),
            owner_email=data.get("owner_email") or "",
            owner_name=data.get("owner_name") or "",
            external_ref=data.get("external_ref"),
            status=STATUS_CONFIRMED,
        )


@dataclass
class ReconcileResult:
    replayed: List[str] = field(default_factory=list)
    rejected: List[Tuple[str, str]] = field(default_factory=list)
    remaining: int = 0
    interrupted: bool = False


def _fields(record: BookingRecord) -> tuple:
    return record.room, record.start, record.end


def _key(record: BookingRecord) -> str:
    return record.key


class ReservationScheduler:
    """
    Offline-capable facade over a reservations transport.

    ``transport`` needs ``list_bookings``, ``create_booking``,
    ``update_booking`` and ``delete_booking`` (see ``HttpTransport``);
    ``store`` needs ``load``/``save`` (see ``LocalStore``).
    """

    def __init__(self, transport, store, principal: Principal, timezone: str = "America/Sao_Paulo") -> None:
        self.transport = transport
        self.store = store
        self.principal = principal
        self.zone = ZoneInfo(timezone)
        self._state_lock = threading.RLock()
        self._reconcile_lock = threading.Lock()
        self._inflight = KeyedLocks()
        self._offline = False
        self._records: Dict[str, BookingRecord] = {}
        self._queue: List[Dict[str, Any]] = []
        self._aliases: Dict[str, str] = {}
        self._fetched_at: Optional[str] = None
        self._load()

    # --- persistence ---

    def _load(self) -> None:
        state = self.store.load()
        with self._state_lock:
            self._records = {}
            for raw in state.get("records") or []:
                record = BookingRecord.from_dict(raw)
                self._records[record.key] = record
            self._queue = list(state.get("queue") or [])
            self._fetched_at = state.get("fetched_at")

    def _save(self) -> None:
        with self._state_lock:
            self.store.save(
                {
                    "records": [record.to_dict() for record in self._records.values()],
                    "queue": list(self._queue),
                    "fetched_at": self._fetched_at,
                }
            )

    # --- connectivity ---

    def _went_offline(self, exc: TransportError) -> None:
        if not self._offline:
            logger.warning("Portal unreachable, switching to offline mode: %s", exc)
        self._offline = True

    def _came_online(self) -> None:
        if not self._offline:
            return
        self._offline = False
        logger.info("Portal reachable again; replaying pending writes")
        if self.pending_count():
            self.reconcile_pending()

    @property
    def offline(self) -> bool:
        return self._offline

    # --- queries ---

    def pending_count(self) -> int:
        with self._state_lock:
            return len(self._queue)

    def known_bookings(self) -> List[BookingRecord]:
        with self._state_lock:
            return sorted(self._records.values(), key=lambda r: (r.start, r.key))

    def resolve_key(self, key: str) -> str:
        return self._aliases.get(key, key)

    def get(self, key: str) -> Optional[BookingRecord]:
        with self._state_lock:
            return self._records.get(self.resolve_key(key))

    def start(self) -> ReconcileResult:
        """Replay whatever is queued from an earlier session, then refresh."""
        result = self.reconcile_pending()
        if not result.interrupted:
            self.list_bookings()
        return result

    def list_bookings(self) -> List[BookingRecord]:
        """Server view merged with local pending writes; the snapshot when offline."""
        try:
            payload = self.transport.list_bookings()
        except TransportError as exc:
            self._went_offline(exc)
            return self.known_bookings()

        self._apply_snapshot(payload)
        self._came_online()
        return self.known_bookings()

    def _apply_snapshot(self, payload: List[Dict[str, Any]]) -> None:
        with self._state_lock:
            queued_keys = {op["key"] for op in self._queue}
            deleted_keys = {op["key"] for op in self._queue if op["op"] == OP_DELETE}
            merged: Dict[str, BookingRecord] = {}
            for raw in payload:
                record = BookingRecord.from_server(raw)
                if record.key in queued_keys:
                    continue
                merged[record.key] = record
            for key, record in self._records.items():
                if key in queued_keys and key not in deleted_keys:
                    merged[key] = record
            self._records = merged
            self._fetched_at = datetime.utcnow().isoformat()
            self._save()

    # --- writes ---

    def _wall_clock(self, value: Any) -> Any:
        """Aware datetimes become naive portal wall-clock, the form the server stores."""
        if isinstance(value, datetime) and value.tzinfo is not None:
            return value.astimezone(self.zone).replace(tzinfo=None)
        return value

    def _check_fields(self, room: str, title: str, start: Any, end: Any) -> None:
        if not (room or "").strip():
            raise BookingValidationError("room is required", field="room")
        if not (title or "").strip():
            raise BookingValidationError("title is required", field="title")
        validate_interval(start, end)

    def _check_overlap(self, room: str, start: datetime, end: datetime, exclude: Optional[str] = None) -> None:
        with self._state_lock:
            known = list(self._records.values())
        collision = find_conflict(known, room, start, end, key=_key, fields=_fields, exclude=exclude)
        if collision is not None:
            raise BookingConflictError(
                {
                    "id": collision.server_id or collision.key,
                    "room": collision.room,
                    "start": collision.start.isoformat(),
                    "end": collision.end.isoformat(),
                }
            )

    @contextmanager
    def _hold(self, key: str) -> Iterator[None]:
        try:
            with self._inflight.try_hold(key):
                yield
        except KeyBusyError:
            raise WriteInProgressError(f"booking {key} has a write in progress") from None

    def propose_booking(
        self,
        room: str,
        start: datetime,
        end: datetime,
        title: str,
        external_ref: Optional[str] = None,
    ) -> BookingRecord:
        """Validate and conflict-check locally, then submit or queue."""
        start = self._wall_clock(start)
        end = self._wall_clock(end)
        self._check_fields(room, title, start, end)
        room = room.strip()
        title = title.strip()
        self._check_overlap(room, start, end)

        idempotency_key = uuid.uuid4().hex
        payload = {
            "room": room,
            "title": title,
            "start": start.isoformat(),
            "end": end.isoformat(),
            "external_ref": external_ref,
            "idempotency_key": idempotency_key,
        }
        try:
            created = self.transport.create_booking(payload)
        except TransportError as exc:
            self._went_offline(exc)
            record = BookingRecord(
                key=f"local-{uuid.uuid4()}",
                room=room,
                title=title,
                start=start,
                end=end,
                owner_email=self.principal.email,
                owner_name=self.principal.name,
                status=STATUS_PENDING,
                external_ref=external_ref,
                idempotency_key=idempotency_key,
            )
            with self._state_lock:
                self._records[record.key] = record
                self._queue.append({"op": OP_CREATE, "key": record.key, "payload": payload})
                self._save()
            logger.info("Queued booking %s for %s while offline", record.key, room)
            return record

        record = BookingRecord.from_server(created)
        with self._state_lock:
            self._records[record.key] = record
            self._save()
        self._came_online()
        return record

    def _owned(self, key: str) -> BookingRecord:
        record = self.get(key)
        if record is None:
            raise BookingNotFoundError(f"booking {key} not found")
        if not self.principal.owns(record.owner_email):
            raise BookingPermissionError("only the owner may change this booking")
        return record

    def _queued_ops(self, key: str) -> List[Dict[str, Any]]:
        return [op for op in self._queue if op["key"] == key]

    def update_booking(
        self,
        key: str,
        room: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        title: Optional[str] = None,
    ) -> BookingRecord:
        record = self._owned(key)
        key = record.key
        with self._hold(key):
            updated = replace(
                record,
                room=room.strip() if room is not None else record.room,
                title=title.strip() if title is not None else record.title,
                start=self._wall_clock(start) if start is not None else record.start,
                end=self._wall_clock(end) if end is not None else record.end,
            )
            self._check_fields(updated.room, updated.title, updated.start, updated.end)
            self._check_overlap(updated.room, updated.start, updated.end, exclude=key)
            changes = {
                "room": updated.room,
                "title": updated.title,
                "start": updated.start.isoformat(),
                "end": updated.end.isoformat(),
            }

            with self._state_lock:
                queued = self._queued_ops(key)
                if record.server_id is None or queued:
                    return self._merge_into_queue(updated, changes, queued)

            try:
                server = self.transport.update_booking(record.server_id, changes)
            except TransportError as exc:
                self._went_offline(exc)
                with self._state_lock:
                    return self._merge_into_queue(updated, changes, [])

            confirmed = BookingRecord.from_server(server)
            with self._state_lock:
                self._records[confirmed.key] = confirmed
                self._save()
        self._came_online()
        return confirmed

    def _merge_into_queue(
        self, updated: BookingRecord, changes: Dict[str, Any], queued: List[Dict[str, Any]]
    ) -> BookingRecord:
        """Fold an edit into the queued write for the same key (state lock held)."""
        updated = replace(updated, status=STATUS_PENDING)
        if queued:
            op = queued[-1]
            op["payload"].update(changes)
        else:
            self._queue.append({"op": OP_UPDATE, "key": updated.key, "server_id": updated.server_id, "payload": changes})
        self._records[updated.key] = updated
        self._save()
        logger.info("Queued update for booking %s", updated.key)
        return updated

    def delete_booking(self, key: str) -> bool:
        """Remove an owned booking; unknown keys are a no-op returning False."""
        if self.get(key) is None:
            return False
        record = self._owned(key)
        key = record.key
        with self._hold(key):
            if record.server_id is None:
                with self._state_lock:
                    self._forget(key)
                    self._save()
                logger.info("Dropped pending booking %s before it reached the server", key)
                return True

            try:
                self.transport.delete_booking(record.server_id)
            except TransportError as exc:
                self._went_offline(exc)
                with self._state_lock:
                    self._forget(key)
                    self._queue.append({"op": OP_DELETE, "key": key, "server_id": record.server_id, "payload": {}})
                    self._save()
                logger.info("Queued delete for booking %s", key)
                return True

            with self._state_lock:
                self._forget(key)
                self._save()
        self._came_online()
        return True

    def _forget(self, key: str) -> None:
        """Drop a record and every queued write for it (state lock held)."""
        self._queue = [op for op in self._queue if op["key"] != key]
        self._records.pop(key, None)

    # --- reconciliation ---

    def reconcile_pending(self) -> ReconcileResult:
        """Replay queued writes in order; stop at the first transport failure."""
        result = ReconcileResult()
        if not self._reconcile_lock.acquire(blocking=False):
            result.remaining = self.pending_count()
            result.interrupted = True
            return result
        try:
            while True:
                with self._state_lock:
                    if not self._queue:
                        break
                    op = dict(self._queue[0])
                try:
                    with self._hold(op["key"]):
                        self._replay(op)
                except (TransportError, WriteInProgressError) as exc:
                    if isinstance(exc, TransportError):
                        self._went_offline(exc)
                    logger.warning("Reconcile paused at %s %s: %s", op["op"], op["key"], exc)
                    result.interrupted = True
                    break
                except ReservationError as exc:
                    logger.error("Server rejected queued %s for %s (%s); dropping it", op["op"], op["key"], exc.code)
                    self._drop_rejected(op)
                    result.rejected.append((op["key"], exc.code))
                else:
                    result.replayed.append(op["key"])
                    self._offline = False
        finally:
            self._reconcile_lock.release()

        result.remaining = self.pending_count()
        if result.replayed or result.rejected:
            logger.info(
                "Reconcile: %d replayed, %d rejected, %d remaining",
                len(result.replayed),
                len(result.rejected),
                result.remaining,
            )
        if result.rejected and not result.interrupted:
            self.list_bookings()
        return result

    def _pop_head(self, op: Dict[str, Any]) -> None:
        if self._queue and self._queue[0]["key"] == op["key"] and self._queue[0]["op"] == op["op"]:
            self._queue.pop(0)

    def _replay(self, op: Dict[str, Any]) -> None:
        kind = op["op"]
        if kind == OP_CREATE:
            server = self.transport.create_booking(op["payload"])
            confirmed = BookingRecord.from_server(server)
            with self._state_lock:
                self._pop_head(op)
                self._records.pop(op["key"], None)
                self._records[confirmed.key] = confirmed
                self._aliases[op["key"]] = confirmed.key
                self._save()
        elif kind == OP_UPDATE:
            server = self.transport.update_booking(op["server_id"], op["payload"])
            confirmed = BookingRecord.from_server(server)
            with self._state_lock:
                self._pop_head(op)
                self._records[confirmed.key] = confirmed
                self._save()
        elif kind == OP_DELETE:
            self.transport.delete_booking(op["server_id"])
            with self._state_lock:
                self._pop_head(op)
                self._records.pop(op["key"], None)
                self._save()
        else:
            logger.error("Unknown queued operation %r; dropping it", kind)
            with self._state_lock:
                self._pop_head(op)
                self._save()

    def _drop_rejected(self, op: Dict[str, Any]) -> None:
        with self._state_lock:
            self._pop_head(op)
            if op["op"] == OP_CREATE:
                self._records.pop(op["key"], None)
            self._save()
