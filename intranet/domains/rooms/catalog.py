"""Room catalog defined at configuration time; never mutated at runtime."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Iterable, List, Optional, Tuple

from flask import current_app, has_app_context


@dataclass(frozen=True)
class Room:
    id: str
    name: str
    capacity: int
    color: str

    def to_dict(self) -> dict:
        return asdict(self)


DEFAULT_ROOMS: Tuple[Room, ...] = (
    Room(id="aquario", name="Sala Aquário", capacity=8, color="#3B82F6"),
    Room(id="grande", name="Sala Grande", capacity=20, color="#10B981"),
    Room(id="pequena", name="Sala Pequena", capacity=6, color="#F59E0B"),
    Room(id="recepcao", name="Recepção", capacity=4, color="#EF4444"),
)


def build_catalog(entries: Iterable[dict]) -> Tuple[Room, ...]:
    """Validate raw catalog entries (e.g. from ROOM_CATALOG_JSON)."""
    rooms: List[Room] = []
    seen: set[str] = set()
    for entry in entries:
        room_id = str(entry.get("id") or "").strip()
        if not room_id or room_id in seen:
            raise ValueError(f"invalid room catalog entry: {entry!r}")
        seen.add(room_id)
        rooms.append(
            Room(
                id=room_id,
                name=str(entry.get("name") or room_id),
                capacity=int(entry.get("capacity") or 0),
                color=str(entry.get("color") or "#6366F1"),
            )
        )
    return tuple(rooms)


def list_rooms() -> Tuple[Room, ...]:
    if has_app_context():
        configured = current_app.config.get("ROOM_CATALOG")
        if configured:
            cached = current_app.extensions.get("room_catalog")
            if cached is None:
                cached = build_catalog(configured)
                current_app.extensions["room_catalog"] = cached
            return cached
    return DEFAULT_ROOMS


def get_room(room_id: str) -> Optional[Room]:
    for room in list_rooms():
        if room.id == room_id:
            return room
    return None
