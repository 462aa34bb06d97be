from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Iterator

import yaml

from .codec import validate_identifier


@dataclass(frozen=True)
class Room:
    name: str
    description: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "description": self.description}

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Room":
        return Room(
            name=validate_identifier(data.get("name"), "room name"),
            description=str(data.get("description") or ""),
        )


class RoomNotFound(KeyError):
    pass


DEFAULT_ROOMS = (
    Room("large", "Main meeting room, 10 seats, projector"),
    Room("small", "Small meeting room, 4 seats"),
    Room("booth", "Phone booth, 1 seat"),
)


class RoomDirectory:
    """Immutable catalog of bookable rooms, kept in declaration order."""

    def __init__(self, rooms: Iterable[Room] = DEFAULT_ROOMS) -> None:
        ordered: list[Room] = []
        by_name: dict[str, Room] = {}
        for room in rooms:
            name = validate_identifier(room.name, "room name")
            if name in by_name:
                raise ValueError(f"Duplicate room name: {name}")
            normalized = Room(name=name, description=room.description)
            by_name[name] = normalized
            ordered.append(normalized)

        if not ordered:
            raise ValueError("Room directory must contain at least one room.")

        self._rooms = tuple(ordered)
        self._by_name = by_name

    def is_valid(self, name: str) -> bool:
        return name in self._by_name

    def describe(self, name: str) -> str:
        try:
            return self._by_name[name].description
        except KeyError:
            raise RoomNotFound(name) from None

    def all(self) -> tuple[Room, ...]:
        return self._rooms

    def names(self) -> list[str]:
        return [room.name for room in self._rooms]

    def __iter__(self) -> Iterator[Room]:
        return iter(self._rooms)

    def __len__(self) -> int:
        return len(self._rooms)


def load_room_directory(path: str | Path) -> RoomDirectory:
    """Build a directory from a YAML list of ``{name, description}`` mappings."""
    payload = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    if not isinstance(payload, list):
        raise ValueError(f"Room file must contain a YAML list: {path}")

    rooms: list[Room] = []
    for index, row in enumerate(payload):
        if not isinstance(row, dict):
            raise ValueError(f"Room entry {index} is not a mapping")
        rooms.append(Room.from_dict(row))
    return RoomDirectory(rooms)
