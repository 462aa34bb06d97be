from __future__ import annotations

from datetime import date
from typing import Iterable

from .booking import Reservation
from .codec import format_time_of_day
from .rooms import RoomDirectory

EMPTY_STORE_MESSAGE = "No reservations yet."


def format_by_room(reservations: Iterable[Reservation], directory: RoomDirectory) -> str:
    """Render reservations grouped per room, in directory order.

    Each room lists its reservations by start time; equal start times keep
    the order they were given in. Rooms without reservations are still
    shown, and reservations for rooms outside the directory are ignored.
    """
    grouped: dict[str, list[Reservation]] = {room.name: [] for room in directory.all()}
    for reservation in reservations:
        if reservation.room in grouped:
            grouped[reservation.room].append(reservation)

    blocks: list[str] = []
    for room in directory.all():
        rows = sorted(grouped[room.name], key=lambda reservation: reservation.start)
        lines = [f"{room.name}[{room.description}] :"]
        lines.extend(
            f"\t`{format_time_of_day(row.start)}` ~ `{format_time_of_day(row.end)}` (by {row.owner})" for row in rows
        )
        blocks.append("\n".join(lines))
    return "\n".join(blocks) + "\n"


def format_day_report(day: date, reservations: Iterable[Reservation], directory: RoomDirectory) -> str:
    rows = list(reservations)
    header = f"{day.isoformat()} reservations"
    if not rows:
        return f"{header}\n\n{EMPTY_STORE_MESSAGE}\n"
    return f"{header}\n\n{format_by_room(rows, directory)}"


def format_raw(records: Iterable[tuple[str, str]]) -> str:
    return "".join(f"{key} {value}\n" for key, value in records)
