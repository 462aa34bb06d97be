from __future__ import annotations

from datetime import date, time
from typing import Callable, Iterable, Protocol

from .booking import has_time_overlap
from .codec import MalformedRecord, decode_reservation, room_day_prefix


class PrefixReader(Protocol):
    def iterate_prefix(self, prefix: str) -> Iterable[tuple[str, str]]: ...


def find_conflict(
    reader: PrefixReader,
    day: date,
    room: str,
    start: time,
    end: time,
    on_malformed: Callable[[str, str, Exception], None] | None = None,
) -> str | None:
    """Return the owner of the first stored reservation overlapping the interval.

    Only records under the ``day|room|`` prefix are scanned, in key order, so
    the earliest admitted conflicting reservation wins. Nothing is written.
    """
    if start >= end:
        raise ValueError("start must be earlier than end.")

    for key, value in reader.iterate_prefix(room_day_prefix(day, room)):
        try:
            existing = decode_reservation(key, value)
        except MalformedRecord as error:
            if on_malformed is not None:
                on_malformed(key, value, error)
            continue

        if has_time_overlap(start, end, existing.start, existing.end):
            return existing.owner
    return None
