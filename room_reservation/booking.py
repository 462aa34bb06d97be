from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
import re
from typing import Any

_TIME_RE = re.compile(r"^(?P<hour>[01]\d|2[0-3]):(?P<minute>[0-5]\d)$")


@dataclass(frozen=True)
class Reservation:
    room: str
    day: date
    start: time
    end: time
    owner: str

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ValueError("Reservation start time must be earlier than end time.")

    def to_dict(self) -> dict[str, str]:
        return {
            "room": self.room,
            "day": self.day.isoformat(),
            "start": self.start.strftime("%H:%M"),
            "end": self.end.strftime("%H:%M"),
            "owner": self.owner,
        }


@dataclass(frozen=True)
class ReservationRequest:
    room: str
    start: str
    end: str
    owner: str
    day: date | None = None

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "ReservationRequest":
        day_text = data.get("day")
        return ReservationRequest(
            room=str(data.get("room") or ""),
            start=str(data.get("start") or ""),
            end=str(data.get("end") or ""),
            owner=str(data.get("owner") or ""),
            day=date.fromisoformat(str(day_text)) if day_text else None,
        )


def parse_time_of_day(text: str) -> time:
    """Parse a strict zero-padded ``HH:MM`` string."""
    match = _TIME_RE.match(text.strip()) if text else None
    if match is None:
        raise ValueError(f"Invalid time {text!r}. Expected format: HH:MM")
    return time(int(match.group("hour")), int(match.group("minute")))


def has_time_overlap(new_start: time, new_end: time, exist_start: time, exist_end: time) -> bool:
    """Return True when two time-of-day intervals overlap by even one minute.

    Intervals are treated as half-open ranges: [start, end)
    so touching boundaries (e.g. 10:00-11:00 and 11:00-12:00) do not overlap.
    """
    if new_start >= new_end:
        raise ValueError("new_start must be earlier than new_end.")
    if exist_start >= exist_end:
        raise ValueError("exist_start must be earlier than exist_end.")

    return exist_start < new_end and exist_end > new_start
