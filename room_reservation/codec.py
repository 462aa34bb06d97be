from __future__ import annotations

from datetime import date, datetime, time
import threading
from time import time_ns
from typing import Callable

from .booking import Reservation, parse_time_of_day

# key:   {YYYY-MM-DD}|{room}|{disambiguator}
# value: v1|{HH:MM}|{HH:MM}|{owner}

FIELD_SEPARATOR = "|"
CODEC_VERSION = "v1"
DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"
DISAMBIGUATOR_WIDTH = 20

_KEY_FIELD_COUNT = 3
_VALUE_FIELD_COUNT = 4


class MalformedRecord(ValueError):
    def __init__(self, key: str, value: str, reason: str) -> None:
        super().__init__(f"Malformed reservation record {key!r}: {reason}")
        self.key = key
        self.value = value
        self.reason = reason


def validate_identifier(value: str, label: str) -> str:
    """Return the stripped identifier or raise ValueError.

    Room names and owners are stored verbatim inside keys and values, so the
    field separator and control characters are not allowed in them.
    """
    if value is None:
        raise ValueError(f"{label} must not be None")

    normalized = str(value).strip()
    if not normalized:
        raise ValueError(f"{label} must not be empty")
    if FIELD_SEPARATOR in normalized:
        raise ValueError(f"{label} must not contain '{FIELD_SEPARATOR}'")
    if any(not char.isprintable() for char in normalized):
        raise ValueError(f"{label} must not contain control characters")
    return normalized


def format_time_of_day(value: time) -> str:
    return value.strftime(TIME_FORMAT)


def day_prefix(day: date) -> str:
    return f"{day.strftime(DATE_FORMAT)}{FIELD_SEPARATOR}"


def room_day_prefix(day: date, room: str) -> str:
    return f"{day_prefix(day)}{room}{FIELD_SEPARATOR}"


def encode_reservation(reservation: Reservation, disambiguator: int) -> tuple[str, str]:
    if disambiguator < 0:
        raise ValueError("disambiguator must not be negative")

    key = f"{room_day_prefix(reservation.day, reservation.room)}{disambiguator:0{DISAMBIGUATOR_WIDTH}d}"
    value = FIELD_SEPARATOR.join(
        [
            CODEC_VERSION,
            format_time_of_day(reservation.start),
            format_time_of_day(reservation.end),
            reservation.owner,
        ]
    )
    return key, value


def decode_reservation(key: str, value: str) -> Reservation:
    key_fields = key.split(FIELD_SEPARATOR)
    if len(key_fields) != _KEY_FIELD_COUNT:
        raise MalformedRecord(key, value, f"expected {_KEY_FIELD_COUNT} key fields, got {len(key_fields)}")

    value_fields = value.split(FIELD_SEPARATOR)
    if len(value_fields) != _VALUE_FIELD_COUNT:
        raise MalformedRecord(key, value, f"expected {_VALUE_FIELD_COUNT} value fields, got {len(value_fields)}")

    day_text, room, disambiguator = key_fields
    version, start_text, end_text, owner = value_fields
    if version != CODEC_VERSION:
        raise MalformedRecord(key, value, f"unsupported codec version {version!r}")
    if not disambiguator.isdigit():
        raise MalformedRecord(key, value, "disambiguator is not numeric")
    if not room or not owner:
        raise MalformedRecord(key, value, "room and owner must not be empty")

    try:
        day = datetime.strptime(day_text, DATE_FORMAT).date()
        start = parse_time_of_day(start_text)
        end = parse_time_of_day(end_text)
    except ValueError as error:
        raise MalformedRecord(key, value, str(error)) from error

    # keys and values are compared as text, so only the canonical form is accepted
    if day.strftime(DATE_FORMAT) != day_text:
        raise MalformedRecord(key, value, f"day {day_text!r} is not YYYY-MM-DD")
    if format_time_of_day(start) != start_text or format_time_of_day(end) != end_text:
        raise MalformedRecord(key, value, "times must be zero-padded HH:MM")

    try:
        return Reservation(room=room, day=day, start=start, end=end, owner=owner)
    except ValueError as error:
        raise MalformedRecord(key, value, str(error)) from error


class DisambiguatorClock:
    """Monotonic nanosecond counter used as the key suffix."""

    def __init__(self, now_ns: Callable[[], int] | None = None) -> None:
        self._now_ns = now_ns or time_ns
        self._last = 0
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            candidate = max(self._now_ns(), self._last + 1)
            self._last = candidate
            return candidate
