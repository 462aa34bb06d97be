from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Callable

from .booking import Reservation, ReservationRequest, parse_time_of_day
from .codec import (
    DisambiguatorClock,
    MalformedRecord,
    day_prefix,
    decode_reservation,
    encode_reservation,
    room_day_prefix,
    validate_identifier,
)
from .conflicts import find_conflict
from .rooms import RoomDirectory
from .yaml_store import ReservationEventLog, ReservationStorageError, StoreConflict, YamlKeyValueStore

ADMITTED = "admitted"
DENIED = "denied"
INVALID_REQUEST = "invalid_request"
STORE_CONFLICT = "store_conflict"
INTERNAL_ERROR = "internal_error"

MAX_ADMIT_ATTEMPTS = 3


class InvalidRequest(ValueError):
    pass


@dataclass(frozen=True)
class AdmissionResult:
    status: str
    reservation: Reservation | None = None
    held_by: str | None = None
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == ADMITTED

    @property
    def retryable(self) -> bool:
        return self.status == STORE_CONFLICT

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"status": self.status, "ok": self.ok}
        if self.reservation is not None:
            payload["reservation"] = self.reservation.to_dict()
        if self.held_by is not None:
            payload["held_by"] = self.held_by
        if self.reason is not None:
            payload["reason"] = self.reason
        return payload


class ReservationAdmitter:
    def __init__(
        self,
        store: YamlKeyValueStore,
        directory: RoomDirectory,
        clock: Callable[[], datetime] | None = None,
        event_log: ReservationEventLog | None = None,
        disambiguators: DisambiguatorClock | None = None,
    ) -> None:
        self.store = store
        self.directory = directory
        self.clock: Callable[[], datetime] = clock or datetime.now
        self.event_log = event_log
        self.disambiguators = disambiguators or DisambiguatorClock()

    def validate(self, request: ReservationRequest) -> Reservation:
        """Turn a raw request into a Reservation or raise InvalidRequest."""
        try:
            room = validate_identifier(request.room, "room")
            owner = validate_identifier(request.owner, "owner")
            start = parse_time_of_day(request.start)
            end = parse_time_of_day(request.end)
        except ValueError as error:
            raise InvalidRequest(str(error)) from error

        if not self.directory.is_valid(room):
            raise InvalidRequest(f"Unknown room: {room}")
        if start >= end:
            raise InvalidRequest("Reservation start time must be earlier than end time.")

        day = request.day or self.clock().date()
        return Reservation(room=room, day=day, start=start, end=end, owner=owner)

    def admit(self, request: ReservationRequest) -> AdmissionResult:
        try:
            reservation = self.validate(request)
        except InvalidRequest as error:
            return AdmissionResult(status=INVALID_REQUEST, reason=str(error))

        try:
            with self.store.transaction() as txn:
                held_by = find_conflict(
                    txn,
                    reservation.day,
                    reservation.room,
                    reservation.start,
                    reservation.end,
                    on_malformed=self._log_malformed,
                )
                if held_by is None:
                    key, value = encode_reservation(reservation, self.disambiguators.next())
                    txn.set(key, value)
                else:
                    txn.discard()
        except StoreConflict as error:
            return AdmissionResult(status=STORE_CONFLICT, reservation=reservation, reason=str(error))
        except ReservationStorageError as error:
            return AdmissionResult(status=INTERNAL_ERROR, reservation=reservation, reason=str(error))

        if held_by is not None:
            self._log_event("RESERVATION_DENIED", {**reservation.to_dict(), "held_by": held_by})
            return AdmissionResult(status=DENIED, reservation=reservation, held_by=held_by)

        self._log_event("RESERVATION_ADMITTED", {**reservation.to_dict(), "key": key})
        return AdmissionResult(status=ADMITTED, reservation=reservation)

    def list_all(self, day: date | None = None) -> list[Reservation]:
        prefix = day_prefix(day) if day is not None else ""
        reservations: list[Reservation] = []
        for key, value in self.store.iterate_prefix(prefix):
            try:
                reservations.append(decode_reservation(key, value))
            except MalformedRecord as error:
                self._log_malformed(key, value, error)
        return reservations

    def current_holder(self, room: str, at: datetime | None = None) -> Reservation | None:
        """Return the reservation covering ``at`` (default: now) for the room."""
        if not self.directory.is_valid(room):
            raise InvalidRequest(f"Unknown room: {room}")

        moment = at or self.clock()
        instant = time(moment.hour, moment.minute)
        for key, value in self.store.iterate_prefix(room_day_prefix(moment.date(), room)):
            try:
                reservation = decode_reservation(key, value)
            except MalformedRecord as error:
                self._log_malformed(key, value, error)
                continue
            if reservation.start <= instant < reservation.end:
                return reservation
        return None

    def raw_records(self) -> list[tuple[str, str]]:
        return self.store.iterate_prefix("")

    def reset_all(self) -> int:
        dropped = self.store.drop_all()
        self._log_event("RESERVATIONS_RESET", {"count": dropped})
        return dropped

    def _log_malformed(self, key: str, value: str, error: Exception) -> None:
        self._log_event("RECORD_SKIPPED", {"key": key, "value": value, "reason": str(error)})

    def _log_event(self, event_type: str, payload: dict[str, Any]) -> None:
        # audit only: a failed append must not change the outcome
        if self.event_log is None:
            return
        try:
            self.event_log.log(event_type, payload, self.clock())
        except ReservationStorageError:
            pass


def admit_with_retry(
    admitter: ReservationAdmitter,
    request: ReservationRequest,
    attempts: int = MAX_ADMIT_ATTEMPTS,
) -> AdmissionResult:
    """Run ``admit`` again, with fresh validation, while the store reports a race."""
    if attempts <= 0:
        raise ValueError("attempts must be greater than zero")

    result = admitter.admit(request)
    for _ in range(attempts - 1):
        if not result.retryable:
            break
        result = admitter.admit(request)
    return result
