from .admission import (
	ADMITTED,
	DENIED,
	INTERNAL_ERROR,
	INVALID_REQUEST,
	MAX_ADMIT_ATTEMPTS,
	STORE_CONFLICT,
	AdmissionResult,
	InvalidRequest,
	ReservationAdmitter,
	admit_with_retry,
)
from .booking import Reservation, ReservationRequest, has_time_overlap, parse_time_of_day
from .codec import MalformedRecord, decode_reservation, encode_reservation
from .conflicts import find_conflict
from .rooms import DEFAULT_ROOMS, Room, RoomDirectory, RoomNotFound, load_room_directory
from .view import format_by_room, format_day_report, format_raw
from .yaml_store import ReservationEventLog, ReservationStorageError, StoreConflict, YamlKeyValueStore

__all__ = [
	"ADMITTED",
	"DENIED",
	"INTERNAL_ERROR",
	"INVALID_REQUEST",
	"MAX_ADMIT_ATTEMPTS",
	"STORE_CONFLICT",
	"AdmissionResult",
	"InvalidRequest",
	"ReservationAdmitter",
	"admit_with_retry",
	"Reservation",
	"ReservationRequest",
	"find_conflict",
	"has_time_overlap",
	"parse_time_of_day",
	"MalformedRecord",
	"decode_reservation",
	"encode_reservation",
	"DEFAULT_ROOMS",
	"Room",
	"RoomDirectory",
	"RoomNotFound",
	"load_room_directory",
	"format_by_room",
	"format_day_report",
	"format_raw",
	"ReservationEventLog",
	"ReservationStorageError",
	"StoreConflict",
	"YamlKeyValueStore",
]
