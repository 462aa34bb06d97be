from __future__ import annotations

from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable

from flask import Flask, jsonify, request

from .admission import (
    ADMITTED,
    DENIED,
    INTERNAL_ERROR,
    INVALID_REQUEST,
    STORE_CONFLICT,
    InvalidRequest,
    ReservationAdmitter,
    admit_with_retry,
)
from .booking import ReservationRequest
from .rooms import RoomDirectory
from .view import format_day_report, format_by_room
from .yaml_store import ReservationEventLog, ReservationStorageError, YamlKeyValueStore

_STATUS_CODES = {
    ADMITTED: 201,
    DENIED: 409,
    INVALID_REQUEST: 400,
    STORE_CONFLICT: 503,
    INTERNAL_ERROR: 500,
}


def build_admitter(
    data_dir: str | Path = "data",
    rooms: RoomDirectory | None = None,
    now_provider: Callable[[], datetime] | None = None,
) -> ReservationAdmitter:
    data_path = Path(data_dir)
    event_log = ReservationEventLog(data_path / "reservation_events.yaml")
    store = YamlKeyValueStore(data_path, event_log=event_log)
    return ReservationAdmitter(store, rooms or RoomDirectory(), clock=now_provider, event_log=event_log)


def create_app(
    data_dir: str | Path = "data",
    rooms: RoomDirectory | None = None,
    now_provider: Callable[[], datetime] | None = None,
) -> Flask:
    app = Flask(__name__)
    admitter = build_admitter(data_dir, rooms, now_provider)
    directory = admitter.directory
    clock: Callable[[], datetime] = admitter.clock
    app.config["ADMITTER"] = admitter

    def _resolve_day(raw: str | None) -> date | None:
        if raw is None or raw == "":
            return clock().date()
        if raw == "all":
            return None
        return date.fromisoformat(raw)

    @app.errorhandler(ReservationStorageError)
    def handle_storage_error(error: ReservationStorageError) -> Any:
        return jsonify({"ok": False, "status": INTERNAL_ERROR, "message": str(error)}), 500

    @app.get("/api/rooms")
    def list_rooms() -> Any:
        return jsonify({"ok": True, "rooms": [room.to_dict() for room in directory.all()]})

    @app.post("/api/reservations")
    def create_reservation() -> Any:
        payload = request.get_json(silent=True) or {}
        if not isinstance(payload, dict):
            return jsonify({"ok": False, "status": INVALID_REQUEST, "reason": "request body must be a JSON object"}), 400
        try:
            reservation_request = ReservationRequest.from_dict(payload)
        except ValueError as error:
            return jsonify({"ok": False, "status": INVALID_REQUEST, "reason": str(error)}), 400

        result = admit_with_retry(admitter, reservation_request)
        return jsonify(result.to_dict()), _STATUS_CODES[result.status]

    @app.get("/api/reservations")
    def list_reservations() -> Any:
        try:
            day = _resolve_day(request.args.get("day"))
        except ValueError as error:
            return jsonify({"ok": False, "message": str(error)}), 400

        reservations = admitter.list_all(day)
        return jsonify(
            {
                "ok": True,
                "day": day.isoformat() if day is not None else "all",
                "reservations": [reservation.to_dict() for reservation in reservations],
            }
        )

    @app.get("/api/reservations/view")
    def view_reservations() -> Any:
        try:
            day = _resolve_day(request.args.get("day"))
        except ValueError as error:
            return jsonify({"ok": False, "message": str(error)}), 400

        reservations = admitter.list_all(day)
        if day is None:
            text = format_by_room(reservations, directory)
        else:
            text = format_day_report(day, reservations, directory)
        return jsonify({"ok": True, "text": text})

    @app.get("/api/rooms/<name>/holder")
    def room_holder(name: str) -> Any:
        try:
            holder = admitter.current_holder(name)
        except InvalidRequest as error:
            return jsonify({"ok": False, "message": str(error)}), 404
        return jsonify({"ok": True, "holder": holder.to_dict() if holder is not None else None})

    @app.get("/api/raw")
    def raw_records() -> Any:
        return jsonify({"ok": True, "records": [{"key": key, "value": value} for key, value in admitter.raw_records()]})

    @app.post("/api/reset")
    def reset_reservations() -> Any:
        dropped = admitter.reset_all()
        return jsonify({"ok": True, "dropped": dropped})

    return app
