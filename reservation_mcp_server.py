from __future__ import annotations

from datetime import date
import os
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from room_reservation import ReservationRequest, RoomDirectory, admit_with_retry, format_day_report, load_room_directory
from room_reservation.web_app import build_admitter

mcp = FastMCP(
    "Room Reservation MCP Server",
    instructions="Reserve meeting rooms and inspect today's bookings.",
    json_response=True,
)

DATA_DIR = Path(os.environ.get("RESERVATION_DATA_DIR", Path(__file__).parent / "data"))
ROOMS_FILE = os.environ.get("RESERVATION_ROOMS_FILE")
ROOMS = load_room_directory(ROOMS_FILE) if ROOMS_FILE else RoomDirectory()
ADMITTER = build_admitter(DATA_DIR, ROOMS)


def _parse_day(day: str | None) -> date:
    return date.fromisoformat(day) if day else ADMITTER.clock().date()


@mcp.resource("reservation://rooms")
async def list_rooms() -> list[dict[str, str]]:
    """List bookable rooms in directory order."""
    return [room.to_dict() for room in ROOMS.all()]


@mcp.tool()
def list_reservations(day: str | None = None) -> list[dict[str, str]]:
    """Return reservations for a day (YYYY-MM-DD, default today)."""
    return [reservation.to_dict() for reservation in ADMITTER.list_all(_parse_day(day))]


@mcp.tool()
def view_reservations(day: str | None = None) -> str:
    """Return the per-room text view for a day."""
    target = _parse_day(day)
    return format_day_report(target, ADMITTER.list_all(target), ROOMS)


@mcp.tool()
def reserve_room(room: str, start: str, end: str, owner: str) -> dict[str, object]:
    """Reserve a room for today between HH:MM start and end."""
    result = admit_with_retry(ADMITTER, ReservationRequest(room=room, start=start, end=end, owner=owner))
    return result.to_dict()


@mcp.tool()
def reset_reservations() -> dict[str, int]:
    """Delete every stored reservation."""
    return {"dropped": ADMITTER.reset_all()}


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
