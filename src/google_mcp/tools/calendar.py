"""Google Calendar tools."""

from datetime import datetime, timedelta, timezone
from typing import Any
from urllib.parse import quote

from google_mcp.errors import create_validation_error
from google_mcp.tools.api import CALENDAR_API_BASE, GoogleAPIs
from google_mcp.tools.responses import tool_handler
from google_mcp.utils.validators import (
    parse_datetime,
    validate_calendar_id,
    validate_datetime,
    validate_email,
    validate_number,
    validate_string,
)

DEFAULT_CALENDAR_ID = "primary"


def _events_url(calendar_id: str, event_id: str | None = None) -> str:
    # Calendar IDs are often email addresses and may contain '#'
    url = f"{CALENDAR_API_BASE}/calendars/{quote(calendar_id, safe='')}/events"
    if event_id is not None:
        url = f"{url}/{quote(event_id, safe='')}"
    return url


def _optional_calendar_id(args: dict[str, Any]) -> str:
    calendar_id = args.get("calendarId")
    return validate_calendar_id(calendar_id) if calendar_id else DEFAULT_CALENDAR_ID


def _attendees(value: Any) -> list[dict[str, str]]:
    if not isinstance(value, list):
        raise create_validation_error("attendees must be a list of email addresses")
    return [{"email": validate_email(email)} for email in value]


def _event_time(value: dict[str, Any] | None) -> dict[str, Any]:
    value = value or {}
    return {
        key: value[key] for key in ("dateTime", "date", "timeZone") if value.get(key)
    }


def _event_summary(event: dict[str, Any]) -> dict[str, Any]:
    summary: dict[str, Any] = {
        "id": event.get("id"),
        "summary": event.get("summary") or "No title",
        "start": _event_time(event.get("start")),
        "end": _event_time(event.get("end")),
    }
    if event.get("description"):
        summary["description"] = event["description"]
    if event.get("attendees"):
        summary["attendees"] = [
            {
                key: attendee[key]
                for key in ("email", "displayName", "responseStatus")
                if attendee.get(key)
            }
            for attendee in event["attendees"]
        ]
    for key in ("location", "htmlLink"):
        if event.get(key):
            summary[key] = event[key]
    return summary


def _event_result(event: dict[str, Any]) -> dict[str, Any]:
    return {
        "eventId": event.get("id"),
        "summary": event.get("summary"),
        "htmlLink": event.get("htmlLink"),
        "start": event.get("start"),
        "end": event.get("end"),
    }


def _as_utc(value: str) -> datetime:
    # All-day events carry a bare date, which parses as naive midnight
    parsed = parse_datetime(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _format_utc(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def free_slots(
    events: list[dict[str, Any]],
    time_min: datetime,
    time_max: datetime,
    duration: timedelta,
) -> list[dict[str, str]]:
    """Compute gaps of at least ``duration`` between start-ordered events.

    Args:
        events: Calendar events ordered by start time.
        time_min: Start of the search window.
        time_max: End of the search window.
        duration: Minimum slot length.

    Returns:
        Free slots as ``{"start": ..., "end": ...}`` UTC ISO strings.
    """
    slots = []
    cursor = time_min

    for event in events:
        start = event.get("start") or {}
        end = event.get("end") or {}
        start_value = start.get("dateTime") or start.get("date")
        end_value = end.get("dateTime") or end.get("date")
        if not start_value or not end_value:
            continue

        event_start = _as_utc(start_value)
        event_end = _as_utc(end_value)

        if event_start - cursor >= duration:
            slots.append({"start": _format_utc(cursor), "end": _format_utc(event_start)})
        if event_end > cursor:
            cursor = event_end

    if time_max - cursor >= duration:
        slots.append({"start": _format_utc(cursor), "end": _format_utc(time_max)})

    return slots


@tool_handler
async def list_events(args: dict[str, Any], apis: GoogleAPIs) -> dict[str, Any]:
    """List events as single instances, ordered by start time.

    Args:
        args: ``calendarId`` (default "primary"), ``timeMin``, ``timeMax``,
            ``maxResults`` (1-250, default 10) and ``query``, all optional.
        apis: Authenticated API access.
    """
    calendar_id = _optional_calendar_id(args)
    time_min = args.get("timeMin")
    time_max = args.get("timeMax")
    if time_min:
        validate_datetime(time_min, "timeMin")
    if time_max:
        validate_datetime(time_max, "timeMax")
    max_results = args.get("maxResults")
    page_size = validate_number(max_results, "maxResults", 1, 250) if max_results else 10

    response = await apis.request(
        "GET",
        _events_url(calendar_id),
        params={
            "timeMin": time_min or None,
            "timeMax": time_max or None,
            "maxResults": page_size,
            "q": args.get("query"),
            "singleEvents": "true",
            "orderBy": "startTime",
        },
    )

    return {
        "events": [_event_summary(e) for e in response.get("items", [])],
        "nextPageToken": response.get("nextPageToken"),
    }


@tool_handler
async def get_event(args: dict[str, Any], apis: GoogleAPIs) -> dict[str, Any]:
    calendar_id = validate_calendar_id(args.get("calendarId"))
    event_id = validate_string(args.get("eventId"), "eventId")
    return await apis.request("GET", _events_url(calendar_id, event_id))


@tool_handler
async def create_event(args: dict[str, Any], apis: GoogleAPIs) -> dict[str, Any]:
    calendar_id = _optional_calendar_id(args)
    summary = validate_string(args.get("summary"), "summary")
    start = validate_datetime(args.get("start"), "start")
    end = validate_datetime(args.get("end"), "end")

    body: dict[str, Any] = {
        "summary": summary,
        "start": {"dateTime": start},
        "end": {"dateTime": end},
    }
    if args.get("description") is not None:
        body["description"] = args["description"]
    if args.get("location") is not None:
        body["location"] = args["location"]
    if args.get("attendees") is not None:
        body["attendees"] = _attendees(args["attendees"])

    event = await apis.request("POST", _events_url(calendar_id), json_data=body)
    return _event_result(event)


@tool_handler
async def update_event(args: dict[str, Any], apis: GoogleAPIs) -> dict[str, Any]:
    """Patch an event. Only the fields present in the arguments change."""
    calendar_id = validate_calendar_id(args.get("calendarId"))
    event_id = validate_string(args.get("eventId"), "eventId")

    body: dict[str, Any] = {}
    if args.get("summary"):
        body["summary"] = validate_string(args["summary"], "summary")
    if args.get("start"):
        body["start"] = {"dateTime": validate_datetime(args["start"], "start")}
    if args.get("end"):
        body["end"] = {"dateTime": validate_datetime(args["end"], "end")}
    if args.get("attendees") is not None:
        body["attendees"] = _attendees(args["attendees"])
    # description and location may be cleared with an empty string
    for key in ("description", "location"):
        if key in args and args[key] is not None:
            body[key] = args[key]

    event = await apis.request("PATCH", _events_url(calendar_id, event_id), json_data=body)
    return _event_result(event)


@tool_handler
async def delete_event(args: dict[str, Any], apis: GoogleAPIs) -> dict[str, Any]:
    calendar_id = validate_calendar_id(args.get("calendarId"))
    event_id = validate_string(args.get("eventId"), "eventId")

    await apis.request("DELETE", _events_url(calendar_id, event_id))

    return {"message": "Event deleted successfully", "eventId": event_id}


@tool_handler
async def find_free_time(args: dict[str, Any], apis: GoogleAPIs) -> dict[str, Any]:
    """Find free slots of at least ``duration`` minutes in a time window."""
    calendar_id = _optional_calendar_id(args)
    time_min = validate_datetime(args.get("timeMin"), "timeMin")
    time_max = validate_datetime(args.get("timeMax"), "timeMax")
    duration = validate_number(args.get("duration"), "duration", min_value=1)

    response = await apis.request(
        "GET",
        _events_url(calendar_id),
        params={
            "timeMin": time_min,
            "timeMax": time_max,
            "singleEvents": "true",
            "orderBy": "startTime",
        },
    )

    slots = free_slots(
        response.get("items", []),
        _as_utc(time_min),
        _as_utc(time_max),
        timedelta(minutes=duration),
    )
    return {"freeSlots": slots, "requestedDuration": duration}


@tool_handler
async def list_calendars(args: dict[str, Any], apis: GoogleAPIs) -> dict[str, Any]:
    response = await apis.request("GET", f"{CALENDAR_API_BASE}/users/me/calendarList")

    calendars = []
    for item in response.get("items", []):
        calendar: dict[str, Any] = {"id": item.get("id"), "summary": item.get("summary") or "No name"}
        for key in ("description", "timeZone", "primary"):
            if item.get(key):
                calendar[key] = item[key]
        calendars.append(calendar)

    return {"calendars": calendars}
