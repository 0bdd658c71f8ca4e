"""
Calendar Source Adapters for CalAI

Turns raw provider payloads into UnifiedEvent values and merges several
sources into a single chronological list.

Supported payload shapes:
- Google Calendar API v3 event resources (summary, start.dateTime/start.date)
- Microsoft Graph event resources (subject, start.dateTime + start.timeZone)
- EventKit-style exports (title, startDate, endDate, isAllDay)
"""

import json
import logging
import re
from dataclasses import replace
from datetime import datetime, timedelta, timezone, tzinfo
from pathlib import Path
from typing import Dict, Any, List, Optional, Iterable, Tuple

from . import (
    AdapterError,
    MalformedEventError,
    UnsupportedSourceError,
    CalendarSource,
    IOSEventPayload,
    GoogleEventPayload,
    OutlookEventPayload,
    UnifiedEvent,
)


logger = logging.getLogger("CalAI.CalendarSources")

# Graph returns seven fractional digits ("2025-01-06T09:00:00.0000000")
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


# =============================================================================
# PARSING HELPERS
# =============================================================================

def _parse_datetime(value: Any, adapter_name: str, field_name: str) -> datetime:
    """Parse ISO-8601 strings (with optional Z suffix) or pass datetimes through."""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        raise MalformedEventError(adapter_name, f"missing {field_name}")
    text = _FRACTION_RE.sub(r"\1", value.strip().replace("Z", "+00:00"))
    try:
        return datetime.fromisoformat(text)
    except ValueError as e:
        raise MalformedEventError(adapter_name, f"invalid {field_name} {value!r}", e)


def _parse_date(value: Any, adapter_name: str, field_name: str) -> datetime:
    try:
        return datetime.strptime(value, "%Y-%m-%d")
    except (TypeError, ValueError) as e:
        raise MalformedEventError(adapter_name, f"invalid {field_name} {value!r}", e)


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _require_id(data: Dict[str, Any], key: str, adapter_name: str) -> str:
    event_id = _clean(data.get(key))
    if event_id is None:
        raise MalformedEventError(adapter_name, f"missing {key}")
    return event_id


def _block(data: Dict[str, Any], key: str, adapter_name: str) -> Dict[str, Any]:
    """Nested object such as start or organizer; missing means empty."""
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise MalformedEventError(adapter_name, f"{key} must be an object, got {type(value).__name__}")
    return value


# =============================================================================
# NORMALIZERS
# =============================================================================

def normalize_google_event(data: Dict[str, Any], calendar_id: str = "primary") -> UnifiedEvent:
    """Create a UnifiedEvent from a Google Calendar API event resource."""
    adapter = "google"
    event_id = _require_id(data, "id", adapter)

    start_data = _block(data, "start", adapter)
    end_data = _block(data, "end", adapter)
    is_all_day = "date" in start_data and "dateTime" not in start_data

    if is_all_day:
        start = _parse_date(start_data.get("date"), adapter, "start.date")
        end = (
            _parse_date(end_data["date"], adapter, "end.date")
            if "date" in end_data else start + timedelta(days=1)
        )
    else:
        start = _parse_datetime(start_data.get("dateTime"), adapter, "start.dateTime")
        end = (
            _parse_datetime(end_data["dateTime"], adapter, "end.dateTime")
            if "dateTime" in end_data else start + timedelta(hours=1)
        )

    organizer = _block(data, "organizer", adapter)

    return UnifiedEvent(
        id=event_id,
        title=_clean(data.get("summary")) or "Untitled",
        start=start,
        end=end,
        source=CalendarSource.GOOGLE,
        location=_clean(data.get("location")),
        description=_clean(data.get("description")),
        is_all_day=is_all_day,
        organizer=_clean(organizer.get("displayName") or organizer.get("email")),
        calendar_id=calendar_id,
        calendar_name=_clean(data.get("calendarName")),
        original_event=GoogleEventPayload(
            event_id=event_id,
            calendar_id=calendar_id,
            etag=data.get("etag"),
            html_link=data.get("htmlLink"),
            recurring_event_id=data.get("recurringEventId"),
        ),
    )


def normalize_outlook_event(data: Dict[str, Any]) -> UnifiedEvent:
    """Create a UnifiedEvent from a Microsoft Graph event resource."""
    adapter = "outlook"
    event_id = _require_id(data, "id", adapter)

    def parse_graph_time(key: str) -> datetime:
        block = _block(data, key, adapter)
        parsed = _parse_datetime(block.get("dateTime"), adapter, f"{key}.dateTime")
        if parsed.tzinfo is None and (block.get("timeZone") or "").upper() == "UTC":
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    start = parse_graph_time("start")
    end = parse_graph_time("end") if data.get("end") else start + timedelta(hours=1)

    location = _block(data, "location", adapter).get("displayName")
    organizer = _block(_block(data, "organizer", adapter), "emailAddress", adapter)
    body = data.get("bodyPreview") or _block(data, "body", adapter).get("content")

    return UnifiedEvent(
        id=event_id,
        title=_clean(data.get("subject")) or "Untitled",
        start=start,
        end=end,
        source=CalendarSource.OUTLOOK,
        location=_clean(location),
        description=_clean(body),
        is_all_day=bool(data.get("isAllDay", False)),
        organizer=_clean(organizer.get("name") or organizer.get("address")),
        calendar_id=_clean(data.get("calendarId")),
        calendar_name=_clean(data.get("calendarName")),
        original_event=OutlookEventPayload(
            event_id=event_id,
            change_key=data.get("changeKey"),
            web_link=data.get("webLink"),
            series_master_id=data.get("seriesMasterId"),
        ),
    )


def normalize_ios_event(data: Dict[str, Any]) -> UnifiedEvent:
    """Create a UnifiedEvent from an EventKit-style exported event."""
    adapter = "ios"
    event_id = _require_id(data, "eventIdentifier", adapter)

    start = _parse_datetime(data.get("startDate"), adapter, "startDate")
    end = (
        _parse_datetime(data["endDate"], adapter, "endDate")
        if data.get("endDate") else start + timedelta(hours=1)
    )

    return UnifiedEvent(
        id=event_id,
        title=_clean(data.get("title")) or "Untitled",
        start=start,
        end=end,
        source=CalendarSource.IOS,
        location=_clean(data.get("location")),
        description=_clean(data.get("notes")),
        is_all_day=bool(data.get("isAllDay", False)),
        organizer=_clean(data.get("organizer")),
        calendar_id=_clean(data.get("calendarIdentifier")),
        calendar_name=_clean(data.get("calendarTitle")),
        original_event=IOSEventPayload(
            event_identifier=event_id,
            calendar_identifier=data.get("calendarIdentifier"),
            external_identifier=data.get("calendarItemExternalIdentifier"),
        ),
    )


_NORMALIZERS = {
    CalendarSource.IOS: normalize_ios_event,
    CalendarSource.GOOGLE: normalize_google_event,
    CalendarSource.OUTLOOK: normalize_outlook_event,
}


def normalize_event(data: Dict[str, Any]) -> UnifiedEvent:
    """Normalize a payload tagged with a "source" key."""
    if not isinstance(data, dict):
        raise MalformedEventError("aggregator", f"payload must be an object, got {type(data).__name__}")
    raw_source = data.get("source")
    try:
        source = CalendarSource(str(raw_source).lower())
    except ValueError:
        raise UnsupportedSourceError(raw_source)
    return _NORMALIZERS[source](data)


# =============================================================================
# AGGREGATION
# =============================================================================

def _to_wall_time(value: datetime, tz: Optional[tzinfo]) -> datetime:
    """Convert aware datetimes to naive wall time in tz (system local if None)."""
    if value.tzinfo is None:
        return value
    return value.astimezone(tz).replace(tzinfo=None)


class CalendarAggregator:
    """
    Merges events from several calendar sources.

    Aware datetimes are converted to naive wall-clock time in the target
    timezone so events from different providers sort together. Events with the
    same title and start time are treated as duplicates; the first one added wins.
    """

    def __init__(self, tz: Optional[tzinfo] = None):
        self.tz = tz
        self._events: List[UnifiedEvent] = []
        self._errors: List[AdapterError] = []
        self._seen: set = set()

    @property
    def errors(self) -> List[AdapterError]:
        return list(self._errors)

    def _dedupe_key(self, event: UnifiedEvent) -> Tuple[str, datetime]:
        return (" ".join(event.title.lower().split()), event.start)

    def add_event(self, event: UnifiedEvent) -> bool:
        """Add a normalized event. Returns False when it duplicates an existing one."""
        event = replace(
            event,
            start=_to_wall_time(event.start, self.tz),
            end=_to_wall_time(event.end, self.tz),
        )
        key = self._dedupe_key(event)
        if key in self._seen:
            logger.debug(f"Dropping duplicate {event.source.value} event '{event.title}'")
            return False
        self._seen.add(key)
        self._events.append(event)
        return True

    def add_payloads(self, payloads: Iterable[Dict[str, Any]]) -> int:
        """Normalize and add tagged payloads, skipping malformed ones. Returns count added."""
        added = 0
        for payload in payloads:
            try:
                event = normalize_event(payload)
            except AdapterError as e:
                logger.warning(f"Skipping event payload: {e}")
                self._errors.append(e)
                continue
            if self.add_event(event):
                added += 1
        return added

    def events(self) -> List[UnifiedEvent]:
        """All merged events in chronological order."""
        return sorted(self._events, key=lambda e: (e.start, e.end, e.title))

    def events_between(self, start: datetime, end: datetime) -> List[UnifiedEvent]:
        """Events overlapping [start, end)."""
        return [e for e in self.events() if e.start < end and e.end > start]


def load_events_file(path: Path, tz: Optional[tzinfo] = None) -> List[UnifiedEvent]:
    """
    Load a JSON file holding a list of tagged source payloads.

    Either a bare list or {"events": [...]} is accepted.
    """
    with open(path, "r") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("events", [])
    if not isinstance(data, list):
        raise ValueError(f"{path} must hold a list of event payloads")
    aggregator = CalendarAggregator(tz=tz)
    aggregator.add_payloads(data)
    return aggregator.events()
