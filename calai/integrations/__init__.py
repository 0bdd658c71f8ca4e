"""
CalAI Calendar Source Integrations

Normalized event model and the adapters that turn raw calendar payloads into it.

Sources:
- iOS: EventKit-style exported event dictionaries
- Google: Google Calendar API v3 event resources
- Outlook: Microsoft Graph event resources

All adapters follow common patterns:
- Pure normalization, no network access
- Proper error handling with AdapterError
- Type hints and dataclasses
"""

from typing import Dict, Any, Optional, Union
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum


# =============================================================================
# COMMON TYPES AND BASE CLASSES
# =============================================================================

class AdapterError(Exception):
    """Base exception for adapter errors."""

    def __init__(
        self,
        message: str,
        adapter_name: str,
        error_code: Optional[str] = None,
        recoverable: bool = True,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.adapter_name = adapter_name
        self.error_code = error_code
        self.recoverable = recoverable
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": str(self),
            "adapter": self.adapter_name,
            "code": self.error_code,
            "recoverable": self.recoverable
        }


class MalformedEventError(AdapterError):
    """Raised when a source payload cannot be normalized."""

    def __init__(
        self,
        adapter_name: str,
        reason: str,
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            message=f"Malformed {adapter_name} event: {reason}",
            adapter_name=adapter_name,
            error_code="MALFORMED_EVENT",
            recoverable=True,
            original_error=original_error
        )
        self.reason = reason


class UnsupportedSourceError(AdapterError):
    """Raised when a payload names a calendar source we do not know."""

    def __init__(self, source: Any):
        super().__init__(
            message=f"Unsupported calendar source: {source!r}",
            adapter_name="aggregator",
            error_code="UNSUPPORTED_SOURCE",
            recoverable=True
        )
        self.source = source


class CalendarSource(Enum):
    """Calendar provider an event originated from."""
    IOS = "ios"
    GOOGLE = "google"
    OUTLOOK = "outlook"

    @property
    def label(self) -> str:
        return {
            CalendarSource.IOS: "iOS",
            CalendarSource.GOOGLE: "Google",
            CalendarSource.OUTLOOK: "Outlook",
        }[self]


# =============================================================================
# SOURCE PAYLOADS
# =============================================================================

@dataclass(frozen=True)
class IOSEventPayload:
    """Identifiers needed to write an event back through EventKit."""
    event_identifier: str
    calendar_identifier: Optional[str] = None
    external_identifier: Optional[str] = None

    source = CalendarSource.IOS


@dataclass(frozen=True)
class GoogleEventPayload:
    """Identifiers needed to write an event back through the Google API."""
    event_id: str
    calendar_id: str = "primary"
    etag: Optional[str] = None
    html_link: Optional[str] = None
    recurring_event_id: Optional[str] = None

    source = CalendarSource.GOOGLE


@dataclass(frozen=True)
class OutlookEventPayload:
    """Identifiers needed to write an event back through Microsoft Graph."""
    event_id: str
    change_key: Optional[str] = None
    web_link: Optional[str] = None
    series_master_id: Optional[str] = None

    source = CalendarSource.OUTLOOK


SourcePayload = Union[IOSEventPayload, GoogleEventPayload, OutlookEventPayload]


# =============================================================================
# UNIFIED EVENT
# =============================================================================

@dataclass(frozen=True)
class UnifiedEvent:
    """Source-agnostic calendar event consumed by the scheduling pipeline."""
    id: str
    title: str
    start: datetime
    end: datetime
    source: CalendarSource = CalendarSource.IOS
    location: Optional[str] = None
    description: Optional[str] = None
    is_all_day: bool = False
    organizer: Optional[str] = None
    calendar_id: Optional[str] = None
    calendar_name: Optional[str] = None
    original_event: Optional[SourcePayload] = field(default=None, compare=False)

    def __post_init__(self):
        if self.original_event is not None and self.original_event.source != self.source:
            raise ValueError(
                f"Payload for {self.original_event.source.value} attached to "
                f"{self.source.value} event {self.id}"
            )

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def duration_minutes(self) -> int:
        """Return duration in minutes."""
        return int(self.duration.total_seconds() / 60)

    @property
    def has_location(self) -> bool:
        return bool(self.location and self.location.strip())

    @property
    def source_label(self) -> str:
        if self.calendar_name:
            return f"{self.source.label} - {self.calendar_name}"
        return self.source.label

    def overlaps(self, other: "UnifiedEvent") -> bool:
        """Check if this event overlaps with another."""
        return self.start < other.end and self.end > other.start

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "source": self.source.value,
            "location": self.location,
            "description": self.description,
            "is_all_day": self.is_all_day,
            "organizer": self.organizer,
            "calendar_id": self.calendar_id,
            "calendar_name": self.calendar_name,
        }


# Import source adapters
from .calendar_sources import (
    normalize_ios_event,
    normalize_google_event,
    normalize_outlook_event,
    normalize_event,
    CalendarAggregator,
    load_events_file,
)

__all__ = [
    # Errors
    "AdapterError",
    "MalformedEventError",
    "UnsupportedSourceError",
    # Event model
    "CalendarSource",
    "IOSEventPayload",
    "GoogleEventPayload",
    "OutlookEventPayload",
    "SourcePayload",
    "UnifiedEvent",
    # Adapters
    "normalize_ios_event",
    "normalize_google_event",
    "normalize_outlook_event",
    "normalize_event",
    "CalendarAggregator",
    "load_events_file",
]
