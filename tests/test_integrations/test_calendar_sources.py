"""
Tests for calendar source adapters and the CalendarAggregator

Tests cover:
- Google, Outlook and iOS payload normalization
- Malformed payload errors
- Aggregation: merging, ordering, duplicate removal, timezone handling
- Loading events files
"""

import pytest
import json
from datetime import datetime, timedelta, timezone
import sys
from pathlib import Path

# Add path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from calai.integrations import (
    AdapterError,
    MalformedEventError,
    UnsupportedSourceError,
    CalendarSource,
    GoogleEventPayload,
    IOSEventPayload,
    OutlookEventPayload,
    UnifiedEvent,
    normalize_google_event,
    normalize_outlook_event,
    normalize_ios_event,
    normalize_event,
    CalendarAggregator,
    load_events_file,
)


class TestUnifiedEvent:
    """Tests for the UnifiedEvent model."""

    def test_duration_and_minutes(self, make_event):
        """Test duration derived from start and end."""
        event = make_event("Standup", 9, 0, minutes=45)
        assert event.duration == timedelta(minutes=45)
        assert event.duration_minutes == 45

    def test_has_location_ignores_whitespace(self, make_event):
        """Test that a blank location counts as no location."""
        assert make_event("A", location="Room 1").has_location is True
        assert make_event("B", location="   ").has_location is False
        assert make_event("C").has_location is False

    def test_overlaps(self, make_event):
        """Test overlap detection uses half-open intervals."""
        first = make_event("A", 9, 0, minutes=60)
        touching = make_event("B", 10, 0, minutes=30)
        overlapping = make_event("C", 9, 30, minutes=60)
        assert first.overlaps(overlapping) is True
        assert first.overlaps(touching) is False

    def test_payload_source_must_match(self):
        """Test that a payload from another provider is rejected."""
        with pytest.raises(ValueError):
            UnifiedEvent(
                id="x",
                title="Mismatch",
                start=datetime(2025, 1, 6, 9),
                end=datetime(2025, 1, 6, 10),
                source=CalendarSource.GOOGLE,
                original_event=IOSEventPayload(event_identifier="x"),
            )

    def test_source_label_includes_calendar_name(self, make_event):
        """Test the display label for the event's calendar."""
        event = make_event("A", source=CalendarSource.OUTLOOK)
        assert event.source_label == "Outlook"


class TestGoogleNormalization:
    """Tests for Google Calendar payloads."""

    def test_timed_event(self, google_payload):
        """Test a timed Google event maps onto UnifiedEvent."""
        event = normalize_google_event(google_payload)
        assert event.id == "g-123"
        assert event.title == "Team Sync"
        assert event.start == datetime(2025, 1, 6, 10, 0)
        assert event.end == datetime(2025, 1, 6, 10, 30)
        assert event.source == CalendarSource.GOOGLE
        assert event.location == "Zoom"
        assert event.organizer == "lead@example.com"
        assert event.calendar_id == "primary"
        assert event.is_all_day is False

    def test_original_payload_kept(self, google_payload):
        """Test that write-back identifiers are kept."""
        event = normalize_google_event(google_payload, calendar_id="work")
        assert isinstance(event.original_event, GoogleEventPayload)
        assert event.original_event.event_id == "g-123"
        assert event.original_event.calendar_id == "work"
        assert event.original_event.html_link.startswith("https://")

    def test_all_day_event(self, google_all_day_payload):
        """Test that date-only events are all-day."""
        event = normalize_google_event(google_all_day_payload)
        assert event.is_all_day is True
        assert event.start == datetime(2025, 1, 6)
        assert event.end == datetime(2025, 1, 7)

    def test_utc_suffix_is_aware(self, google_payload):
        """Test that a trailing Z yields an aware datetime."""
        google_payload["start"] = {"dateTime": "2025-01-06T15:00:00Z"}
        google_payload["end"] = {"dateTime": "2025-01-06T16:00:00Z"}
        event = normalize_google_event(google_payload)
        assert event.start.tzinfo is not None
        assert event.start.utcoffset() == timedelta(0)

    def test_missing_end_defaults_to_one_hour(self, google_payload):
        """Test the one-hour default when end is absent."""
        del google_payload["end"]
        event = normalize_google_event(google_payload)
        assert event.duration == timedelta(hours=1)

    def test_missing_summary_is_untitled(self, google_payload):
        """Test the fallback title."""
        google_payload["summary"] = "  "
        assert normalize_google_event(google_payload).title == "Untitled"

    def test_missing_id_raises(self, google_payload):
        """Test that an id is required."""
        del google_payload["id"]
        with pytest.raises(MalformedEventError) as exc_info:
            normalize_google_event(google_payload)
        assert exc_info.value.adapter_name == "google"
        assert exc_info.value.error_code == "MALFORMED_EVENT"
        assert exc_info.value.to_dict()["recoverable"] is True

    def test_invalid_datetime_raises(self, google_payload):
        """Test that an unparseable start is reported with its cause."""
        google_payload["start"] = {"dateTime": "next tuesday"}
        with pytest.raises(MalformedEventError) as exc_info:
            normalize_google_event(google_payload)
        assert isinstance(exc_info.value.original_error, ValueError)

    def test_start_must_be_object(self, google_payload):
        """Test a bare string start block is reported as malformed."""
        google_payload["start"] = "2025-01-06T10:00:00"
        with pytest.raises(MalformedEventError) as exc_info:
            normalize_google_event(google_payload)
        assert "start must be an object" in exc_info.value.reason


class TestOutlookNormalization:
    """Tests for Microsoft Graph payloads."""

    def test_timed_event(self, outlook_payload):
        """Test a Graph event maps onto UnifiedEvent."""
        event = normalize_outlook_event(outlook_payload)
        assert event.id == "AAMkAGI2"
        assert event.title == "Dentist Appointment"
        assert event.start == datetime(2025, 1, 6, 14, 0)
        assert event.location == "Smile Dental"
        assert event.organizer == "Front Desk"
        assert event.description == "Cleaning"
        assert isinstance(event.original_event, OutlookEventPayload)
        assert event.original_event.change_key == "ck-1"

    def test_seven_digit_fraction_parsed(self, outlook_payload):
        """Test Graph's seven fractional digits are accepted."""
        event = normalize_outlook_event(outlook_payload)
        assert event.end == datetime(2025, 1, 6, 15, 0)

    def test_utc_timezone_attached(self, outlook_payload):
        """Test that timeZone UTC produces an aware datetime."""
        outlook_payload["start"] = {"dateTime": "2025-01-06T14:00:00.0000000", "timeZone": "UTC"}
        event = normalize_outlook_event(outlook_payload)
        assert event.start.tzinfo == timezone.utc

    def test_all_day_flag(self, outlook_payload):
        """Test isAllDay is honored."""
        outlook_payload["isAllDay"] = True
        assert normalize_outlook_event(outlook_payload).is_all_day is True

    def test_start_must_be_object(self, outlook_payload):
        """Test a bare string start block is reported as malformed."""
        outlook_payload["start"] = "2025-01-06T14:00:00"
        with pytest.raises(MalformedEventError):
            normalize_outlook_event(outlook_payload)

    def test_organizer_must_be_object(self, outlook_payload):
        """Test a non-object organizer is reported as malformed."""
        outlook_payload["organizer"] = "Front Desk"
        with pytest.raises(MalformedEventError):
            normalize_outlook_event(outlook_payload)


class TestIOSNormalization:
    """Tests for EventKit-style payloads."""

    def test_timed_event(self, ios_payload):
        """Test an exported iOS event maps onto UnifiedEvent."""
        event = normalize_ios_event(ios_payload)
        assert event.id == "ios-42"
        assert event.title == "Flight to Denver"
        assert event.duration == timedelta(hours=2, minutes=30)
        assert event.description == "Confirmation ABC123"
        assert event.source_label == "iOS - Home"
        assert event.original_event.calendar_identifier == "cal-home"

    def test_missing_identifier_raises(self, ios_payload):
        """Test that eventIdentifier is required."""
        del ios_payload["eventIdentifier"]
        with pytest.raises(MalformedEventError):
            normalize_ios_event(ios_payload)


class TestNormalizeEvent:
    """Tests for source dispatch."""

    def test_dispatches_on_source(self, google_payload, outlook_payload, ios_payload):
        """Test each tagged payload reaches its adapter."""
        assert normalize_event(google_payload).source == CalendarSource.GOOGLE
        assert normalize_event(outlook_payload).source == CalendarSource.OUTLOOK
        assert normalize_event(ios_payload).source == CalendarSource.IOS

    def test_source_is_case_insensitive(self, google_payload):
        """Test that source tags are matched case-insensitively."""
        google_payload["source"] = "Google"
        assert normalize_event(google_payload).source == CalendarSource.GOOGLE

    def test_unknown_source_raises(self):
        """Test that unknown providers raise UnsupportedSourceError."""
        with pytest.raises(UnsupportedSourceError) as exc_info:
            normalize_event({"source": "yahoo", "id": "1"})
        assert isinstance(exc_info.value, AdapterError)
        assert exc_info.value.source == "yahoo"

    def test_non_object_payload_raises(self):
        """Test that a payload which is not an object is malformed."""
        with pytest.raises(MalformedEventError):
            normalize_event("oops")
        with pytest.raises(MalformedEventError):
            normalize_event(["google", "g-1"])


class TestCalendarAggregator:
    """Tests for merging calendar sources."""

    def test_events_sorted_chronologically(self, google_payload, outlook_payload, ios_payload):
        """Test merged events come back in start order."""
        aggregator = CalendarAggregator()
        added = aggregator.add_payloads([ios_payload, outlook_payload, google_payload])
        assert added == 3
        titles = [e.title for e in aggregator.events()]
        assert titles == ["Team Sync", "Dentist Appointment", "Flight to Denver"]

    def test_duplicates_across_sources_dropped(self, google_payload, ios_payload):
        """Test same title and start from two sources keeps the first."""
        ios_payload["title"] = "  team   SYNC "
        ios_payload["startDate"] = "2025-01-06T10:00:00"
        ios_payload["endDate"] = "2025-01-06T10:30:00"
        aggregator = CalendarAggregator()
        added = aggregator.add_payloads([google_payload, ios_payload])
        assert added == 1
        assert aggregator.events()[0].source == CalendarSource.GOOGLE

    def test_malformed_payloads_recorded_and_skipped(self, google_payload):
        """Test malformed payloads are skipped without stopping the batch."""
        aggregator = CalendarAggregator()
        added = aggregator.add_payloads([
            {"source": "ios", "title": "No id"},
            {"source": "fax"},
            google_payload,
        ])
        assert added == 1
        assert len(aggregator.errors) == 2
        assert isinstance(aggregator.errors[0], MalformedEventError)
        assert isinstance(aggregator.errors[1], UnsupportedSourceError)

    def test_wrongly_shaped_payloads_skipped(self, google_payload, ios_payload):
        """Test non-object entries and nested blocks do not stop the batch."""
        google_payload["start"] = "2025-01-06T10:00:00"
        aggregator = CalendarAggregator()
        added = aggregator.add_payloads(["oops", 42, google_payload, ios_payload])
        assert added == 1
        assert len(aggregator.errors) == 3
        assert all(isinstance(e, MalformedEventError) for e in aggregator.errors)
        assert aggregator.events()[0].id == "ios-42"

    def test_aware_times_converted_to_target_zone(self, google_payload):
        """Test aware datetimes become naive wall time in the target zone."""
        google_payload["start"] = {"dateTime": "2025-01-06T15:00:00Z"}
        google_payload["end"] = {"dateTime": "2025-01-06T16:00:00Z"}
        aggregator = CalendarAggregator(tz=timezone(timedelta(hours=-5)))
        aggregator.add_payloads([google_payload])
        event = aggregator.events()[0]
        assert event.start == datetime(2025, 1, 6, 10, 0)
        assert event.start.tzinfo is None

    def test_events_between(self, make_event):
        """Test range queries return overlapping events."""
        aggregator = CalendarAggregator()
        aggregator.add_event(make_event("Early", 8, 0))
        aggregator.add_event(make_event("Mid", 11, 0))
        aggregator.add_event(make_event("Late", 16, 0))
        found = aggregator.events_between(datetime(2025, 1, 6, 10, 30), datetime(2025, 1, 6, 12, 0))
        assert [e.title for e in found] == ["Mid"]


class TestLoadEventsFile:
    """Tests for reading events files."""

    def test_load_list(self, events_file):
        """Test a bare list with one malformed payload."""
        events = load_events_file(events_file)
        assert [e.title for e in events] == [
            "Company Holiday", "Team Sync", "Dentist Appointment", "Flight to Denver"
        ]

    def test_load_wrapped(self, tmp_path, google_payload):
        """Test the {"events": [...]} form."""
        path = tmp_path / "wrapped.json"
        path.write_text(json.dumps({"events": [google_payload]}))
        events = load_events_file(path)
        assert len(events) == 1
        assert events[0].id == "g-123"

    def test_invalid_json_raises(self, tmp_path):
        """Test that broken JSON propagates as ValueError."""
        path = tmp_path / "broken.json"
        path.write_text("[{")
        with pytest.raises(ValueError):
            load_events_file(path)

    def test_non_list_document_raises(self, tmp_path):
        """Test a scalar or a non-list events key is rejected as ValueError."""
        scalar = tmp_path / "scalar.json"
        scalar.write_text("42")
        with pytest.raises(ValueError, match="list of event payloads"):
            load_events_file(scalar)

        wrapped = tmp_path / "wrapped.json"
        wrapped.write_text(json.dumps({"events": 5}))
        with pytest.raises(ValueError, match="list of event payloads"):
            load_events_file(wrapped)
