"""
Pytest fixtures for CalAI testing.

Provides:
- UnifiedEvent factories and sample days
- Raw calendar source payloads
- Temporary storage paths and stores
"""

import pytest
import json
from pathlib import Path
from datetime import datetime, date, timedelta
from typing import Dict, Any, List, Optional
import sys

# Add the project root to sys.path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from calai.integrations import UnifiedEvent, CalendarSource


# Monday 6 January 2025, used as "today" throughout
TEST_DAY = date(2025, 1, 6)


# =============================================================================
# EVENT FACTORIES
# =============================================================================

@pytest.fixture
def test_day() -> date:
    return TEST_DAY


@pytest.fixture
def at():
    """Build a datetime on the test day: at(9, 30)."""
    def _at(hour: int, minute: int = 0, day: date = TEST_DAY) -> datetime:
        return datetime(day.year, day.month, day.day, hour, minute)
    return _at


@pytest.fixture
def make_event(at):
    """
    Factory for UnifiedEvent.

    make_event("Standup", 9, 0, minutes=30, location="Room 1")
    """
    counter = {"n": 0}

    def _make(
        title: str,
        hour: int = 9,
        minute: int = 0,
        minutes: int = 60,
        location: Optional[str] = None,
        description: Optional[str] = None,
        all_day: bool = False,
        day: date = TEST_DAY,
        event_id: Optional[str] = None,
        source: CalendarSource = CalendarSource.IOS,
    ) -> UnifiedEvent:
        counter["n"] += 1
        if all_day:
            start = datetime(day.year, day.month, day.day)
            end = start + timedelta(days=1)
        else:
            start = at(hour, minute, day)
            end = start + timedelta(minutes=minutes)
        return UnifiedEvent(
            id=event_id or f"evt-{counter['n']}",
            title=title,
            start=start,
            end=end,
            source=source,
            location=location,
            description=description,
            is_all_day=all_day,
        )

    return _make


@pytest.fixture
def busy_day(make_event) -> List[UnifiedEvent]:
    """Three back-to-back morning meetings, lunch across town, an afternoon review."""
    return [
        make_event("Standup", 9, 0, minutes=30),
        make_event("Design Review", 9, 30, minutes=60),
        make_event("Client Call", 10, 35, minutes=55),
        make_event("Lunch with Sarah", 12, 0, minutes=60, location="Cafe Roma"),
        make_event("Budget Review", 15, 0, minutes=60, location="HQ Room 4"),
    ]


# =============================================================================
# RAW SOURCE PAYLOADS
# =============================================================================

@pytest.fixture
def google_payload() -> Dict[str, Any]:
    return {
        "source": "google",
        "id": "g-123",
        "summary": "Team Sync",
        "location": "Zoom",
        "description": "Weekly sync",
        "start": {"dateTime": "2025-01-06T10:00:00"},
        "end": {"dateTime": "2025-01-06T10:30:00"},
        "organizer": {"email": "lead@example.com"},
        "etag": "\"3181161784712000\"",
        "htmlLink": "https://calendar.google.com/event?eid=abc",
    }


@pytest.fixture
def google_all_day_payload() -> Dict[str, Any]:
    return {
        "source": "google",
        "id": "g-holiday",
        "summary": "Company Holiday",
        "start": {"date": "2025-01-06"},
        "end": {"date": "2025-01-07"},
    }


@pytest.fixture
def outlook_payload() -> Dict[str, Any]:
    return {
        "source": "outlook",
        "id": "AAMkAGI2",
        "subject": "Dentist Appointment",
        "start": {"dateTime": "2025-01-06T14:00:00.0000000", "timeZone": "Pacific Standard Time"},
        "end": {"dateTime": "2025-01-06T15:00:00.0000000", "timeZone": "Pacific Standard Time"},
        "location": {"displayName": "Smile Dental"},
        "organizer": {"emailAddress": {"name": "Front Desk", "address": "desk@smile.example"}},
        "bodyPreview": "Cleaning",
        "isAllDay": False,
        "changeKey": "ck-1",
    }


@pytest.fixture
def ios_payload() -> Dict[str, Any]:
    return {
        "source": "ios",
        "eventIdentifier": "ios-42",
        "title": "Flight to Denver",
        "startDate": "2025-01-06T17:00:00",
        "endDate": "2025-01-06T19:30:00",
        "location": "SFO Terminal 2",
        "notes": "Confirmation ABC123",
        "isAllDay": False,
        "calendarIdentifier": "cal-home",
        "calendarTitle": "Home",
    }


@pytest.fixture
def events_file(tmp_path, google_payload, google_all_day_payload, outlook_payload, ios_payload) -> Path:
    """JSON events file mixing all three sources plus one malformed payload."""
    path = tmp_path / "events.json"
    payloads = [
        google_payload,
        google_all_day_payload,
        outlook_payload,
        ios_payload,
        {"source": "ios", "title": "No identifier"},
    ]
    path.write_text(json.dumps(payloads))
    return path


# =============================================================================
# TEMPORARY STORAGE FIXTURES
# =============================================================================

@pytest.fixture
def temp_storage_path(tmp_path) -> Path:
    """Provide a temporary storage directory for stores."""
    storage_dir = tmp_path / "calai_test_storage"
    storage_dir.mkdir(parents=True, exist_ok=True)
    return storage_dir


@pytest.fixture
def task_store(temp_storage_path):
    from calai.memory import EventTaskStore
    return EventTaskStore(temp_storage_path / "event_tasks.json")


@pytest.fixture
def follow_up_store(temp_storage_path):
    from calai.memory import FollowUpStore
    return FollowUpStore(temp_storage_path / "follow_ups.json")


@pytest.fixture
def briefing_store(temp_storage_path):
    from calai.memory import BriefingSettingsStore
    return BriefingSettingsStore(temp_storage_path / "briefing_settings.json")


@pytest.fixture
def config_file(tmp_path, temp_storage_path) -> Path:
    """Config file pointing storage at the temp directory, quiet logging."""
    path = tmp_path / "config.yaml"
    path.write_text(
        "log_level: ERROR\n"
        f"storage_dir: {temp_storage_path}\n"
    )
    return path
