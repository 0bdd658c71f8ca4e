"""
Tests for MorningBriefingService - Daily briefings

Tests cover:
- Weather and event presentation
- Day observations
- Briefing assembly and voice script
- Settings validation and persistence
"""

import pytest
from datetime import datetime, time, timedelta
import sys
from pathlib import Path

# Add path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from calai.tools.morning_briefing import (
    BriefingEvent,
    DailyBriefing,
    DayAnalyzer,
    MorningBriefingService,
    MorningBriefingSettings,
    WeatherData,
)


@pytest.fixture
def service():
    return MorningBriefingService()


@pytest.fixture
def weather():
    return WeatherData(
        temperature=72.4,
        condition="clear",
        condition_description="clear skies",
        high=80,
        low=60,
        precipitation_chance=40,
    )


def briefing_events(events):
    return [BriefingEvent.from_event(e) for e in events]


class TestWeatherData:
    """Tests for weather formatting."""

    def test_formatting(self, weather):
        """Test rounded temperature strings."""
        assert weather.temperature_formatted == "72°"
        assert weather.high_low_formatted == "H:80° L:60°"

    def test_precipitation_threshold(self, weather):
        """Test precipitation is shown above 30 percent."""
        assert weather.should_show_precipitation is True
        weather.precipitation_chance = 30
        assert weather.should_show_precipitation is False

    def test_from_dict_defaults(self):
        """Test the description falls back to the condition."""
        data = WeatherData.from_dict({"temperature": 50, "condition": "Rain", "high": 55, "low": 45})
        assert data.condition_description == "Rain"
        assert data.precipitation_chance == 0


class TestBriefingEvent:
    """Tests for event presentation."""

    @pytest.mark.parametrize("minutes,expected", [
        (90, "1h 30m"),
        (60, "1h"),
        (45, "45m"),
    ])
    def test_duration_formatted(self, make_event, minutes, expected):
        """Test compact durations."""
        event = BriefingEvent.from_event(make_event("Block", 9, 0, minutes=minutes))
        assert event.duration_formatted == expected

    def test_time_formatted(self, make_event):
        """Test timed and all-day ranges."""
        timed = BriefingEvent.from_event(make_event("Standup", 9, 0, minutes=30))
        all_day = BriefingEvent.from_event(make_event("Holiday", all_day=True))
        assert timed.time_formatted == "9:00 AM - 9:30 AM"
        assert all_day.time_formatted == "All day"


class TestDailyBriefing:
    """Tests for the briefing container."""

    @pytest.mark.parametrize("hour,expected", [
        (7, "Good morning"),
        (11, "Good morning"),
        (12, "Good afternoon"),
        (16, "Good afternoon"),
        (17, "Good evening"),
    ])
    def test_greeting(self, at, hour, expected):
        """Test greeting boundaries."""
        assert DailyBriefing(date=at(hour)).greeting == expected

    def test_day_summary(self, at, make_event):
        """Test empty and singular summaries."""
        assert DailyBriefing(date=at(7)).day_summary == "No events scheduled today"
        one = DailyBriefing(date=at(7), events=briefing_events([make_event("Gym", 6)]))
        assert one.day_summary == "1 event scheduled today"

    def test_formatted_output(self, at, weather, make_event):
        """Test the plain-text layout."""
        briefing = DailyBriefing(
            date=at(7),
            events=briefing_events([make_event("Lunch", 12, 0, location="Cafe Roma")]),
            suggestions=["Light schedule with 1 event"],
            weather=weather,
        )
        output = briefing.to_formatted_output()
        assert "GOOD MORNING - Monday, January 6" in output
        assert "WEATHER: 72° clear skies (H:80° L:60°)" in output
        assert "Lunch @ Cafe Roma" in output
        assert "  - Light schedule with 1 event" in output


class TestDayAnalyzer:
    """Tests for schedule observations."""

    def test_no_events(self):
        """Test the deep work suggestion."""
        assert DayAnalyzer.generate_suggestions([]) == ["No meetings today - great day for deep work!"]

    def test_busy_day(self, busy_day):
        """Test density, morning load, a long gap and the first event."""
        assert DayAnalyzer.generate_suggestions(briefing_events(busy_day)) == [
            "Moderately busy day with 5 events",
            "Morning-heavy schedule",
            "2 hours free between 1:00 PM and 3:00 PM",
            "First event at 9:00 AM",
        ]

    def test_back_to_back(self, make_event):
        """Test three back-to-back transitions are called out."""
        events = [make_event(f"M{i}", 9 + i // 2, 30 * (i % 2), minutes=30) for i in range(4)]
        suggestions = DayAnalyzer.generate_suggestions(briefing_events(events))
        assert suggestions == [
            "Balanced schedule with 4 events",
            "Morning-heavy schedule",
            "3 back-to-back meetings - schedule breaks",
            "First event at 9:00 AM",
        ]

    def test_afternoon_packed(self, make_event):
        """Test afternoon load with a light count."""
        events = briefing_events([make_event("A", 13), make_event("B", 14)])
        assert DayAnalyzer.generate_suggestions(events) == [
            "Light schedule with 2 events",
            "Afternoon-packed schedule",
            "First event at 1:00 PM",
        ]

    def test_all_day_only(self, make_event):
        """Test all-day events count but add no timed observations."""
        events = briefing_events([make_event("Holiday", all_day=True)])
        assert DayAnalyzer.generate_suggestions(events) == ["Light schedule with 1 event"]

    def test_very_busy(self, make_event):
        """Test the stay focused wording at seven events."""
        events = briefing_events([make_event(f"E{i}", 8 + i, minutes=30) for i in range(7)])
        assert DayAnalyzer.generate_suggestions(events)[0] == "Busy day with 7 events - stay focused!"


class TestGenerateBriefing:
    """Tests for briefing assembly."""

    def test_filters_to_day_and_sorts(self, service, make_event, test_day):
        """Test other days are dropped and events ordered by start."""
        events = [
            make_event("Late", 15),
            make_event("Tomorrow", 9, day=test_day + timedelta(days=1)),
            make_event("Early", 8),
        ]
        briefing = service.generate_briefing(events, test_day)
        assert [e.title for e in briefing.events] == ["Early", "Late"]

    def test_date_uses_briefing_time(self, make_event, test_day):
        """Test a plain date is stamped with the configured time."""
        service = MorningBriefingService(MorningBriefingSettings(hour=6, minute=30))
        briefing = service.generate_briefing([], test_day)
        assert briefing.date == datetime(2025, 1, 6, 6, 30)

    def test_datetime_used_as_given(self, service, at):
        """Test an explicit timestamp drives the greeting."""
        briefing = service.generate_briefing([], at(13))
        assert briefing.date == at(13)
        assert briefing.greeting == "Good afternoon"

    def test_to_dict(self, service, busy_day, test_day, weather):
        """Test serialization."""
        data = service.generate_briefing(busy_day, test_day, weather).to_dict()
        assert data["day_summary"] == "5 events scheduled today"
        assert data["weather"]["high"] == 80
        assert data["events"][0]["time"] == "9:00 AM - 9:30 AM"


class TestVoiceScript:
    """Tests for the spoken briefing."""

    def test_busy_day_script(self, service, busy_day, test_day):
        """Test the full script for the sample day."""
        script = service.generate_voice_script(service.generate_briefing(busy_day, test_day))
        assert script == (
            "Good morning. You have 5 events today. "
            "Starting with Standup at 9 AM. "
            "Then, Design Review at 9:30 AM. "
            "Then, Client Call at 10:35 AM. "
            "Then, Lunch with Sarah at 12 PM. Located at Cafe Roma. "
            "And finally, Budget Review at 3 PM. Located at HQ Room 4. "
            "Moderately busy day with 5 events. Morning-heavy schedule. "
            "2 hours free between 1:00 PM and 3:00 PM. "
            "Have a great day!"
        )

    def test_weather_lines(self, service, test_day, weather):
        """Test weather and precipitation sentences."""
        script = service.generate_voice_script(service.generate_briefing([], test_day, weather))
        assert script == (
            "Good morning. It's currently 72 degrees and clear skies. "
            "Today's high will be 80 and low 60. "
            "There's a 40 percent chance of precipitation. "
            "You have no events scheduled today. "
            "No meetings today - great day for deep work! "
            "Have a great day!"
        )

    def test_more_than_five_events(self, service, make_event, test_day):
        """Test only five events are read out."""
        events = [make_event(f"E{i}", 8 + i, minutes=30) for i in range(7)]
        script = service.generate_voice_script(service.generate_briefing(events, test_day))
        assert "Then, E4 at 12 PM." in script
        assert "E5" not in script
        assert "And finally," not in script
        assert "Plus 2 more events." in script


class TestSettings:
    """Tests for briefing settings."""

    def test_defaults(self):
        """Test the seven o'clock default."""
        settings = MorningBriefingSettings()
        assert settings.briefing_time == time(7, 0)
        assert settings.voice_auto_play is False

    @pytest.mark.parametrize("hour,minute", [(24, 0), (-1, 0), (7, 60)])
    def test_invalid_time(self, hour, minute):
        """Test out-of-range times are rejected."""
        with pytest.raises(ValueError):
            MorningBriefingSettings(hour=hour, minute=minute)

    def test_from_dict_partial(self):
        """Test missing keys fall back to defaults."""
        settings = MorningBriefingSettings.from_dict({"hour": 6})
        assert settings.hour == 6
        assert settings.minute == 0
        assert MorningBriefingSettings.from_dict(None) == MorningBriefingSettings()

    def test_saved_settings_win(self, briefing_store, temp_storage_path):
        """Test stored settings override constructor settings."""
        from calai.memory import BriefingSettingsStore

        service = MorningBriefingService(store=briefing_store)
        service.update_settings(MorningBriefingSettings(hour=6, minute=15))

        reloaded = MorningBriefingService(
            MorningBriefingSettings(hour=9),
            store=BriefingSettingsStore(briefing_store.storage_path),
        )
        assert reloaded.settings.briefing_time == time(6, 15)
