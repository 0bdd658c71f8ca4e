"""
Morning Briefing for CalAI

Summarizes the day ahead: optional weather snapshot, the day's events in
order, a handful of observations about the schedule and a script for reading
it aloud.

Weather is supplied by the caller; nothing here fetches it.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Dict, Any, List, Optional, Sequence, Union

from . import AssistantAgent
from .narrative_builder import format_time, pluralize
from ..integrations import UnifiedEvent, CalendarSource


MAX_SPOKEN_EVENTS = 5
MAX_SPOKEN_SUGGESTIONS = 3
LARGE_GAP = timedelta(hours=2)
BACK_TO_BACK_GAP = timedelta(minutes=5)


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class WeatherData:
    """Weather snapshot supplied by the caller."""
    temperature: float
    condition: str
    condition_description: str
    high: float
    low: float
    feels_like: Optional[float] = None
    precipitation_chance: int = 0       # Percent
    humidity: Optional[int] = None      # Percent
    wind_speed: Optional[float] = None

    @property
    def temperature_formatted(self) -> str:
        return f"{self.temperature:.0f}°"

    @property
    def high_low_formatted(self) -> str:
        return f"H:{self.high:.0f}° L:{self.low:.0f}°"

    @property
    def should_show_precipitation(self) -> bool:
        return self.precipitation_chance > 30

    def to_dict(self) -> Dict[str, Any]:
        return {
            "temperature": self.temperature,
            "feels_like": self.feels_like,
            "condition": self.condition,
            "condition_description": self.condition_description,
            "high": self.high,
            "low": self.low,
            "precipitation_chance": self.precipitation_chance,
            "humidity": self.humidity,
            "wind_speed": self.wind_speed
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WeatherData":
        return cls(
            temperature=float(data["temperature"]),
            condition=data["condition"],
            condition_description=data.get("condition_description", data["condition"]),
            high=float(data["high"]),
            low=float(data["low"]),
            feels_like=data.get("feels_like"),
            precipitation_chance=int(data.get("precipitation_chance", 0)),
            humidity=data.get("humidity"),
            wind_speed=data.get("wind_speed")
        )


@dataclass
class BriefingEvent:
    """Event as shown in a briefing."""
    id: str
    title: str
    start: datetime
    end: datetime
    location: Optional[str] = None
    is_all_day: bool = False
    source: CalendarSource = CalendarSource.IOS

    @classmethod
    def from_event(cls, event: UnifiedEvent) -> "BriefingEvent":
        return cls(
            id=event.id,
            title=event.title,
            start=event.start,
            end=event.end,
            location=event.location,
            is_all_day=event.is_all_day,
            source=event.source
        )

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def time_formatted(self) -> str:
        if self.is_all_day:
            return "All day"
        return f"{format_time(self.start)} - {format_time(self.end)}"

    @property
    def duration_formatted(self) -> str:
        hours, minutes = divmod(int(self.duration.total_seconds() // 60), 60)
        if hours and minutes:
            return f"{hours}h {minutes}m"
        if hours:
            return f"{hours}h"
        return f"{minutes}m"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "time": self.time_formatted,
            "duration": self.duration_formatted,
            "location": self.location,
            "is_all_day": self.is_all_day,
            "source": self.source.value
        }


@dataclass
class DailyBriefing:
    """Complete briefing for one day."""
    date: datetime
    events: List[BriefingEvent] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    weather: Optional[WeatherData] = None

    @property
    def greeting(self) -> str:
        if self.date.hour < 12:
            return "Good morning"
        if self.date.hour < 17:
            return "Good afternoon"
        return "Good evening"

    @property
    def event_count(self) -> int:
        return len(self.events)

    @property
    def day_summary(self) -> str:
        if not self.events:
            return "No events scheduled today"
        return f"{pluralize(len(self.events), 'event')} scheduled today"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "greeting": self.greeting,
            "day_summary": self.day_summary,
            "weather": self.weather.to_dict() if self.weather else None,
            "events": [e.to_dict() for e in self.events],
            "suggestions": list(self.suggestions)
        }

    def to_formatted_output(self) -> str:
        """Format briefing for plain-text display."""
        lines = [
            "=" * 50,
            f"{self.greeting.upper()} - {self.date.strftime('%A, %B')} {self.date.day}",
            "=" * 50,
            ""
        ]

        if self.weather:
            lines.append(
                f"WEATHER: {self.weather.temperature_formatted} {self.weather.condition_description} "
                f"({self.weather.high_low_formatted})"
            )
            lines.append("")

        lines.append(f"SCHEDULE: {self.day_summary}")
        for event in self.events:
            location = f" @ {event.location}" if event.location else ""
            lines.append(f"  {event.time_formatted:<20} {event.title}{location}")
        lines.append("")

        if self.suggestions:
            lines.append("NOTES:")
            for suggestion in self.suggestions:
                lines.append(f"  - {suggestion}")

        return "\n".join(lines)


@dataclass
class MorningBriefingSettings:
    """When and how the briefing is delivered."""
    is_enabled: bool = True
    hour: int = 7
    minute: int = 0
    sound_enabled: bool = True
    voice_auto_play: bool = False

    def __post_init__(self):
        if not 0 <= self.hour <= 23:
            raise ValueError(f"Briefing hour must be 0-23, got {self.hour}")
        if not 0 <= self.minute <= 59:
            raise ValueError(f"Briefing minute must be 0-59, got {self.minute}")

    @property
    def briefing_time(self) -> time:
        return time(self.hour, self.minute)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_enabled": self.is_enabled,
            "hour": self.hour,
            "minute": self.minute,
            "sound_enabled": self.sound_enabled,
            "voice_auto_play": self.voice_auto_play
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "MorningBriefingSettings":
        data = data or {}
        defaults = cls()
        return cls(
            is_enabled=bool(data.get("is_enabled", defaults.is_enabled)),
            hour=int(data.get("hour", defaults.hour)),
            minute=int(data.get("minute", defaults.minute)),
            sound_enabled=bool(data.get("sound_enabled", defaults.sound_enabled)),
            voice_auto_play=bool(data.get("voice_auto_play", defaults.voice_auto_play))
        )


# =============================================================================
# DAY ANALYZER
# =============================================================================

class DayAnalyzer:
    """Short observations about a day's schedule."""

    @staticmethod
    def generate_suggestions(events: Sequence[BriefingEvent]) -> List[str]:
        if not events:
            return ["No meetings today - great day for deep work!"]

        suggestions = []
        count = len(events)

        if count >= 7:
            suggestions.append(f"Busy day with {count} events - stay focused!")
        elif count >= 5:
            suggestions.append(f"Moderately busy day with {count} events")
        elif count >= 3:
            suggestions.append(f"Balanced schedule with {count} events")
        else:
            suggestions.append(f"Light schedule with {pluralize(count, 'event')}")

        # Time-of-day observations ignore all-day events
        timed = sorted((e for e in events if not e.is_all_day), key=lambda e: e.start)

        morning = sum(1 for e in timed if e.start.hour < 12)
        afternoon = sum(1 for e in timed if 12 <= e.start.hour < 17)
        evening = sum(1 for e in timed if e.start.hour >= 17)
        if morning > afternoon + evening:
            suggestions.append("Morning-heavy schedule")
        elif afternoon > morning + evening:
            suggestions.append("Afternoon-packed schedule")

        pairs = list(zip(timed, timed[1:]))
        for previous, following in pairs:
            gap = following.start - previous.end
            if gap >= LARGE_GAP:
                hours = int(gap.total_seconds() // 3600)
                suggestions.append(
                    f"{pluralize(hours, 'hour')} free between {format_time(previous.end)} "
                    f"and {format_time(following.start)}"
                )
                break

        back_to_back = sum(1 for previous, following in pairs
                           if following.start - previous.end < BACK_TO_BACK_GAP)
        if back_to_back >= 3:
            suggestions.append(f"{back_to_back} back-to-back meetings - schedule breaks")

        if timed:
            suggestions.append(f"First event at {format_time(timed[0].start)}")

        return suggestions


# =============================================================================
# MORNING BRIEFING SERVICE
# =============================================================================

class MorningBriefingService(AssistantAgent):
    """Builds daily briefings and their spoken scripts."""

    def __init__(self, settings: Optional[MorningBriefingSettings] = None, store=None):
        """
        Args:
            settings: Used when the store holds no saved settings.
            store: BriefingSettingsStore. None keeps settings in memory.
        """
        super().__init__("MorningBriefingService")
        self.store = store
        self.settings = settings or MorningBriefingSettings()
        if store is not None:
            saved = store.load_settings()
            if saved is not None:
                self.settings = saved

    def update_settings(self, settings: MorningBriefingSettings):
        self.settings = settings
        if self.store is not None:
            self.store.save_settings(settings)

    def generate_briefing(
        self,
        events: Sequence[UnifiedEvent],
        day: Union[date, datetime],
        weather: Optional[WeatherData] = None
    ) -> DailyBriefing:
        """
        Build the briefing for one day.

        A plain date is stamped with the configured briefing time; a datetime
        is used as given.
        """
        if isinstance(day, datetime):
            stamp = day
        else:
            stamp = datetime.combine(day, self.settings.briefing_time)

        start_of_day = datetime.combine(stamp.date(), time.min)
        end_of_day = start_of_day + timedelta(days=1)
        todays = sorted(
            (e for e in events if start_of_day <= e.start < end_of_day),
            key=lambda e: e.start
        )
        briefing_events = [BriefingEvent.from_event(e) for e in todays]

        briefing = DailyBriefing(
            date=stamp,
            events=briefing_events,
            suggestions=DayAnalyzer.generate_suggestions(briefing_events),
            weather=weather
        )
        self.logger.debug(
            f"Briefing for {stamp.date()}: {briefing.event_count} events, "
            f"{len(briefing.suggestions)} suggestions, weather {'yes' if weather else 'no'}"
        )
        return briefing

    @staticmethod
    def _voice_time(value: datetime) -> str:
        return format_time(value).replace(":00", "")

    def generate_voice_script(self, briefing: DailyBriefing) -> str:
        parts = [f"{briefing.greeting}."]

        weather = briefing.weather
        if weather:
            parts.append(
                f"It's currently {int(weather.temperature)} degrees and {weather.condition_description}."
            )
            parts.append(f"Today's high will be {int(weather.high)} and low {int(weather.low)}.")
            if weather.should_show_precipitation:
                parts.append(f"There's a {weather.precipitation_chance} percent chance of precipitation.")

        if not briefing.events:
            parts.append("You have no events scheduled today.")
        else:
            parts.append(f"You have {pluralize(briefing.event_count, 'event')} today.")

        spoken = briefing.events[:MAX_SPOKEN_EVENTS]
        for index, event in enumerate(spoken):
            if index == 0:
                lead = "Starting with"
            elif index == briefing.event_count - 1:
                lead = "And finally,"
            else:
                lead = "Then,"
            parts.append(f"{lead} {event.title} at {self._voice_time(event.start)}.")
            if event.location:
                parts.append(f"Located at {event.location}.")

        if briefing.event_count > MAX_SPOKEN_EVENTS:
            parts.append(f"Plus {briefing.event_count - MAX_SPOKEN_EVENTS} more events.")

        for suggestion in briefing.suggestions[:MAX_SPOKEN_SUGGESTIONS]:
            parts.append(suggestion if suggestion.endswith(("!", ".")) else f"{suggestion}.")

        parts.append("Have a great day!")
        return " ".join(parts)
