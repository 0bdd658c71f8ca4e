"""
Voice Response Generator for CalAI

Builds the assistant's spoken replies. Every reply has the same shape:
greeting, body, optional insight, optional follow-up question.

Reply types:
- Query: narrative of a day's schedule
- Next event: timing, location and what comes after
- Create / delete confirmation with the effect on the day
- Search results
- Availability check
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, Any, List, Optional, Sequence, Tuple

from . import ScheduleAgent
from .schedule_analyzer import ScheduleAnalyzer
from .narrative_builder import NarrativeBuilder, format_time, format_duration, pluralize
from ..integrations import UnifiedEvent


DEFAULT_EVENT_DURATION = timedelta(hours=1)
SEARCH_RESULT_LIMIT = 3


@dataclass
class VoiceResponse:
    """A reply split into the parts a voice renderer may pace separately."""
    greeting: str
    body: str
    insight: Optional[str] = None
    follow_up: Optional[str] = None

    @property
    def full_message(self) -> str:
        parts = [self.greeting, self.body, self.insight, self.follow_up]
        return " ".join(p for p in parts if p)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "greeting": self.greeting,
            "body": self.body,
            "insight": self.insight,
            "follow_up": self.follow_up,
            "full_message": self.full_message
        }


def _medium_date(value: datetime) -> str:
    return f"{value.strftime('%b')} {value.day}, {value.year}"


def _long_day(value: datetime) -> str:
    return f"{value.strftime('%A, %B')} {value.day}"


class VoiceResponseGenerator(ScheduleAgent):
    """Generates conversational replies on top of the schedule pipeline."""

    def __init__(
        self,
        analyzer: Optional[ScheduleAnalyzer] = None,
        narrative_builder: Optional[NarrativeBuilder] = None
    ):
        super().__init__("VoiceResponseGenerator")
        self.analyzer = analyzer or ScheduleAnalyzer()
        self.narrative_builder = narrative_builder or NarrativeBuilder()

    # =========================================================================
    # SHARED PHRASES
    # =========================================================================

    @staticmethod
    def greeting(now: Optional[datetime] = None) -> str:
        hour = (now or datetime.now()).hour
        if 6 <= hour < 12:
            return "Good morning"
        if 12 <= hour < 18:
            return "Good afternoon"
        return "Good evening"

    @staticmethod
    def time_reference(day: date, today: date) -> str:
        """Return "Today", "Tomorrow" or the weekday name."""
        if day == today:
            return "Today"
        if day == today + timedelta(days=1):
            return "Tomorrow"
        return day.strftime("%A")

    @staticmethod
    def _relative_day(value: datetime, today: date) -> str:
        if value.date() == today:
            return "today"
        if value.date() == today + timedelta(days=1):
            return "tomorrow"
        return _medium_date(value)

    # =========================================================================
    # QUERY
    # =========================================================================

    def generate_query_response(
        self,
        events: Sequence[UnifiedEvent],
        time_range: Optional[Tuple[datetime, datetime]] = None,
        now: Optional[datetime] = None
    ) -> VoiceResponse:
        """Narrate the schedule for the queried period."""
        now = now or datetime.now()
        day = time_range[0].date() if time_range else now.date()
        time_ref = self.time_reference(day, now.date())

        analysis = self.analyzer.analyze(events, time_range)
        body = self.narrative_builder.build(analysis, time_ref, include_busy_highlight=False)

        return VoiceResponse(
            greeting=self.greeting(now) + "!",
            body=body,
            insight=self.narrative_builder.busy_highlight_clause(analysis),
        )

    # =========================================================================
    # WHAT'S NEXT
    # =========================================================================

    def generate_next_event_response(
        self,
        next_event: Optional[UnifiedEvent],
        following_event: Optional[UnifiedEvent] = None,
        now: Optional[datetime] = None
    ) -> VoiceResponse:
        now = now or datetime.now()

        if next_event is None:
            return VoiceResponse(
                greeting="",
                body="You don't have any upcoming events.",
                follow_up="Your calendar is clear for the rest of the day."
            )

        minutes = int((next_event.start - now).total_seconds() // 60)
        if minutes < 5:
            timing = "starting now"
        elif minutes < 30:
            timing = f"in {minutes} minutes"
        elif minutes < 120:
            timing = f"in {format_duration(timedelta(minutes=minutes))}"
        else:
            timing = f"at {format_time(next_event.start)}"

        body = f"Your next event is {next_event.title} {timing}"
        if next_event.has_location:
            body += f" at {next_event.location}"
        body += "."

        insight = None
        if 5 < minutes < 30:
            insight = "You should start wrapping up and preparing now."
        elif next_event.has_location and minutes > 10:
            insight = f"I'd suggest heading to {next_event.location} about 5 minutes early."

        follow_up = None
        if following_event is None:
            follow_up = "Your schedule is clear after this event."
        else:
            gap_minutes = int((following_event.start - next_event.end).total_seconds() // 60)
            if gap_minutes < 15:
                follow_up = (
                    f"After this you have {following_event.title} immediately following "
                    f"with only {gap_minutes} minutes between."
                )
            elif gap_minutes < 60:
                follow_up = (
                    f"After this you have {following_event.title} at "
                    f"{format_time(following_event.start)}, giving you {gap_minutes} minutes to decompress."
                )

        return VoiceResponse(greeting="", body=body, insight=insight, follow_up=follow_up)

    # =========================================================================
    # CREATE / DELETE
    # =========================================================================

    def generate_create_response(
        self,
        title: str,
        start: datetime,
        duration: Optional[timedelta] = None,
        conflicts: Optional[List[UnifiedEvent]] = None,
        all_events: Sequence[UnifiedEvent] = (),
        now: Optional[datetime] = None
    ) -> VoiceResponse:
        """Confirm a newly scheduled event and place it in the day."""
        now = now or datetime.now()
        conflicts = conflicts or []

        body = f"I've scheduled {title} for {self._relative_day(start, now.date())} at {format_time(start)}"
        if duration is not None and duration >= timedelta(minutes=1):
            body += f" for {format_duration(duration)}"
        body += "."

        end = start + (duration or DEFAULT_EVENT_DURATION)
        day_events = sorted(
            (e for e in all_events if e.start.date() == start.date() and not e.is_all_day),
            key=lambda e: e.start
        )

        insight = None
        if conflicts:
            insight = self.format_conflict_warning(conflicts)
        elif day_events:
            before = [e for e in day_events if e.start < start]
            after = [e for e in day_events if e.start > start]

            if after and not before:
                insight = "This is your first event of the day."
                gap = after[0].start - end
                if gap > timedelta(minutes=30):
                    insight = (
                        f"This is your first event of the day with {format_duration(gap)} "
                        f"before your {format_time(after[0].start)} {after[0].title}."
                    )
            elif before and not after:
                insight = "This is your last event of the day."
            elif before and after:
                gap_before = start - before[-1].end
                gap_after = after[0].start - end
                if gap_before < timedelta(minutes=15) or gap_after < timedelta(minutes=15):
                    insight = "This creates a tight back-to-back schedule with your other meetings."
                else:
                    insight = "You'll have good buffer time before and after this meeting."

        return VoiceResponse(
            greeting="Done!",
            body=body,
            insight=insight,
            follow_up=None if conflicts else "Would you like me to set a reminder?"
        )

    def generate_delete_response(
        self,
        title: str,
        start: datetime,
        all_events: Sequence[UnifiedEvent] = ()
    ) -> VoiceResponse:
        """Confirm a cancellation and describe the time it frees up."""
        body = f"I've cancelled {title} at {format_time(start)} and removed it from your calendar."

        remaining = sorted(
            (e for e in all_events
             if e.start.date() == start.date() and not e.is_all_day
             and not (e.title == title and e.start == start)),
            key=lambda e: e.start
        )

        insight = None
        if not remaining:
            insight = "Your calendar is now completely clear for that day."
        else:
            before = [e for e in remaining if e.end <= start]
            after = [e for e in remaining if e.start >= start]

            if before and after:
                freed = after[0].start - before[-1].end
                hours = int(freed.total_seconds() // 3600)
                if hours >= 1:
                    insight = (
                        f"This opens up a {hours}-hour block from {format_time(before[-1].end)} "
                        f"to {format_time(after[0].start)} for focused work."
                    )
            elif after:
                insight = f"Your next commitment is now {after[0].title} at {format_time(after[0].start)}."
            elif before:
                insight = f"Your day now ends after {before[-1].title}."

        return VoiceResponse(
            greeting="Done!",
            body=body,
            insight=insight,
            follow_up="Would you like to reschedule this for another time?"
        )

    # =========================================================================
    # SEARCH / AVAILABILITY
    # =========================================================================

    def generate_search_response(
        self,
        query: str,
        results: Sequence[UnifiedEvent],
        now: Optional[datetime] = None
    ) -> VoiceResponse:
        now = now or datetime.now()

        if not results:
            body = f"I couldn't find any events matching '{query}'."
        elif len(results) == 1:
            event = results[0]
            if event.start.date() == now.date():
                day_ref = "today"
            elif event.start.date() == now.date() + timedelta(days=1):
                day_ref = "tomorrow"
            else:
                day_ref = _long_day(event.start)
            body = f"Your {event.title} is {day_ref} at {format_time(event.start)}"
            if event.has_location:
                body += f" at {event.location}"
            body += "."
        else:
            ordered = sorted(results, key=lambda e: e.start)
            described = ", ".join(
                f"{e.title} on {_medium_date(e.start)} at {format_time(e.start)}"
                for e in ordered[:SEARCH_RESULT_LIMIT]
            )
            body = f"I found {len(results)} events matching '{query}'. {described}"
            if len(results) > SEARCH_RESULT_LIMIT:
                body += f", and {len(results) - SEARCH_RESULT_LIMIT} more"
            body += "."

        return VoiceResponse(greeting="", body=body)

    def generate_availability_response(
        self,
        is_free: bool,
        conflicting_event: Optional[UnifiedEvent],
        query_time: datetime,
        all_events: Sequence[UnifiedEvent] = ()
    ) -> VoiceResponse:
        """Answer "am I free at ..." and point at the nearest free time."""
        timed = sorted((e for e in all_events if not e.is_all_day), key=lambda e: e.start)

        if is_free:
            body = f"Yes, you're free at {format_time(query_time)}."
            upcoming = [e for e in timed if e.start > query_time]
            if upcoming:
                next_event = upcoming[0]
                free_minutes = int((next_event.start - query_time).total_seconds() // 60)
                if free_minutes >= 60:
                    body += (
                        f" You're available for the next {pluralize(free_minutes // 60, 'hour')} "
                        f"until {format_time(next_event.start)}."
                    )
                else:
                    body += (
                        f" You have {free_minutes} minutes before your "
                        f"{format_time(next_event.start)} {next_event.title}."
                    )
            else:
                body += " Your calendar is clear for the rest of the day."
        elif conflicting_event is not None:
            body = (
                f"No, you have {conflicting_event.title} from {format_time(conflicting_event.start)} "
                f"to {format_time(conflicting_event.end)}."
            )
            slot = self._next_free_slot(conflicting_event, timed)
            if slot is not None:
                body += f" Your next free slot is from {format_time(slot[0])} to {format_time(slot[1])}."
            elif timed:
                body += f" You're free after {format_time(max(e.end for e in timed))}."
        else:
            body = "You're not available at that time."

        return VoiceResponse(greeting="", body=body)

    @staticmethod
    def _next_free_slot(
        busy_event: UnifiedEvent,
        timed: List[UnifiedEvent]
    ) -> Optional[Tuple[datetime, datetime]]:
        """First gap of >= 30 minutes after busy_event ends, if another event follows."""
        cursor = busy_event.end
        for event in timed:
            if event.end <= cursor:
                continue
            if event.start - cursor >= timedelta(minutes=30):
                return cursor, event.start
            cursor = max(cursor, event.end)
        return None

    # =========================================================================
    # CONFLICTS
    # =========================================================================

    def check_conflicts(
        self,
        start: datetime,
        end: datetime,
        events: Sequence[UnifiedEvent]
    ) -> List[UnifiedEvent]:
        return self.analyzer.check_conflicts(start, end, events)

    @staticmethod
    def format_conflict_warning(conflicts: Sequence[UnifiedEvent]) -> Optional[str]:
        if not conflicts:
            return None
        if len(conflicts) == 1:
            event = conflicts[0]
            return f"Warning: This overlaps with {event.title} at {format_time(event.start)}."
        return f"Warning: This conflicts with {len(conflicts)} existing events."
