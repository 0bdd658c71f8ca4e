"""
Narrative Builder for CalAI

Reads a ScheduleAnalysis back as one paragraph. Each clause has a
precondition; clauses whose precondition fails are left out and the rest are
joined by single spaces. Output is fully determined by the analysis.

Clause order:
1. Overview           "Today is busy."
2. Time span          "You're booked from 9:00 AM to 5:30 PM."
3. Event count        "You have 6 events, plus 1 all-day event."
4. Flow               "Your morning has 3 events starting with Standup at 9:00 AM, ..."
5. Logistics          tight transitions / off-site events
6. Breathing room     longest significant gap
7. Busy highlight     largest back-to-back cluster
"""

from datetime import datetime, timedelta
from typing import List, Optional

from . import ScheduleAgent
from .schedule_analyzer import ScheduleAnalysis, BusyPeriod
from ..integrations import UnifiedEvent


# Period boundaries (hour of the event start)
AFTERNOON_START_HOUR = 12
EVENING_START_HOUR = 17


# =============================================================================
# FORMATTING HELPERS
# =============================================================================

def format_time(value: datetime) -> str:
    """Format as a short clock time, e.g. "2:05 PM"."""
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {suffix}"


def format_duration(duration: timedelta) -> str:
    """Spoken duration: "45 minutes", "1 hour", "2 hours and 15 minutes"."""
    total_minutes = int(duration.total_seconds() // 60)
    hours, minutes = divmod(total_minutes, 60)
    if hours and minutes:
        return f"{pluralize(hours, 'hour')} and {pluralize(minutes, 'minute')}"
    if hours:
        return pluralize(hours, "hour")
    return pluralize(minutes, "minute")


def pluralize(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


# =============================================================================
# NARRATIVE BUILDER
# =============================================================================

class NarrativeBuilder(ScheduleAgent):
    """Assembles the spoken summary of a day."""

    def __init__(self):
        super().__init__("NarrativeBuilder")

    def build(
        self,
        analysis: ScheduleAnalysis,
        time_reference: str = "Today",
        include_busy_highlight: bool = True
    ) -> str:
        """
        Build the narrative paragraph.

        Args:
            analysis: Output of ScheduleAnalyzer.analyze
            time_reference: "Today", "Tomorrow" or a weekday name
            include_busy_highlight: Set False when the caller reports the
                busiest stretch separately
        """
        if not analysis.timed_events:
            return f"{time_reference} your calendar is completely clear, perfect for deep work or catching up!"

        clauses = [
            self.overview_clause(analysis, time_reference),
            self.time_span_clause(analysis),
            self.event_count_clause(analysis),
            self.flow_clause(analysis.timed_events),
            self.logistics_clause(analysis),
            self.breathing_room_clause(analysis),
        ]
        if include_busy_highlight:
            clauses.append(self.busy_highlight_clause(analysis))

        narrative = " ".join(c for c in clauses if c)
        self.logger.debug(f"Built narrative with {sum(1 for c in clauses if c)} clauses")
        return narrative

    # =========================================================================
    # CLAUSES
    # =========================================================================

    @staticmethod
    def overview_clause(analysis: ScheduleAnalysis, time_reference: str) -> str:
        return f"{time_reference} is {analysis.character.phrase}."

    @staticmethod
    def time_span_clause(analysis: ScheduleAnalysis) -> Optional[str]:
        if analysis.earliest_event is None or analysis.latest_event is None:
            return None
        return (
            f"You're booked from {format_time(analysis.earliest_event.start)} "
            f"to {format_time(analysis.latest_event.end)}."
        )

    @staticmethod
    def event_count_clause(analysis: ScheduleAnalysis) -> str:
        clause = f"You have {pluralize(len(analysis.timed_events), 'event')}"
        if analysis.all_day_events:
            clause += f", plus {pluralize(len(analysis.all_day_events), 'all-day event')}"
        return clause + "."

    @staticmethod
    def flow_clause(timed_events: List[UnifiedEvent]) -> Optional[str]:
        """Morning, afternoon and evening groups, in that order."""
        groups = [
            ("morning", [e for e in timed_events if e.start.hour < AFTERNOON_START_HOUR]),
            ("afternoon", [e for e in timed_events
                           if AFTERNOON_START_HOUR <= e.start.hour < EVENING_START_HOUR]),
            ("evening", [e for e in timed_events if e.start.hour >= EVENING_START_HOUR]),
        ]

        parts = []
        for period, events in groups:
            if not events:
                continue
            first = events[0]
            if not parts:
                parts.append(
                    f"Your {period} has {pluralize(len(events), 'event')} "
                    f"starting with {first.title} at {format_time(first.start)}"
                )
            else:
                parts.append(f"{period} has {pluralize(len(events), 'event')} including {first.title}")

        if not parts:
            return None
        if len(parts) > 1:
            parts[-1] = "and " + parts[-1]
        return ", ".join(parts) + "."

    @staticmethod
    def logistics_clause(analysis: ScheduleAnalysis) -> Optional[str]:
        insights = []

        tight = analysis.tight_transitions
        if tight:
            # Prefer a tight hand-off that also needs travel
            transition = next((t for t in tight if t.changes_location), tight[0])
            if transition.changes_location:
                insights.append(
                    f"Your transition from {transition.from_event.title} to "
                    f"{transition.to_event.title} is tight, so plan to leave a few minutes early."
                )
            else:
                insights.append(
                    f"Your transition from {transition.from_event.title} to "
                    f"{transition.to_event.title} is tight."
                )

        located = analysis.located_events
        if len(located) == 1:
            insights.append(f"{located[0].title} is off-site at {located[0].location}.")
        elif located:
            insights.append(f"You have {len(located)} off-site events.")

        return " ".join(insights) if insights else None

    @staticmethod
    def breathing_room_clause(analysis: ScheduleAnalysis) -> Optional[str]:
        significant = analysis.significant_gaps
        if not significant:
            return None

        longest = max(significant, key=lambda g: g.duration)
        span = f"from {format_time(longest.start)} to {format_time(longest.end)}"
        hours = longest.duration_minutes // 60
        if hours >= 1:
            return f"You have a {hours}-hour window {span} for focused work."
        return f"You have a {longest.duration_minutes}-minute break {span}."

    @staticmethod
    def largest_busy_period(analysis: ScheduleAnalysis) -> Optional[BusyPeriod]:
        """Most events wins; ties go to the longer span, then the earlier one."""
        if not analysis.busy_periods:
            return None
        return max(analysis.busy_periods, key=lambda p: (p.event_count, p.duration))

    def busy_highlight_clause(self, analysis: ScheduleAnalysis) -> Optional[str]:
        period = self.largest_busy_period(analysis)
        if period is None:
            return None
        return (
            f"Your busiest stretch is {period.event_count} back-to-back events "
            f"from {format_time(period.start)} to {format_time(period.end)}."
        )
