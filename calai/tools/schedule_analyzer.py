"""
Schedule Analyzer for CalAI

Characterizes a day's events: how full the day is, where the back-to-back
stretches are, where the free time is and which hand-offs between events are
tight.

The caller's event list is never mutated; events are copied and sorted.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Any, List, Optional, Sequence, Tuple

from . import ScheduleAgent
from ..integrations import UnifiedEvent


# =============================================================================
# CONSTANTS
# =============================================================================

BUSY_PERIOD_MAX_GAP = timedelta(minutes=15)     # Adjacency that keeps a cluster going
MIN_BUSY_PERIOD_EVENTS = 3
SIGNIFICANT_GAP = timedelta(minutes=30)
TIGHT_TRANSITION = timedelta(minutes=15)
TRAVEL_ALLOWANCE = timedelta(minutes=20)         # Assumed when the location changes


# =============================================================================
# ENUMS AND DATA CLASSES
# =============================================================================

class ScheduleCharacter(Enum):
    """How full a day is."""
    FREE = "free"
    LIGHT = "light"
    MODERATE = "moderate"
    BUSY = "busy"
    PACKED = "packed"

    @property
    def phrase(self) -> str:
        """Wording used when the character is read back to the user."""
        if self == ScheduleCharacter.FREE:
            return "completely clear"
        return self.value


@dataclass
class BusyPeriod:
    """A run of at least three events with no more than 15 minutes between them."""
    start: datetime
    end: datetime
    events: List[UnifiedEvent]

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def event_count(self) -> int:
        return len(self.events)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "event_count": self.event_count,
            "duration_minutes": int(self.duration.total_seconds() // 60),
            "events": [e.title for e in self.events]
        }


@dataclass
class TimeGap:
    """Free time between two consecutive events."""
    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def duration_minutes(self) -> int:
        return int(self.duration.total_seconds() // 60)

    @property
    def is_significant(self) -> bool:
        return self.duration >= SIGNIFICANT_GAP

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "duration_minutes": self.duration_minutes,
            "is_significant": self.is_significant
        }


@dataclass
class Transition:
    """Hand-off from one event to the next."""
    from_event: UnifiedEvent
    to_event: UnifiedEvent
    travel_time: Optional[timedelta] = None

    @property
    def gap(self) -> timedelta:
        """Buffer between the events; negative when they overlap."""
        return self.to_event.start - self.from_event.end

    @property
    def is_tight(self) -> bool:
        return self.gap < TIGHT_TRANSITION

    @property
    def changes_location(self) -> bool:
        return self.travel_time is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.from_event.title,
            "to": self.to_event.title,
            "gap_minutes": int(self.gap.total_seconds() // 60),
            "travel_minutes": int(self.travel_time.total_seconds() // 60) if self.travel_time else None,
            "is_tight": self.is_tight
        }


@dataclass
class ScheduleAnalysis:
    """Structured description of a day's schedule."""
    character: ScheduleCharacter
    total_events: int
    timed_events: List[UnifiedEvent] = field(default_factory=list)
    all_day_events: List[UnifiedEvent] = field(default_factory=list)
    busy_periods: List[BusyPeriod] = field(default_factory=list)
    gaps: List[TimeGap] = field(default_factory=list)
    transitions: List[Transition] = field(default_factory=list)
    total_duration: timedelta = field(default_factory=timedelta)
    longest_gap: Optional[timedelta] = None
    earliest_event: Optional[UnifiedEvent] = None     # Earliest start
    latest_event: Optional[UnifiedEvent] = None       # Latest end
    time_range: Optional[Tuple[datetime, datetime]] = None

    @property
    def significant_gaps(self) -> List[TimeGap]:
        return [g for g in self.gaps if g.is_significant]

    @property
    def tight_transitions(self) -> List[Transition]:
        return [t for t in self.transitions if t.is_tight]

    @property
    def located_events(self) -> List[UnifiedEvent]:
        return [e for e in self.timed_events if e.has_location]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "character": self.character.value,
            "total_events": self.total_events,
            "timed_events": len(self.timed_events),
            "all_day_events": len(self.all_day_events),
            "busy_periods": [p.to_dict() for p in self.busy_periods],
            "gaps": [g.to_dict() for g in self.gaps],
            "transitions": [t.to_dict() for t in self.transitions],
            "total_duration_minutes": int(self.total_duration.total_seconds() // 60),
            "longest_gap_minutes": (
                int(self.longest_gap.total_seconds() // 60) if self.longest_gap is not None else None
            ),
            "earliest_event": self.earliest_event.title if self.earliest_event else None,
            "latest_event": self.latest_event.title if self.latest_event else None,
            "time_range": [t.isoformat() for t in self.time_range] if self.time_range else None
        }


# =============================================================================
# SCHEDULE ANALYZER
# =============================================================================

class ScheduleAnalyzer(ScheduleAgent):
    """Turns a list of events into a ScheduleAnalysis."""

    def __init__(self):
        super().__init__("ScheduleAnalyzer")

    def analyze(
        self,
        events: Sequence[UnifiedEvent],
        time_range: Optional[Tuple[datetime, datetime]] = None
    ) -> ScheduleAnalysis:
        """
        Analyze a day's events.

        Args:
            events: Events for the period. Not modified.
            time_range: The period the events were fetched for. Recorded on the
                analysis; events are not filtered by it.
        """
        ordered = sorted(events, key=lambda e: (e.start, e.end))
        timed = [e for e in ordered if not e.is_all_day]
        all_day = [e for e in ordered if e.is_all_day]

        total_duration = sum((e.duration for e in timed), timedelta())
        gaps = self.find_gaps(timed)

        analysis = ScheduleAnalysis(
            character=self.determine_character(len(timed), total_duration),
            total_events=len(ordered),
            timed_events=timed,
            all_day_events=all_day,
            busy_periods=self.find_busy_periods(timed),
            gaps=gaps,
            transitions=self.find_transitions(timed),
            total_duration=total_duration,
            longest_gap=max((g.duration for g in gaps), default=None),
            earliest_event=timed[0] if timed else None,
            latest_event=max(timed, key=lambda e: e.end) if timed else None,
            time_range=time_range,
        )

        self.logger.debug(
            f"Analyzed {len(ordered)} events: {analysis.character.value}, "
            f"{len(analysis.busy_periods)} busy periods, {len(gaps)} gaps"
        )
        return analysis

    @staticmethod
    def determine_character(timed_count: int, total_duration: timedelta) -> ScheduleCharacter:
        """First matching threshold wins; count and duration are alternatives."""
        hours = total_duration.total_seconds() / 3600

        if timed_count == 0:
            return ScheduleCharacter.FREE
        if timed_count <= 2 or hours < 2:
            return ScheduleCharacter.LIGHT
        if timed_count <= 4 or hours < 4:
            return ScheduleCharacter.MODERATE
        if timed_count <= 6 or hours <= 6:
            return ScheduleCharacter.BUSY
        return ScheduleCharacter.PACKED

    @staticmethod
    def find_busy_periods(timed: List[UnifiedEvent]) -> List[BusyPeriod]:
        """Clusters of >= 3 events with <= 15 minutes between each pair."""
        periods: List[BusyPeriod] = []
        cluster: List[UnifiedEvent] = []
        cluster_end: Optional[datetime] = None

        def flush():
            if len(cluster) >= MIN_BUSY_PERIOD_EVENTS:
                periods.append(BusyPeriod(start=cluster[0].start, end=cluster_end, events=list(cluster)))

        for event in timed:
            if cluster and event.start - cluster_end <= BUSY_PERIOD_MAX_GAP:
                cluster.append(event)
                cluster_end = max(cluster_end, event.end)
                continue
            if cluster:
                flush()
            cluster = [event]
            cluster_end = event.end

        if cluster:
            flush()
        return periods

    @staticmethod
    def find_gaps(timed: List[UnifiedEvent]) -> List[TimeGap]:
        """Positive free intervals between consecutive events."""
        gaps = []
        for previous, following in zip(timed, timed[1:]):
            if following.start > previous.end:
                gaps.append(TimeGap(start=previous.end, end=following.start))
        return gaps

    @staticmethod
    def find_transitions(timed: List[UnifiedEvent]) -> List[Transition]:
        transitions = []
        for previous, following in zip(timed, timed[1:]):
            travel = None
            if (previous.has_location and following.has_location
                    and previous.location.strip() != following.location.strip()):
                travel = TRAVEL_ALLOWANCE
            transitions.append(Transition(from_event=previous, to_event=following, travel_time=travel))
        return transitions

    @staticmethod
    def check_conflicts(
        start: datetime,
        end: datetime,
        events: Sequence[UnifiedEvent]
    ) -> List[UnifiedEvent]:
        """Timed events overlapping [start, end). All-day events never conflict."""
        return sorted(
            (e for e in events if not e.is_all_day and start < e.end and e.start < end),
            key=lambda e: e.start
        )
