"""
Meeting Follow-up for CalAI

Rule-based extraction of what came out of a meeting, read from its notes:
- Topics ("Topics:" / "Discussed:" lines, else the meaningful title words)
- Outcomes ("Outcome:", "Result:", "Conclusion:", "Agreed:", "Decided:")
- Action items ("TODO:", "Action:", "Task:", checkbox lines) with @assignee,
  priority and category keywords
- Decisions ("Decided:", "Decision:", "Agreed:", "Resolved:")
- Suggested follow-up meetings
- Participants (organizer plus names found in the title)

PostMeetingService picks up meetings that just ended, generates their
follow-ups once and tracks the resulting action items.
"""

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Any, List, Optional, Sequence

from . import AssistantAgent
from ..integrations import UnifiedEvent


# =============================================================================
# ENUMS
# =============================================================================

class ActionItemPriority(Enum):
    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def sort_order(self) -> int:
        return [ActionItemPriority.URGENT, ActionItemPriority.HIGH,
                ActionItemPriority.MEDIUM, ActionItemPriority.LOW].index(self)


class ActionItemCategory(Enum):
    TASK = "task"
    FOLLOW_UP = "follow-up"
    RESEARCH = "research"
    DECISION = "decision"             # Decision still needed
    COMMUNICATION = "communication"
    OTHER = "other"


# =============================================================================
# DATA CLASSES
# =============================================================================

def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_iso(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


@dataclass
class ActionItem:
    """An action item pulled from meeting notes."""
    title: str
    assignee: Optional[str] = None
    priority: ActionItemPriority = ActionItemPriority.MEDIUM
    category: ActionItemCategory = ActionItemCategory.TASK
    is_completed: bool = False
    completed_at: Optional[datetime] = None
    source_text: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "assignee": self.assignee,
            "priority": self.priority.value,
            "category": self.category.value,
            "is_completed": self.is_completed,
            "completed_at": _iso(self.completed_at),
            "source_text": self.source_text
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ActionItem":
        return cls(
            id=data["id"],
            title=data["title"],
            assignee=data.get("assignee"),
            priority=ActionItemPriority(data.get("priority", "medium")),
            category=ActionItemCategory(data.get("category", "task")),
            is_completed=bool(data.get("is_completed", False)),
            completed_at=_parse_iso(data.get("completed_at")),
            source_text=data.get("source_text")
        )


@dataclass
class Decision:
    decision: str
    made_by: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "decision": self.decision, "made_by": self.made_by}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Decision":
        return cls(id=data["id"], decision=data["decision"], made_by=data.get("made_by"))


@dataclass
class FollowUpMeeting:
    """A meeting worth scheduling as a result of this one."""
    title: str
    suggested_date: Optional[datetime]
    purpose: str
    attendees: List[str] = field(default_factory=list)
    is_scheduled: bool = False
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "suggested_date": _iso(self.suggested_date),
            "purpose": self.purpose,
            "attendees": list(self.attendees),
            "is_scheduled": self.is_scheduled
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FollowUpMeeting":
        return cls(
            id=data["id"],
            title=data["title"],
            suggested_date=_parse_iso(data.get("suggested_date")),
            purpose=data.get("purpose", ""),
            attendees=list(data.get("attendees", [])),
            is_scheduled=bool(data.get("is_scheduled", False))
        )


@dataclass
class MeetingSummary:
    highlights: str
    outcomes: List[str] = field(default_factory=list)
    topics: List[str] = field(default_factory=list)
    duration: timedelta = field(default_factory=timedelta)
    attendance: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "highlights": self.highlights,
            "outcomes": list(self.outcomes),
            "topics": list(self.topics),
            "duration_minutes": int(self.duration.total_seconds() // 60),
            "attendance": self.attendance
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MeetingSummary":
        return cls(
            highlights=data.get("highlights", ""),
            outcomes=list(data.get("outcomes", [])),
            topics=list(data.get("topics", [])),
            duration=timedelta(minutes=int(data.get("duration_minutes", 0))),
            attendance=data.get("attendance")
        )


@dataclass
class MeetingFollowUp:
    """Everything extracted from one completed meeting."""
    event_id: str
    event_title: str
    meeting_date: datetime
    summary: MeetingSummary
    action_items: List[ActionItem] = field(default_factory=list)
    decisions: List[Decision] = field(default_factory=list)
    follow_up_meetings: List[FollowUpMeeting] = field(default_factory=list)
    participants: List[str] = field(default_factory=list)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def completed_action_items(self) -> int:
        return sum(1 for item in self.action_items if item.is_completed)

    @property
    def completion_percentage(self) -> float:
        if not self.action_items:
            return 0.0
        return self.completed_action_items / len(self.action_items) * 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "event_id": self.event_id,
            "event_title": self.event_title,
            "meeting_date": self.meeting_date.isoformat(),
            "summary": self.summary.to_dict(),
            "action_items": [a.to_dict() for a in self.action_items],
            "decisions": [d.to_dict() for d in self.decisions],
            "follow_up_meetings": [f.to_dict() for f in self.follow_up_meetings],
            "participants": list(self.participants),
            "created_at": self.created_at.isoformat()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MeetingFollowUp":
        return cls(
            id=data["id"],
            event_id=data["event_id"],
            event_title=data["event_title"],
            meeting_date=datetime.fromisoformat(data["meeting_date"]),
            summary=MeetingSummary.from_dict(data.get("summary", {})),
            action_items=[ActionItem.from_dict(a) for a in data.get("action_items", [])],
            decisions=[Decision.from_dict(d) for d in data.get("decisions", [])],
            follow_up_meetings=[FollowUpMeeting.from_dict(f) for f in data.get("follow_up_meetings", [])],
            participants=list(data.get("participants", [])),
            created_at=_parse_iso(data.get("created_at")) or datetime.now()
        )


# =============================================================================
# FOLLOW-UP GENERATOR
# =============================================================================

TOPIC_PREFIXES = ["topics:", "discussed:"]
OUTCOME_PREFIXES = ["outcome:", "result:", "conclusion:", "agreed:", "decided:"]
DECISION_PREFIXES = ["decided:", "decision:", "agreed:", "resolved:"]
ACTION_PREFIXES = ["- [ ]", "[ ]", "[]", "todo:", "action:", "task:"]
TITLE_STOP_WORDS = {"meeting", "call", "sync", "with", "and", "the", "a"}
MAX_TOPICS = 5

ASSIGNEE_PATTERN = re.compile(r"@([A-Za-z]+)")
TITLE_NAME_PATTERNS = [
    re.compile(r"(?:meeting|call|sync|1:1|catch up) with ([A-Z][a-z]+ [A-Z][a-z]+)"),
    re.compile(r"([A-Z][a-z]+ [A-Z][a-z]+) (?:meeting|call|sync|1:1)"),
]

# First match wins
PRIORITY_KEYWORDS = [
    (ActionItemPriority.URGENT, ["urgent", "asap"]),
    (ActionItemPriority.HIGH, ["important", "high priority"]),
    (ActionItemPriority.LOW, ["low priority"]),
]
CATEGORY_KEYWORDS = [
    (ActionItemCategory.FOLLOW_UP, ["follow up", "follow-up"]),
    (ActionItemCategory.RESEARCH, ["research", "investigate"]),
    (ActionItemCategory.DECISION, ["decide", "decision"]),
    (ActionItemCategory.COMMUNICATION, ["email", "contact", "reach out"]),
]


def _lines(notes: Optional[str]) -> List[str]:
    return [line.strip() for line in (notes or "").splitlines() if line.strip()]


def _after_prefix(line: str, prefixes: List[str]) -> Optional[str]:
    """Text after the first matching case-insensitive prefix, or None."""
    lowered = line.lower()
    for prefix in prefixes:
        if lowered.startswith(prefix):
            return line[len(prefix):].strip()
    return None


def _unique(items: Sequence[str]) -> List[str]:
    seen = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen


class MeetingFollowUpGenerator:
    """Builds a MeetingFollowUp from an event and its notes."""

    def generate(self, event: UnifiedEvent, notes: Optional[str] = None) -> MeetingFollowUp:
        """Notes default to the event description."""
        source = notes if notes is not None else event.description
        action_items = self.extract_action_items(source)
        topics = self.extract_topics(event.title, source)

        summary = MeetingSummary(
            highlights=self.highlights(event, topics),
            outcomes=self.extract_outcomes(source),
            topics=topics,
            duration=event.duration,
            attendance=event.organizer
        )

        return MeetingFollowUp(
            event_id=event.id,
            event_title=event.title,
            meeting_date=event.start,
            summary=summary,
            action_items=action_items,
            decisions=self.extract_decisions(source),
            follow_up_meetings=self.suggest_follow_up_meetings(event, action_items),
            participants=self.extract_participants(event)
        )

    @staticmethod
    def highlights(event: UnifiedEvent, topics: List[str]) -> str:
        topic_text = ", ".join(topics[:3]) if topics else "various topics"
        return f"Completed {event.duration_minutes}-minute {event.title} discussing {topic_text}."

    @staticmethod
    def extract_topics(title: str, notes: Optional[str]) -> List[str]:
        topics = []
        for line in _lines(notes):
            rest = _after_prefix(line, TOPIC_PREFIXES)
            if rest is not None:
                topics.extend(t.strip() for t in rest.split(",") if t.strip())

        if not topics:
            words = [w for w in title.split() if w.lower() not in TITLE_STOP_WORDS]
            if words:
                topics.append(" ".join(words))

        return _unique(topics)[:MAX_TOPICS]

    @staticmethod
    def extract_outcomes(notes: Optional[str]) -> List[str]:
        outcomes = []
        for line in _lines(notes):
            rest = _after_prefix(line, OUTCOME_PREFIXES)
            if rest:
                outcomes.append(rest)
        return outcomes

    @staticmethod
    def extract_decisions(notes: Optional[str]) -> List[Decision]:
        decisions = []
        for line in _lines(notes):
            rest = _after_prefix(line, DECISION_PREFIXES)
            if rest:
                decisions.append(Decision(decision=rest))
        return decisions

    @staticmethod
    def extract_action_items(notes: Optional[str]) -> List[ActionItem]:
        items = []
        for line in _lines(notes):
            text = _after_prefix(line, ACTION_PREFIXES)
            if not text:
                continue

            assignee = None
            match = ASSIGNEE_PATTERN.search(text)
            if match:
                assignee = match.group(1)
                text = " ".join(text.replace(match.group(0), "").split())
                if not text:
                    continue

            lowered = text.lower()
            priority = next(
                (p for p, words in PRIORITY_KEYWORDS if any(w in lowered for w in words)),
                ActionItemPriority.MEDIUM
            )
            category = next(
                (c for c, words in CATEGORY_KEYWORDS if any(w in lowered for w in words)),
                ActionItemCategory.TASK
            )

            items.append(ActionItem(
                title=text,
                assignee=assignee,
                priority=priority,
                category=category,
                source_text=line
            ))
        return items

    @staticmethod
    def suggest_follow_up_meetings(
        event: UnifiedEvent,
        action_items: List[ActionItem]
    ) -> List[FollowUpMeeting]:
        suggestions = []
        title = event.title.lower()
        organizer = [event.organizer] if event.organizer else []

        if "1:1" in title or "one-on-one" in title:
            suggestions.append(FollowUpMeeting(
                title=event.title,
                suggested_date=event.start + timedelta(weeks=2),
                purpose="Continue discussion from previous 1:1",
                attendees=organizer
            ))
        elif "standup" in title:
            suggestions.append(FollowUpMeeting(
                title=event.title,
                suggested_date=event.start + timedelta(days=1),
                purpose="Daily standup"
            ))

        if len(action_items) >= 3:
            suggestions.append(FollowUpMeeting(
                title=f"{event.title} - Follow-up",
                suggested_date=event.start + timedelta(weeks=1),
                purpose="Review action items and progress",
                attendees=organizer
            ))

        return suggestions

    @staticmethod
    def extract_participants(event: UnifiedEvent) -> List[str]:
        participants = [event.organizer] if event.organizer else []
        for pattern in TITLE_NAME_PATTERNS:
            match = pattern.search(event.title)
            if match:
                participants.append(match.group(1))
        return _unique(participants)


# =============================================================================
# POST-MEETING SERVICE
# =============================================================================

RECENT_WINDOW = timedelta(hours=1)
MIN_MEETING_LENGTH = timedelta(minutes=15)


class PostMeetingService(AssistantAgent):
    """
    Tracks completed meetings and their action items.

    Each event is processed at most once. Follow-ups are kept newest first.
    """

    def __init__(self, store=None, generator: Optional[MeetingFollowUpGenerator] = None):
        """
        Args:
            store: FollowUpStore. None keeps everything in memory.
            generator: Extraction rules; defaults to MeetingFollowUpGenerator.
        """
        super().__init__("PostMeetingService")
        self.store = store
        self.generator = generator or MeetingFollowUpGenerator()
        self.follow_ups: List[MeetingFollowUp] = []
        self.processed_event_ids: set = set()

        if store is not None:
            self.follow_ups = store.load_follow_ups()
            self.processed_event_ids = store.load_processed_ids()

    @property
    def pending_action_items(self) -> List[ActionItem]:
        return [item for f in self.follow_ups for item in f.action_items if not item.is_completed]

    def find_recently_completed(
        self,
        events: Sequence[UnifiedEvent],
        now: Optional[datetime] = None
    ) -> List[UnifiedEvent]:
        """Timed meetings of 15+ minutes that ended within the last hour and are unprocessed."""
        now = now or datetime.now()
        return [
            e for e in events
            if now - RECENT_WINDOW < e.end <= now
            and not e.is_all_day
            and e.duration >= MIN_MEETING_LENGTH
            and e.id not in self.processed_event_ids
        ]

    def check_for_completed_meetings(
        self,
        events: Sequence[UnifiedEvent],
        now: Optional[datetime] = None
    ) -> List[MeetingFollowUp]:
        processed = []
        for event in self.find_recently_completed(events, now):
            follow_up = self.process_completed_meeting(event)
            if follow_up is not None:
                processed.append(follow_up)
        return processed

    def process_completed_meeting(
        self,
        event: UnifiedEvent,
        notes: Optional[str] = None
    ) -> Optional[MeetingFollowUp]:
        """Generate and keep the follow-up. Returns None if the event was already processed."""
        if event.id in self.processed_event_ids:
            return None

        follow_up = self.generator.generate(event, notes)
        self.processed_event_ids.add(event.id)
        self.follow_ups.insert(0, follow_up)
        self.logger.info(
            f"Processed '{event.title}': {len(follow_up.action_items)} action items, "
            f"{len(follow_up.decisions)} decisions"
        )
        self._save()
        return follow_up

    def get_follow_up(self, event_id: str) -> Optional[MeetingFollowUp]:
        return next((f for f in self.follow_ups if f.event_id == event_id), None)

    def complete_action_item(self, item_id: str) -> bool:
        for follow_up in self.follow_ups:
            for item in follow_up.action_items:
                if item.id == item_id:
                    item.is_completed = True
                    item.completed_at = datetime.now()
                    self._save()
                    return True
        return False

    def delete_action_item(self, item_id: str) -> bool:
        for follow_up in self.follow_ups:
            remaining = [item for item in follow_up.action_items if item.id != item_id]
            if len(remaining) != len(follow_up.action_items):
                follow_up.action_items = remaining
                self._save()
                return True
        return False

    def _save(self):
        if self.store is not None:
            self.store.save_follow_ups(self.follow_ups)
            self.store.save_processed_ids(self.processed_event_ids)
