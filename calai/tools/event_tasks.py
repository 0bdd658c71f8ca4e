"""
Event Tasks for CalAI

Checklists attached to calendar events: "bring insurance card" for a doctor's
visit, "online check-in" for a flight, "send thank-you email" after an
interview.

A task list for an event comes into being when suggestions are accepted, when
a task is added by hand, or when auto-create mode generates it from a
template. It goes away when deleted explicitly or when its event is deleted.

The manager is an ordinary object; construct one per store and pass it to
whoever needs it.
"""

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Any, List, Optional, Set, Tuple

from . import AssistantAgent
from ..integrations import UnifiedEvent


# =============================================================================
# ENUMS
# =============================================================================

class TaskPriority(Enum):
    """Task priority levels."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TaskCategory(Enum):
    """What kind of work a task is."""
    PREPARATION = "preparation"
    LOGISTICS = "logistics"
    MATERIALS = "materials"
    FOLLOW_UP = "follow-up"
    REMINDER = "reminder"
    RESEARCH = "research"
    PACKING = "packing"
    DOCUMENTS = "documents"
    HEALTH = "health"
    COMMUNICATION = "communication"


class TimingKind(Enum):
    BEFORE = "before"
    DURING = "during"
    AFTER = "after"
    SPECIFIC = "specific"


class TaskGenerationMode(Enum):
    """How templates turn into tasks."""
    MANUAL = "manual"             # User creates every task
    SUGGEST = "suggest"           # Templates are offered, user confirms
    AUTO_CREATE = "auto_create"   # Templates are applied automatically

    @property
    def description(self) -> str:
        return {
            TaskGenerationMode.MANUAL: "You create all tasks manually",
            TaskGenerationMode.SUGGEST: "Tasks are suggested, you confirm",
            TaskGenerationMode.AUTO_CREATE: "Tasks are created automatically, you can edit",
        }[self]


# =============================================================================
# TASK MODEL
# =============================================================================

def _plural_span(hours: int) -> str:
    if hours < 24:
        return f"{hours} hour{'' if hours == 1 else 's'}"
    days = hours // 24
    return f"{days} day{'' if days == 1 else 's'}"


@dataclass(frozen=True)
class TaskTiming:
    """When a task should be done relative to its event."""
    kind: TimingKind
    hours: int = 0
    at: Optional[datetime] = None     # Only for SPECIFIC

    @classmethod
    def before(cls, hours: int) -> "TaskTiming":
        return cls(TimingKind.BEFORE, hours=hours)

    @classmethod
    def during(cls) -> "TaskTiming":
        return cls(TimingKind.DURING)

    @classmethod
    def after(cls, hours: int) -> "TaskTiming":
        return cls(TimingKind.AFTER, hours=hours)

    @classmethod
    def specific(cls, at: datetime) -> "TaskTiming":
        return cls(TimingKind.SPECIFIC, at=at)

    @property
    def description(self) -> str:
        if self.kind == TimingKind.BEFORE:
            return f"{_plural_span(self.hours)} before"
        if self.kind == TimingKind.AFTER:
            return f"{_plural_span(self.hours)} after"
        if self.kind == TimingKind.DURING:
            return "During event"
        return self.at.strftime("%Y-%m-%d %H:%M")

    def due_at(self, event: UnifiedEvent) -> datetime:
        """Absolute time the task is due for the given event."""
        if self.kind == TimingKind.BEFORE:
            return event.start - timedelta(hours=self.hours)
        if self.kind == TimingKind.AFTER:
            return event.end + timedelta(hours=self.hours)
        if self.kind == TimingKind.DURING:
            return event.start
        return self.at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "hours": self.hours,
            "at": self.at.isoformat() if self.at else None
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TaskTiming":
        at = data.get("at")
        return cls(
            kind=TimingKind(data["kind"]),
            hours=int(data.get("hours", 0)),
            at=datetime.fromisoformat(at) if at else None
        )


@dataclass
class EventTask:
    """One checklist item."""
    title: str
    description: Optional[str] = None
    is_completed: bool = False
    priority: TaskPriority = TaskPriority.MEDIUM
    category: TaskCategory = TaskCategory.PREPARATION
    timing: TaskTiming = field(default_factory=lambda: TaskTiming.before(24))
    estimated_minutes: Optional[int] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "is_completed": self.is_completed,
            "priority": self.priority.value,
            "category": self.category.value,
            "timing": self.timing.to_dict(),
            "estimated_minutes": self.estimated_minutes,
            "created_at": self.created_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EventTask":
        completed_at = data.get("completed_at")
        return cls(
            id=data["id"],
            title=data["title"],
            description=data.get("description"),
            is_completed=bool(data.get("is_completed", False)),
            priority=TaskPriority(data.get("priority", "medium")),
            category=TaskCategory(data.get("category", "preparation")),
            timing=TaskTiming.from_dict(data["timing"]) if data.get("timing") else TaskTiming.before(24),
            estimated_minutes=data.get("estimated_minutes"),
            created_at=datetime.fromisoformat(data["created_at"]) if data.get("created_at") else datetime.now(),
            completed_at=datetime.fromisoformat(completed_at) if completed_at else None
        )


# =============================================================================
# EVENT TYPE DETECTION
# =============================================================================

class EventType(Enum):
    """Event kinds that drive task templates."""
    MEDICAL = "medical"
    FLIGHT = "flight"
    TRAVEL = "travel"
    INTERVIEW = "interview"
    MEETING = "meeting"
    WORKOUT = "workout"
    SOCIAL = "social"
    ERRAND = "errand"
    DEADLINE = "deadline"
    GENERIC = "generic"

    @classmethod
    def detect(cls, title: str, description: Optional[str] = None) -> "EventType":
        """First matching rule wins; keywords match at the start of a word."""
        combined = f"{title} {description or ''}".lower()
        for event_type, keywords in DETECTION_RULES:
            if any(re.search(r"\b" + re.escape(keyword), combined) for keyword in keywords):
                return event_type
        return cls.GENERIC


# Checked in order: "doctor call" is medical, "review meeting" is a meeting
DETECTION_RULES: List[Tuple[EventType, List[str]]] = [
    (EventType.MEDICAL, ["doctor", "dr.", "dentist", "medical", "appointment",
                         "checkup", "physical", "clinic"]),
    (EventType.FLIGHT, ["flight", "airline", "departure", "arrival"]),
    (EventType.TRAVEL, ["trip", "travel", "vacation", "hotel"]),
    (EventType.INTERVIEW, ["interview"]),
    (EventType.MEETING, ["meeting", "call", "sync", "standup", "1:1", "review"]),
    (EventType.WORKOUT, ["workout", "gym", "exercise", "training", "yoga", "run"]),
    (EventType.SOCIAL, ["lunch", "dinner", "brunch", "coffee", "drinks", "party"]),
    (EventType.ERRAND, ["pickup", "drop off", "grocery", "shopping", "bank", "post office"]),
    (EventType.DEADLINE, ["deadline", "due", "submit", "deliver"]),
]


# =============================================================================
# TEMPLATES
# =============================================================================

H, M = TaskPriority.HIGH, TaskPriority.MEDIUM

# (title, description, priority, category, timing)
TEMPLATES: Dict[EventType, List[Tuple[str, str, TaskPriority, TaskCategory, TaskTiming]]] = {
    EventType.MEDICAL: [
        ("Bring insurance card", "Don't forget your health insurance card",
         H, TaskCategory.DOCUMENTS, TaskTiming.during()),
        ("Bring photo ID", "Driver's license or passport",
         H, TaskCategory.DOCUMENTS, TaskTiming.during()),
        ("List current medications", "Prepare a list of all medications you're taking",
         M, TaskCategory.PREPARATION, TaskTiming.before(24)),
        ("Write down symptoms/questions", "Note any symptoms or questions for the doctor",
         M, TaskCategory.PREPARATION, TaskTiming.before(24)),
        ("Arrive 15 minutes early", "Time for paperwork and check-in",
         M, TaskCategory.LOGISTICS, TaskTiming.during()),
    ],
    EventType.FLIGHT: [
        ("Online check-in", "Check in 24 hours before departure",
         H, TaskCategory.LOGISTICS, TaskTiming.before(24)),
        ("Download boarding pass", "Save boarding pass to wallet or print",
         H, TaskCategory.DOCUMENTS, TaskTiming.before(12)),
        ("Pack carry-on essentials", "Medications, chargers, important documents",
         H, TaskCategory.PACKING, TaskTiming.before(24)),
        ("Check TSA wait times", "Verify security wait times at airport",
         M, TaskCategory.LOGISTICS, TaskTiming.before(3)),
        ("Confirm transportation to airport", "Ride-share or parking arrangements",
         H, TaskCategory.LOGISTICS, TaskTiming.before(24)),
    ],
    EventType.INTERVIEW: [
        ("Research company", "Study company background, mission, recent news",
         H, TaskCategory.RESEARCH, TaskTiming.before(48)),
        ("Prepare STAR stories", "Prepare examples using Situation-Task-Action-Result format",
         H, TaskCategory.PREPARATION, TaskTiming.before(24)),
        ("Print resume copies", "Bring 2-3 printed copies of resume",
         M, TaskCategory.MATERIALS, TaskTiming.before(24)),
        ("Prepare questions to ask", "Have thoughtful questions ready for interviewer",
         H, TaskCategory.PREPARATION, TaskTiming.before(24)),
        ("Test video setup (if virtual)", "Check camera, microphone, internet connection",
         H, TaskCategory.LOGISTICS, TaskTiming.before(2)),
        ("Send thank-you email", "Follow up within 24 hours",
         H, TaskCategory.FOLLOW_UP, TaskTiming.after(4)),
    ],
    EventType.TRAVEL: [
        ("Check passport/ID validity", "Ensure travel documents are valid",
         H, TaskCategory.DOCUMENTS, TaskTiming.before(168)),
        ("Pack essentials", "Clothing, toiletries, chargers, medications",
         H, TaskCategory.PACKING, TaskTiming.before(24)),
        ("Confirm hotel reservation", "Verify booking and address",
         M, TaskCategory.LOGISTICS, TaskTiming.before(48)),
        ("Set up travel alerts", "Notify bank/credit cards of travel",
         M, TaskCategory.PREPARATION, TaskTiming.before(72)),
    ],
    EventType.MEETING: [
        ("Review agenda", "Familiarize yourself with meeting topics",
         M, TaskCategory.PREPARATION, TaskTiming.before(2)),
        ("Prepare materials", "Gather any necessary documents or presentations",
         M, TaskCategory.MATERIALS, TaskTiming.before(4)),
    ],
}


class TaskTemplates:
    """Template lookup. Every call returns new task objects with new ids."""

    @staticmethod
    def for_event_type(event_type: EventType) -> List[EventTask]:
        return [
            EventTask(title=title, description=description, priority=priority,
                      category=category, timing=timing)
            for title, description, priority, category, timing in TEMPLATES.get(event_type, [])
        ]

    @staticmethod
    def has_template(event_type: EventType) -> bool:
        return event_type in TEMPLATES


# =============================================================================
# CONTAINER AND SETTINGS
# =============================================================================

@dataclass
class EventTasks:
    """All tasks attached to one event."""
    event_id: str
    tasks: List[EventTask] = field(default_factory=list)
    event_type: EventType = EventType.GENERIC
    auto_generated: bool = False

    @property
    def pending_tasks(self) -> List[EventTask]:
        return [t for t in self.tasks if not t.is_completed]

    @property
    def completed_tasks(self) -> List[EventTask]:
        return [t for t in self.tasks if t.is_completed]

    @property
    def completion_percentage(self) -> float:
        if not self.tasks:
            return 0.0
        return len(self.completed_tasks) / len(self.tasks) * 100

    def find(self, task_id: str) -> Optional[EventTask]:
        return next((t for t in self.tasks if t.id == task_id), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "tasks": [t.to_dict() for t in self.tasks],
            "event_type": self.event_type.value,
            "auto_generated": self.auto_generated
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EventTasks":
        return cls(
            event_id=data["event_id"],
            tasks=[EventTask.from_dict(t) for t in data.get("tasks", [])],
            event_type=EventType(data.get("event_type", "generic")),
            auto_generated=bool(data.get("auto_generated", False))
        )


@dataclass
class TaskGenerationSettings:
    """User preferences for template-driven tasks."""
    mode: TaskGenerationMode = TaskGenerationMode.SUGGEST
    enabled_event_types: Set[EventType] = field(default_factory=lambda: set(EventType))
    show_pre_event_tasks_days: int = 7
    show_post_event_tasks_days: int = 3
    enable_notifications: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "enabled_event_types": sorted(t.value for t in self.enabled_event_types),
            "show_pre_event_tasks_days": self.show_pre_event_tasks_days,
            "show_post_event_tasks_days": self.show_post_event_tasks_days,
            "enable_notifications": self.enable_notifications
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "TaskGenerationSettings":
        """Build settings from stored or configured values; missing keys keep defaults."""
        settings = cls()
        data = data or {}
        if "mode" in data:
            settings.mode = TaskGenerationMode(data["mode"])
        if "enabled_event_types" in data:
            settings.enabled_event_types = {EventType(t) for t in data["enabled_event_types"]}
        if "show_pre_event_tasks_days" in data:
            settings.show_pre_event_tasks_days = int(data["show_pre_event_tasks_days"])
        if "show_post_event_tasks_days" in data:
            settings.show_post_event_tasks_days = int(data["show_post_event_tasks_days"])
        if "enable_notifications" in data:
            settings.enable_notifications = bool(data["enable_notifications"])
        return settings


# =============================================================================
# EVENT TASK MANAGER
# =============================================================================

class EventTaskManager(AssistantAgent):
    """
    Owns the task lists for all events.

    Every mutation is written through to the store when one is attached.
    Operations on unknown event or task ids change nothing and return
    False or None.
    """

    def __init__(self, store=None, settings: Optional[TaskGenerationSettings] = None):
        """
        Args:
            store: EventTaskStore (or anything with load_tasks/save_tasks/
                load_settings/save_settings). None keeps everything in memory.
            settings: Used when the store holds no saved settings.
        """
        super().__init__("EventTaskManager")
        self.store = store
        self._event_tasks: Dict[str, EventTasks] = {}
        self.settings = settings or TaskGenerationSettings()

        if store is not None:
            self._event_tasks = store.load_tasks()
            saved = store.load_settings()
            if saved is not None:
                self.settings = saved

    @property
    def event_ids(self) -> List[str]:
        return list(self._event_tasks.keys())

    # =========================================================================
    # TASK OPERATIONS
    # =========================================================================

    def get_tasks(self, event_id: str) -> Optional[EventTasks]:
        return self._event_tasks.get(event_id)

    def pending_count(self, event_id: str) -> int:
        """Pending task count for an event (badge display)."""
        tasks = self._event_tasks.get(event_id)
        return len(tasks.pending_tasks) if tasks else 0

    def add_task(
        self,
        event_id: str,
        task: EventTask,
        event: Optional[UnifiedEvent] = None
    ) -> EventTasks:
        """Attach a task, creating the event's list on first use."""
        container = self._event_tasks.get(event_id)
        if container is None:
            event_type = EventType.detect(event.title, event.description) if event else EventType.GENERIC
            container = EventTasks(event_id=event_id, event_type=event_type)
            self._event_tasks[event_id] = container
        container.tasks.append(task)
        self.logger.debug(f"Added task '{task.title}' to event {event_id}")
        self._save()
        return container

    def toggle_task_completion(self, event_id: str, task_id: str) -> Optional[EventTask]:
        container = self._event_tasks.get(event_id)
        task = container.find(task_id) if container else None
        if task is None:
            return None
        task.is_completed = not task.is_completed
        task.completed_at = datetime.now() if task.is_completed else None
        self._save()
        return task

    def update_task(self, event_id: str, updated: EventTask) -> bool:
        container = self._event_tasks.get(event_id)
        if container is None:
            return False
        for index, task in enumerate(container.tasks):
            if task.id == updated.id:
                container.tasks[index] = updated
                self._save()
                return True
        return False

    def delete_task(self, event_id: str, task_id: str) -> bool:
        container = self._event_tasks.get(event_id)
        if container is None or container.find(task_id) is None:
            return False
        container.tasks = [t for t in container.tasks if t.id != task_id]
        self._save()
        return True

    def delete_tasks(self, event_id: str) -> bool:
        """Remove an event's whole task list."""
        if self._event_tasks.pop(event_id, None) is None:
            return False
        self._save()
        return True

    def handle_event_deleted(self, event_id: str) -> bool:
        """Drop the tasks of an event that no longer exists."""
        removed = self.delete_tasks(event_id)
        if removed:
            self.logger.info(f"Removed tasks for deleted event {event_id}")
        return removed

    # =========================================================================
    # SUGGESTIONS AND AUTO-GENERATION
    # =========================================================================

    def suggest_tasks(self, event: UnifiedEvent) -> List[EventTask]:
        """Template tasks for the event's type, or [] if the type is disabled."""
        event_type = EventType.detect(event.title, event.description)
        if event_type not in self.settings.enabled_event_types:
            return []
        return TaskTemplates.for_event_type(event_type)

    def accept_suggestions(
        self,
        event: UnifiedEvent,
        tasks: Optional[List[EventTask]] = None
    ) -> Optional[EventTasks]:
        """
        Attach accepted suggestions to the event.

        Suggestions whose title already exists on the event are skipped.
        Returns None when there was nothing to accept.
        """
        accepted = tasks if tasks is not None else self.suggest_tasks(event)
        if not accepted:
            return None

        container = self._event_tasks.get(event.id)
        if container is None:
            container = EventTasks(
                event_id=event.id,
                event_type=EventType.detect(event.title, event.description),
            )
            self._event_tasks[event.id] = container

        existing = {t.title.lower() for t in container.tasks}
        for task in accepted:
            if task.title.lower() not in existing:
                container.tasks.append(task)
                existing.add(task.title.lower())

        self._save()
        return container

    def ensure_tasks_exist(self, event: UnifiedEvent) -> Optional[EventTasks]:
        """
        Auto-create template tasks for an event when settings allow it.

        Existing lists are returned untouched. In manual or suggest mode
        nothing is created.
        """
        existing = self._event_tasks.get(event.id)
        if existing is not None:
            return existing
        if self.settings.mode != TaskGenerationMode.AUTO_CREATE:
            return None

        event_type = EventType.detect(event.title, event.description)
        if event_type not in self.settings.enabled_event_types:
            return None

        template_tasks = TaskTemplates.for_event_type(event_type)
        if not template_tasks:
            return None

        container = EventTasks(
            event_id=event.id,
            tasks=template_tasks,
            event_type=event_type,
            auto_generated=True
        )
        self._event_tasks[event.id] = container
        self.logger.debug(f"Auto-created {len(template_tasks)} {event_type.value} tasks for {event.id}")
        self._save()
        return container

    # =========================================================================
    # SETTINGS
    # =========================================================================

    def update_settings(self, settings: TaskGenerationSettings):
        self.settings = settings
        self._save_settings()

    def toggle_event_type(self, event_type: EventType) -> bool:
        """Flip an event type on or off. Returns whether it is now enabled."""
        if event_type in self.settings.enabled_event_types:
            self.settings.enabled_event_types.discard(event_type)
        else:
            self.settings.enabled_event_types.add(event_type)
        self._save_settings()
        return event_type in self.settings.enabled_event_types

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def _save(self):
        if self.store is not None:
            self.store.save_tasks(self._event_tasks)

    def _save_settings(self):
        if self.store is not None:
            self.store.save_settings(self.settings)
