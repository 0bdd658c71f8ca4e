# CalAI Tools
# Each tool implements one stage of the scheduling assistant: understanding a
# request, analyzing the day, or assisting around individual events.

from enum import Enum
import logging


class AgentCategory(Enum):
    """Categories of tools."""
    LANGUAGE = "language"       # Intent Classifier
    SCHEDULE = "schedule"       # Schedule Analyzer, Narrative Builder, Voice Responses
    ASSISTANT = "assistant"     # Event Tasks, Meeting Follow-up, Morning Briefing


class BaseAgent:
    """Base class for all CalAI tools."""

    def __init__(self, name: str, category: AgentCategory):
        self.name = name
        self.category = category
        self.logger = logging.getLogger(f"CalAI.{name}")


class LanguageAgent(BaseAgent):
    """Base class for tools that interpret user utterances."""

    def __init__(self, name: str):
        super().__init__(name, AgentCategory.LANGUAGE)


class ScheduleAgent(BaseAgent):
    """Base class for tools that read a day's events."""

    def __init__(self, name: str):
        super().__init__(name, AgentCategory.SCHEDULE)


class AssistantAgent(BaseAgent):
    """Base class for tools that keep per-event state (tasks, follow-ups, briefings)."""

    def __init__(self, name: str):
        super().__init__(name, AgentCategory.ASSISTANT)


# Import Language Tools
from .pattern_matchers import (
    PatternMatches,
    match_all,
    has_specific_time,
    has_specific_date,
    has_attendees,
    has_location,
    find_attendees,
)

from .intent_classifier import (
    IntentClassifier,
    IntentClassification,
    IntentType,
    ScoringTables,
    create_intent_classifier,
)

# Import Schedule Tools
from .schedule_analyzer import (
    ScheduleAnalyzer,
    ScheduleAnalysis,
    ScheduleCharacter,
    BusyPeriod,
    TimeGap,
    Transition,
)

from .narrative_builder import (
    NarrativeBuilder,
    format_time,
    format_duration,
    pluralize,
)

from .voice_response import (
    VoiceResponse,
    VoiceResponseGenerator,
)

# Import Assistant Tools
from .event_tasks import (
    EventTask,
    EventTasks,
    EventType,
    TaskPriority,
    TaskCategory,
    TaskTiming,
    TaskGenerationMode,
    TaskGenerationSettings,
    TaskTemplates,
    EventTaskManager,
)

from .meeting_follow_up import (
    ActionItem,
    ActionItemPriority,
    ActionItemCategory,
    Decision,
    FollowUpMeeting,
    MeetingSummary,
    MeetingFollowUp,
    MeetingFollowUpGenerator,
    PostMeetingService,
)

from .morning_briefing import (
    WeatherData,
    BriefingEvent,
    DailyBriefing,
    MorningBriefingSettings,
    DayAnalyzer,
    MorningBriefingService,
)


__all__ = [
    # Base classes
    "AgentCategory",
    "BaseAgent",
    "LanguageAgent",
    "ScheduleAgent",
    "AssistantAgent",
    # Pattern Matchers
    "PatternMatches",
    "match_all",
    "has_specific_time",
    "has_specific_date",
    "has_attendees",
    "has_location",
    "find_attendees",
    # Intent Classifier
    "IntentClassifier",
    "IntentClassification",
    "IntentType",
    "ScoringTables",
    "create_intent_classifier",
    # Schedule Analyzer
    "ScheduleAnalyzer",
    "ScheduleAnalysis",
    "ScheduleCharacter",
    "BusyPeriod",
    "TimeGap",
    "Transition",
    # Narrative Builder
    "NarrativeBuilder",
    "format_time",
    "format_duration",
    "pluralize",
    # Voice Responses
    "VoiceResponse",
    "VoiceResponseGenerator",
    # Event Tasks
    "EventTask",
    "EventTasks",
    "EventType",
    "TaskPriority",
    "TaskCategory",
    "TaskTiming",
    "TaskGenerationMode",
    "TaskGenerationSettings",
    "TaskTemplates",
    "EventTaskManager",
    # Meeting Follow-up
    "ActionItem",
    "ActionItemPriority",
    "ActionItemCategory",
    "Decision",
    "FollowUpMeeting",
    "MeetingSummary",
    "MeetingFollowUp",
    "MeetingFollowUpGenerator",
    "PostMeetingService",
    # Morning Briefing
    "WeatherData",
    "BriefingEvent",
    "DailyBriefing",
    "MorningBriefingSettings",
    "DayAnalyzer",
    "MorningBriefingService",
]
