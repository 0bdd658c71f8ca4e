"""
Intent Classifier for CalAI

Decides whether a free-text request is a query, an update, a delete, a task or
a calendar event.

Query, update and delete are checked first in that order and win outright.
Everything else is scored twice, once as a task and once as an event, and the
higher score wins when it clears the decision threshold. Ambiguous requests
fall back to a task, the more easily reversed action.

The phrase tables and weights live in ScoringTables so they can be tuned from
config.yaml without touching the scoring code.
"""

import logging
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Dict, Any, List, Optional

from . import LanguageAgent
from .pattern_matchers import match_all, PatternMatches


logger = logging.getLogger("CalAI.IntentClassifier")


# =============================================================================
# ENUMS AND DATA CLASSES
# =============================================================================

class IntentType(Enum):
    """What the user wants to do."""
    TASK = "task"           # Create a to-do
    EVENT = "event"         # Create a calendar event
    QUERY = "query"         # Ask about the calendar
    UPDATE = "update"       # Change something existing
    DELETE = "delete"       # Remove something existing
    UNKNOWN = "unknown"


@dataclass
class IntentClassification:
    """Classification result with confidence."""
    type: IntentType
    confidence: float
    details: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "confidence": self.confidence,
            "details": self.details
        }


@dataclass
class ScoringTables:
    """Phrase tables and weights used by the classifier."""

    query_phrases: List[str] = field(default_factory=lambda: [
        # Question words
        "what", "when", "where", "who", "how many",
        # Explicit query commands
        "show", "list", "tell me", "what's", "what is",
        "do i have", "am i free", "check", "find",
        "see my", "view", "display",
        # Schedule checks
        "what's on my", "what do i have",
        "my schedule", "my calendar",
    ])
    update_verbs: List[str] = field(default_factory=lambda: [
        "change", "update", "modify", "edit", "fix", "correct",
        "adjust", "revise", "alter", "move", "reschedule",
        "shift", "push", "bump", "postpone", "delay",
    ])
    delete_verbs: List[str] = field(default_factory=lambda: [
        "delete", "remove", "cancel", "drop", "clear",
        "erase", "get rid of", "scratch", "kill", "nix",
    ])

    task_phrases: Dict[str, float] = field(default_factory=lambda: {
        "remind me to": 0.9,
        "i need to": 0.8,
        "i have to": 0.8,
        "i should": 0.7,
        "i want to": 0.6,
        "i wanna": 0.6,
        "todo": 0.9,
        "to-do": 0.9,
        "task": 0.8,
        "add task": 0.9,
        "create task": 0.9,
        "new task": 0.9,
        "reminder": 0.8,
        "add reminder": 0.9,
    })
    task_verbs: List[str] = field(default_factory=lambda: [
        "buy", "get", "pick up", "grab", "purchase",
        "call", "email", "text", "message",
        "finish", "complete", "submit", "send",
        "read", "review", "check", "look at",
        "write", "draft", "prepare", "create",
        "clean", "organize", "fix", "repair",
    ])
    multi_item_markers: List[str] = field(default_factory=lambda: [", and ", " then "])
    multi_item_exclusions: List[str] = field(default_factory=lambda: ["meeting", "schedule"])

    event_phrases: Dict[str, float] = field(default_factory=lambda: {
        "schedule": 0.9,
        "book": 0.8,
        "reserve": 0.8,
        "set up": 0.7,
        "arrange": 0.7,
        "plan": 0.6,
        "add to calendar": 0.9,
        "put on calendar": 0.9,
        "calendar event": 0.9,
        "appointment": 0.8,
        "meeting": 0.9,
    })
    event_types: List[str] = field(default_factory=lambda: [
        "meeting", "lunch", "dinner", "breakfast", "coffee",
        "call", "conference", "standup", "review", "interview",
        "demo", "presentation", "workshop", "training",
        "appointment", "session", "class", "party", "hangout",
    ])

    # Confidence for the early-exit categories
    query_confidence: float = 0.95
    update_confidence: float = 0.90
    delete_confidence: float = 0.90

    # Task scoring
    task_verb_weight: float = 0.6
    multi_item_weight: float = 0.7
    no_time_bonus: float = 0.2
    no_date_bonus: float = 0.2
    no_attendee_bonus: float = 0.1

    # Event scoring
    event_type_weight: float = 0.8
    time_bonus: float = 0.2
    date_bonus: float = 0.1
    attendee_bonus: float = 0.3
    location_bonus: float = 0.2

    # Decision
    decision_threshold: float = 0.5
    default_confidence: float = 0.6

    @classmethod
    def from_dict(cls, overrides: Optional[Dict[str, Any]] = None) -> "ScoringTables":
        """
        Build tables from defaults plus overrides.

        Phrase maps are merged into the defaults; lists and weights replace them.
        Unknown keys raise ValueError.
        """
        tables = cls()
        known = {f.name for f in fields(cls)}
        for key, value in (overrides or {}).items():
            if key not in known:
                raise ValueError(f"Unknown classifier setting: {key}")
            current = getattr(tables, key)
            if isinstance(current, dict):
                merged = dict(current)
                merged.update({str(k).lower(): float(v) for k, v in value.items()})
                setattr(tables, key, merged)
            elif isinstance(current, list):
                setattr(tables, key, [str(item).lower() for item in value])
            else:
                setattr(tables, key, float(value))
        return tables


# =============================================================================
# INTENT CLASSIFIER
# =============================================================================

class IntentClassifier(LanguageAgent):
    """
    Rule-based classifier for scheduling requests.

    classify() is total: any string, including the empty string, yields a
    classification and nothing is raised.
    """

    def __init__(self, tables: Optional[ScoringTables] = None):
        super().__init__("IntentClassifier")
        self.tables = tables or ScoringTables()

    def classify(self, text: str) -> IntentClassification:
        """Classify a natural language command."""
        text = text or ""
        lowered = text.lower()
        t = self.tables
        logger.debug(f"Analyzing '{text}'")

        if self._is_query(lowered):
            logger.debug("Classified as QUERY")
            return IntentClassification(IntentType.QUERY, t.query_confidence, "Detected query keywords")

        if self._matches_verb(lowered, t.update_verbs):
            logger.debug("Classified as UPDATE")
            return IntentClassification(IntentType.UPDATE, t.update_confidence, "Detected update keywords")

        if self._matches_verb(lowered, t.delete_verbs):
            logger.debug("Classified as DELETE")
            return IntentClassification(IntentType.DELETE, t.delete_confidence, "Detected delete keywords")

        matches = match_all(text)
        task_score = self.task_score(lowered, matches)
        event_score = self.event_score(lowered, matches)
        logger.debug(f"Task score: {task_score}, Event score: {event_score}")

        if task_score > event_score and task_score > t.decision_threshold:
            return IntentClassification(IntentType.TASK, task_score, "Task-related patterns detected")
        if event_score > task_score and event_score > t.decision_threshold:
            return IntentClassification(IntentType.EVENT, event_score, "Event-related patterns detected")

        logger.debug("Could not confidently classify - defaulting to TASK")
        return IntentClassification(
            IntentType.TASK, t.default_confidence, "Low confidence, defaulted to task"
        )

    # =========================================================================
    # CATEGORY DETECTION
    # =========================================================================

    def _is_query(self, text: str) -> bool:
        return any(phrase in text for phrase in self.tables.query_phrases)

    @staticmethod
    def _matches_verb(text: str, verbs: List[str]) -> bool:
        """Verb at the start of the request or as a standalone word inside it."""
        return any(text.startswith(verb) or f" {verb} " in text for verb in verbs)

    # =========================================================================
    # SCORING
    # =========================================================================

    def task_score(self, text: str, matches: PatternMatches) -> float:
        """Likelihood the lower-cased request is a to-do."""
        t = self.tables
        score = 0.0

        for phrase, weight in t.task_phrases.items():
            if phrase in text:
                score = max(score, weight)
                logger.debug(f"  Task pattern '{phrase}' matched (weight: {weight})")

        for verb in t.task_verbs:
            if text.startswith(verb) or f" to {verb}" in text:
                score = max(score, t.task_verb_weight)
                logger.debug(f"  Task verb '{verb}' found")
                break

        if (any(marker in text for marker in t.multi_item_markers)
                and not any(word in text for word in t.multi_item_exclusions)):
            score = max(score, t.multi_item_weight)
            logger.debug("  Multiple tasks indicated")

        if not matches.has_time:
            score += t.no_time_bonus
        if not matches.has_date:
            score += t.no_date_bonus
        if not matches.has_attendees:
            score += t.no_attendee_bonus

        return round(min(score, 1.0), 2)

    def event_score(self, text: str, matches: PatternMatches) -> float:
        """Likelihood the lower-cased request is a calendar event."""
        t = self.tables
        score = 0.0

        for phrase, weight in t.event_phrases.items():
            if phrase in text:
                score = max(score, weight)
                logger.debug(f"  Event pattern '{phrase}' matched (weight: {weight})")

        for event_type in t.event_types:
            if event_type in text:
                score = max(score, t.event_type_weight)
                logger.debug(f"  Event type '{event_type}' found")
                break

        if matches.has_time:
            score += t.time_bonus
        if matches.has_date:
            score += t.date_bonus
        if matches.has_attendees:
            score += t.attendee_bonus
        if matches.has_location:
            score += t.location_bonus

        return round(min(score, 1.0), 2)


def create_intent_classifier(overrides: Optional[Dict[str, Any]] = None) -> IntentClassifier:
    """Factory function to create an IntentClassifier from config overrides."""
    return IntentClassifier(ScoringTables.from_dict(overrides))
