"""
Pattern Matchers for CalAI

Keyword and regex detectors used by the intent classifier to spot scheduling
entities in an utterance: a specific time, a specific date, attendees and a
location.

Time, date and location detectors expect lower-cased text. The attendee
detector needs the original casing because it keys on capitalized names.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Any, List


# =============================================================================
# PATTERN TABLES
# =============================================================================

TIME_PATTERNS = [
    re.compile(r"at \d{1,2}"),          # "at 2", "at 14"
    re.compile(r"\d{1,2}:\d{2}"),       # "2:30", "14:00"
    re.compile(r"\d{1,2}\s*[ap]m"),     # "2pm", "2 pm"
    re.compile(r"noon"),
    re.compile(r"midnight"),
]

DATE_KEYWORDS = [
    "today", "tomorrow", "tonight",
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
    "next week", "this week", "next month",
]

# Connector word followed by a capitalized name: "with Sarah", "invite Tom"
ATTENDEE_PATTERN = re.compile(r"\b(?i:(with|meet|and|invite|inviting))\s+([A-Z][a-z]+)")

LOCATION_INDICATORS = [
    " at ", " in ", " @ ",
    "location", "room", "building", "office",
]


# =============================================================================
# DETECTORS
# =============================================================================

def has_specific_time(text: str) -> bool:
    """True when the lower-cased text names a clock time."""
    return any(pattern.search(text) for pattern in TIME_PATTERNS)


def has_specific_date(text: str) -> bool:
    """True when the lower-cased text names a day or week."""
    return any(keyword in text for keyword in DATE_KEYWORDS)


def find_attendees(text: str) -> List[str]:
    """Capitalized names that follow a connector word, in order of appearance."""
    names = []
    for match in ATTENDEE_PATTERN.finditer(text):
        name = match.group(2)
        if name not in names:
            names.append(name)
    return names


def has_attendees(text: str) -> bool:
    """True when the original-case text mentions someone by name."""
    return ATTENDEE_PATTERN.search(text) is not None


def has_location(text: str) -> bool:
    """True when the lower-cased text contains a location indicator."""
    return any(indicator in text for indicator in LOCATION_INDICATORS)


@dataclass
class PatternMatches:
    """All entity signals found in one utterance."""
    has_time: bool = False
    has_date: bool = False
    has_attendees: bool = False
    has_location: bool = False
    attendees: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "has_time": self.has_time,
            "has_date": self.has_date,
            "has_attendees": self.has_attendees,
            "has_location": self.has_location,
            "attendees": list(self.attendees),
        }


def match_all(text: str) -> PatternMatches:
    """Run every detector, handling the casing each one expects."""
    lowered = text.lower()
    attendees = find_attendees(text)
    return PatternMatches(
        has_time=has_specific_time(lowered),
        has_date=has_specific_date(lowered),
        has_attendees=bool(attendees),
        has_location=has_location(lowered),
        attendees=attendees,
    )
