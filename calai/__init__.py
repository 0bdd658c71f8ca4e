"""
CalAI - Scheduling core for a calendar assistant.

Classifies free-text requests, characterizes a day's schedule, narrates it,
and manages the checklists, follow-ups and briefings built around events.
"""

__version__ = "1.0.0"
