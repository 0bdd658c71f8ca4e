"""
Follow-up Store - JSON persistence for PostMeetingService.

Entries are keyed by follow-up id. The ids of events that have already been
processed live in the store metadata so a meeting is never summarized twice.
"""

from datetime import datetime
from pathlib import Path
from typing import List, Optional, Set

from . import BaseStore, StoreType, StoreEntry, logger
from ..tools.meeting_follow_up import MeetingFollowUp


class FollowUpStore(BaseStore):
    """Persists meeting follow-ups and processed event ids."""

    PROCESSED_KEY = "processed_event_ids"

    def __init__(self, storage_path: Optional[Path] = None):
        super().__init__(StoreType.FOLLOW_UPS, storage_path)

    def load_follow_ups(self) -> List[MeetingFollowUp]:
        """Newest first. Malformed entries are logged and skipped."""
        follow_ups = []
        for entry in self.list_all():
            try:
                follow_ups.append(MeetingFollowUp.from_dict(entry.data))
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Skipping malformed follow-up {entry.id}: {e}")
        return sorted(follow_ups, key=lambda f: f.created_at, reverse=True)

    def save_follow_ups(self, follow_ups: List[MeetingFollowUp]):
        now = datetime.now().isoformat()
        entries = {}
        for follow_up in follow_ups:
            previous = self._entries.get(follow_up.id)
            entries[follow_up.id] = StoreEntry(
                id=follow_up.id,
                created_at=previous.created_at if previous else now,
                updated_at=now,
                data=follow_up.to_dict()
            )
        self._entries = entries
        self._save()

    def load_processed_ids(self) -> Set[str]:
        return set(self.get_metadata(self.PROCESSED_KEY, []))

    def save_processed_ids(self, event_ids: Set[str]):
        self.set_metadata(self.PROCESSED_KEY, sorted(event_ids))
