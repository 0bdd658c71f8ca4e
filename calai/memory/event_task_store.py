"""
Event Task Store - JSON persistence for EventTaskManager.

One entry per event id holding the serialized EventTasks container. The
task generation settings live in the store metadata.
"""

from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

from . import BaseStore, StoreType, StoreEntry, logger
from ..tools.event_tasks import EventTasks, TaskGenerationSettings


class EventTaskStore(BaseStore):
    """Persists event task lists and task generation settings."""

    SETTINGS_KEY = "settings"

    def __init__(self, storage_path: Optional[Path] = None):
        super().__init__(StoreType.EVENT_TASKS, storage_path)

    def load_tasks(self) -> Dict[str, EventTasks]:
        """Deserialize every stored task list. Malformed entries are logged and skipped."""
        tasks = {}
        for entry in self.list_all():
            try:
                tasks[entry.id] = EventTasks.from_dict(entry.data)
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Skipping malformed task list for event {entry.id}: {e}")
        return tasks

    def save_tasks(self, tasks: Dict[str, EventTasks]):
        """Replace the stored task lists with the given ones."""
        now = datetime.now().isoformat()
        entries = {}
        for event_id, container in tasks.items():
            previous = self._entries.get(event_id)
            entries[event_id] = StoreEntry(
                id=event_id,
                created_at=previous.created_at if previous else now,
                updated_at=now,
                data=container.to_dict()
            )
        self._entries = entries
        self._save()

    def load_settings(self) -> Optional[TaskGenerationSettings]:
        data = self.get_metadata(self.SETTINGS_KEY)
        if data is None:
            return None
        try:
            return TaskGenerationSettings.from_dict(data)
        except (ValueError, TypeError) as e:
            logger.warning(f"Ignoring malformed task settings: {e}")
            return None

    def save_settings(self, settings: TaskGenerationSettings):
        self.set_metadata(self.SETTINGS_KEY, settings.to_dict())
