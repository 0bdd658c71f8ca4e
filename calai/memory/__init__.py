# CalAI Stores
# JSON file persistence for event tasks, follow-ups and briefing settings

from typing import Dict, Any, Optional, List
from datetime import datetime
from dataclasses import dataclass, field
from enum import Enum
import json
import logging
from pathlib import Path


logger = logging.getLogger("CalAI.Store")


class StoreType(Enum):
    """Types of stores."""
    EVENT_TASKS = "event_tasks"             # Event Task Store
    FOLLOW_UPS = "follow_ups"               # Follow-up Store
    BRIEFING = "briefing_settings"          # Briefing Settings Store


@dataclass
class StoreEntry:
    """One persisted record."""
    id: str
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())
    updated_at: str = field(default_factory=lambda: datetime.now().isoformat())
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "data": self.data
        }


class BaseStore:
    """
    Base class for all CalAI stores.

    Holds keyed entries plus a free-form metadata dict and rewrites the whole
    JSON file on every change. An unreadable file is logged and treated as
    empty; write failures propagate.
    """

    def __init__(self, store_type: StoreType, storage_path: Optional[Path] = None):
        self.store_type = store_type
        self.storage_path = storage_path or Path(f"~/.calai/{store_type.value}.json").expanduser()
        self._entries: Dict[str, StoreEntry] = {}
        self._metadata: Dict[str, Any] = {}
        self._load()

    def _load(self):
        """Load entries from persistent storage."""
        if not self.storage_path.exists():
            return
        try:
            with open(self.storage_path, 'r') as f:
                data = json.load(f)
            entries = {}
            for entry_data in data.get("entries", []):
                entry = StoreEntry(**entry_data)
                entries[entry.id] = entry
            self._entries = entries
            self._metadata = dict(data.get("metadata", {}))
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Could not load {self.store_type.value} store from {self.storage_path}: {e}")

    def _save(self):
        """Save entries to persistent storage."""
        self.storage_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.storage_path, 'w') as f:
            data = {
                "store_type": self.store_type.value,
                "last_updated": datetime.now().isoformat(),
                "metadata": self._metadata,
                "entries": [e.to_dict() for e in self._entries.values()]
            }
            json.dump(data, f, indent=2, default=str)

    def put(self, entry_id: str, data: Dict[str, Any]) -> StoreEntry:
        """Insert or replace an entry."""
        entry = self._entries.get(entry_id)
        if entry is None:
            entry = StoreEntry(id=entry_id, data=data)
            self._entries[entry_id] = entry
        else:
            entry.data = data
            entry.updated_at = datetime.now().isoformat()
        self._save()
        return entry

    def get(self, entry_id: str) -> Optional[StoreEntry]:
        """Retrieve an entry by ID."""
        return self._entries.get(entry_id)

    def delete(self, entry_id: str) -> bool:
        """Delete an entry."""
        if entry_id in self._entries:
            del self._entries[entry_id]
            self._save()
            return True
        return False

    def list_all(self) -> List[StoreEntry]:
        """List all entries."""
        return list(self._entries.values())

    def clear(self):
        """Clear all entries."""
        self._entries.clear()
        self._save()

    def get_metadata(self, key: str, default: Any = None) -> Any:
        return self._metadata.get(key, default)

    def set_metadata(self, key: str, value: Any):
        self._metadata[key] = value
        self._save()


# Import all store implementations
from .event_task_store import EventTaskStore
from .follow_up_store import FollowUpStore
from .briefing_store import BriefingSettingsStore

__all__ = [
    # Base classes
    "StoreType",
    "StoreEntry",
    "BaseStore",
    # Stores
    "EventTaskStore",
    "FollowUpStore",
    "BriefingSettingsStore",
]
