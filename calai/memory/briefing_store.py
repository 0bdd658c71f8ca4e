"""
Briefing Settings Store - JSON persistence for MorningBriefingSettings.
"""

from pathlib import Path
from typing import Optional

from . import BaseStore, StoreType, logger
from ..tools.morning_briefing import MorningBriefingSettings


class BriefingSettingsStore(BaseStore):
    """Persists the user's morning briefing preferences."""

    SETTINGS_KEY = "settings"

    def __init__(self, storage_path: Optional[Path] = None):
        super().__init__(StoreType.BRIEFING, storage_path)

    def load_settings(self) -> Optional[MorningBriefingSettings]:
        data = self.get_metadata(self.SETTINGS_KEY)
        if data is None:
            return None
        try:
            return MorningBriefingSettings.from_dict(data)
        except (ValueError, TypeError) as e:
            logger.warning(f"Ignoring malformed briefing settings: {e}")
            return None

    def save_settings(self, settings: MorningBriefingSettings):
        self.set_metadata(self.SETTINGS_KEY, settings.to_dict())
