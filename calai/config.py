"""
CalAI Configuration

Loads config.yaml into a CalAIConfig. Lookup order:
1. Explicit path (CLI --config)
2. CALAI_CONFIG environment variable
3. config.yaml in the current directory
4. Built-in defaults
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, Optional

import yaml


logger = logging.getLogger("CalAI.Config")

CONFIG_ENV_VAR = "CALAI_CONFIG"
DEFAULT_CONFIG_FILE = "config.yaml"


class ConfigError(Exception):
    """Raised when a configuration file is missing or malformed."""


@dataclass
class CalAIConfig:
    """Runtime configuration. Sections map onto the settings objects of each component."""
    log_level: str = "INFO"
    storage_dir: Path = field(default_factory=lambda: Path("~/.calai").expanduser())
    classifier: Dict[str, Any] = field(default_factory=dict)  # ScoringTables overrides
    briefing: Dict[str, Any] = field(default_factory=dict)    # MorningBriefingSettings
    tasks: Dict[str, Any] = field(default_factory=dict)       # TaskGenerationSettings

    @property
    def tasks_path(self) -> Path:
        return self.storage_dir / "event_tasks.json"

    @property
    def briefing_path(self) -> Path:
        return self.storage_dir / "briefing_settings.json"

    @property
    def follow_ups_path(self) -> Path:
        return self.storage_dir / "follow_ups.json"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CalAIConfig":
        config = cls()
        if "log_level" in data:
            config.log_level = str(data["log_level"])
        if data.get("storage_dir"):
            config.storage_dir = Path(str(data["storage_dir"])).expanduser()
        for section in ("classifier", "briefing", "tasks"):
            value = data.get(section)
            if value is None:
                continue
            if not isinstance(value, dict):
                raise ConfigError(f"Config section '{section}' must be a mapping")
            setattr(config, section, value)
        return config


def load_config(path: Optional[str] = None) -> CalAIConfig:
    """Load configuration, falling back to defaults when no file is found."""
    explicit = path or os.environ.get(CONFIG_ENV_VAR)

    if explicit:
        config_file = Path(explicit).expanduser()
        if not config_file.exists():
            raise ConfigError(f"Config file not found: {config_file}")
    else:
        config_file = Path(DEFAULT_CONFIG_FILE)
        if not config_file.exists():
            logger.debug("No config.yaml found, using defaults")
            return CalAIConfig()

    try:
        with open(config_file) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_file}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_file} must contain a mapping")

    logger.debug(f"Loaded config from {config_file}")
    return CalAIConfig.from_dict(data)
