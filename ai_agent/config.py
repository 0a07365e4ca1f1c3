from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import ConfigLoadError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "AI_AGENT_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".ai-agent-config.json"
DEFAULT_LOG_FILE = Path.home() / ".ai-agent.log"
DEFAULT_ERROR_LOG_FILE = Path.home() / ".ai-agent-errors.log"
DEFAULT_HISTORY_FILE = Path.home() / ".ai-agent-history.yaml"

LANGUAGES = ("hindi", "english")
LOG_LEVELS = ("debug", "info", "warn", "error", "none")

# JSON key -> attribute name
_KEY_MAP = {
    "apiKey": "api_key",
    "defaultProjectsDir": "default_projects_dir",
    "language": "language",
    "logLevel": "log_level",
    "autoSave": "auto_save",
    "model": "model",
    "baseUrl": "base_url",
    "strictActions": "strict_actions",
    "logFile": "log_file",
    "historyFile": "history_file",
}


def default_config_path() -> Path:
    override = os.environ.get(CONFIG_ENV_VAR)
    return Path(override).expanduser() if override else DEFAULT_CONFIG_PATH


@dataclass
class AppConfig:
    """Settings shared across sessions, persisted as a single JSON object."""

    api_key: str = ""
    default_projects_dir: str = str(Path.home() / "ai-projects")
    language: str = "hindi"
    log_level: str = "info"
    auto_save: bool = True
    model: str = "gemini-1.5-pro"
    base_url: Optional[str] = "https://generativelanguage.googleapis.com/v1beta/openai/"
    strict_actions: bool = False
    log_file: str = str(DEFAULT_LOG_FILE)
    history_file: str = str(DEFAULT_HISTORY_FILE)
    path: Path = field(default_factory=default_config_path, repr=False, compare=False)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any], path: Optional[Path] = None) -> "AppConfig":
        config = cls(path=path or default_config_path())
        known = {f.name for f in fields(cls)}
        for key, value in raw.items():
            attr = _KEY_MAP.get(key, key)
            if attr in known and attr != "path":
                setattr(config, attr, value)
        if config.language not in LANGUAGES:
            logger.warning("Unknown language %r in config, using hindi", config.language)
            config.language = "hindi"
        if config.log_level not in LOG_LEVELS:
            logger.warning("Unknown log level %r in config, using info", config.log_level)
            config.log_level = "info"
        return config

    def to_dict(self) -> Dict[str, Any]:
        return {key: getattr(self, attr) for key, attr in _KEY_MAP.items()}

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "AppConfig":
        """Load the config file merged over defaults.

        A missing file yields defaults. An unreadable file, invalid JSON or a
        non-object document raises ConfigLoadError.
        """
        path = Path(path) if path else default_config_path()
        if not path.exists():
            return cls(path=path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigLoadError(f"Error loading config {path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigLoadError(f"Config {path} must contain a JSON object")
        return cls.from_dict(raw, path=path)

    @classmethod
    def load_or_default(cls, path: Optional[Path] = None) -> "AppConfig":
        try:
            return cls.load(path)
        except ConfigLoadError as exc:
            logger.warning("%s; falling back to defaults", exc)
            return cls(path=Path(path) if path else default_config_path())

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)
