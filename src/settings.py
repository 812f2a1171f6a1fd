"""Application settings and the database connection configuration."""

from __future__ import annotations

import json
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

OPEN_MODE_OPEN = "open"
OPEN_MODE_INITIALIZE = "initialize"

_ENV_PREFIX = "RIDES_DB_"
_TRUTHY = {"1", "true", "yes", "on", "local"}


def resolve_data_directory() -> Path:
    if sys.platform == "win32":
        base = Path(os.getenv("APPDATA", Path.home() / "AppData/Roaming"))
    elif sys.platform == "darwin":
        base = Path.home() / "Library/Application Support"
    else:
        base = Path(os.getenv("XDG_DATA_HOME", Path.home() / ".local/share"))
    return base / "RideBooking"


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            base[key] = _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


class SettingsManager:
    """Load and persist lightweight JSON application settings."""

    DEFAULTS: dict[str, Any] = {
        "database": {
            "local": True,
            "filename": "rides.db",
            "host": "localhost",
            "port": 6136,
            "user": "admin",
            "password": "admin",
            "open_mode": OPEN_MODE_INITIALIZE,
        },
        "locale": "en",
        "log_level": "INFO",
        "window_size": {"width": 1000, "height": 500},
    }

    def __init__(self, path: Path) -> None:
        self.path = path
        self.data = json.loads(json.dumps(self.DEFAULTS))  # deep copy
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            self.save()
            return
        try:
            loaded = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            self.save()
            return
        if isinstance(loaded, dict):
            self.data = _deep_merge(self.data, loaded)

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self.data, indent=2), encoding="utf-8")

    def update(self, updates: dict[str, Any]) -> None:
        self.data = _deep_merge(self.data, updates)
        self.save()


@dataclass(frozen=True)
class StoreConfig:
    """Where and how the ride store connects.

    ``filename`` is resolved against ``data_directory`` when it is relative;
    ``":memory:"`` keeps the whole store in the connection.
    """

    local: bool = True
    filename: str = "rides.db"
    host: str = "localhost"
    port: int = 6136
    user: str = ""
    password: str = ""
    open_mode: str = OPEN_MODE_OPEN
    data_directory: Optional[Path] = None

    @property
    def initialize(self) -> bool:
        return self.open_mode == OPEN_MODE_INITIALIZE

    @property
    def database_path(self) -> str:
        if self.filename == ":memory:":
            return self.filename
        path = Path(self.filename).expanduser()
        if not path.is_absolute() and self.data_directory is not None:
            path = self.data_directory / path
        return str(path)

    @property
    def remote_address(self) -> str:
        return f"//{self.host}:{self.port}/{self.filename}"

    @classmethod
    def from_settings(
        cls,
        settings: Mapping[str, Any],
        env: Optional[Mapping[str, str]] = None,
        data_directory: Optional[Path] = None,
    ) -> "StoreConfig":
        """Build the configuration from ``settings["database"]`` plus env overrides."""

        section = dict(settings.get("database", {}) or {})
        env = env if env is not None else os.environ
        overrides = {
            key: env[f"{_ENV_PREFIX}{key.upper()}"]
            for key in ("local", "filename", "host", "port", "user", "password", "open_mode")
            if env.get(f"{_ENV_PREFIX}{key.upper()}", "").strip()
        }
        section.update(overrides)

        local = section.get("local", True)
        if isinstance(local, str):
            local = local.strip().lower() in _TRUTHY
        try:
            port = int(section.get("port", cls.port))
        except (TypeError, ValueError):
            port = cls.port
        open_mode = str(section.get("open_mode", OPEN_MODE_OPEN)).strip().lower()
        if open_mode not in {OPEN_MODE_OPEN, OPEN_MODE_INITIALIZE}:
            open_mode = OPEN_MODE_OPEN

        return cls(
            local=bool(local),
            filename=str(section.get("filename", cls.filename)).strip() or cls.filename,
            host=str(section.get("host", cls.host)),
            port=port,
            user=str(section.get("user", "")),
            password=str(section.get("password", "")),
            open_mode=open_mode,
            data_directory=data_directory,
        )
