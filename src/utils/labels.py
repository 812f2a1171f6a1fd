"""Localized captions and error messages loaded from JSON bundles."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

LABELS_DIR = Path(__file__).resolve().parent.parent / "resources" / "labels"
DEFAULT_LOCALE = "en"
SUPPORTED_LOCALES = ("en", "es", "eu")


class LabelBundle:
    """Resolve label keys for one locale, falling back to English then the key."""

    def __init__(self, locale: str = DEFAULT_LOCALE, directory: Optional[Path] = None) -> None:
        self.directory = directory or LABELS_DIR
        requested = (locale or DEFAULT_LOCALE).split("_")[0].lower()
        self.locale = requested if requested in SUPPORTED_LOCALES else DEFAULT_LOCALE
        self._fallback = self._read(DEFAULT_LOCALE)
        self._labels = self._fallback if self.locale == DEFAULT_LOCALE else self._read(self.locale)

    def _read(self, locale: str) -> dict[str, str]:
        path = self.directory / f"labels_{locale}.json"
        try:
            loaded = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Label bundle %s could not be read: %s", path, exc)
            return {}
        if not isinstance(loaded, dict):
            return {}
        return {str(key): str(value) for key, value in loaded.items()}

    def get(self, key: str) -> str:
        if key in self._labels:
            return self._labels[key]
        return self._fallback.get(key, key)

    def __getitem__(self, key: str) -> str:
        return self.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._labels or key in self._fallback
