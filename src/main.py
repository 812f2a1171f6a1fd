# src/main.py
"""Main entry point for the Ride Booking application."""

from __future__ import annotations

import sys
from importlib import import_module
from pathlib import Path

from PyQt6.QtWidgets import QApplication, QMessageBox

if __package__ in (None, ""):
    package_root = Path(__file__).resolve().parent.parent
    if str(package_root) not in sys.path:
        sys.path.insert(0, str(package_root))
    _rideshare = import_module("src.rideshare_app")
    _exceptions = import_module("src.exceptions")
else:  # pragma: no cover - import path depends on runtime context
    _rideshare = import_module(".rideshare_app", package=__package__)
    _exceptions = import_module(".exceptions", package=__package__)

StoreConnectionError = _exceptions.StoreConnectionError
bootstrap_app = _rideshare.bootstrap_app
load_labels = _rideshare.load_labels


def main() -> None:
    """Launch the PyQt6 Ride Booking GUI."""
    try:
        exit_code = bootstrap_app()
    except StoreConnectionError as exc:
        app = QApplication.instance() or QApplication(sys.argv)
        labels = load_labels()
        QMessageBox.critical(
            None,
            labels["Error.Title"],
            f"{labels[exc.message_key]}\n\n{exc}",
        )
        raise SystemExit(1) from exc
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
