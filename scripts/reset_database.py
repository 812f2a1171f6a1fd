# run: python scripts/reset_database.py
"""Drop the configured ride database and load the demo drivers and rides again."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from src.data_access import RideStore  # noqa: E402
from src.settings import SettingsManager, StoreConfig, resolve_data_directory  # noqa: E402


def main() -> int:
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s [%(name)s] %(message)s")
    data_dir = resolve_data_directory()
    settings_manager = SettingsManager(data_dir / "settings.json")
    config = StoreConfig.from_settings(settings_manager.data, data_directory=data_dir)

    store = RideStore(config)
    store.open(reset_existing=True)
    try:
        store.seed_initial_data()
        cities = store.list_departure_cities()
    finally:
        store.close()
    print(f"Reset complete: {config.database_path} ({len(cities)} departure cities).")
    return 0


if __name__ == "__main__":
    sys.exit(main())
