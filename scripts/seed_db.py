"""Create the demo admin and front-desk accounts.

Password comes from DEMO_PASSWORD.
"""

from __future__ import annotations

import importlib
import logging

from dotenv import load_dotenv

from studio_pos.config import get_settings_module
from studio_pos.database.bootstrap import ensure_demo_staff

logger = logging.getLogger("seed_db")


def main() -> None:
    load_dotenv(override=False)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    ensure_demo_staff(db_config, password=settings.DEMO_PASSWORD)
    logger.info("Seeded staff accounts -> %s/%s", db_config.get("host"), db_config.get("database"))


if __name__ == "__main__":
    main()
