from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from .api.analytics_controller import register as register_analytics
from .api.auth_controller import register as register_auth
from .api.cards_controller import register as register_cards
from .api.checkins_controller import register as register_checkins
from .api.common import register_error_handlers
from .api.owners_controller import register as register_owners
from .config import get_settings_module
from .container import Container, build_container
from .database.bootstrap import apply_schema, ensure_demo_staff, list_tables

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parents[2] / "database" / "schema.sql"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    logging.basicConfig(level=getattr(settings, "LOG_LEVEL", "INFO"), format=LOG_FORMAT)

    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    db_config = getattr(settings, "DB_CONFIG")

    if container is None:
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config, schema_path=SCHEMA_PATH)
            logger.info("Schema ready (tables=%s)", len(list_tables(db_config)))
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            ensure_demo_staff(db_config, password=getattr(settings, "DEMO_PASSWORD", "change-me-now"))

        container = build_container(
            db_config=db_config,
            timezone=getattr(settings, "STUDIO_TIMEZONE"),
            tax_rate=getattr(settings, "TAX_RATE"),
            square_access_token=getattr(settings, "SQUARE_ACCESS_TOKEN", ""),
            square_location_id=getattr(settings, "SQUARE_LOCATION_ID", ""),
            square_environment=getattr(settings, "SQUARE_ENVIRONMENT", "sandbox"),
        )

    app.extensions["studio_pos.container"] = container

    register_error_handlers(app)
    register_auth(app, container)
    register_owners(app, container)
    register_cards(app, container)
    register_checkins(app, container)
    register_analytics(app, container)

    return app
