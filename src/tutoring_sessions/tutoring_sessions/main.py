from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .checkin.controller import register as register_checkin
from .container import Container, build_container
from .database.bootstrap import apply_schema, list_tables
from .sessions.controller import register as register_sessions
from .tokens.controller import register as register_tokens

logger = logging.getLogger(__name__)


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    logging.basicConfig(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        store = getattr(settings, "SESSION_STORE", "mysql")
        if store == "memory":
            logger.warning("settings=%s using the in-memory session store; data is lost on restart", settings_module)
        else:
            logger.info(
                "settings=%s db=%s@%s:%s/%s",
                settings_module,
                db_config.get("user"),
                db_config.get("host"),
                db_config.get("port", 3306),
                db_config.get("database"),
            )

            if bool(getattr(settings, "AUTO_INIT_DB", False)):
                schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
                apply_schema(db_config, schema_path=schema_path)
                logger.info("schema ready (tables=%d)", len(list_tables(db_config)))

        container = build_container(db_config=db_config, settings=settings)

    app.extensions["tutoring_container"] = container

    register_checkin(app, container)
    register_sessions(app, container)
    register_tokens(app, container)

    return app
