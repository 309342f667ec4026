from __future__ import annotations

import importlib
import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, request, session

from config import get_settings_module

from .common.web import current_user_view
from .container import Container, build_container
from .database.bootstrap import apply_schema, apply_seed_sql, ensure_demo_users, list_tables
from .errors import register_error_handlers
from .dashboard.controller import register as register_dashboard
from .departments.controller import register as register_departments
from .programs.controller import register as register_programs
from .units.controller import register as register_units
from .users.controller import register as register_users

logger = logging.getLogger("org_management")

_ROOT = Path(__file__).resolve().parents[3]


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(container: Optional[Container] = None, settings_module: Optional[str] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__, template_folder="../../../templates", static_folder="../../../static")

    settings_module = settings_module or get_settings_module()
    settings = importlib.import_module(settings_module)
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    upload_folder = Path(getattr(settings, "UPLOAD_FOLDER", "static/uploads/profiles"))
    app.config["UPLOAD_FOLDER"] = str(upload_folder if upload_folder.is_absolute() else _ROOT / upload_folder)
    app.config["MAX_CONTENT_LENGTH"] = int(getattr(settings, "MAX_CONTENT_LENGTH", 2 * 1024 * 1024))

    logger.info("settings=%s", settings_module)

    if container is None:
        logger.info(
            "db=%s@%s:%s/%s",
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config, schema_path=_ROOT / "database" / "schema.sql")
            logger.info("schema ready (tables=%d)", len(list_tables(db_config)))
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            apply_seed_sql(db_config, seed_path=_ROOT / "database" / "seed.sql")
            ensure_demo_users(db_config)
            logger.info("demo seed ready")
        container = build_container(db_config=db_config)

    os.makedirs(app.config["UPLOAD_FOLDER"], exist_ok=True)
    app.extensions["org_container"] = container
    app.jinja_env.globals["current_user"] = current_user_view

    @app.before_request
    def log_activity():
        if "user_id" in session and request.endpoint != "static":
            logger.info("user %s %s %s", session.get("username"), request.method, request.path)

    register_error_handlers(app)
    register_users(app, container)
    register_dashboard(app, container)
    register_units(app, container)
    register_departments(app, container)
    register_programs(app, container)

    return app
