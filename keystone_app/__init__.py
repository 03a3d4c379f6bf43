import datetime
import logging
import os

from flask import Flask, jsonify
from flask_login import LoginManager
from flask_sqlalchemy import SQLAlchemy
from flask_wtf.csrf import CSRFProtect

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))

db = SQLAlchemy()
login_manager = LoginManager()
csrf = CSRFProtect()

TRUTHY = {"1", "true", "yes", "y", "on"}


def _env_flag(name, default):
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in TRUTHY


def _env_int(name, default):
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        parsed = int(raw)
        if parsed > 0:
            return parsed
    except ValueError:
        pass
    return default


def _load_config(app, overrides):
    instance_dir = os.path.join(BASE_DIR, "instance")
    production = os.environ.get("FLASK_ENV", "").strip().lower() == "production"

    app.config["SECRET_KEY"] = os.environ.get("SECRET_KEY", "dev-keystone-secret")
    app.config["SQLALCHEMY_DATABASE_URI"] = os.environ.get(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(instance_dir, "keystone.db"),
    )
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["KEYSTONE_STORAGE"] = os.environ.get("KEYSTONE_STORAGE", "database")
    app.config["PERMANENT_SESSION_LIFETIME"] = datetime.timedelta(
        hours=_env_int("SESSION_LIFETIME_HOURS", 24)
    )
    app.config["SESSION_COOKIE_HTTPONLY"] = True
    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
    app.config["SESSION_COOKIE_SECURE"] = _env_flag("SESSION_COOKIE_SECURE", production)
    app.config["WTF_CSRF_ENABLED"] = _env_flag("WTF_CSRF_ENABLED", True)
    app.config["LOG_LEVEL"] = os.environ.get("LOG_LEVEL", "INFO").upper()
    app.config["MAX_CONTENT_LENGTH"] = _env_int("MAX_UPLOAD_MB", 10) * 1024 * 1024
    app.config["CALENDAR_NAME"] = os.environ.get("CALENDAR_NAME", "Keystone Transactions")

    if overrides:
        app.config.update(overrides)

    if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite:///" + instance_dir):
        os.makedirs(instance_dir, exist_ok=True)


def create_app(config=None, storage=None):
    """Build the Keystone API.

    ``config`` overrides values read from the environment; ``storage``
    replaces the backend normally picked from ``KEYSTONE_STORAGE``.
    """
    from keystone_app.auth import init_auth
    from keystone_app.errors import register_error_handlers
    from keystone_app.routes import register_blueprints
    from keystone_app.storage import EXTENSION_KEY, DatabaseStorage, build_storage

    app = Flask(__name__, instance_relative_config=True)
    _load_config(app, config)
    app.logger.setLevel(getattr(logging, app.config["LOG_LEVEL"], logging.INFO))

    db.init_app(app)
    login_manager.init_app(app)
    csrf.init_app(app)

    from keystone_app import models  # noqa: F401

    if storage is None:
        storage = build_storage(app.config["KEYSTONE_STORAGE"], db)
    app.extensions[EXTENSION_KEY] = storage

    if isinstance(storage, DatabaseStorage):
        with app.app_context():
            db.create_all()

    init_auth(app, login_manager)
    register_error_handlers(app)
    register_blueprints(app)

    @app.route("/health")
    def health():
        return jsonify({"status": "ok", "storage": type(storage).__name__})

    app.logger.info("Keystone started with %s", type(storage).__name__)
    return app
