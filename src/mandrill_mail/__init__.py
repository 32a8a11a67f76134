"""mandrill-mail - Mandrill transport for Flask applications."""

from typing import Any

from flask import Flask

from mandrill_mail.config import KEY_MAP, REGISTRY, parse_value
from mandrill_mail.db import get_db_path, read_settings


def create_app(test_config: dict[str, Any] | None = None) -> Flask:
    """Application factory: loads settings and installs the mailer."""
    app = Flask(__name__)

    # Minimal defaults before DB config is loaded
    app.config.from_mapping(DATABASE_PATH=get_db_path())

    if test_config is not None:
        app.config.from_mapping(test_config)
    else:
        _load_config_from_db(app)

    from mandrill_mail import provider
    from mandrill_mail.mailer import Mailer

    mailer = Mailer(app)
    provider.init_app(app, mailer)

    return app


def _load_config_from_db(app: Flask) -> None:
    """Load configuration from the database into Flask app.config."""
    db_values = read_settings(app.config["DATABASE_PATH"])

    # Apply registry entries
    for entry in REGISTRY:
        flask_key = KEY_MAP.get(entry.key)
        if not flask_key:
            continue

        raw = db_values.get(entry.key)
        if raw is not None:
            value = parse_value(entry, raw)
        elif isinstance(entry.default, dict):
            value = entry.default.copy()
        else:
            value = entry.default

        app.config[flask_key] = value
