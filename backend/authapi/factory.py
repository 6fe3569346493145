"""Application factory wiring Flask extensions, services and blueprints."""

from __future__ import annotations

from flask import Flask

from authapi.core.config import BaseConfig, get_config
from authapi.core.logger import configure_logging, init_app as init_logging
from authapi.core.registry import ServiceRegistry


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    registry: ServiceRegistry | None = None,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
) -> Flask:
    """Build and configure the Flask application.

    :param config: Config object/class (defaults to the one selected by ``APP_ENV``).
    :param registry: Pre-built service registry; built from config when omitted.
    """

    app = Flask(__name__, instance_relative_config=instance_relative_config)

    config_obj = get_config() if config is None else config
    app.config.from_object(config_obj)
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)

    validate = getattr(config_obj, "validate", None)
    if callable(validate):
        validate()

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    from authapi.core import extensions

    extensions.init_app(app)

    init_logging(app)

    from authapi.core import registry as service_registry

    service_registry.init_app(app, registry)

    from authapi.api import init_app as init_api

    init_api(app)

    from authapi.core import errors

    errors.init_app(app)

    from authapi import cli as app_cli

    app_cli.init_app(app)

    return app
