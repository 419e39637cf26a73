from __future__ import annotations

import importlib
import os
import platform
from datetime import datetime, timedelta
from typing import Optional

from dotenv import load_dotenv
from flask import Flask
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from config import get_settings_module

from . import __version__
from .common.http import error, json_response, success
from .container import Container, build_container
from .core.constants import API_NAME, DEFAULT_SESSION_COOKIE_NAME, DEFAULT_SESSION_LIFETIME
from .core.exceptions import DomainError
from .core.log_config import configure_logging
from .database.bootstrap import apply_schema, default_schema_path, ensure_admin_user, inspect_database, list_tables

from .attendance.controller import register as register_attendance
from .auth.controller import register as register_auth
from .departments.controller import register as register_departments
from .users.controller import register as register_users

HTTP_ERROR_CODES = {
    400: ("BAD_REQUEST", "The request is invalid or cannot be processed."),
    401: ("UNAUTHORIZED", "Authentication is required to access this resource."),
    403: ("FORBIDDEN", "You do not have permission to access this resource."),
    404: ("NOT_FOUND", "The requested resource was not found."),
    405: ("METHOD_NOT_ALLOWED", "The HTTP method is not allowed for this resource."),
    408: ("REQUEST_TIMEOUT", "The request timed out. Please try again."),
    409: ("CONFLICT", "The request could not be completed due to a conflict."),
    410: ("GONE", "The requested resource is no longer available."),
    413: ("PAYLOAD_TOO_LARGE", "The request entity is larger than the server is willing or able to process."),
    415: ("UNSUPPORTED_MEDIA_TYPE", "The request entity has a media type which the server or resource does not support."),
    429: ("RATE_LIMIT_EXCEEDED", "Too many requests. Please try again later."),
    500: ("INTERNAL_SERVER_ERROR", "An internal server error occurred."),
    502: ("BAD_GATEWAY", "The server received an invalid response from an upstream server."),
    503: ("SERVICE_UNAVAILABLE", "The service is temporarily unavailable. Please try again later."),
}


def _cors_origins(value) -> object:
    if isinstance(value, (list, tuple)):
        return list(value)
    value = str(value or "*")
    if value == "*":
        return "*"
    return [o.strip() for o in value.split(",") if o.strip()]


def create_app(settings=None, container: Optional[Container] = None) -> Flask:
    """Application factory.

    ``settings`` defaults to the module picked by ``APP_ENV``; ``container``
    defaults to MySQL-backed repositories built from those settings.
    """
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_name = None
    if settings is None:
        settings_name = get_settings_module()
        settings = importlib.import_module(settings_name)

    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config.update(
        SESSION_COOKIE_NAME=str(getattr(settings, "SESSION_COOKIE_NAME", DEFAULT_SESSION_COOKIE_NAME)),
        SESSION_COOKIE_SECURE=bool(getattr(settings, "SESSION_COOKIE_SECURE", False)),
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE="Lax",
        PERMANENT_SESSION_LIFETIME=timedelta(seconds=int(getattr(settings, "SESSION_LIFETIME", DEFAULT_SESSION_LIFETIME))),
    )
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["APP_ENV"] = os.getenv("APP_ENV", "development")
    app.json.sort_keys = False

    configure_logging(
        app,
        level=str(getattr(settings, "LOG_LEVEL", "INFO")),
        log_file=getattr(settings, "LOG_FILE", None),
    )

    CORS(
        app,
        origins=_cors_origins(getattr(settings, "CORS_ORIGIN", "*")),
        supports_credentials=True,
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    )

    if container is None:
        container = build_container(settings)
        db = container.conn.config if container.conn else None
        if db is not None:
            app.logger.info(
                "settings=%s db=%s@%s:%s/%s",
                settings_name or getattr(settings, "__name__", "custom"),
                db.user, db.host, db.port, db.database,
            )

        if container.conn is not None and bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(container.conn, schema_path=default_schema_path())
            app.logger.info("Schema ready (tables=%d)", len(list_tables(container.conn)))
        if container.conn is not None and bool(getattr(settings, "AUTO_SEED_DB", False)):
            ensure_admin_user(
                container.conn,
                name=str(getattr(settings, "ADMIN_NAME", "Administrator")),
                email=str(getattr(settings, "ADMIN_EMAIL")),
                password=str(getattr(settings, "ADMIN_PASSWORD")),
            )

    app.extensions["attendance_tracker"] = container

    _register_error_handlers(app)

    @app.after_request
    def no_cache(response):
        response.headers["Cache-Control"] = "no-cache, must-revalidate"
        return response

    register_auth(app, container)
    register_attendance(app, container)
    register_users(app, container)
    register_departments(app, container)
    _register_index(app, container)

    return app


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        return error(e.message, e.error_code, e.http_status)

    @app.errorhandler(HTTPException)
    def handle_http_exception(e: HTTPException):
        status = e.code or 500
        code, message = HTTP_ERROR_CODES.get(status, ("HTTP_ERROR", e.description))
        return json_response(False, e.name, message=message, error_code=code, status=status)

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        app.logger.exception("Unhandled error: %s", e)
        return error("An unexpected error occurred. Please try again.", "SERVER_ERROR", 500)


def _endpoint_catalogue(app: Flask) -> dict:
    groups: dict[str, dict[str, str]] = {}
    for rule in sorted(app.url_map.iter_rules(), key=lambda r: r.rule):
        if not rule.rule.startswith("/api") or rule.endpoint == "static":
            continue
        parts = rule.rule.strip("/").split("/")
        group = parts[1] if len(parts) > 1 else "utility"
        view = app.view_functions.get(rule.endpoint)
        doc = (view.__doc__ or "").strip().splitlines()[0] if view is not None and view.__doc__ else ""
        for method in sorted((rule.methods or set()) - {"HEAD", "OPTIONS"}):
            groups.setdefault(group, {})[f"{method} {rule.rule}"] = doc
    return groups


def _register_index(app: Flask, container: Container) -> None:
    @app.route("/api/", methods=["GET"], endpoint="api_index", strict_slashes=False)
    def api_index():
        """API information (this page)"""
        database = {"configured": False, "connected": False, "tables": {}}
        if container.conn is not None:
            database = inspect_database(container.conn)

        return success(
            {
                "api": {
                    "name": API_NAME,
                    "version": __version__,
                    "status": "active",
                    "timestamp": datetime.now().astimezone().isoformat(),
                    "environment": app.config.get("APP_ENV", "development"),
                },
                "endpoints": _endpoint_catalogue(app),
                "system": {
                    "python_version": platform.python_version(),
                    "timezone": datetime.now().astimezone().tzname(),
                },
                "database": database,
            },
            "API is running",
        )
