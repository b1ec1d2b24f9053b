import logging
import os
import uuid
from typing import Any

from flask import Flask, g, jsonify, request
from dotenv import load_dotenv

from app.custmgr.config import load_config
from app.custmgr.db import create_schema, init_db, session_scope, teardown_db_session
from app.custmgr.routes import bp as routes_bp
from app.custmgr.modules.customers.api import bp as customers_bp
from app.custmgr.seed import seed_sample_data


def create_app(overrides: dict[str, Any] | None = None) -> Flask:
    load_dotenv()
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_mapping(load_config())
    if overrides:
        app.config.update(overrides)
    app.json.sort_keys = False  # type: ignore[attr-defined]
    app.logger.setLevel(app.config.get("LOG_LEVEL") or "INFO")

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not os.environ.get("DATABASE_URL") and not (overrides or {}).get("DATABASE_URL"):
            raise RuntimeError("DATABASE_URL is required in production.")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    init_db(app)

    def _dispose_engine_on_fork() -> None:
        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()
                    app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    if app.config.get("AUTO_CREATE_SCHEMA"):
        create_schema(app)
        if app.config.get("SEED_ON_START"):
            with session_scope(app) as s:
                seed_sample_data(s, country=app.config.get("DEFAULT_COUNTRY") or "India")

    app.register_blueprint(routes_bp)
    app.register_blueprint(customers_bp, url_prefix="/api")

    @app.before_request
    def _assign_request_id():
        if not getattr(g, "request_id", None):
            g.request_id = uuid.uuid4().hex

    @app.after_request
    def _log_request(response):
        if not request.path.startswith(("/static/", "/healthz")):
            app.logger.info(
                "%s %s %s request_id=%s",
                request.method,
                request.full_path.rstrip("?"),
                response.status_code,
                getattr(g, "request_id", None),
            )
        return response

    app.teardown_appcontext(teardown_db_session)

    def _wants_json() -> bool:
        return request.path.startswith("/api/")

    @app.errorhandler(404)
    def _err_404(e):  # type: ignore[no-redef]
        if _wants_json():
            return jsonify({"error": "not_found"}), 404
        return e

    @app.errorhandler(405)
    def _err_405(e):  # type: ignore[no-redef]
        if _wants_json():
            return jsonify({"error": "method_not_allowed"}), 405
        return e

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return jsonify({"error": "server_error"}), 500

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
