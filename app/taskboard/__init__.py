import logging
import os

from flask import Flask, g
from dotenv import load_dotenv

from app.taskboard.config import load_config
from app.taskboard.db import init_db, teardown_db_session
from app.taskboard.errors import register_error_handlers
from app.taskboard.routes import bp as routes_bp
from app.taskboard.auth import bp as auth_bp, load_current_user
from app.taskboard.admin import bp as admin_bp
from app.taskboard.modules.catalogs.api import bp as catalogs_bp
from app.taskboard.modules.directory.api import bp as directory_bp
from app.taskboard.modules.projects.api import bp as projects_bp
from app.taskboard.modules.boards.api import bp as boards_bp
from app.taskboard.modules.tasks.api import bp as tasks_bp
from app.taskboard.modules.notifications.api import bp as notifications_bp

API_PREFIX = "/task-management"


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())

    logging.basicConfig(
        level=getattr(logging, app.config["LOG_LEVEL"], logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not (os.environ.get("DATABASE_URL") or "").strip():
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")
        if str(app.config["JWT_SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("JWT_SECRET_KEY must be set to a strong value in production (not default).")

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

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(admin_bp, url_prefix=API_PREFIX)
    app.register_blueprint(catalogs_bp, url_prefix=API_PREFIX)
    app.register_blueprint(directory_bp, url_prefix=API_PREFIX)
    app.register_blueprint(projects_bp, url_prefix=API_PREFIX)
    app.register_blueprint(boards_bp, url_prefix=API_PREFIX)
    app.register_blueprint(tasks_bp, url_prefix=API_PREFIX)
    app.register_blueprint(notifications_bp, url_prefix=API_PREFIX)

    app.before_request(load_current_user)
    app.teardown_appcontext(teardown_db_session)

    @app.after_request
    def _echo_request_id(response):
        rid = getattr(g, "request_id", None)
        if rid:
            response.headers["X-Request-ID"] = rid
        return response

    register_error_handlers(app)

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")
    return app
