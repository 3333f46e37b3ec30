import logging

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from config import Config
from errors import GyaniXError
from models import db
from routes.daily_tasks_routes import daily_tasks_bp
from routes.interview_routes import interview_bp
from routes.main_routes import main_bp
from services.container import EXTENSION_KEY, build_services


def configure_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def register_error_handlers(app: Flask):
    @app.errorhandler(GyaniXError)
    def handle_gyanix_error(exc: GyaniXError):
        if exc.status_code >= 500:
            app.logger.error("Request failed: %s", exc.message)
        return jsonify({"success": False, "error": exc.message}), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({"success": False, "error": exc.description}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        app.logger.exception("Server error: %s", exc)
        return jsonify({"success": False, "error": "Internal server error"}), 500


def create_app(config_object=Config, **overrides) -> Flask:
    """Build the app; ``overrides`` are passed to ``build_services`` (llm_client, store, today, rng)."""
    app = Flask(__name__)
    app.config.from_object(config_object)
    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    database_url = app.config.get("DATABASE_URL")
    if database_url:
        app.config["SQLALCHEMY_DATABASE_URI"] = database_url
        db.init_app(app)
        with app.app_context():
            db.create_all()
    else:
        app.logger.warning("DATABASE_URL is empty. Persistence is disabled.")

    app.extensions[EXTENSION_KEY] = build_services(app.config, **overrides)

    app.register_blueprint(main_bp)
    app.register_blueprint(interview_bp)
    app.register_blueprint(daily_tasks_bp)
    register_error_handlers(app)

    return app


if __name__ == "__main__":
    create_app().run(debug=True)
