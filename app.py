import logging

from flask import Flask, jsonify
from config import Config
from routes import health_bp, availability_bp, holds_bp, admin_bp, audit_bp, webhook_bp

from models import db
from flask_migrate import Migrate
from services.clock import SystemClock
from services.errors import EngineError, StoreError
from services.settings import EngineSettings
from sqlalchemy.exc import DBAPIError

logger = logging.getLogger(__name__)


def create_app(config_overrides=None, clock=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Fail at startup on a bad timezone, status partition or duration
    EngineSettings.from_config(app.config)
    app.extensions["engine_clock"] = clock or SystemClock()

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(availability_bp)
    app.register_blueprint(holds_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(audit_bp)
    app.register_blueprint(webhook_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    @app.errorhandler(EngineError)
    def _engine_error(exc: EngineError):
        if exc.http_status >= 500:
            logger.warning("%s: %s", exc.code, exc.message)
        return jsonify(**exc.to_dict()), exc.http_status

    @app.errorhandler(DBAPIError)
    def _store_error(exc: DBAPIError):
        db.session.rollback()
        logger.exception("Unhandled database error")
        err = StoreError("Storage temporarily unavailable, please retry")
        return jsonify(**err.to_dict()), err.http_status

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp


    register_cli(app)


    return app

#-------------------------
import click
from services.holds import HoldManager
from utils.seed import seed_businesses

def register_cli(app):
    @app.cli.command("expire-holds")
    def expire_holds():
        """Mark lapsed holds expired and drop their claims (housekeeping only)."""
        manager = HoldManager(EngineSettings.from_config(app.config), app.extensions["engine_clock"])
        count = manager.expire_stale_holds()
        click.echo(f"Expired {count} hold(s)")

    @app.cli.command("seed-businesses")
    def seed_businesses_command():
        """Create the default business rows (safe & idempotent)."""
        created = seed_businesses()
        click.echo(f"Created {created} business(es)")

#-------------------------




if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
