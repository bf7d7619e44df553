import os
import logging

import click
from flask import Flask, jsonify

from config import Config
from errors import ServiceError, permission_denied
from extensions import db, login_manager, init_extensions
from logger import LOG_FORMAT, app_logger
from models import User


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    if not app.config.get("SECRET_KEY") and not app.config.get("TESTING"):
        raise ValueError("SECRET_KEY must be set")

    if not app.debug and not app.testing:
        app.config.update(
            SESSION_COOKIE_SECURE=True,
            SESSION_COOKIE_HTTPONLY=True,
            REMEMBER_COOKIE_SECURE=True,
            REMEMBER_COOKIE_HTTPONLY=True,
        )

    setup_logging(app)

    # SQLite default lives under instance/
    if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite:///"):
        os.makedirs(os.path.join(os.path.dirname(os.path.abspath(__file__)), "instance"), exist_ok=True)

    init_extensions(app)
    register_blueprints(app)
    register_error_handlers(app)
    register_commands(app)

    # ------------------------------------------------------------------------------------------------------------------------
    # Flask-Login hooks - inside create_app to avoid circular imports
    # ------------------------------------------------------------------------------------------------------------------------
    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, user_id)

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"error": "Authentication required"}), 401

    @app.route("/healthz")
    def healthz():
        return {"status": "ok"}, 200

    return app


def setup_logging(app):
    """File log for everything app.logger sees, console too in debug."""
    logs_dir = app.config.get("LOG_DIR", "logs")
    os.makedirs(logs_dir, exist_ok=True)

    file_handler = logging.FileHandler(os.path.join(logs_dir, "web.log"), mode="a", encoding="utf-8", delay=True)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    file_handler.setLevel(logging.INFO)

    app.logger.handlers.clear()
    app.logger.addHandler(file_handler)
    app.logger.setLevel(logging.INFO)
    app.logger.propagate = app.testing

    if app.debug:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG)
        app.logger.addHandler(console_handler)


def register_blueprints(app):
    """Register all blueprints"""
    from blueprints.auth import bp as auth_bp
    from blueprints.admin import admin_bp
    from blueprints.subscriptions import bp as subscriptions_bp
    from blueprints.referrals import bp as referrals_bp
    from blueprints.exchange import bp as exchange_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(subscriptions_bp)
    app.register_blueprint(referrals_bp)
    app.register_blueprint(exchange_bp)


def register_error_handlers(app):

    @app.errorhandler(ServiceError)
    def handle_service_error(error):
        if error.status_code >= 500:
            app.logger.error(f"{error.__class__.__name__}: {error.message}")
        else:
            app.logger.info(f"{error.__class__.__name__}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    permission_denied.connect(log_permission_denied)


def log_permission_denied(error):
    app_logger.error(f"Store permission denied: {error.context.to_dict()}")


def register_commands(app):

    @app.cli.command("seed-plans")
    def seed_plans_command():
        """Create the starter, growth and max plans."""
        from blueprints.plan_helpers import seed_default_plans
        created = seed_default_plans()
        click.echo(f"Created plans: {', '.join(created) if created else 'none'}")

    @app.cli.command("make-admin")
    @click.argument("email")
    @click.option("--password", default=None, help="Create the user with this password if missing.")
    def make_admin_command(email, password):
        """Promote (or create) an admin user."""
        from make_admin import promote_to_admin
        promote_to_admin(email, password)


# ----------------------
# Local development
# ----------------------
if __name__ == "__main__":
    app = create_app()
    port = int(os.environ.get("PORT", 5000))
    debug_mode = app.config.get("DEBUG", True)
    app.run(debug=debug_mode, host="0.0.0.0", port=port)
