"""Application factory for the health portal backend."""
from __future__ import annotations

from flask import Flask
from flask_cors import CORS
from sqlalchemy import inspect

from backend.config import get_config
from backend.app.middleware import register_audit_middleware
from backend.app.models import User
from backend.extensions import bcrypt, db, jwt, migrate


def create_app(config_name: str | None = None) -> Flask:
    """Create and configure the Flask application."""

    app = Flask(__name__)
    config_cls = get_config(config_name or app.config.get("ENV"))
    app.config.from_object(config_cls)

    register_extensions(app)
    register_blueprints(app)

    if app.config.get("DEBUG"):
        _seed_demo_patient(app)

    register_audit_middleware(app)

    CORS(app)
    return app


def register_extensions(app: Flask) -> None:
    """Initialize Flask extensions."""

    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    bcrypt.init_app(app)


def register_blueprints(app: Flask) -> None:
    """Register application blueprints."""

    from backend.app.api import api_bp

    app.register_blueprint(api_bp, url_prefix="/api")


def _seed_demo_patient(app: Flask) -> None:
    """Seed a demo patient account for development once tables exist."""
    with app.app_context():
        if not inspect(db.engine).has_table(User.__tablename__):
            app.logger.info("Skipping demo account seed; run the migrations first.")
            return
        existing = User.query.filter_by(username="demo").first()
        if not existing:
            password_hash = bcrypt.generate_password_hash("demo").decode("utf-8")
            demo = User(
                username="demo",
                password_hash=password_hash,
                role="user",
                full_name="Demo Patient",
            )
            db.session.add(demo)
            db.session.commit()
