"""API blueprint registration."""
from flask import Blueprint

api_bp = Blueprint("api", __name__)

# Import endpoints to ensure they are registered with the blueprint.
from . import auth  # noqa: E402,F401
from .directory import directory_bp  # noqa: E402,F401
from .pharmacy import pharmacy_bp  # noqa: E402,F401
from .wizards import wizards_bp  # noqa: E402,F401

api_bp.register_blueprint(pharmacy_bp, url_prefix="/pharmacy")
api_bp.register_blueprint(wizards_bp, url_prefix="/wizards")
api_bp.register_blueprint(directory_bp)
