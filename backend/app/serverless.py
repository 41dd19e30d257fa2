"""Serverless entrypoint for deploying the portal API as a single function."""
from __future__ import annotations
import os

from backend.app import create_app

app = create_app(os.getenv("PORTAL_ENV") or os.getenv("FLASK_ENV"))
