"""HTTP surface of MLearning (FastAPI)."""

from .app import create_app, require_panel_token
