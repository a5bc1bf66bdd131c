"""Core app configuration, errors, security and database."""

from app.core.config import get_settings, settings
from app.core.database import SessionLocal, session_scope

__all__ = ["get_settings", "settings", "SessionLocal", "session_scope"]
