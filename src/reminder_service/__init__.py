"""
Reminder scheduler service package.

This module marks the 'reminder_service' directory as a Python package and
exposes the FastAPI app instance for convenience imports if desired.
"""

# Expose FastAPI app at package level (optional import path: reminder_service.app)
try:
    from .main import app  # noqa: F401
except ImportError:
    # During certain tooling operations (e.g., static analysis) optional web
    # dependencies may be missing. The scheduler core stays importable.
    pass
