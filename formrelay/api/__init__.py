"""Proxy relay server.

This module provides the HTTP endpoints that relay contact form
submissions to the spreadsheet append handler.
"""

from formrelay.api.app import create_app
from formrelay.api.submit import router as submit_router

__all__ = ["create_app", "submit_router"]
