"""
Web Bridge Module - FastAPI-based HTTP bridge
=============================================

This module lets a chat bridge deliver messages over HTTP:
- POST /messages to handle a message
- GET /actions to list added actions
- GET /health for status
"""

from .app import create_app, run_app
from .routes import router

__all__ = [
    "create_app",
    "run_app",
    "router",
]
