"""
API server package — FastAPI surface over the activity service.
"""

from backend_megarank.api_server.server import create_app, get_service

__all__ = ["create_app", "get_service"]
