"""
ASGI entrypoint: uvicorn backend_megarank.api_server.app:app --host 0.0.0.0 --port 8000
"""

from backend_megarank.api_server.server import create_app

app = create_app()
