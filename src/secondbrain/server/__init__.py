"""Second Brain HTTP Server.

FastAPI-based HTTP interface for the second-brain service.
"""

from .app import create_app, run_server

__all__ = ["create_app", "run_server"]
