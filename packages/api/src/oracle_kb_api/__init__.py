"""Oracle KB REST API.

FastAPI-based REST API for hybrid search over the oracle knowledge base.
"""

from oracle_kb_api.main import app, create_app

__all__ = ["app", "create_app"]
