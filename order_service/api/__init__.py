"""HTTP API for order management."""
from .main import create_app

__all__ = ["create_app"]
