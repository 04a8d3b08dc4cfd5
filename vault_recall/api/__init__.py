"""HTTP surface for the retrieval pipeline."""

from .main import create_app
from .retrieval import router

__all__ = ["create_app", "router"]
