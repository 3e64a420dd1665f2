"""FastAPI adapter for leasekeeper leader election."""

from leasekeeper_fastapi.routes import create_leadership_router
from leasekeeper_fastapi.settings import get_leasekeeper_config

__all__ = ["create_leadership_router", "get_leasekeeper_config"]
