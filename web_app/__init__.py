"""FastAPI transport for the link registry."""

from .app_factory import create_app
from .services import build_services, Services

__all__ = ["create_app", "build_services", "Services"]
