"""FastAPI application exposing the lost-and-found services over HTTP."""

from .app import create_app
from .dependencies import ServiceContainer

__all__ = ["create_app", "ServiceContainer"]
