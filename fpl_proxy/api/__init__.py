"""HTTP layer: FastAPI app factory and response models."""

from fpl_proxy.api.app import create_app

__all__ = ["create_app"]
