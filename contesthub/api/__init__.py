"""FastAPI application for serving aggregated contests."""

from contesthub.api.app import create_app

__all__ = ["create_app"]
