"""HTTP service mode (install with the ``service`` extra)."""

from .app import create_app, run_service

__all__ = ["create_app", "run_service"]
