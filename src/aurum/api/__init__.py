"""HTTP API for the browser extension and dashboards."""

from aurum.api.router import api_router

__all__ = ["api_router"]
