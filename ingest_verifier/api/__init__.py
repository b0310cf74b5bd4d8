"""HTTP diagnostics for verification runs."""

from .endpoints import router

__all__ = ["router"]
