"""API routes."""

from . import checkout, health

__all__ = ["checkout", "health"]
