"""
API routes for communication service
"""

from . import health, messages

__all__ = ["health", "messages"]
