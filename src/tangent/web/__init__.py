"""
Web service for tangent.

Provides:
- REST API for search, tangents and trail persistence
- Trail scoring endpoint
"""

from .server import create_app

__all__ = ["create_app"]
