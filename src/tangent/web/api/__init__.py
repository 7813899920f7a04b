"""
API endpoints for the tangent web service.

Provides REST endpoints for:
- Search and tangents (POST /api/search, POST /api/tangents)
- Trails (POST /api/trail, POST /api/trail/append, GET /api/trail/*)
"""
