"""
Service layer for business logic.

Provides service classes that wrap the core tangent functionality:
- TrailService: Trail storage and scoring
"""
