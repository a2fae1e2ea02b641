# api/services/__init__.py
"""
API Services Package

Business logic kept out of the route handlers.
"""

from api.services.action_service import ActionService, get_action_service

__all__ = ["ActionService", "get_action_service"]
