"""
API Routes Package
"""

from api.routes import actions
from api.routes import cron
from api.routes import email
from api.routes import user

__all__ = ["actions", "cron", "email", "user"]
