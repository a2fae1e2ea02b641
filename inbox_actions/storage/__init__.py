"""
Persistence layer: SQLAlchemy models, session management and repositories.
"""

from .action_repository import ActionRepository
from .database import configure_database, get_db_session, init_db
from .email_repository import EmailMetadataRepository
from .user_repository import UserRepository

__all__ = [
    'ActionRepository',
    'EmailMetadataRepository',
    'UserRepository',
    'configure_database',
    'get_db_session',
    'init_db'
]
