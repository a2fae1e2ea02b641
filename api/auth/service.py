"""
Authentication Service

Issues and validates the JWT bearer tokens of the API. The ``sub`` claim
carries the user id; the user itself is loaded from ``UserRepository`` on
every request. The cron endpoints use a shared secret instead.
"""

import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from api.config import get_settings
from inbox_actions.storage.user_repository import UserRepository

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class AuthenticationService:
    """
    JWT token management.

    Attributes:
        secret_key: HMAC key of the tokens
        algorithm: JWT signing algorithm
        access_token_expire_minutes: Default token lifetime
    """

    def __init__(self, settings=None):
        settings = settings or get_settings()
        self.secret_key = settings.JWT_SECRET_KEY.get_secret_value()
        self.algorithm = settings.JWT_ALGORITHM
        self.access_token_expire_minutes = settings.JWT_TOKEN_EXPIRE_MINUTES

    def create_access_token(self, user_id: str, expires_delta: Optional[timedelta] = None) -> str:
        """
        Create a JWT access token for ``user_id``.

        Raises:
            HTTPException: 500 if the token cannot be encoded
        """
        expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=self.access_token_expire_minutes))
        try:
            return jwt.encode({"sub": user_id, "exp": expire}, self.secret_key, algorithm=self.algorithm)
        except JWTError as e:
            logger.error(f"Token generation error: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Could not generate authentication token"
            )

    def decode_user_id(self, token: str) -> Optional[str]:
        """User id of a valid token, None when invalid or expired."""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            logger.warning(f"Token validation error: {str(e)}")
            return None
        user_id = payload.get("sub")
        if not user_id:
            logger.warning("Token missing sub claim")
            return None
        return str(user_id)


def get_auth_service() -> AuthenticationService:
    """Provide authentication service instance for dependency injection."""
    return AuthenticationService()


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth_service: AuthenticationService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """
    Authenticated user of the request.

    Raises:
        HTTPException: 401 when the token is missing, invalid, expired, or
            refers to an unknown user
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid authentication credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception

    user_id = auth_service.decode_user_id(credentials.credentials)
    if user_id is None:
        raise credentials_exception

    user = await UserRepository.get_user(user_id)
    if user is None:
        logger.warning(f"Token contains unknown user: {user_id}")
        raise credentials_exception
    return user


async def verify_cron_secret(authorization: Optional[str] = Header(default=None)) -> None:
    """
    Guard of the cron endpoints: ``Authorization: Bearer <CRON_SECRET>``.

    Raises:
        HTTPException: 500 when no secret is configured, 401 on mismatch
    """
    secret = get_settings().CRON_SECRET
    if secret is None or not secret.get_secret_value():
        logger.error("CRON_SECRET is not configured")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Cron not configured")

    expected = f"Bearer {secret.get_secret_value()}"
    if not authorization or not hmac.compare_digest(authorization.encode(), expected.encode()):
        logger.warning("Unauthorized cron call")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
