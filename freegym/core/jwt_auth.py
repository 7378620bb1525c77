import jwt
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Optional

from freegym.core.config import (
    JWT_SECRET_KEY,
    JWT_ALGORITHM,
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES,
)
from freegym.core.exceptions import AuthenticationError, ConfigurationError

logger = logging.getLogger(__name__)


class JWTManager:
    """
    Encodes and decodes member access tokens.

    Tokens are issued by the identity service; this service only needs to
    decode them. ``create_access_token`` exists for that service's shared
    library use and for tests.
    """

    def __init__(
        self,
        secret_key: Optional[str] = JWT_SECRET_KEY,
        algorithm: str = JWT_ALGORITHM,
        expire_minutes: int = JWT_ACCESS_TOKEN_EXPIRE_MINUTES,
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.access_token_expire_minutes = expire_minutes

    def _require_secret(self) -> str:
        if not self.secret_key:
            raise ConfigurationError("JWT_SECRET_KEY")
        return self.secret_key

    def create_access_token(
        self, member_id: int, role: str, extra_data: Dict[str, Any] = None
    ) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(member_id),
            "role": role,
            "iat": now,
            "exp": now + timedelta(minutes=self.access_token_expire_minutes),
            "type": "access_token",
        }
        if extra_data:
            payload.update(extra_data)

        return jwt.encode(payload, self._require_secret(), algorithm=self.algorithm)

    def decode_token(self, token: str) -> Dict[str, Any]:
        """
        Verify a token and return its payload

        Raises:
            AuthenticationError: expired, malformed or wrong-type token
        """
        try:
            payload = jwt.decode(
                token, self._require_secret(), algorithms=[self.algorithm]
            )
        except jwt.ExpiredSignatureError:
            logger.warning("JWT token has expired")
            raise AuthenticationError("Token has expired")
        except jwt.InvalidTokenError:
            logger.warning("Invalid JWT token provided")
            raise AuthenticationError("Invalid token")

        if payload.get("type") != "access_token":
            raise AuthenticationError("Invalid token type")

        try:
            payload["member_id"] = int(payload["sub"])
        except (KeyError, TypeError, ValueError):
            raise AuthenticationError("Token subject is not a member id")

        return payload


jwt_manager = JWTManager()
