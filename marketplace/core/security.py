import uuid
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from enum import Enum

from jose import jwt, JWTError, ExpiredSignatureError

from marketplace.core.config import settings
from marketplace.core.exceptions import InvalidToken, TokenExpired, TokenTypeInvalid

# --- Setup ---
logger = logging.getLogger(__name__)


class TokenType(str, Enum):
    """Token kinds this service accepts."""

    ACCESS = "access"


class SecurityConfig:
    """Validates and holds all security-related configurations."""

    JWT_SECRET_KEY: str = settings.JWT_SECRET
    JWT_ALGORITHM: str = settings.JWT_ALGORITHM
    ACCESS_TOKEN_EXPIRE_MINUTES: int = settings.ACCESS_TOKEN_EXPIRE_MINUTES
    TOKEN_ISSUER: str = settings.TOKEN_ISSUER
    TOKEN_AUDIENCE: str = settings.TOKEN_AUDIENCE

    @classmethod
    def validate(cls):
        if not cls.JWT_SECRET_KEY or len(cls.JWT_SECRET_KEY) < 32:
            raise ValueError(
                "JWT_SECRET must be configured and be at least 32 characters long."
            )


SecurityConfig.validate()


class TokenManager:
    """Issues and verifies signed access tokens."""

    config = SecurityConfig

    def create_token(
        self,
        subject: Any,
        token_type: TokenType = TokenType.ACCESS,
        expires_delta: Optional[timedelta] = None,
        additional_claims: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Creates a JWT for ``subject`` (a user id)."""
        now = datetime.now(timezone.utc)
        if expires_delta is None:
            expires_delta = timedelta(minutes=self.config.ACCESS_TOKEN_EXPIRE_MINUTES)

        claims = {
            "sub": str(subject),
            "exp": now + expires_delta,
            "iat": now,
            "nbf": now,
            "iss": self.config.TOKEN_ISSUER,
            "aud": self.config.TOKEN_AUDIENCE,
            "jti": str(uuid.uuid4()),
            "type": token_type.value,
        }
        if additional_claims:
            claims.update(additional_claims)

        return jwt.encode(
            claims, self.config.JWT_SECRET_KEY, algorithm=self.config.JWT_ALGORITHM
        )

    def verify_token(
        self, token: str, expected_type: TokenType = TokenType.ACCESS
    ) -> Dict[str, Any]:
        """Verifies and decodes a JWT, returning its claims."""
        if not token:
            raise InvalidToken("Token cannot be empty.")

        try:
            payload = jwt.decode(
                token,
                self.config.JWT_SECRET_KEY,
                algorithms=[self.config.JWT_ALGORITHM],
                audience=self.config.TOKEN_AUDIENCE,
                issuer=self.config.TOKEN_ISSUER,
            )
        except ExpiredSignatureError:
            raise TokenExpired() from None
        except JWTError as e:
            logger.info(f"Rejected token: {e}")
            raise InvalidToken() from e

        token_type = payload.get("type")
        if token_type != expected_type.value:
            raise TokenTypeInvalid(
                f"Expected '{expected_type.value}' token, but got '{token_type}'.",
                expected=expected_type.value,
                received=token_type,
            )
        return payload

    def get_subject_id(self, token: str) -> int:
        """Returns the numeric user id carried in ``sub``."""
        payload = self.verify_token(token)
        try:
            return int(payload.get("sub"))
        except (TypeError, ValueError):
            raise InvalidToken("Token subject is not a user id.") from None


# --- Singleton Instances ---
token_manager = TokenManager()


class SecurityHeaders:
    """Centralized definition of security headers for API responses."""

    @staticmethod
    def get_headers() -> Dict[str, str]:
        return {
            "X-Content-Type-Options": "nosniff",
            "X-Frame-Options": "DENY",
            "Referrer-Policy": "strict-origin-when-cross-origin",
        }
