"""
Bearer token authentication.

Verifies access tokens issued by the companion auth API and enforces the
role allowed to use the chat bot.

Dependencies: PyJWT, fastapi, companion_chat.configs
System role: Authentication and authorization for chat endpoints
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from companion_chat.configs import get_settings
from companion_chat.configs.auth import AuthSettings
from companion_chat.core.exceptions import AuthenticationError, AuthorizationError

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class AuthenticatedUser(BaseModel):
    """Caller identity extracted from a verified access token."""

    user_id: str
    role: str
    claims: dict[str, Any] = {}


def _load_public_key(value: str) -> str:
    """Accept inline PEM text or a path to a PEM file."""
    if value.lstrip().startswith("-----BEGIN"):
        return value
    return Path(value).read_text(encoding="utf-8")


class TokenVerifier:
    """
    Decodes and validates access tokens.

    Example:
        >>> verifier = TokenVerifier(get_settings().auth)
        >>> user = verifier.verify(token)
        >>> user.user_id
    """

    def __init__(self, settings: AuthSettings) -> None:
        self.algorithm = settings.algorithm
        self.issuer = settings.issuer
        self.audience = settings.audience
        self.required_role = settings.required_role
        self.leeway = settings.leeway_seconds

        if self.algorithm == "RS256":
            if not settings.public_key:
                raise ValueError("JWT_PUBLIC_KEY is required for RS256")
            self._key = _load_public_key(settings.public_key)
        else:
            if not settings.secret:
                raise ValueError("JWT_SECRET is required for HS256")
            self._key = settings.secret

    def decode(self, token: str) -> dict[str, Any]:
        """
        Verify signature, expiry, issuer and audience.

        Raises:
            AuthenticationError: Token expired, badly signed or malformed
            AuthorizationError: Issuer or audience does not match
        """
        try:
            return jwt.decode(
                token,
                self._key,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                audience=self.audience,
                leeway=self.leeway,
            )
        except jwt.ExpiredSignatureError as e:
            raise AuthenticationError("AUTH_TOKEN_EXPIRED", "Access token has expired") from e
        except jwt.InvalidSignatureError as e:
            raise AuthenticationError(
                "AUTH_TOKEN_INVALID_SIGNATURE", "Access token signature is invalid"
            ) from e
        except (jwt.InvalidIssuerError, jwt.InvalidAudienceError) as e:
            raise AuthorizationError(
                "AUTH_TOKEN_INVALID_CLAIM", "Access token was not issued for this service"
            ) from e
        except jwt.InvalidTokenError as e:
            raise AuthenticationError("AUTH_TOKEN_INVALID", "Access token is invalid") from e

    def verify(self, token: str) -> AuthenticatedUser:
        """
        Decode a token and check subject and role.

        Raises:
            AuthenticationError: Token invalid or missing a subject
            AuthorizationError: Role is not the required role
        """
        claims = self.decode(token)

        user_id = claims.get("sub")
        if not user_id:
            raise AuthenticationError("UNAUTHORIZED", "Access token has no subject")

        role = claims.get("role")
        if role != self.required_role:
            logger.warning(f"{__name__}:verify - Rejected role={role!r} sub={user_id}")
            raise AuthorizationError("FORBIDDEN", "You are not allowed to use the chat bot")

        return AuthenticatedUser(user_id=str(user_id), role=role, claims=claims)


@lru_cache
def get_token_verifier() -> TokenVerifier:
    """Get token verifier singleton built from settings."""
    return TokenVerifier(get_settings().auth)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> AuthenticatedUser:
    """
    FastAPI dependency resolving the authenticated student.

    Raises:
        AuthenticationError: Missing, malformed or invalid bearer token
        AuthorizationError: Token valid but not allowed
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("AUTH_NO_TOKEN", "Authorization token is missing")
    return verifier.verify(credentials.credentials)
