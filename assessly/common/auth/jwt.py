"""
Bearer tokens

HS256 access tokens issued to and verified for API callers. A token carries the
principal id in ``sub`` together with the role names and any directly
granted permissions.
"""

import datetime
import enum
import os
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Union

import jwt

from assessly.common.auth.exceptions import InvalidTokenError, ExpiredTokenError
from assessly.common.utils import utcnow


class TokenType(enum.Enum):
    """Value of the ``type`` claim."""

    ACCESS = "access"


@dataclass
class JWTConfig:
    """Signing settings, normally built from ``Settings`` at startup."""
    secret_key: str
    algorithm: str = "HS256"
    access_token_expires: int = 60  # minutes
    token_issuer: str = "assessly-api"


# Replaced by create_app from the loaded settings
_jwt_config = JWTConfig(
    secret_key=os.environ.get("JWT_SECRET_KEY", "dev-secret-key"),
)


def set_jwt_config(config: JWTConfig) -> None:
    """Install the process-wide signing settings."""
    global _jwt_config
    _jwt_config = config


def get_jwt_config() -> JWTConfig:
    return _jwt_config


def create_access_token(
    subject: Union[str, int],
    roles: Optional[Iterable[str]] = None,
    permissions: Optional[Iterable[str]] = None,
    additional_claims: Optional[Dict[str, Any]] = None,
    expires_in: Optional[int] = None
) -> str:
    """
    Issue an access token for a principal.

    Args:
        subject: The subject of the token (the principal id)
        roles: Role names held by the principal
        permissions: Permissions granted directly to the principal
        additional_claims: Extra claims merged into the payload
        expires_in: Lifetime in minutes, defaulting to the configured one

    Returns:
        Encoded token
    """
    config = get_jwt_config()

    now = utcnow()
    expires_delta = datetime.timedelta(
        minutes=expires_in if expires_in is not None else config.access_token_expires
    )

    payload = {
        "sub": str(subject),
        "exp": now + expires_delta,
        "iat": now,
        "iss": config.token_issuer,
        "type": TokenType.ACCESS.value
    }
    if roles is not None:
        payload["roles"] = list(roles)
    if permissions is not None:
        payload["permissions"] = list(permissions)
    if additional_claims:
        payload.update(additional_claims)

    return jwt.encode(payload, config.secret_key, algorithm=config.algorithm)


def validate_token(
    token: str,
    expected_type: Optional[TokenType] = TokenType.ACCESS
) -> Dict[str, Any]:
    """
    Verify signature, expiry and type, and return the claims.

    Args:
        token: Encoded token
        expected_type: Required ``type`` claim, or None to accept any

    Returns:
        Decoded claims

    Raises:
        InvalidTokenError: If the token is invalid or of the wrong type
        ExpiredTokenError: If the token has expired
    """
    config = get_jwt_config()

    try:
        payload = jwt.decode(
            token,
            config.secret_key,
            algorithms=[config.algorithm],
            options={
                "verify_signature": True,
                "verify_exp": True,
                "verify_iat": True,
                "require": ["exp", "iat", "sub", "type"]
            }
        )
    except jwt.ExpiredSignatureError:
        raise ExpiredTokenError("Token has expired")
    except jwt.PyJWTError as e:
        raise InvalidTokenError(f"Invalid token: {str(e)}")

    if expected_type is not None and payload.get("type") != expected_type.value:
        raise InvalidTokenError(
            f"Invalid token type: expected {expected_type.value}, got {payload.get('type')}"
        )

    return payload


def token_roles(payload: Dict[str, Any]) -> list:
    """
    Read the role names from a token payload.

    Accepts either a ``roles`` list or a single ``role`` string.
    """
    roles = payload.get("roles")
    if roles is None:
        role = payload.get("role")
        roles = [role] if role else []
    if isinstance(roles, str):
        roles = [roles]
    return [str(role) for role in roles if role]
