"""
Authentication dependencies for the Assessly API.

This module provides the FastAPI dependencies that identify the caller and
gate routes on the permission vocabulary.
"""

import logging
from typing import Optional, Union

from fastapi import Depends, Header, Request

from assessly.common.auth.exceptions import MissingTokenError, InvalidTokenError
from assessly.common.auth.jwt import validate_token, token_roles
from assessly.common.auth.permissions import Permission
from assessly.common.auth.principal import Principal
from assessly.common.error_handling import ForbiddenError

logger = logging.getLogger(__name__)


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise MissingTokenError()
    try:
        scheme, token = authorization.split()
    except ValueError:
        raise InvalidTokenError("Invalid authorization header format")
    if scheme.lower() != "bearer":
        raise InvalidTokenError("Invalid authentication scheme")
    return token


async def get_current_principal(
    request: Request,
    authorization: Optional[str] = Header(None)
) -> Principal:
    """
    Resolve the calling principal from the bearer token.

    Effective permissions are the token's own ``permissions`` claim plus
    those granted by the active access roles named in the token.

    Args:
        request: Incoming request (used to reach the role repository)
        authorization: Authorization header value

    Returns:
        The authenticated principal

    Raises:
        AuthError: If the header is missing or the token is invalid
    """
    payload = validate_token(_bearer_token(authorization))

    roles = token_roles(payload)
    permissions = set(str(p) for p in payload.get("permissions") or [])

    repositories = getattr(request.app.state, "repositories", None)
    if repositories is not None and roles:
        permissions |= set(await repositories.roles.permissions_for(roles))

    return Principal(
        id=str(payload["sub"]),
        roles=frozenset(roles),
        permissions=frozenset(permissions)
    )


def require_permissions(*permissions: Union[Permission, str]):
    """
    Build a dependency that admits principals holding any of ``permissions``.

    Args:
        *permissions: Accepted permissions

    Returns:
        A FastAPI dependency returning the principal
    """
    async def guard(principal: Principal = Depends(get_current_principal)) -> Principal:
        if permissions and not principal.has_any(permissions):
            names = ", ".join(p.value if isinstance(p, Permission) else p for p in permissions)
            logger.warning(f"Principal {principal.id} lacks any of: {names}")
            raise ForbiddenError("Insufficient permissions", details={"required_any": names})
        return principal

    return guard
