"""
Authentication and authorization for the Assessly API.
"""

from assessly.common.auth.exceptions import (
    AuthError,
    MissingTokenError,
    InvalidTokenError,
    ExpiredTokenError
)
from assessly.common.auth.jwt import (
    JWTConfig,
    TokenType,
    create_access_token,
    validate_token,
    get_jwt_config,
    set_jwt_config
)
from assessly.common.auth.permissions import Permission, PERMISSIONS
from assessly.common.auth.principal import Principal
from assessly.common.auth.dependencies import get_current_principal, require_permissions

__all__ = [
    'AuthError',
    'MissingTokenError',
    'InvalidTokenError',
    'ExpiredTokenError',
    'JWTConfig',
    'TokenType',
    'create_access_token',
    'validate_token',
    'get_jwt_config',
    'set_jwt_config',
    'Permission',
    'PERMISSIONS',
    'Principal',
    'get_current_principal',
    'require_permissions',
]
