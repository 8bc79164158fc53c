"""Services for accounts business logic."""

from .exceptions import (
    AccountsServiceError,
    UserRegistrationError,
    EmailTakenError,
    RoleNotAllowedError,
    InvalidCredentialsError,
    InactiveAccountError,
    RoleMismatchError,
    InvalidTokenError,
    UserNotFoundError,
)
from .roles import (
    Capability,
    capabilities_for,
    has_capability,
    can_sign_in_as,
    staffed_band_ids,
)
from .user_registration import register_user
from .user_authentication import authenticate_user
from .password_reset import request_password_reset, confirm_password_reset

__all__ = [
    # Exceptions
    'AccountsServiceError',
    'UserRegistrationError',
    'EmailTakenError',
    'RoleNotAllowedError',
    'InvalidCredentialsError',
    'InactiveAccountError',
    'RoleMismatchError',
    'InvalidTokenError',
    'UserNotFoundError',
    # Roles
    'Capability',
    'capabilities_for',
    'has_capability',
    'can_sign_in_as',
    'staffed_band_ids',
    # Services
    'register_user',
    'authenticate_user',
    'request_password_reset',
    'confirm_password_reset',
]
