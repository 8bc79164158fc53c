"""User registration service."""

import logging

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction

from apps.accounts.models import UserRole
from .exceptions import EmailTakenError, RoleNotAllowedError
from .roles import SELF_REGISTRATION_ROLES

logger = logging.getLogger(__name__)

User = get_user_model()


@transaction.atomic
def register_user(
    *,
    email: str,
    password: str,
    display_name: str = "",
    role: str = UserRole.FAN
) -> User:
    """
    Create a new fan or merchant account.

    Admin accounts are never created through self-registration.

    Args:
        email: User's email address
        password: User's password (will be hashed)
        display_name: Optional display name
        role: 'fan' (default) or 'merchant'

    Returns:
        Created User instance

    Raises:
        RoleNotAllowedError: If the role is not open to sign-up
        EmailTakenError: If an account already uses the email
    """
    if role not in SELF_REGISTRATION_ROLES:
        raise RoleNotAllowedError(role)

    if User.objects.filter(email__iexact=email).exists():
        raise EmailTakenError("An account with this email already exists")

    try:
        user = User.objects.create_user(
            email=email,
            password=password,
            display_name=display_name,
            role=role,
        )
    except IntegrityError:
        raise EmailTakenError("An account with this email already exists")

    logger.info("Registered %s account %s", role, user.id)
    return user
