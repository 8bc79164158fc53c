"""Password reset service."""

import logging
import secrets

from django.contrib.auth import get_user_model
from django.db import transaction

from .exceptions import UserNotFoundError, InvalidTokenError

logger = logging.getLogger(__name__)

User = get_user_model()


@transaction.atomic
def request_password_reset(*, email: str) -> str:
    """
    Issue a one-time password reset token for an active account.

    Delivering the token (email, push) belongs to the identity provider
    integration; callers receive it so they can hand it over.

    Raises:
        UserNotFoundError: If no active user has this email
    """
    try:
        user = (
            User.objects
            .select_for_update()
            .get(email__iexact=email, is_active=True)
        )
    except User.DoesNotExist:
        raise UserNotFoundError(f"No active user with email: {email}")

    reset_token = secrets.token_urlsafe(32)
    user.verification_token = reset_token
    user.save(update_fields=['verification_token'])

    logger.info("Password reset requested for user %s", user.id)
    return reset_token


@transaction.atomic
def confirm_password_reset(*, token: str, new_password: str) -> User:
    """
    Set a new password using a token from request_password_reset.

    The token is consumed on success.

    Raises:
        InvalidTokenError: If token is invalid or already used
    """
    if not token:
        raise InvalidTokenError("Invalid or expired reset token")

    try:
        user = (
            User.objects
            .select_for_update()
            .get(verification_token=token, is_active=True)
        )
    except User.DoesNotExist:
        raise InvalidTokenError("Invalid or expired reset token")

    user.set_password(new_password)
    user.verification_token = None
    user.save(update_fields=['password', 'verification_token'])

    logger.info("Password reset completed for user %s", user.id)
    return user
