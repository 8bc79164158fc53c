"""Sign-in for fan, merchant and admin accounts."""

import logging
from typing import Optional

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from .exceptions import InvalidCredentialsError, InactiveAccountError, RoleMismatchError
from .roles import can_sign_in_as

logger = logging.getLogger(__name__)

User = get_user_model()


@transaction.atomic
def authenticate_user(*, email: str, password: str, role: Optional[str] = None) -> User:
    """
    Check an email/password pair and stamp last_login.

    When ``role`` is given the account must hold it; the merchant booth
    login passes 'merchant' so fan accounts cannot open the scanner.
    Admin accounts pass any role check. A refused role does not update
    last_login.

    Raises:
        InvalidCredentialsError: Unknown email or wrong password
        InactiveAccountError: Account is deactivated
        RoleMismatchError: Account does not hold the required role
    """
    user = (
        User.objects
        .select_for_update()
        .filter(email__iexact=email)
        .first()
    )
    if user is None or not user.check_password(password):
        if user is not None:
            logger.warning("Failed sign-in attempt for user %s", user.id)
        raise InvalidCredentialsError("Invalid email or password")

    if not user.is_active:
        raise InactiveAccountError("Account is deactivated")

    if role is not None and not can_sign_in_as(user, role):
        logger.info("Refused %s sign-in for %s account %s", role, user.role, user.id)
        raise RoleMismatchError(user, role)

    user.last_login = timezone.now()
    user.save(update_fields=['last_login'])

    return user
