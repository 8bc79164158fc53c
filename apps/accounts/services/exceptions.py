"""Domain-specific exceptions for accounts services."""


class AccountsServiceError(Exception):
    """Base exception for accounts services."""
    code = 'accounts_error'


# Registration

class UserRegistrationError(AccountsServiceError):
    """Raised when an account cannot be created."""
    code = 'registration_failed'


class EmailTakenError(UserRegistrationError):
    code = 'email_taken'


class RoleNotAllowedError(UserRegistrationError):
    """Raised when a role cannot be chosen at sign-up (admins are appointed)."""
    code = 'role_not_allowed'

    def __init__(self, role):
        self.role = role
        super().__init__(f"Accounts with role '{role}' cannot be self-registered")


# Sign-in

class InvalidCredentialsError(AccountsServiceError):
    code = 'invalid_credentials'


class InactiveAccountError(AccountsServiceError):
    code = 'account_inactive'


class RoleMismatchError(AccountsServiceError):
    """
    Raised when an account signs in to a surface its role cannot use,
    e.g. a fan account at the merchant booth login.
    """
    code = 'role_mismatch'

    def __init__(self, user, required_role):
        self.user = user
        self.required_role = required_role
        super().__init__(
            f"This is a {user.get_role_display().lower()} account; "
            f"sign in with a {required_role} account instead"
        )


# Password reset

class InvalidTokenError(AccountsServiceError):
    """Raised when a password reset token is unknown or already consumed."""
    code = 'invalid_token'


class UserNotFoundError(AccountsServiceError):
    code = 'user_not_found'
