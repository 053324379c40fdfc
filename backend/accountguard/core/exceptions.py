"""
Typed errors raised by the account security services.

Each error carries the HTTP status the API layer answers with and a
``detail`` that is safe to show to the client.
"""
from typing import Optional


class AccountSecurityError(Exception):
    """Base class for every error raised by this package."""

    status_code: int = 400
    detail: str = "Account security error"

    def __init__(self, detail: Optional[str] = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class InvalidCredentialsError(AccountSecurityError):
    """Wrong password or unknown email (deliberately indistinguishable)."""

    status_code = 401
    detail = "Invalid email or password"


class AccountLockedError(AccountSecurityError):
    """Too many failed attempts; carries the whole minutes left on the lock."""

    status_code = 423

    def __init__(self, remaining_minutes: int):
        self.remaining_minutes = remaining_minutes
        super().__init__(
            f"Account temporarily locked due to too many failed attempts. "
            f"Try again in {remaining_minutes} minute(s)."
        )


class AccountInactiveError(AccountSecurityError):
    """Account deactivated by an administrator."""

    status_code = 403
    detail = "Account is disabled"


class CredentialError(AccountSecurityError):
    """Internal hashing or signing failure. The message never reaches clients."""

    status_code = 500
    public_detail = "Internal authentication error"


class TokenExpiredError(AccountSecurityError):
    status_code = 400
    detail = "Token has expired"


class TokenInvalidError(AccountSecurityError):
    status_code = 400
    detail = "Token is invalid"


class EmailAlreadyRegisteredError(AccountSecurityError):
    status_code = 409
    detail = "Email already registered"


class WeakPasswordError(AccountSecurityError):
    status_code = 422
    detail = "Password does not meet the password policy"


class AccountNotFoundError(AccountSecurityError):
    status_code = 404
    detail = "Account not found"


class TwoFactorError(AccountSecurityError):
    status_code = 400
    detail = "Two-factor authentication error"


class TwoFactorRequiredError(AccountSecurityError):
    """Session has not passed the second factor yet."""

    status_code = 401
    detail = "Two-factor verification required"
