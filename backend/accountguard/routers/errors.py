"""
Translate typed account security errors into HTTP responses.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from accountguard.core.exceptions import (
    AccountLockedError,
    AccountSecurityError,
    CredentialError,
    InvalidCredentialsError,
    TwoFactorRequiredError,
)

logger = logging.getLogger(__name__)


async def account_security_error_handler(request: Request, exc: AccountSecurityError) -> JSONResponse:
    headers: dict[str, str] = {}
    detail = exc.detail

    if isinstance(exc, CredentialError):
        logger.error("Credential failure on %s: %s", request.url.path, exc.__class__.__name__)
        detail = exc.public_detail
    elif isinstance(exc, AccountLockedError):
        headers["Retry-After"] = str(exc.remaining_minutes * 60)
    elif isinstance(exc, (InvalidCredentialsError, TwoFactorRequiredError)):
        headers["WWW-Authenticate"] = "Bearer"

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": detail},
        headers=headers or None,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handler for every AccountSecurityError subclass."""
    app.add_exception_handler(AccountSecurityError, account_security_error_handler)
