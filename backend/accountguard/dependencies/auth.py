"""
Authentication dependencies for route protection.
"""
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from motor.motor_asyncio import AsyncIOMotorDatabase

from accountguard.core.exceptions import (
    AccountInactiveError,
    TokenExpiredError,
    TokenInvalidError,
    TwoFactorRequiredError,
)
from accountguard.database.connections import get_database
from accountguard.database.databases import auth_db
from accountguard.models.account import Account
from accountguard.services.auth_service import AuthService
from accountguard.services.recovery_service import RecoveryService
from accountguard.services.two_factor_service import TwoFactorService

bearer_scheme = HTTPBearer(auto_error=False)


async def get_auth_db() -> AsyncIOMotorDatabase:
    """Dependency returning the auth database."""
    return await get_database(auth_db.DB_NAME)


async def get_auth_service(db: AsyncIOMotorDatabase = Depends(get_auth_db)) -> AuthService:
    return AuthService(db)


async def get_recovery_service(db: AsyncIOMotorDatabase = Depends(get_auth_db)) -> RecoveryService:
    return RecoveryService(db)


async def get_two_factor_service(db: AsyncIOMotorDatabase = Depends(get_auth_db)) -> TwoFactorService:
    return TwoFactorService(db)


async def _resolve(
    credentials: HTTPAuthorizationCredentials | None,
    auth_service: AuthService,
    allow_pending_two_factor: bool,
) -> Account:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise credentials_exception

    try:
        return await auth_service.resolve_access_token(
            credentials.credentials,
            allow_pending_two_factor=allow_pending_two_factor,
        )
    except (TokenExpiredError, TokenInvalidError):
        raise credentials_exception
    except TwoFactorRequiredError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=exc.detail,
            headers={"WWW-Authenticate": "Bearer"},
        )
    except AccountInactiveError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is disabled",
        )


async def get_current_account(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    auth_service: AuthService = Depends(get_auth_service),
) -> Account:
    """
    Dependency to get the current account from an ``Authorization: Bearer`` token.

    Raises:
        HTTPException 401: Missing, invalid, expired or stale token, or a
            session that still needs its second factor
        HTTPException 403: Account is disabled
    """
    return await _resolve(credentials, auth_service, allow_pending_two_factor=False)


async def get_pending_two_factor_account(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    auth_service: AuthService = Depends(get_auth_service),
) -> Account:
    """Like get_current_account, but accepts a session awaiting its second factor."""
    return await _resolve(credentials, auth_service, allow_pending_two_factor=True)


# Type alias for cleaner route signatures
CurrentAccount = Annotated[Account, Depends(get_current_account)]
PendingTwoFactorAccount = Annotated[Account, Depends(get_pending_two_factor_account)]
