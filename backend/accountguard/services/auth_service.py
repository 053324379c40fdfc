"""
Authentication service: registration, login, token issuance and
password changes.
"""
import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from accountguard.config import AuthPolicy, get_policy
from accountguard.core.exceptions import (
    AccountInactiveError,
    AccountLockedError,
    AccountNotFoundError,
    EmailAlreadyRegisteredError,
    InvalidCredentialsError,
    TokenInvalidError,
    TwoFactorRequiredError,
)
from accountguard.core.lockout import LockoutPolicy
from accountguard.core.security import (
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
    password_fields,
    validate_password,
    verify_password,
)
from accountguard.core.timeutils import Clock, utcnow
from accountguard.models.account import (
    Account,
    AccountRole,
    changed_password_after,
    is_locked,
    lock_remaining_minutes,
    normalize_email,
)
from accountguard.schemas.account import public_view
from accountguard.schemas.auth import AuthResult
from accountguard.services.account_store import AccountStore

logger = logging.getLogger(__name__)


class AuthService:
    """Service for authentication operations."""

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        policy: Optional[AuthPolicy] = None,
        clock: Clock = utcnow,
    ):
        """Initialize with auth database and the security policy."""
        self.db = db
        self.policy = policy or get_policy()
        self.clock = clock
        self.store = AccountStore(db, clock=clock)
        self.lockout = LockoutPolicy(self.store.collection, self.policy, clock=clock)

    async def register_account(
        self,
        email: str,
        password: str,
        role: AccountRole = AccountRole.USER,
    ) -> Account:
        """
        Register a new account.

        Args:
            email: Email address (stored lower-cased)
            password: Plain password, hashed before it is stored
            role: Initial role

        Returns:
            The stored Account

        Raises:
            WeakPasswordError: If the password breaks the length policy
            EmailAlreadyRegisteredError: If the email exists
        """
        email = normalize_email(email)
        validate_password(password, self.policy)

        if await self.store.get_by_email(email, include_locked=True):
            raise EmailAlreadyRegisteredError()

        now = self.clock()
        account = Account(
            email=email,
            role=role,
            created_at=now,
            updated_at=now,
            **password_fields(password, self.policy, now),
        )

        try:
            account = await self.store.insert(account)
        except DuplicateKeyError as exc:
            raise EmailAlreadyRegisteredError() from exc

        logger.info("Registered account %s with role %s", account.id, account.role)
        return account

    async def authenticate(self, email: str, password: str) -> AuthResult:
        """
        Check credentials and issue an access/refresh token pair.

        The lock is checked before the password so a locked account never
        costs a bcrypt comparison. A disabled account is only reported once
        the password matched.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password
            AccountLockedError: Too many recent failures
            AccountInactiveError: Account disabled by an administrator
            CredentialError: Signing secrets are not configured
        """
        account = await self.store.get_by_email(email, include_locked=True)
        if account is None:
            raise InvalidCredentialsError()

        now = self.clock()
        if is_locked(account, now):
            raise AccountLockedError(lock_remaining_minutes(account, now))

        if not verify_password(password, account.password_hash):
            await self.lockout.record_failure(account.id)
            raise InvalidCredentialsError()

        if not account.is_active:
            raise AccountInactiveError()

        if not await self.lockout.reset(account.id, last_login=now):
            # Locked by a concurrent failure after we read the account
            await self._raise_locked(account.id)
        account = account.model_copy(
            update={"login_attempts": 0, "lock_until": None, "last_login": now}
        )

        logger.info("Account %s authenticated", account.id)
        return self._auth_result(account, two_factor_verified=False, now=now)

    async def _raise_locked(self, account_id: str) -> None:
        account = await self.store.get_by_id(account_id, include_locked=True)
        if account is None:
            raise InvalidCredentialsError()
        raise AccountLockedError(max(lock_remaining_minutes(account, self.clock()), 1))

    def issue_access_token(self, account: Account, two_factor_verified: bool = False) -> str:
        return create_access_token(
            account_id=account.id,
            role=account.role,
            is_verified=account.is_verified,
            two_factor_enabled=account.two_factor_enabled,
            policy=self.policy,
            two_factor_verified=two_factor_verified,
            now=self.clock(),
        )

    def issue_verified_access_token(self, account: Account) -> str:
        """Access token for an account whose second factor was just checked."""
        return self.issue_access_token(account, two_factor_verified=True)

    def _auth_result(self, account: Account, two_factor_verified: bool, now) -> AuthResult:
        return AuthResult(
            account=public_view(account),
            access_token=self.issue_access_token(account, two_factor_verified),
            refresh_token=create_refresh_token(account.id, self.policy, now=now),
            expires_in=int(self.policy.access_token_ttl.total_seconds()),
            requires_two_factor=account.two_factor_enabled and not two_factor_verified,
        )

    def complete_two_factor_login(self, account: Account) -> AuthResult:
        """Token pair carrying ``two_factor_verified=True``."""
        return self._auth_result(account, two_factor_verified=True, now=self.clock())

    async def refresh_access_token(self, refresh_token: str) -> AuthResult:
        """
        Exchange a refresh token for a new token pair.

        Raises:
            TokenExpiredError / TokenInvalidError: Bad or stale refresh token
            AccountLockedError: Account is locked
            AccountInactiveError: Account is disabled
        """
        payload = decode_refresh_token(refresh_token, self.policy)
        account = await self.store.get_by_id(payload["sub"], include_locked=True)
        if account is None:
            raise TokenInvalidError()

        now = self.clock()
        if is_locked(account, now):
            raise AccountLockedError(lock_remaining_minutes(account, now))
        if not account.is_active:
            raise AccountInactiveError()
        if changed_password_after(account, payload["iat"]):
            raise TokenInvalidError("Password changed after this token was issued")

        # A refresh never upgrades an unverified session
        return self._auth_result(account, two_factor_verified=False, now=now)

    async def resolve_access_token(
        self,
        token: str,
        allow_pending_two_factor: bool = False,
    ) -> Account:
        """
        Return the account an access token belongs to.

        Args:
            token: Encoded access token
            allow_pending_two_factor: Accept a token that has not passed the
                second factor yet (only the 2FA completion step does)

        Raises:
            TokenExpiredError / TokenInvalidError: Bad token, unknown or locked
                account, or a token older than the last password change
            AccountInactiveError: Account is disabled
            TwoFactorRequiredError: 2FA is on and the token is not verified
        """
        payload = decode_access_token(token, self.policy)
        account = await self.store.get_by_id(payload["sub"])
        if account is None:
            raise TokenInvalidError()
        if not account.is_active:
            raise AccountInactiveError()
        if changed_password_after(account, payload["iat"]):
            raise TokenInvalidError("Password changed after this token was issued")
        if (
            account.two_factor_enabled
            and not payload.get("two_factor_verified")
            and not allow_pending_two_factor
        ):
            raise TwoFactorRequiredError()
        return account

    async def change_password(
        self,
        account_id: str,
        current_password: str,
        new_password: str,
    ) -> Account:
        """
        Change the password after verifying the current one.

        Tokens issued before the change stop resolving because
        ``password_changed_at`` moves forward.

        Raises:
            AccountNotFoundError: Unknown account
            InvalidCredentialsError: Current password is incorrect
            WeakPasswordError: New password breaks the policy
        """
        account = await self.store.get_by_id(account_id, include_locked=True)
        if account is None:
            raise AccountNotFoundError()

        if not verify_password(current_password, account.password_hash):
            raise InvalidCredentialsError("Current password is incorrect")

        validate_password(new_password, self.policy)
        updated = await self.store.update_fields(
            account_id,
            set_fields=password_fields(new_password, self.policy, self.clock()),
        )
        if updated is None:
            raise AccountNotFoundError()

        logger.info("Password changed for account %s", account_id)
        return updated

    async def get_account_by_id(self, account_id: str) -> Optional[Account]:
        return await self.store.get_by_id(account_id)

    async def get_account_by_email(self, email: str) -> Optional[Account]:
        return await self.store.get_by_email(email)

    async def list_accounts(
        self,
        role: Optional[AccountRole] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Account]:
        """List accounts that are not currently locked, optionally by role."""
        query = {"role": AccountRole(role).value} if role else {}
        return await self.store.find_many(query, skip=skip, limit=limit)

    async def set_active(self, account_id: str, is_active: bool) -> Account:
        """Enable or disable an account (administrator action)."""
        updated = await self.store.update_fields(account_id, set_fields={"is_active": is_active})
        if updated is None:
            raise AccountNotFoundError()
        logger.info("Account %s is_active set to %s", account_id, is_active)
        return updated

    async def unlock_account(self, account_id: str) -> None:
        account = await self.store.get_by_id(account_id, include_locked=True)
        if account is None:
            raise AccountNotFoundError()
        await self.lockout.unlock(account.id)
