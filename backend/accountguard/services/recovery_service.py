"""
Password reset and email verification with one-time secrets.

The plaintext secret is returned to the caller (who emails it) and only its
SHA-256 digest is stored. Consuming a secret unsets it in the same
conditional update that applies its effect, so it works exactly once.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from accountguard.config import AuthPolicy, get_policy
from accountguard.core.exceptions import AccountNotFoundError, TokenExpiredError, TokenInvalidError
from accountguard.core.security import (
    generate_one_time_secret,
    hash_token,
    password_fields,
    validate_password,
)
from accountguard.core.timeutils import Clock, utcnow
from accountguard.models.account import Account
from accountguard.services.account_store import AccountStore

logger = logging.getLogger(__name__)

RESET_FIELDS = ("password_reset_token", "password_reset_expires")
VERIFICATION_FIELDS = ("email_verification_token", "email_verification_expires")


class RecoveryService:
    """Issues and consumes reset and verification secrets."""

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        policy: Optional[AuthPolicy] = None,
        clock: Clock = utcnow,
    ):
        self.db = db
        self.policy = policy or get_policy()
        self.clock = clock
        self.store = AccountStore(db, clock=clock)

    async def _issue(self, account: Account, fields: tuple[str, str], ttl: timedelta) -> str:
        token = generate_one_time_secret(self.policy.one_time_secret_bytes)
        token_field, expires_field = fields
        updated = await self.store.update_fields(
            account.id,
            set_fields={
                token_field: hash_token(token),
                expires_field: self.clock() + ttl,
            },
        )
        if updated is None:
            raise AccountNotFoundError()
        return token

    async def _consume(
        self,
        token: str,
        fields: tuple[str, str],
        set_fields: dict[str, Any],
        unset_fields: tuple[str, ...] = (),
    ) -> Account:
        token_field, expires_field = fields
        token_hash = hash_token(token)

        account = await self.store.find_one({token_field: token_hash}, include_locked=True)
        if account is None:
            raise TokenInvalidError()

        expires: Optional[datetime] = getattr(account, expires_field)
        if expires is None or expires <= self.clock():
            raise TokenExpiredError()

        # Conditional on the hash still being present: a concurrent replay loses
        updated = await self.store.update_fields(
            account.id,
            set_fields=set_fields,
            unset_fields=fields + unset_fields,
            extra_filter={token_field: token_hash},
        )
        if updated is None:
            raise TokenInvalidError()
        return updated

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------
    async def begin_password_reset(self, account: Account) -> str:
        """
        Create a password reset token valid for the policy's reset TTL.

        Returns:
            The plaintext token; the caller is responsible for emailing it
        """
        token = await self._issue(account, RESET_FIELDS, self.policy.password_reset_ttl)
        logger.info("Password reset requested for account %s", account.id)
        return token

    async def begin_password_reset_for_email(self, email: str) -> Optional[str]:
        """Like begin_password_reset, but returns None for unknown emails."""
        account = await self.store.get_by_email(email, include_locked=True)
        if account is None:
            return None
        return await self.begin_password_reset(account)

    async def complete_password_reset(self, token: str, new_password: str) -> bool:
        """
        Set a new password using a reset token.

        A successful reset also clears the failed-login counter and any lock.

        Raises:
            TokenInvalidError: Unknown or already used token
            TokenExpiredError: Token past its expiry (password unchanged)
            WeakPasswordError: New password breaks the policy
        """
        validate_password(new_password, self.policy)
        now = self.clock()
        set_fields = {
            **password_fields(new_password, self.policy, now),
            "login_attempts": 0,
        }
        account = await self._consume(
            token, RESET_FIELDS, set_fields, unset_fields=("lock_until",)
        )
        logger.info("Password reset completed for account %s", account.id)
        return True

    # ------------------------------------------------------------------
    # Email verification
    # ------------------------------------------------------------------
    async def begin_email_verification(self, account: Account) -> str:
        """Create an email verification token valid for the verification TTL."""
        token = await self._issue(account, VERIFICATION_FIELDS, self.policy.email_verification_ttl)
        logger.info("Email verification requested for account %s", account.id)
        return token

    async def complete_email_verification(self, token: str) -> bool:
        """
        Mark the account's email as verified.

        Raises:
            TokenInvalidError: Unknown or already used token
            TokenExpiredError: Token past its expiry
        """
        account = await self._consume(token, VERIFICATION_FIELDS, {"is_verified": True})
        logger.info("Email verified for account %s", account.id)
        return True
