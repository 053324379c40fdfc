"""
Two-factor enrollment, TOTP checks and recovery codes.
"""
import logging
from typing import Optional

import pyotp
from motor.motor_asyncio import AsyncIOMotorDatabase

from accountguard.config import AuthPolicy, get_policy
from accountguard.core.exceptions import (
    AccountNotFoundError,
    InvalidCredentialsError,
    TwoFactorError,
)
from accountguard.core.lockout import LockoutPolicy
from accountguard.core.security import generate_recovery_codes, hash_token, verify_password
from accountguard.core.timeutils import Clock, to_timestamp, utcnow
from accountguard.models.account import Account
from accountguard.schemas.auth import TwoFactorEnrollment
from accountguard.services.account_store import AccountStore

logger = logging.getLogger(__name__)


class TwoFactorService:
    """Service for two-factor authentication material."""

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
        self.lockout = LockoutPolicy(self.store.collection, self.policy, clock=clock)

    def _new_recovery_codes(self) -> tuple[list[str], list[str]]:
        codes = generate_recovery_codes(
            count=self.policy.recovery_code_count,
            nbytes=self.policy.recovery_code_bytes,
        )
        return codes, [hash_token(code) for code in codes]

    async def enable_two_factor(self, account: Account) -> TwoFactorEnrollment:
        """
        Start 2FA enrollment with a fresh TOTP secret and recovery codes.

        2FA stays off until ``confirm_two_factor`` sees a valid code, so the
        caller's session keeps working while the authenticator is set up.
        Calling this again before confirming replaces the pending material.

        Args:
            account: Account to enroll

        Returns:
            TwoFactorEnrollment with the secret, provisioning URI and the
            plaintext recovery codes. The codes are not retrievable later.

        Raises:
            TwoFactorError: If 2FA is already enabled
        """
        if account.two_factor_enabled:
            raise TwoFactorError("Two-factor authentication is already enabled")

        secret = pyotp.random_base32()
        codes, code_hashes = self._new_recovery_codes()

        updated = await self.store.update_fields(
            account.id,
            set_fields={
                "two_factor_secret": secret,
                "two_factor_enabled": False,
                "two_factor_recovery_codes": code_hashes,
            },
        )
        if updated is None:
            raise AccountNotFoundError()

        logger.info("Two-factor enrollment started for account %s", account.id)
        return TwoFactorEnrollment(
            secret=secret,
            provisioning_uri=pyotp.TOTP(secret).provisioning_uri(
                name=account.email,
                issuer_name=self.policy.two_factor_issuer,
            ),
            recovery_codes=codes,
        )

    async def confirm_two_factor(self, account: Account, code: str) -> Account:
        """
        Turn 2FA on once a code from the pending secret checks out.

        Raises:
            TwoFactorError: Already enabled, no pending enrollment, or a wrong code
        """
        if account.two_factor_enabled:
            raise TwoFactorError("Two-factor authentication is already enabled")
        if not account.two_factor_secret:
            raise TwoFactorError("Two-factor enrollment has not been started")
        if not self._totp_matches(account.two_factor_secret, code):
            raise TwoFactorError("Invalid two-factor code")

        # Conditional on the same pending secret: a concurrent re-enroll wins
        updated = await self.store.update_fields(
            account.id,
            set_fields={"two_factor_enabled": True},
            extra_filter={
                "two_factor_secret": account.two_factor_secret,
                "two_factor_enabled": False,
            },
        )
        if updated is None:
            raise TwoFactorError("Two-factor enrollment changed, start again")

        logger.info("Two-factor enabled for account %s", account.id)
        return updated

    def _totp_matches(self, secret: str, code: str) -> bool:
        # pyotp reads naive datetimes as local time, so pass epoch seconds
        return pyotp.TOTP(secret).verify(
            code.strip(), for_time=to_timestamp(self.clock()), valid_window=1
        )

    def verify_code(self, account: Account, code: str) -> bool:
        """Check a TOTP code, allowing one step of clock drift."""
        if not account.two_factor_enabled or not account.two_factor_secret:
            return False
        return self._totp_matches(account.two_factor_secret, code)

    async def redeem_recovery_code(self, account: Account, code: str) -> bool:
        """
        Consume one recovery code.

        Returns:
            True if the code matched an unused code (it is now removed)
        """
        if not account.two_factor_enabled:
            return False
        code_hash = hash_token(code.strip().lower())
        if await self.store.pull(account.id, "two_factor_recovery_codes", code_hash):
            logger.info("Recovery code used for account %s", account.id)
            return True
        return False

    async def verify_second_factor(self, account: Account, code: str) -> bool:
        """
        Accept either a current TOTP code or an unused recovery code.

        A wrong code counts as a failed login, so guessing codes locks the
        account like guessing passwords does.
        """
        if self.verify_code(account, code) or await self.redeem_recovery_code(account, code):
            await self.lockout.reset(account.id)
            return True
        await self.lockout.record_failure(account.id)
        return False

    async def regenerate_recovery_codes(self, account: Account) -> list[str]:
        """Replace every recovery code; returns the new plaintext codes once."""
        if not account.two_factor_enabled:
            raise TwoFactorError("Two-factor authentication is not enabled")
        codes, code_hashes = self._new_recovery_codes()
        updated = await self.store.update_fields(
            account.id,
            set_fields={"two_factor_recovery_codes": code_hashes},
        )
        if updated is None:
            raise AccountNotFoundError()
        return codes

    async def disable_two_factor(self, account_id: str, password: str) -> Account:
        """
        Turn 2FA off after re-checking the password.

        Raises:
            AccountNotFoundError: Unknown account
            InvalidCredentialsError: Wrong password
        """
        account = await self.store.get_by_id(account_id)
        if account is None:
            raise AccountNotFoundError()
        if not verify_password(password, account.password_hash):
            raise InvalidCredentialsError("Password is incorrect")

        updated = await self.store.update_fields(
            account_id,
            set_fields={"two_factor_enabled": False, "two_factor_recovery_codes": []},
            unset_fields=("two_factor_secret",),
        )
        logger.info("Two-factor disabled for account %s", account_id)
        return updated
