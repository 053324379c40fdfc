"""
Account model for the authentication database, plus the pure functions
that derive lock and password state from it.
"""
import math
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, EmailStr, Field

from accountguard.core.timeutils import to_timestamp, utcnow


class AccountRole(str, Enum):
    """Account role levels."""
    USER = "user"
    ADMIN = "admin"
    MODERATOR = "moderator"
    EDITOR = "editor"
    API = "api"


class AccountStatus(str, Enum):
    """Derived account status."""
    ACTIVE = "active"
    LOCKED = "locked"
    INACTIVE = "inactive"
    UNVERIFIED = "unverified"


class Account(BaseModel):
    """
    Account document model for MongoDB auth_db.accounts collection.
    """
    id: Optional[str] = Field(None, alias="_id", description="MongoDB ObjectId as string")
    email: EmailStr = Field(..., description="Unique, lower-cased email address")
    password_hash: str = Field(..., description="Bcrypt hashed password")
    role: AccountRole = Field(default=AccountRole.USER, description="Account role")
    is_verified: bool = Field(default=False, description="Email address confirmed")
    is_active: bool = Field(default=True, description="False once deactivated by an admin")
    last_login: Optional[datetime] = None
    login_attempts: int = Field(default=0, ge=0, description="Consecutive failed logins")
    lock_until: Optional[datetime] = Field(None, description="Account locked until this timestamp")
    password_changed_at: Optional[datetime] = None

    password_reset_token: Optional[str] = Field(None, description="SHA-256 of the reset token")
    password_reset_expires: Optional[datetime] = None
    email_verification_token: Optional[str] = Field(None, description="SHA-256 of the verification token")
    email_verification_expires: Optional[datetime] = None

    two_factor_secret: Optional[str] = None
    two_factor_enabled: bool = False
    two_factor_recovery_codes: list[str] = Field(
        default_factory=list,
        description="SHA-256 hashes of unused recovery codes",
    )

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    class Config:
        populate_by_name = True
        use_enum_values = True


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_locked(account: Account, now: Optional[datetime] = None) -> bool:
    """True while ``lock_until`` is set and still in the future."""
    if account.lock_until is None:
        return False
    return account.lock_until > (now or utcnow())


def lock_remaining_minutes(account: Account, now: Optional[datetime] = None) -> int:
    """Whole minutes left on the lock, rounded up; 0 if not locked."""
    now = now or utcnow()
    if not is_locked(account, now):
        return 0
    return math.ceil((account.lock_until - now).total_seconds() / 60)


def account_status(account: Account, now: Optional[datetime] = None) -> AccountStatus:
    if not account.is_active:
        return AccountStatus.INACTIVE
    if is_locked(account, now):
        return AccountStatus.LOCKED
    if not account.is_verified:
        return AccountStatus.UNVERIFIED
    return AccountStatus.ACTIVE


def changed_password_after(
    account: Account,
    token_issued_at: Union[int, float, datetime],
) -> bool:
    """
    True if the password was changed after a token with this ``iat`` was issued.

    Compared at whole-second resolution, like the JWT ``iat`` claim.
    """
    if account.password_changed_at is None:
        return False
    if isinstance(token_issued_at, datetime):
        token_issued_at = to_timestamp(token_issued_at)
    return int(token_issued_at) < to_timestamp(account.password_changed_at)
