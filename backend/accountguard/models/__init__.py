"""
Pydantic models for database documents and derived account state.
"""
from accountguard.models.account import (
    Account,
    AccountRole,
    AccountStatus,
    account_status,
    changed_password_after,
    is_locked,
    lock_remaining_minutes,
    normalize_email,
)

__all__ = [
    "Account",
    "AccountRole",
    "AccountStatus",
    "account_status",
    "changed_password_after",
    "is_locked",
    "lock_remaining_minutes",
    "normalize_email",
]
