"""
Core module - Security, lockout, errors and other core utilities.
"""
from accountguard.core.security import (
    hash_password,
    verify_password,
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
    hash_token,
    generate_one_time_secret,
    generate_recovery_codes,
)
from accountguard.core.lockout import LockoutPolicy, LockoutState, unlocked_filter

__all__ = [
    "hash_password",
    "verify_password",
    "create_access_token",
    "create_refresh_token",
    "decode_access_token",
    "decode_refresh_token",
    "hash_token",
    "generate_one_time_secret",
    "generate_recovery_codes",
    "LockoutPolicy",
    "LockoutState",
    "unlocked_filter",
]
