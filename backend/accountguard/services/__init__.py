"""
Service layer for account security.
"""
from accountguard.services.account_store import AccountStore
from accountguard.services.auth_service import AuthService
from accountguard.services.recovery_service import RecoveryService
from accountguard.services.two_factor_service import TwoFactorService

__all__ = [
    "AccountStore",
    "AuthService",
    "RecoveryService",
    "TwoFactorService",
]
