"""
Dependencies for dependency injection in routes.
"""
from accountguard.dependencies.auth import (
    CurrentAccount,
    PendingTwoFactorAccount,
    get_auth_db,
    get_auth_service,
    get_current_account,
    get_pending_two_factor_account,
    get_recovery_service,
    get_two_factor_service,
)
from accountguard.dependencies.roles import require_admin, require_roles

__all__ = [
    "CurrentAccount",
    "PendingTwoFactorAccount",
    "get_auth_db",
    "get_auth_service",
    "get_current_account",
    "get_pending_two_factor_account",
    "get_recovery_service",
    "get_two_factor_service",
    "require_admin",
    "require_roles",
]
