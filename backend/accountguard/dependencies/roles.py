"""
Role-based access control dependencies.
"""
from typing import Callable

from fastapi import Depends, HTTPException, status

from accountguard.dependencies.auth import get_current_account
from accountguard.models.account import Account, AccountRole


def require_roles(*allowed_roles: AccountRole) -> Callable:
    """
    Dependency factory for role-based access control.
    
    Usage:
        @router.get("/admin-only")
        async def admin_route(account: Account = Depends(require_roles(AccountRole.ADMIN))):
            ...
    """
    allowed = {AccountRole(role) for role in allowed_roles}

    async def role_checker(
        current_account: Account = Depends(get_current_account)
    ) -> Account:
        if AccountRole(current_account.role) not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_account
    
    return role_checker


def require_admin() -> Callable:
    """Shortcut dependency for admin-only routes."""
    return require_roles(AccountRole.ADMIN)
