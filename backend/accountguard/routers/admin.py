"""
Administrator endpoints for account management.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from accountguard.dependencies.auth import get_auth_service
from accountguard.dependencies.roles import require_admin
from accountguard.models.account import Account, AccountRole
from accountguard.schemas.account import AccountPublic, public_view
from accountguard.services.auth_service import AuthService

router = APIRouter(prefix="/admin/accounts", tags=["Admin"])


@router.get(
    "",
    response_model=list[AccountPublic],
    summary="List accounts that are not currently locked",
)
async def list_accounts(
    role: Optional[AccountRole] = Query(None, description="Filter by role"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    admin: Account = Depends(require_admin()),
    auth_service: AuthService = Depends(get_auth_service),
):
    accounts = await auth_service.list_accounts(role=role, skip=skip, limit=limit)
    return [public_view(account) for account in accounts]


@router.post(
    "/{account_id}/unlock",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Clear a login lock",
)
async def unlock_account(
    account_id: str,
    admin: Account = Depends(require_admin()),
    auth_service: AuthService = Depends(get_auth_service),
):
    await auth_service.unlock_account(account_id)


@router.post(
    "/{account_id}/deactivate",
    response_model=AccountPublic,
    summary="Disable an account",
)
async def deactivate_account(
    account_id: str,
    admin: Account = Depends(require_admin()),
    auth_service: AuthService = Depends(get_auth_service),
):
    return public_view(await auth_service.set_active(account_id, False))


@router.post(
    "/{account_id}/activate",
    response_model=AccountPublic,
    summary="Re-enable an account",
)
async def activate_account(
    account_id: str,
    admin: Account = Depends(require_admin()),
    auth_service: AuthService = Depends(get_auth_service),
):
    return public_view(await auth_service.set_active(account_id, True))
