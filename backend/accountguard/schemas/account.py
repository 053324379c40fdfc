"""
Account response schemas (never include secrets).
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from accountguard.models.account import Account, AccountRole


class AccountPublic(BaseModel):
    """Fields of an account that may leave the service."""
    id: str = Field(..., description="Account ID")
    email: EmailStr = Field(..., description="Account email")
    role: AccountRole = Field(..., description="Account role")
    is_verified: bool = Field(..., description="Email address confirmed")
    is_active: bool = Field(..., description="Account enabled")
    two_factor_enabled: bool = Field(..., description="Two-factor authentication on")
    last_login: Optional[datetime] = Field(None, description="Last successful login")
    created_at: datetime = Field(..., description="Account creation timestamp")


PUBLIC_FIELDS = tuple(AccountPublic.model_fields)


def public_view(account: Account) -> AccountPublic:
    """Project an account onto the whitelisted public fields."""
    data = account.model_dump(include=set(PUBLIC_FIELDS))
    return AccountPublic(**data)
