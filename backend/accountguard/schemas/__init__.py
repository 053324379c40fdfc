"""
Request/response schemas.
"""
from accountguard.schemas.account import AccountPublic, public_view
from accountguard.schemas.auth import (
    AuthResult,
    ChangePasswordRequest,
    DisableTwoFactorRequest,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TwoFactorCodeRequest,
    TwoFactorEnrollment,
    VerifyEmailRequest,
)

__all__ = [
    "AccountPublic",
    "AuthResult",
    "ChangePasswordRequest",
    "DisableTwoFactorRequest",
    "ForgotPasswordRequest",
    "LoginRequest",
    "MessageResponse",
    "RefreshRequest",
    "RegisterRequest",
    "ResetPasswordRequest",
    "TwoFactorCodeRequest",
    "TwoFactorEnrollment",
    "VerifyEmailRequest",
    "public_view",
]
