"""
Authentication router for login, registration, token refresh, password
recovery and two-factor enrollment.

Errors raised by the services are typed and turned into responses by the
handlers in ``accountguard.routers.errors``.
"""
from fastapi import APIRouter, Depends, HTTPException, status

from accountguard.core.exceptions import InvalidCredentialsError
from accountguard.dependencies.auth import (
    CurrentAccount,
    PendingTwoFactorAccount,
    get_auth_service,
    get_recovery_service,
    get_two_factor_service,
)
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
from accountguard.services.auth_service import AuthService
from accountguard.services.recovery_service import RecoveryService
from accountguard.services.two_factor_service import TwoFactorService

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/register",
    response_model=AccountPublic,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account",
)
async def register(
    body: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Register a new account.

    - **email**: Valid email address (must be unique, case-insensitive)
    - **password**: Password (minimum 8 characters)
    - **password_confirm**: Must match password
    """
    if not body.passwords_match():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Passwords do not match",
        )
    account = await auth_service.register_account(body.email, body.password)
    return public_view(account)


@router.post(
    "/login",
    response_model=AuthResult,
    summary="Login and get access and refresh tokens",
)
async def login(
    body: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Authenticate with email and password.

    When `requires_two_factor` is true the access token is only accepted by
    `POST /auth/login/2fa`.

    The account is locked after 5 consecutive failures.
    """
    return await auth_service.authenticate(body.email, body.password)


@router.post(
    "/login/2fa",
    response_model=AuthResult,
    summary="Complete a login with a TOTP or recovery code",
)
async def login_two_factor(
    body: TwoFactorCodeRequest,
    account: PendingTwoFactorAccount,
    auth_service: AuthService = Depends(get_auth_service),
    two_factor_service: TwoFactorService = Depends(get_two_factor_service),
):
    """
    Requires the access token returned by `/auth/login` as a bearer token.

    Wrong codes count toward the lockout; once locked the pending token
    stops resolving.
    """
    if not await two_factor_service.verify_second_factor(account, body.code):
        raise InvalidCredentialsError("Invalid two-factor code")
    return auth_service.complete_two_factor_login(account)


@router.post(
    "/refresh",
    response_model=AuthResult,
    summary="Exchange a refresh token for new tokens",
)
async def refresh_token(
    body: RefreshRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    return await auth_service.refresh_access_token(body.refresh_token)


@router.get(
    "/me",
    response_model=AccountPublic,
    summary="Get current account info",
)
async def get_current_account_info(current_account: CurrentAccount):
    return public_view(current_account)


@router.post(
    "/password/change",
    response_model=MessageResponse,
    summary="Change password",
)
async def change_password(
    body: ChangePasswordRequest,
    current_account: CurrentAccount,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Tokens issued before the change stop working."""
    await auth_service.change_password(
        current_account.id,
        body.current_password,
        body.new_password,
    )
    return {"message": "Password changed successfully"}


@router.post(
    "/password/forgot",
    response_model=MessageResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Request a password reset",
)
async def forgot_password(
    body: ForgotPasswordRequest,
    recovery_service: RecoveryService = Depends(get_recovery_service),
):
    """
    Always answers 202 so the endpoint cannot be used to enumerate accounts.

    Delivering the token by email is handled by the notification service.
    """
    await recovery_service.begin_password_reset_for_email(body.email)
    return {"message": "If the account exists, a reset link has been sent"}


@router.post(
    "/password/reset",
    response_model=MessageResponse,
    summary="Reset password with a reset token",
)
async def reset_password(
    body: ResetPasswordRequest,
    recovery_service: RecoveryService = Depends(get_recovery_service),
):
    await recovery_service.complete_password_reset(body.token, body.new_password)
    return {"message": "Password has been reset"}


@router.post(
    "/email/verify/request",
    response_model=MessageResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Send a new email verification token",
)
async def request_email_verification(
    current_account: CurrentAccount,
    recovery_service: RecoveryService = Depends(get_recovery_service),
):
    if current_account.is_verified:
        return {"message": "Email already verified"}
    await recovery_service.begin_email_verification(current_account)
    return {"message": "Verification email sent"}


@router.post(
    "/email/verify",
    response_model=MessageResponse,
    summary="Confirm an email address",
)
async def verify_email(
    body: VerifyEmailRequest,
    recovery_service: RecoveryService = Depends(get_recovery_service),
):
    await recovery_service.complete_email_verification(body.token)
    return {"message": "Email verified"}


@router.post(
    "/2fa/enable",
    response_model=TwoFactorEnrollment,
    summary="Enable two-factor authentication",
)
async def enable_two_factor(
    current_account: CurrentAccount,
    two_factor_service: TwoFactorService = Depends(get_two_factor_service),
):
    """
    Start enrollment. Two-factor stays off until `POST /auth/2fa/verify`.

    The recovery codes in the response are shown only once.
    """
    return await two_factor_service.enable_two_factor(current_account)


@router.post(
    "/2fa/verify",
    response_model=AuthResult,
    summary="Confirm two-factor enrollment with a TOTP code",
)
async def confirm_two_factor(
    body: TwoFactorCodeRequest,
    current_account: CurrentAccount,
    auth_service: AuthService = Depends(get_auth_service),
    two_factor_service: TwoFactorService = Depends(get_two_factor_service),
):
    """
    Turns two-factor on and returns a verified token pair, since the code
    just proved the second factor.
    """
    account = await two_factor_service.confirm_two_factor(current_account, body.code)
    return auth_service.complete_two_factor_login(account)


@router.post(
    "/2fa/disable",
    response_model=MessageResponse,
    summary="Disable two-factor authentication",
)
async def disable_two_factor(
    body: DisableTwoFactorRequest,
    current_account: CurrentAccount,
    two_factor_service: TwoFactorService = Depends(get_two_factor_service),
):
    await two_factor_service.disable_two_factor(current_account.id, body.password)
    return {"message": "Two-factor authentication disabled"}
