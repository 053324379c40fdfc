"""
Authentication request/response schemas.
"""
from pydantic import BaseModel, EmailStr, Field

from accountguard.schemas.account import AccountPublic


class LoginRequest(BaseModel):
    """Login request body."""
    email: EmailStr = Field(..., description="Account email address")
    password: str = Field(..., min_length=1, description="Account password")


class AuthResult(BaseModel):
    """Outcome of a successful credential check or refresh."""
    account: AccountPublic
    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Access token lifetime in seconds")
    requires_two_factor: bool = Field(
        default=False,
        description="True when a second factor must be checked before full access",
    )


class RegisterRequest(BaseModel):
    """Registration request body."""
    email: EmailStr = Field(..., description="Account email address")
    password: str = Field(..., description="Account password")
    password_confirm: str = Field(..., description="Password confirmation")

    def passwords_match(self) -> bool:
        """Check if password and confirmation match."""
        return self.password == self.password_confirm


class TwoFactorCodeRequest(BaseModel):
    """A TOTP code, or a recovery code where one is accepted."""
    code: str = Field(..., min_length=6, max_length=16)


class RefreshRequest(BaseModel):
    refresh_token: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str


class VerifyEmailRequest(BaseModel):
    token: str


class DisableTwoFactorRequest(BaseModel):
    password: str


class TwoFactorEnrollment(BaseModel):
    """Returned exactly once when 2FA is turned on."""
    secret: str = Field(..., description="Base32 TOTP secret")
    provisioning_uri: str = Field(..., description="otpauth:// URI for authenticator apps")
    recovery_codes: list[str] = Field(..., description="Plaintext recovery codes, shown once")


class MessageResponse(BaseModel):
    message: str
