"""
Security utilities for password hashing, JWT tokens and one-time secrets.
"""
import hashlib
import secrets
from datetime import datetime
from functools import lru_cache
from typing import Any, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from accountguard.config import AuthPolicy
from accountguard.core.exceptions import (
    CredentialError,
    TokenExpiredError,
    TokenInvalidError,
    WeakPasswordError,
)
from accountguard.core.timeutils import utcnow

BCRYPT_ROUNDS = 12
BCRYPT_MAX_BYTES = 72

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

# Password hashing context using bcrypt
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=BCRYPT_ROUNDS,
)


@lru_cache
def _context_for(rounds: int) -> CryptContext:
    if rounds == BCRYPT_ROUNDS:
        return pwd_context
    return pwd_context.copy(bcrypt__rounds=rounds)


# =============================================================================
# Passwords
# =============================================================================

def hash_password(plain_password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """
    Hash a plain password using bcrypt.

    Args:
        plain_password: The plain text password to hash
        rounds: bcrypt cost factor

    Returns:
        Hashed password string

    Raises:
        CredentialError: If the hashing backend fails
    """
    try:
        return _context_for(rounds).hash(plain_password)
    except Exception as exc:
        raise CredentialError("Password hashing failed") from exc


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a hashed password.

    The comparison is done by passlib, never by string equality. A stored
    value that is not a recognisable hash counts as a mismatch.
    """
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False


def validate_password(plain_password: str, policy: AuthPolicy) -> None:
    """Raise WeakPasswordError if the password breaks the length policy."""
    if len(plain_password) < policy.password_min_length:
        raise WeakPasswordError(
            f"Password must be at least {policy.password_min_length} characters"
        )
    if len(plain_password) > policy.password_max_length:
        raise WeakPasswordError(
            f"Password must be at most {policy.password_max_length} characters"
        )
    # bcrypt ignores everything past 72 bytes
    if len(plain_password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise WeakPasswordError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes")


def password_fields(
    plain_password: str,
    policy: AuthPolicy,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """
    Document fields to ``$set`` whenever a password is (re)hashed.

    ``password_changed_at`` is back-dated by the policy skew so a token minted
    in the same second as the change is not treated as stale.
    """
    now = now or utcnow()
    return {
        "password_hash": hash_password(plain_password, rounds=policy.bcrypt_rounds),
        "password_changed_at": now - policy.password_changed_skew,
    }


# =============================================================================
# JWT
# =============================================================================

def _require_secret(secret: Optional[str], kind: str) -> str:
    if not secret:
        raise CredentialError(f"{kind} signing secret is not configured")
    return secret


def _encode(claims: dict[str, Any], secret: str, algorithm: str) -> str:
    try:
        return jwt.encode(claims, secret, algorithm=algorithm)
    except JWTError as exc:
        raise CredentialError("Token signing failed") from exc


def create_access_token(
    account_id: str,
    role: str,
    is_verified: bool,
    two_factor_enabled: bool,
    policy: AuthPolicy,
    two_factor_verified: bool = False,
    now: Optional[datetime] = None,
) -> str:
    """
    Create a signed access token.

    Args:
        account_id: Account identifier (``sub`` claim)
        role: Account role
        is_verified: Whether the email address is confirmed
        two_factor_enabled: Whether the account has 2FA turned on
        policy: Supplies the secret, algorithm, issuer and lifetime
        two_factor_verified: True only after a second factor was checked
        now: Issue time (defaults to the current time)

    Returns:
        Encoded JWT token string

    Raises:
        CredentialError: If no access secret is configured
    """
    secret = _require_secret(policy.access_secret, "Access token")
    now = now or utcnow()

    payload = {
        "sub": account_id,
        "role": role,
        "is_verified": is_verified,
        "two_factor_enabled": two_factor_enabled,
        "two_factor_verified": two_factor_verified,
        "type": ACCESS_TOKEN_TYPE,
        "iss": policy.jwt_issuer,
        "iat": now,
        "exp": now + policy.access_token_ttl,
    }

    return _encode(payload, secret, policy.jwt_algorithm)


def create_refresh_token(
    account_id: str,
    policy: AuthPolicy,
    now: Optional[datetime] = None,
) -> str:
    """Create a refresh token carrying only the account id."""
    secret = _require_secret(policy.refresh_secret, "Refresh token")
    now = now or utcnow()

    payload = {
        "sub": account_id,
        "type": REFRESH_TOKEN_TYPE,
        "iss": policy.jwt_issuer,
        "iat": now,
        "exp": now + policy.refresh_token_ttl,
    }

    return _encode(payload, secret, policy.jwt_algorithm)


def _decode(
    token: str,
    secret: Optional[str],
    expected_type: str,
    policy: AuthPolicy,
) -> dict[str, Any]:
    secret = _require_secret(secret, expected_type.capitalize())
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[policy.jwt_algorithm],
            issuer=policy.jwt_issuer,
        )
    except ExpiredSignatureError as exc:
        raise TokenExpiredError() from exc
    except JWTError as exc:
        raise TokenInvalidError() from exc

    if payload.get("type") != expected_type or not payload.get("sub"):
        raise TokenInvalidError()
    return payload


def decode_access_token(token: str, policy: AuthPolicy) -> dict[str, Any]:
    """
    Decode and validate an access token.

    Returns:
        Decoded payload with keys: sub, role, is_verified, two_factor_enabled,
        two_factor_verified, type, iss, iat, exp

    Raises:
        TokenExpiredError: If the token is past its ``exp``
        TokenInvalidError: If the signature, issuer or type is wrong
    """
    return _decode(token, policy.access_secret, ACCESS_TOKEN_TYPE, policy)


def decode_refresh_token(token: str, policy: AuthPolicy) -> dict[str, Any]:
    """Decode and validate a refresh token (same errors as access tokens)."""
    return _decode(token, policy.refresh_secret, REFRESH_TOKEN_TYPE, policy)


# =============================================================================
# One-time secrets
# =============================================================================

def hash_token(value: str) -> str:
    """SHA-256 hex digest used to store reset/verification/recovery values."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def generate_one_time_secret(nbytes: int = 32) -> str:
    """Random hex value handed to the user; only its hash is persisted."""
    return secrets.token_hex(nbytes)


def generate_recovery_codes(count: int = 10, nbytes: int = 4) -> list[str]:
    """Return ``count`` distinct random hex codes."""
    codes: list[str] = []
    seen: set[str] = set()
    while len(codes) < count:
        code = secrets.token_hex(nbytes)
        if code in seen:
            continue
        seen.add(code)
        codes.append(code)
    return codes
