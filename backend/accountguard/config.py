"""
Application configuration loaded from environment variables.
"""
from datetime import timedelta
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings from environment variables."""
    
    # MongoDB
    mongo_uri: str = "mongodb://mongodb:27017"
    
    # JWT Configuration (secrets have no default: issuance fails without them)
    jwt_access_secret: Optional[str] = None
    jwt_refresh_secret: Optional[str] = None
    jwt_algorithm: str = "HS256"
    jwt_issuer: str = "learnhub"
    jwt_access_token_expire_minutes: int = 30
    jwt_refresh_token_expire_days: int = 7
    
    # Lockout
    max_login_attempts: int = 5
    lock_duration_minutes: int = 30
    
    # One-time secrets
    password_reset_expire_minutes: int = 10
    email_verification_expire_hours: int = 24
    
    # Credentials
    bcrypt_rounds: int = 12
    password_min_length: int = 8
    password_max_length: int = 72
    
    # Two-factor
    recovery_code_count: int = 10
    two_factor_issuer: str = "LearnHub"
    
    log_level: str = "INFO"
    
    class Config:
        env_file = ".env"
        extra = "ignore"


class AuthPolicy(BaseModel):
    """
    Thresholds and lifetimes used by the account security services.

    Services receive an instance at construction instead of reading module
    globals, so tests can shrink the lock window or bcrypt cost.
    """
    model_config = ConfigDict(frozen=True)

    max_login_attempts: int = 5
    lock_duration: timedelta = timedelta(minutes=30)
    access_token_ttl: timedelta = timedelta(minutes=30)
    refresh_token_ttl: timedelta = timedelta(days=7)
    password_reset_ttl: timedelta = timedelta(minutes=10)
    email_verification_ttl: timedelta = timedelta(hours=24)
    password_changed_skew: timedelta = timedelta(seconds=1)
    bcrypt_rounds: int = 12
    password_min_length: int = 8
    password_max_length: int = 72
    recovery_code_count: int = 10
    recovery_code_bytes: int = 4
    one_time_secret_bytes: int = 32

    access_secret: Optional[str] = None
    refresh_secret: Optional[str] = None
    jwt_algorithm: str = "HS256"
    jwt_issuer: str = "learnhub"
    two_factor_issuer: str = "LearnHub"

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuthPolicy":
        return cls(
            max_login_attempts=settings.max_login_attempts,
            lock_duration=timedelta(minutes=settings.lock_duration_minutes),
            access_token_ttl=timedelta(minutes=settings.jwt_access_token_expire_minutes),
            refresh_token_ttl=timedelta(days=settings.jwt_refresh_token_expire_days),
            password_reset_ttl=timedelta(minutes=settings.password_reset_expire_minutes),
            email_verification_ttl=timedelta(hours=settings.email_verification_expire_hours),
            bcrypt_rounds=settings.bcrypt_rounds,
            password_min_length=settings.password_min_length,
            password_max_length=settings.password_max_length,
            recovery_code_count=settings.recovery_code_count,
            access_secret=settings.jwt_access_secret,
            refresh_secret=settings.jwt_refresh_secret,
            jwt_algorithm=settings.jwt_algorithm,
            jwt_issuer=settings.jwt_issuer,
            two_factor_issuer=settings.two_factor_issuer,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


@lru_cache
def get_policy() -> AuthPolicy:
    """Get the policy derived from the cached settings."""
    return AuthPolicy.from_settings(get_settings())
