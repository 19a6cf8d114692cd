"""Configuration settings for the account service."""

import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./accounts.db")

    # Session tokens
    TOKEN_LENGTH: int = int(os.getenv("TOKEN_LENGTH", "32"))
    SECRET_LENGTH: int = int(os.getenv("SECRET_LENGTH", "16"))
    TOKEN_TTL_DAYS: int = int(os.getenv("TOKEN_TTL_DAYS", "7"))
    TOKEN_SWEEP_INTERVAL_MINUTES: int = int(os.getenv("TOKEN_SWEEP_INTERVAL_MINUTES", "60"))
    TOKEN_SWEEP_ENABLED: bool = os.getenv("TOKEN_SWEEP_ENABLED", "true").lower() == "true"

    # Passwords
    BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "10"))

    # Mail
    SMTP_HOST: str = os.getenv("SMTP_HOST", "localhost")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", "8587"))
    SMTP_USERNAME: str = os.getenv("SMTP_USERNAME", "")
    SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
    SMTP_USE_TLS: bool = os.getenv("SMTP_USE_TLS", "false").lower() == "true"
    SMTP_TIMEOUT_SECONDS: float = float(os.getenv("SMTP_TIMEOUT_SECONDS", "10"))
    MAIL_FROM: str = os.getenv("MAIL_FROM", "My App <info@my-app.com>")

    # Profile images
    UPLOAD_DIR: str = os.getenv("UPLOAD_DIR", "uploads")
    PROFILE_DIR: str = os.getenv("PROFILE_DIR", "profile")
    MAX_IMAGE_SIZE_MB: int = int(os.getenv("MAX_IMAGE_SIZE_MB", "2"))

    # Application
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    def validate(self) -> list[str]:
        """Validate settings and return list of warnings."""
        errors = []
        if bool(self.SMTP_USERNAME) != bool(self.SMTP_PASSWORD):
            errors.append("SMTP_USERNAME and SMTP_PASSWORD must be set together - SMTP login will be skipped")
        if self.TOKEN_TTL_DAYS * 24 * 60 < self.TOKEN_SWEEP_INTERVAL_MINUTES:
            errors.append("TOKEN_SWEEP_INTERVAL_MINUTES exceeds the token TTL - expired rows will linger")
        if not 1 <= self.TOKEN_LENGTH <= 32:
            errors.append("TOKEN_LENGTH must be between 1 and 32 - session tokens are capped at 32 characters")
        if self.SMTP_TIMEOUT_SECONDS <= 0:
            errors.append("SMTP_TIMEOUT_SECONDS must be positive - mail dispatch could block indefinitely")
        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
