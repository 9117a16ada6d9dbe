"""
Configuration settings for the banking service.
Loads environment variables and provides application settings.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """

    # Database
    DATABASE_URL: str
    DB_USER: Optional[str] = None
    DB_PASSWORD: Optional[str] = None
    DB_ISOLATION_LEVEL: str = "REPEATABLE READ"
    DB_ECHO: bool = False

    # Security
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    PASSWORD_MIN_LENGTH: int = 8
    BCRYPT_ROUNDS: int = 12
    REVEAL_FORBIDDEN: bool = False

    # Money movement
    ACCOUNT_NUMBER_RETRY_LIMIT: int = 8
    TRANSACTION_RETRY_LIMIT: int = 5
    RETRY_BASE_DELAY: float = 0.05
    RETRY_MAX_DELAY: float = 1.0
    REQUEST_TIMEOUT_SECONDS: float = 10.0

    # History
    HISTORY_PAGE_SIZE_DEFAULT: int = 10
    HISTORY_PAGE_SIZE_MAX: int = 100

    # API
    API_V1_PREFIX: str = "/api/v1"
    PROJECT_NAME: str = "Personal Banking Service"
    VERSION: str = "1.0.0"
    DESCRIPTION: str = "Accounts, deposits, withdrawals and transfers over a transactional ledger"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True


# Create global settings instance
settings = Settings()
