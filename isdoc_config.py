"""
Centralized configuration using Pydantic Settings.
Loads from environment variables and .env file.
"""
import logging
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings with environment variable support.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    APP_NAME: str = "isdoc-export"
    APP_VERSION: str = "0.3.0"
    DEBUG: bool = False

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_MAX_BATCH_SIZE: int = 500

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    # ISDOC
    ISDOC_ENABLED: bool = True
    DEFAULT_CURRENCY: str = "CZK"
    COUNTRY_NAME: str = "Česká republika"
    COUNTRY_CODE: str = "CZ"
    PAYMENT_TERM_DAYS: int = 14
    FALLBACK_VAT_RATE: str = "21"

    # Schema (deep validation only)
    ISDOC_SCHEMA_URL: str = "https://isdoc.cz/6.0.2/xsd/isdoc-invoice-6.0.2.xsd"
    SCHEMA_FETCH_TIMEOUT_SEC: float = 30.0
    SCHEMA_VALIDATION_ENABLED: bool = False
    SCHEMA_LOCAL_PATH: Optional[str] = None

    @property
    def log_level_value(self) -> int:
        """Translate LOG_LEVEL name to the logging constant."""
        level = logging.getLevelName(self.LOG_LEVEL.upper())
        return level if isinstance(level, int) else logging.INFO


def configure_logging(level: Optional[int] = None) -> None:
    logging.basicConfig(
        level=level if level is not None else settings.log_level_value,
        format=settings.LOG_FORMAT,
    )


# Global settings instance
settings = Settings()
