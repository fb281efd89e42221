"""Environment configuration management for the model registry server."""

from pydantic_settings import BaseSettings
from typing import Optional
import logging

class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Server configuration
    APP_NAME: str = "Model Registry Server"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    HOST: str = "127.0.0.1"
    PORT: int = 9127

    # Model catalog and provider settings (None = files bundled in src/config)
    MODEL_CATALOG_PATH: Optional[str] = None
    PROVIDER_CONFIG_PATH: Optional[str] = None
    PREFERRED_PROVIDERS: Optional[list[str]] = None

    # Ollama discovery overrides (None = use llm_providers.yaml)
    OLLAMA_ENABLED: Optional[bool] = None
    OLLAMA_BASE_URL: Optional[str] = None
    OLLAMA_TIMEOUT_MS: Optional[int] = None

    # Run discovery after startup instead of blocking it
    BACKGROUND_DISCOVERY: bool = True

    # CORS settings
    CORS_ORIGINS: list[str] = ["http://localhost:5173", "http://localhost:3000"]
    CORS_CREDENTIALS: bool = True
    CORS_METHODS: list[str] = ["*"]
    CORS_HEADERS: list[str] = ["*"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"  # Allow extra env vars without error

# Global settings instance
settings = Settings()

def configure_logging(level: Optional[str] = None) -> None:
    """Apply LOG_LEVEL / LOG_FORMAT to the root logger."""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format=settings.LOG_FORMAT,
        force=True,
    )

def get_cors_config() -> dict:
    """Get CORS configuration."""
    return {
        "allow_origins": settings.CORS_ORIGINS,
        "allow_credentials": settings.CORS_CREDENTIALS,
        "allow_methods": settings.CORS_METHODS,
        "allow_headers": settings.CORS_HEADERS,
    }
