# python
# app/core/config.py
"""Configuration settings for the Knowledge Assistant application.

Uses Pydantic BaseSettings for environment variable management.
"""
from enum import Enum

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentEnum(str, Enum):
    development = "development"
    testing = "testing"
    staging = "staging"
    production = "production"


class LogLevelEnum(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormatEnum(str, Enum):
    simple = "simple"
    json = "json"


class Settings(BaseSettings):
    # Pydantic v2 settings configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===== Application Settings =====
    app_name: str = Field(default="Knowledge Assistant API", description="Application name")
    environment: EnvironmentEnum = Field(
        default=EnvironmentEnum.development, description="Environment type"
    )
    debug: bool = Field(default=False, description="Debug mode")
    version: str = Field(default="1.0.0", description="Application version")

    # ===== Database Settings =====
    database_url: str | None = Field(default=None, description="Database connection URL")
    db_pool_size: int = Field(default=20, description="Database connection pool size")
    db_max_overflow: int = Field(default=0, description="Database max overflow connections")

    # Test database URL
    test_database_url: str | None = Field(default=None, description="Test database URL")

    # ===== Authentication (JWT issued by the auth provider) =====
    auth_jwt_secret: str | None = Field(default=None, description="Shared secret for JWT verification")
    auth_jwt_algorithm: str = Field(default="HS256", description="JWT algorithm")
    auth_jwt_audience: str | None = Field(
        default="authenticated", description="Expected JWT audience, empty to skip the check"
    )

    # ===== Hosted RAG Service (Flowise) =====
    flowise_api_url: str | None = Field(default=None, description="Flowise prediction endpoint URL")
    flowise_api_key: str | None = Field(default=None, description="Optional Flowise API key")
    rag_request_timeout: float = Field(default=15, description="RAG request timeout in seconds")
    rag_max_sources: int = Field(default=5, description="Maximum source citations per answer")
    rag_default_source_title: str = Field(
        default="Policy Document", description="Title used when a source has none"
    )

    # ===== Speech Services (OpenAI) =====
    openai_api_key: str | None = Field(default=None, description="OpenAI API key")
    openai_api_url: str = Field(default="https://api.openai.com/v1", description="OpenAI API base URL")
    transcription_model: str = Field(default="whisper-1", description="Speech-to-text model")
    transcription_timeout: float = Field(default=30, description="Transcription timeout in seconds")
    speech_model: str = Field(default="tts-1-hd", description="Text-to-speech model")
    speech_voice: str = Field(default="alloy", description="Default synthesis voice")
    speech_speed: float = Field(default=1.1, description="Synthesis playback speed")
    speech_max_chars: int = Field(default=4000, description="Maximum characters sent for synthesis")
    speech_timeout: float = Field(default=20, description="Synthesis timeout in seconds")

    # ===== Chat Limits =====
    default_thread_title: str = Field(default="New Chat", description="Title of new threads")
    thread_list_limit: int = Field(default=50, description="Maximum threads returned by the list query")

    # ===== CORS Settings =====
    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173,http://localhost:8080,http://127.0.0.1:3000",
        description="Allowed CORS origins (comma-separated)",
    )

    @property
    def allowed_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        if isinstance(self.allowed_origins, str):
            return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]
        return self.allowed_origins if isinstance(self.allowed_origins, list) else []

    # ===== Monitoring & Logging =====
    log_level: LogLevelEnum = Field(default=LogLevelEnum.INFO, description="Logging level")
    log_format: LogFormatEnum = Field(default=LogFormatEnum.json, description="Log format")

    # ===== Server Settings =====
    host: str = Field(default="127.0.0.1", description="Host to bind the server")
    port: int = Field(default=8000, description="Port to bind the server")

    # ===== Computed Properties =====
    @property
    def is_development(self) -> bool:
        return self.environment == EnvironmentEnum.development

    @property
    def is_production(self) -> bool:
        return self.environment == EnvironmentEnum.production

    @property
    def is_testing(self) -> bool:
        return self.environment == EnvironmentEnum.testing

    @property
    def database_url_sync(self) -> str:
        if not self.database_url:
            return ""
        return self.database_url.replace("postgresql+asyncpg://", "postgresql://")

    @property
    def has_rag_configured(self) -> bool:
        return bool(self.flowise_api_url)

    @property
    def has_speech_configured(self) -> bool:
        return bool(self.openai_api_key)

    # ===== Validation Methods =====
    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v):
        if v and isinstance(v, str):
            lv = v.lower()
            if lv in ["dev", "develop"]:
                return "development"
            if lv in ["prod"]:
                return "production"
            return lv
        return v

    @field_validator("rag_max_sources")
    @classmethod
    def validate_max_sources(cls, v):
        if v < 0:
            raise ValueError("rag_max_sources cannot be negative")
        return v

    @field_validator("speech_max_chars")
    @classmethod
    def validate_speech_max_chars(cls, v):
        # OpenAI rejects speech input above 4096 characters
        if v > 4096:
            raise ValueError("speech_max_chars cannot exceed 4096")
        return v

    @field_validator("thread_list_limit")
    @classmethod
    def validate_thread_list_limit(cls, v):
        if v < 1:
            raise ValueError("thread_list_limit must be at least 1")
        return v

    @model_validator(mode="after")
    def set_computed_fields(self):
        if not self.test_database_url and self.database_url and "neondb" in self.database_url:
            self.test_database_url = self.database_url.replace("neondb", "neondb_test")
        return self


settings = Settings()


class ConfigValidator:
    @staticmethod
    def validate_required_settings(config: Settings | None = None):
        config = config or settings
        errors = []
        if not config.database_url:
            errors.append("DATABASE_URL is required")
        if not config.auth_jwt_secret:
            errors.append("AUTH_JWT_SECRET is required")
        if config.is_production and not config.flowise_api_url:
            errors.append("FLOWISE_API_URL is required in production")
        if config.is_production and not config.openai_api_key:
            errors.append("OPENAI_API_KEY is required in production")
        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")

    @staticmethod
    def get_feature_status(config: Settings | None = None) -> dict:
        config = config or settings
        return {
            "rag_enabled": config.has_rag_configured,
            "speech_enabled": config.has_speech_configured,
            "auth_configured": bool(config.auth_jwt_secret),
            "environment": config.environment,
        }


def get_config_summary(config: Settings | None = None) -> dict:
    config = config or settings
    return {
        "app_name": config.app_name,
        "version": config.version,
        "environment": config.environment,
        "debug": config.debug,
        "features": ConfigValidator.get_feature_status(config),
        "database_configured": bool(config.database_url),
    }


__all__ = [
    "settings",
    "Settings",
    "ConfigValidator",
    "get_config_summary",
    "EnvironmentEnum",
    "LogLevelEnum",
    "LogFormatEnum",
]
