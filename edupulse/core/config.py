import json
from typing import Optional, List, Dict, Any

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    # Application Settings
    APP_NAME: str = "EduPulse Attendance API"
    VERSION: str = "1.0.0"
    DEBUG: bool = Field(default=False)
    PRODUCTION: bool = Field(default=False)

    # Database Settings
    DATABASE_URL: str = Field(default="sqlite+aiosqlite:///./edupulse.db")
    DATABASE_ECHO: bool = Field(default=False)

    # Authentication Settings
    # Tokens are issued by the external auth service; we only verify them.
    SECRET_KEY: str = Field(...)
    ALGORITHM: str = Field(default="HS256")
    TOKEN_AUDIENCE: Optional[str] = Field(default=None)
    ACCESS_PASSWORD_MIN_LENGTH: int = Field(default=6)

    # CORS Settings
    ALLOWED_ORIGINS: List[str] = Field(
        default=[
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:8080",
            "http://127.0.0.1:8080"
        ]
    )

    # Logging Settings
    LOG_LEVEL: str = Field(default="INFO")
    LOG_DIR: Optional[str] = Field(default=None)

    # AI Gateway Settings
    AI_GATEWAY_URL: str = Field(default="https://ai.gateway.lovable.dev/v1/chat/completions")
    AI_GATEWAY_API_KEY: Optional[str] = Field(default=None)
    AI_MODEL: str = Field(default="google/gemini-2.5-flash")
    AI_GATEWAY_TIMEOUT_SECONDS: float = Field(default=60.0)
    AI_GATEWAY_MAX_ATTEMPTS: int = Field(default=3)

    # Register photo settings (length of the base64 data URL)
    MAX_IMAGE_SIZE: int = Field(default=10_000_000)

    # Insights Settings
    INSIGHTS_ATTENDANCE_LIMIT: int = Field(default=100)
    AT_RISK_THRESHOLD: float = Field(default=75.0)
    STATISTICS_WINDOW_DAYS: int = Field(default=30)

    # CSV import settings
    CSV_BATCH_SIZE: int = Field(default=100)
    CSV_MAX_REPORTED_ERRORS: int = Field(default=50)

    @field_validator('ALLOWED_ORIGINS', mode='before')
    @classmethod
    def parse_allowed_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator('AI_GATEWAY_URL')
    @classmethod
    def validate_gateway_url(cls, v: str) -> str:
        if not v.startswith(('http://', 'https://')):
            v = f'https://{v}'
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True
    )

# Initialize settings
settings = Settings()

# Helper Functions
def get_database_url() -> str:
    return settings.DATABASE_URL

def get_jwt_settings() -> Dict[str, Any]:
    return {
        "secret_key": settings.SECRET_KEY,
        "algorithm": settings.ALGORITHM,
        "audience": settings.TOKEN_AUDIENCE
    }

def get_logging_config() -> Dict[str, Optional[str]]:
    return {
        "log_level": settings.LOG_LEVEL,
        "log_dir": settings.LOG_DIR
    }

def get_ai_gateway_settings() -> Dict[str, Any]:
    return {
        "url": settings.AI_GATEWAY_URL,
        "api_key": settings.AI_GATEWAY_API_KEY,
        "model": settings.AI_MODEL,
        "timeout": settings.AI_GATEWAY_TIMEOUT_SECONDS,
        "max_attempts": settings.AI_GATEWAY_MAX_ATTEMPTS
    }
