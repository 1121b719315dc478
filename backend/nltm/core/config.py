from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_NAME: str = "NLTM API"
    API_V1_PREFIX: str = "/api/v1"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = ["http://localhost:8501", "http://localhost:5173"]

    # LLM providers
    LLM_PROVIDER: str = "ollama"  # or "openai", "gemini"
    OLLAMA_HOST: str = "http://ollama:11434"
    OLLAMA_MODEL: str = "gemma:2b"
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-1.5-flash"
    LLM_TIMEOUT_S: float = 120.0
    EXTRACTION_TIMEOUT_S: float = 150.0

    # Relative dates ("tomorrow", "end of day") are anchored here
    REFERENCE_TIMEZONE: str = "Asia/Kolkata"

    # DB
    DATABASE_URL: str = "sqlite:///./nltm.db"

    # Auth
    JWT_SECRET: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_MINUTES: int = 60 * 24 * 30

    # Rate limiting
    RATE_LIMIT_WINDOW_MIN: int = 15
    RATE_LIMIT_MAX: int = 1000
    LOGIN_RATE_LIMIT_MAX: int = 10
    REGISTER_RATE_LIMIT_MAX: int = 10

    # Input bounds
    MAX_TEXT_CHARS: int = 10_000
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024

    def reference_tz(self) -> ZoneInfo:
        return ZoneInfo(self.REFERENCE_TIMEZONE)

settings = Settings()
