from pydantic_settings import BaseSettings
from pathlib import Path


class Settings(BaseSettings):
    ENVIRONMENT: str = "development"  # development | test | staging | production
    APP_NAME: str = "Vitalis Health"
    SECRET_KEY: str = "change-me-in-production"
    DATABASE_URL: str = "sqlite:///data/vitalis.db"
    DATA_DIR: Path = Path("data")
    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRY_HOURS: int = 72
    LOG_LEVEL: str = "INFO"
    AI_PROVIDER: str = "google"  # google | openai
    AI_API_KEY: str = ""
    AI_REASONING_MODEL: str | None = None
    AI_UTILITY_MODEL: str | None = None
    AI_TIMEOUT_SECONDS: int = 120
    STORE_SIMULATED_LATENCY_MS: int = 0
    DEFAULT_LANGUAGE: str = "en"
    CHAT_MAX_GUEST_SESSIONS: int = 500
    DEMO_USER_ID: str = "google_123456789"
    DEMO_USER_NAME: str = "Demo User"
    DEMO_USER_EMAIL: str = "demo.user@example.com"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def is_production_like(self) -> bool:
        return (self.ENVIRONMENT or "").strip().lower() in {"production", "prod", "staging"}

    def validate_security_configuration(self) -> None:
        if not self.is_production_like:
            return

        errors: list[str] = []
        if self.SECRET_KEY == "change-me-in-production":
            errors.append("SECRET_KEY must be changed from the default value")
        if len((self.SECRET_KEY or "").strip()) < 16:
            errors.append("SECRET_KEY must be at least 16 characters")
        if not (self.AI_API_KEY or "").strip():
            errors.append("AI_API_KEY must be configured")
        if errors:
            joined = "; ".join(errors)
            raise RuntimeError(f"Insecure production configuration: {joined}")


settings = Settings()
settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
