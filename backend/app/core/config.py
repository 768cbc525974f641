from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from pathlib import Path

# Find the backend directory (where .env is located)
BACKEND_DIR = Path(__file__).resolve().parent.parent.parent
DEFAULT_CATALOG_PATH = BACKEND_DIR / "app" / "data" / "catalog.json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(BACKEND_DIR / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # API Settings
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Hospital Matcher"
    LOG_LEVEL: str = "INFO"

    # CORS
    FRONTEND_URL: str = "http://localhost:3000"
    ALLOWED_ORIGINS: Optional[str] = None

    # Read-only catalog snapshot (hospitals + condition catalog)
    CATALOG_PATH: str = str(DEFAULT_CATALOG_PATH)

    # Matching / browse / suggest limits
    MATCH_TIMEOUT_SECONDS: float = 5.0
    BROWSE_DEFAULT_LIMIT: int = 20
    BROWSE_MAX_LIMIT: int = 50
    SUGGEST_LIMIT: int = 10

    # LLM Settings - used only to turn free-text requests into intent fields
    # Fallback order: Groq 1 -> Gemini 1 -> Gemini 2 -> Groq 2 (last resort)
    GROQ_API_KEY: Optional[str] = None
    GROQ_API_KEY_2: Optional[str] = None  # Last resort backup
    GROQ_MODEL: str = "llama-3.1-8b-instant"

    # Google Gemini
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_API_KEY_2: Optional[str] = None  # Gemini backup
    GEMINI_MODEL: str = "gemini-2.0-flash"


settings = Settings()
