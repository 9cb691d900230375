import os
from typing import List, Optional
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    app_name: str = "Digital Human Studio"
    debug: bool = os.getenv("DEBUG", "False").lower() == "true"
    port: int = int(os.getenv("PORT", 3001))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./digital_humans.db")
    cors_origins: str = os.getenv("CORS_ORIGINS", "*")

    # Identity tokens
    jwt_secret: str = os.getenv("JWT_SECRET", "your-secret-key-change-this-in-production")
    jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")
    jwt_expire_days: int = int(os.getenv("JWT_EXPIRE_DAYS", 7))

    # Character generation backend: "openai" or "template"
    generator_backend: str = os.getenv("GENERATOR_BACKEND", "openai").lower()
    openai_api_key: Optional[str] = os.getenv("OPENAI_API_KEY")
    openai_model: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    openai_base_url: Optional[str] = os.getenv("OPENAI_BASE_URL")

    # Chat / registry limits
    chat_history_limit: int = int(os.getenv("CHAT_HISTORY_LIMIT", 50))
    chat_context_window: int = int(os.getenv("CHAT_CONTEXT_WINDOW", 10))
    public_bots_limit: int = int(os.getenv("PUBLIC_BOTS_LIMIT", 50))
    dashboard_public_limit: int = int(os.getenv("DASHBOARD_PUBLIC_LIMIT", 10))
    dashboard_recent_limit: int = int(os.getenv("DASHBOARD_RECENT_LIMIT", 5))

    # Defaults for newly generated bots
    default_temperature: float = float(os.getenv("DEFAULT_TEMPERATURE", 0.7))
    default_max_tokens: int = int(os.getenv("DEFAULT_MAX_TOKENS", 1000))

    class Config:
        env_file = ".env"
        extra = "allow"

    @property
    def cors_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

settings = Settings()
