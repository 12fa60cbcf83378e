"""Application configuration from environment variables."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All config comes from env vars or .env file."""

    DATABASE_URL: str = "sqlite+aiosqlite:///./data/files.sqlite"
    FILE_STORAGE_PATH: str = "./data/uploads"
    API_HOST: str = "127.0.0.1"
    API_PORT: int = 4201
    CORS_ORIGINS: str = "http://localhost:4200"
    MAX_UPLOAD_BYTES: int = 200 * 1024 * 1024
    LOG_LEVEL: str = "INFO"

    # Tag suggestion service (OpenAI-compatible chat completions endpoint).
    # Left blank, autotag only has the local filename heuristic.
    SUGGEST_API_URL: str = ""
    SUGGEST_API_KEY: str = ""
    SUGGEST_MODEL: str = ""
    SUGGEST_TIMEOUT_SECONDS: float = 20.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def suggestions_configured(self) -> bool:
        return bool(self.SUGGEST_API_URL and self.SUGGEST_MODEL)

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
