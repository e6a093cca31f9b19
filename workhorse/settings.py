"""
Application Settings Management

Centralizes runtime configuration: storage backend selection, Redis
connection, presence window, generation provider and logging.

IMPORTANT:
- Secrets (generation_api_key, redis_password) belong in environment
  variables, never in code.
- For local development create a .env.local file at the project root.
"""

from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# workhorse/settings.py -> workhorse/ -> project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent

ENV_FILE = PROJECT_ROOT / ".env.local"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ==================== Environment ====================
    # "local-dev" | "test" | "production"
    environment: str = "local-dev"
    debug: bool = True

    # ==================== Storage mode ====================
    # true: in-process storage (single instance only, lost on restart)
    # false: Redis-backed storage shared by every instance
    use_memory_store: bool = True

    # TTL for entity documents stored in Redis (0 = no expiry)
    entity_ttl_seconds: int = 0

    # ==================== Redis ====================
    # "fake": fakeredis in-process server, "redis": real Redis instance
    redis_type: str = "fake"
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_socket_timeout: int = 5
    redis_socket_connect_timeout: int = 5

    # Optimistic transaction retries before a write is reported as failed
    redis_max_retries: int = 10

    # ==================== Presence ====================
    presence_stale_seconds: int = 5 * 60

    # ==================== Generation provider ====================
    generation_base_url: str = "https://api.openai.com/v1"
    generation_api_key: str = ""
    generation_model: str = "gpt-4o"
    generation_max_tokens: int = 1000
    generation_temperature: float = 0.7
    generation_timeout: float = 120
    generation_placeholder_text: str = "Generating response..."
    # "mock" | "http"
    generation_provider: str = "mock"

    # ==================== Logging ====================
    log_max_bytes: int = 20 * 1024 * 1024  # 20MB
    log_backup_count: int = 5
    logs_subdir: str = "logs"

    @model_validator(mode="after")
    def validate_provider(self) -> "Settings":
        """Reject provider names nothing can be built for."""
        if self.generation_provider not in ("mock", "http"):
            raise ValueError(f"Unknown generation_provider: {self.generation_provider}")
        return self

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def get_project_root(cls) -> Path:
        return PROJECT_ROOT

    def get_logs_root(self) -> Path:
        """Log directory: {project_root}/logs in local-dev, /app/logs elsewhere."""
        if self.environment == "local-dev":
            return PROJECT_ROOT / self.logs_subdir
        return Path("/app") / self.logs_subdir

    def is_generation_configured(self) -> bool:
        """True when the HTTP provider has credentials to call out with."""
        return bool(self.generation_base_url and self.generation_api_key)


settings = Settings()
