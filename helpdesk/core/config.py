"""Client configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Helpdesk client settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="HELPDESK_", extra="ignore")

    # Environment
    ENV: str = "dev"

    # Backend API (the client appends /api/v1)
    API_BASE_URL: str = "http://localhost:8000"
    API_TIMEOUT_SECONDS: float = 30.0

    # Bearer token issued by the backend's login endpoint
    API_TOKEN: str = ""

    # Retry policy for idempotent reads (mutations are sent once)
    HTTP_MAX_ATTEMPTS: int = 3
    HTTP_RETRY_BASE_DELAY: float = 0.5
    HTTP_RETRY_MAX_DELAY: float = 4.0

    # Dashboard
    RECENT_TICKETS_LIMIT: int = 10

    LOG_LEVEL: str = "INFO"

    @property
    def api_root(self) -> str:
        """Versioned API root, without trailing slash."""
        return f"{self.API_BASE_URL.rstrip('/')}/api/v1"

    @property
    def auth_headers(self) -> dict[str, str]:
        """Authorization header for the configured token (empty when unset)."""
        if not self.API_TOKEN:
            return {}
        return {"Authorization": f"Bearer {self.API_TOKEN}"}


settings = Settings()
