"""Application configuration loaded from environment variables."""

from pathlib import Path

from pydantic_settings import BaseSettings

DEFAULT_MASTER_API_KEY = "default_master_key_for_testing"


class Settings(BaseSettings):
    """Gateway configuration.

    All values can be overridden via environment variables or a .env file.
    Nothing here is hot-reloaded; changes need a restart.
    """

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # Privileged keys
    MASTER_API_KEY: str = DEFAULT_MASTER_API_KEY
    STATUS_PAGE_API_KEY: str = ""

    # Issued keys
    API_KEY_PREFIX: str = "matic-"

    # Storage
    DATA_DIR: str = "data"
    STATIC_DIR: str = "public"

    @property
    def data_path(self) -> Path:
        return Path(self.DATA_DIR)

    @property
    def api_keys_path(self) -> Path:
        return self.data_path / "api_keys.json"

    @property
    def monitored_endpoints_path(self) -> Path:
        return self.data_path / "monitored_endpoints.json"

    @property
    def routes_dir(self) -> Path:
        return self.data_path / "routes"

    # Rate limiting
    RATE_LIMIT_MAX_REQUESTS: int = 100
    RATE_LIMIT_WINDOW_SECONDS: int = 600

    # Metrics
    THROUGHPUT_WINDOW_SECONDS: int = 60
    METRICS_MAX_ENDPOINTS: int = 1000

    # CORS
    CORS_ORIGINS: str = "*"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS comma-separated string into a list."""
        if not self.CORS_ORIGINS:
            return []
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    # Trusted proxies (for X-Forwarded-For)
    TRUSTED_PROXIES: str = ""

    @property
    def trusted_proxies_list(self) -> list[str]:
        """Parse TRUSTED_PROXIES comma-separated string into a list.

        Supports individual IPs and CIDR ranges (e.g. "10.0.0.1,172.16.0.0/12").
        """
        if not self.TRUSTED_PROXIES:
            return []
        return [p.strip() for p in self.TRUSTED_PROXIES.split(",") if p.strip()]

    @property
    def privileged_keys(self) -> frozenset[str]:
        """Master key plus the status-page key when one is configured."""
        return frozenset(k for k in (self.MASTER_API_KEY, self.STATUS_PAGE_API_KEY) if k)

    # Application
    APP_NAME: str = "API Gateway"
    DEBUG: bool = False

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }


settings = Settings()
