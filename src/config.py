from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

VERSION = "0.1.0"


class Settings(BaseSettings):
    """Proxy configuration, read from the environment or a .env file."""

    # Server Configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8085
    # Optional public URL used when building proxy links (scheme, host, port, path prefix)
    PUBLIC_URL: Optional[str] = None
    LOG_LEVEL: str = "info"
    RELOAD: bool = False
    ROOT_PATH: str = ""
    DOCS_URL: str = "/docs"
    REDOC_URL: str = "/redoc"
    OPENAPI_URL: str = "/openapi.json"

    # API Authentication (management endpoints only)
    API_TOKEN: Optional[str] = None

    # Upstream identity and timeouts
    DEFAULT_USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/116.0.0.0 Safari/537.36"
    )
    # Page, master and variant playlist fetches
    UPSTREAM_TIMEOUT: float = 15.0
    # Media segment fetches
    SEGMENT_TIMEOUT: float = 20.0
    MAX_REDIRECTS: int = 10

    # Segment relay retry policy: delay before attempt n+1 is SEGMENT_RETRY_DELAY * n
    SEGMENT_MAX_ATTEMPTS: int = 3
    SEGMENT_RETRY_DELAY: float = 0.3
    SEGMENT_CHUNK_SIZE: int = 65536

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="",
        extra="ignore"
    )


# Global settings instance
settings = Settings()
