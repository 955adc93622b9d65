from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_cache_root() -> Path:
    return Path.home() / ".cache" / "rdfproxy"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="RDFPROXY_", env_file=".env", extra="ignore")

    app_name: str = "rdfproxy"
    env: str = "dev"
    host: str = "127.0.0.1"
    port: int = 3000
    log_level: str = "INFO"

    # Cache
    cache_backend: str = "local"  # local or redis
    cache_root: Path = Field(default_factory=_default_cache_root)
    redis_url: str = Field(default="redis://localhost:6379/0", validation_alias="REDIS_URL")
    cache_ttl: int | None = None  # seconds, None keeps entries until invalidated

    # Conversion policy
    prefer_conversion: bool = False
    prefer_conversion_invalidates: bool = False
    default_format: str = "turtle"

    # Format identification
    sniff_bytes: int = 4096

    # External tools
    external_tools: str = "pylode,rdf-convert,rdfx,robot"
    require_external_tools: bool = False
    tool_timeout: float = 60.0
    stderr_excerpt_bytes: int = 4096

    # Remote fetch
    fetch_timeout: float = 30.0
    user_agent: str = "rdfproxy"

    # Observability
    enable_metrics: bool = True

    @property
    def external_tool_names(self) -> list[str]:
        """Configured external tools, in registration order."""
        return [name.strip() for name in self.external_tools.split(",") if name.strip()]


settings = Settings()
