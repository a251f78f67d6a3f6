"""Configuration management with Pydantic models."""

import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

DEFAULT_REMOTE = "http://localhost:8080/exist/apps/tei-publisher/"


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").lower() == "true"


class RemoteConfig(BaseModel):
    """Connection settings for the remote publisher API."""

    url: str = DEFAULT_REMOTE
    timeout_ms: int = Field(default=30000, ge=1000, le=300000)
    user_agent: str = "tp-sync/0.1 (Static site sync)"
    max_retries: int = Field(default=0, ge=0, le=10)  # opt-in; failures are skipped
    retry_base_delay: float = Field(default=1.0, ge=0.0, le=30.0)

    @field_validator("url")
    @classmethod
    def _trailing_slash(cls, v: str) -> str:
        # Relative API paths and the origin check both rely on it
        return v if v.endswith("/") else v + "/"


class CacheConfig(BaseModel):
    """Configuration for the on-disk content cache."""

    enabled: bool = Field(default_factory=lambda: not _env_flag("TP_NO_CACHE"))
    directory: Path = Path(".cache")
    max_age: str = "1d"


class IndexerConfig(BaseModel):
    """Selector-based secondary index definition for one component."""

    selectors: str = "p,dd,li,h1,h2,h3,h4,h5,h6"
    tag: str | None = None
    allow_html: bool = False
    exclude: str = "style,script"


class SyncConfig(BaseModel):
    """Main synchronization configuration."""

    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    output_dir: Path = Path("_site")
    limit: int | None = Field(default=None, ge=1)  # pages per view, None = unlimited
    concurrency: int = Field(default=2, ge=1, le=32)
    collections: bool = False
    collection_page_size: int = Field(default=10, ge=1)
    disabled: bool = Field(default_factory=lambda: _env_flag("TP_DISABLED"))
    cache: CacheConfig = Field(default_factory=CacheConfig)
    index: dict[str, IndexerConfig] = Field(default_factory=dict)
    verbose: bool = False

    @classmethod
    def from_toml(cls, path: Path) -> "SyncConfig":
        """Load config from a TOML file."""
        with open(path, "rb") as f:
            data = tomllib.load(f)
        return cls.model_validate(data)
