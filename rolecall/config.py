"""Runtime configuration for RoleCall.

The configuration is built once when the process starts and handed to every
client that needs it, so nothing reads settings lazily on first use.
"""

import os
from typing import Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator


class TransportOption(BaseModel):
    """One way of reaching the media server."""
    scheme: Literal["https", "http"]
    timeout: float = Field(default=10.0, gt=0)

    @property
    def secure(self) -> bool:
        return self.scheme == "https"


def _default_transports() -> list[TransportOption]:
    # The secure attempt usually targets an external address, so it gets the
    # shorter timeout before falling back to the local plain-HTTP attempt.
    return [
        TransportOption(scheme="https", timeout=10.0),
        TransportOption(scheme="http", timeout=15.0),
    ]


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class RoleCallConfig(BaseModel):
    """Settings shared by the Plex, auth, filmography and subtitle clients."""

    client_identifier: str = Field(default_factory=lambda: str(uuid4()))
    product_name: str = "RoleCall"
    user_agent: str = "RoleCall/1.0"

    # Media server
    plex_port: int = 32400
    plex_transports: list[TransportOption] = Field(default_factory=_default_transports)
    allow_insecure_fallback: bool = True

    # Authorization server
    plex_tv_url: str = "https://plex.tv/api/v2"
    plex_auth_url: str = "https://app.plex.tv/auth#?"
    pin_poll_interval: float = Field(default=1.0, ge=0)
    pin_max_attempts: int = Field(default=300, gt=0)
    auth_timeout: float = Field(default=15.0, gt=0)

    # Filmography provider
    filmography_backend: Literal["imdb", "tmdb"] = "imdb"
    imdb_base_url: str = "https://rest.imdbapi.dev/v2"
    tmdb_base_url: str = "https://api.themoviedb.org/3"
    tmdb_access_token: Optional[str] = None
    tmdb_image_base_url: str = "https://image.tmdb.org/t/p"
    filmography_timeout: float = Field(default=15.0, gt=0)

    # Response cache
    cache_ttl: float = Field(default=3600.0, ge=0)
    cache_max_entries: int = Field(default=50, gt=0)

    # Retry
    retry_max_attempts: int = Field(default=3, gt=0)
    retry_backoff_step: float = Field(default=1.0, ge=0)

    # Subtitles
    subtitle_search_url: str = "https://sub.wyzie.ru/search"
    subtitle_timeout: float = Field(default=30.0, gt=0)

    @field_validator("imdb_base_url", "tmdb_base_url", "tmdb_image_base_url", "plex_tv_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def active_transports(self) -> list[TransportOption]:
        """Transport options in the order they should be tried."""
        if self.allow_insecure_fallback:
            return list(self.plex_transports)
        return [t for t in self.plex_transports if t.secure]

    @classmethod
    def from_env(cls) -> "RoleCallConfig":
        """Build configuration from environment variables."""
        values: dict = {}
        backend = os.getenv("ROLECALL_FILMOGRAPHY_BACKEND")
        if backend:
            values["filmography_backend"] = backend.lower()
        if os.getenv("TMDB_ACCESS_TOKEN"):
            values["tmdb_access_token"] = os.getenv("TMDB_ACCESS_TOKEN")
        if os.getenv("TMDB_BASE_URL"):
            values["tmdb_base_url"] = os.getenv("TMDB_BASE_URL")
        if os.getenv("IMDB_BASE_URL"):
            values["imdb_base_url"] = os.getenv("IMDB_BASE_URL")
        if os.getenv("ROLECALL_CACHE_TTL"):
            values["cache_ttl"] = float(os.getenv("ROLECALL_CACHE_TTL"))
        if os.getenv("ROLECALL_CACHE_MAX_ENTRIES"):
            values["cache_max_entries"] = int(os.getenv("ROLECALL_CACHE_MAX_ENTRIES"))
        if os.getenv("ROLECALL_CLIENT_ID"):
            values["client_identifier"] = os.getenv("ROLECALL_CLIENT_ID")
        values["allow_insecure_fallback"] = _env_bool("ROLECALL_ALLOW_INSECURE", True)
        return cls(**values)
