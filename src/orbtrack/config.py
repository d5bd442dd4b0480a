"""Runtime configuration.

Values come from the environment (or a local ``.env`` file), e.g.::

    SPACE_TRACK_USERNAME=me@example.com
    SPACE_TRACK_PASSWORD=secret
    BATCH_DELAY_S=2.5

Missing Space-Track credentials are not an error: upstream acquisition is
simply disabled and every catalog object falls back to synthetic data.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

from orbtrack.utils.constants import (
    DEFAULT_BATCH_DELAY_S,
    DEFAULT_BATCH_SIZE,
    DEFAULT_CACHE_TTL_S,
    DEFAULT_CONJUNCTION_NORAD_IDS,
    DEFAULT_REQUEST_TIMEOUT_S,
)


class Settings(BaseSettings):
    """orbtrack settings.

    Attributes:
        space_track_username: Space-Track login identity.
        space_track_password: Space-Track password.
        space_track_url: Space-Track base URL.
        socrates_url: CelesTrak SOCRATES search endpoint.
        request_timeout_s: Per-request network timeout in seconds.
        batch_size: Number of concurrent fetches per batch group.
        batch_delay_s: Pause between batch groups in seconds.
        cache_ttl_s: Element-set freshness window in seconds.
        conjunction_norad_ids: Objects whose SOCRATES feeds are merged.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    space_track_username: str | None = None
    space_track_password: str | None = None
    space_track_url: str = "https://www.space-track.org"
    socrates_url: str = "https://celestrak.org/SOCRATES/search-results.php"

    request_timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S
    batch_size: int = DEFAULT_BATCH_SIZE
    batch_delay_s: float = DEFAULT_BATCH_DELAY_S
    cache_ttl_s: float = DEFAULT_CACHE_TTL_S
    conjunction_norad_ids: list[int] = list(DEFAULT_CONJUNCTION_NORAD_IDS)

    @property
    def has_credentials(self) -> bool:
        return bool(self.space_track_username) and bool(self.space_track_password)
