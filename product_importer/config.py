"""Credentials and environment-driven settings.

Values are read once at startup and passed explicitly to the orchestrator;
nothing in the scraping path reads the environment on its own.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from product_importer.cache.response_cache import (
    DEFAULT_CACHE_DIR,
    DEFAULT_TTL_SECONDS,
    ResponseCache,
)
from product_importer.exceptions import ConfigurationError


@dataclass(frozen=True)
class ProviderCredentials:
    """Vendor and AI credentials; a provider is registered only if its fields are set."""

    apify_token: str | None = None
    oxylabs_username: str | None = None
    oxylabs_password: str | None = None
    openai_api_key: str | None = None

    @property
    def has_apify(self) -> bool:
        return bool(self.apify_token)

    @property
    def has_oxylabs(self) -> bool:
        return bool(self.oxylabs_username and self.oxylabs_password)

    @property
    def has_vision(self) -> bool:
        return bool(self.openai_api_key)


def load_credentials_from_env() -> ProviderCredentials:
    """Read credentials from APIFY_TOKEN, OXYLABS_USERNAME/PASSWORD and OPENAI_API_KEY."""
    return ProviderCredentials(
        apify_token=os.getenv("APIFY_TOKEN") or None,
        oxylabs_username=os.getenv("OXYLABS_USERNAME") or None,
        oxylabs_password=os.getenv("OXYLABS_PASSWORD") or None,
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
    )


def load_cache_from_env() -> ResponseCache:
    """Build the response cache from PRODUCT_IMPORTER_CACHE_DIR / _CACHE_TTL.

    Raises:
        ConfigurationError: If the TTL is not a number
    """
    cache_dir = Path(os.getenv("PRODUCT_IMPORTER_CACHE_DIR") or DEFAULT_CACHE_DIR)
    ttl_raw = os.getenv("PRODUCT_IMPORTER_CACHE_TTL")

    try:
        ttl_seconds = float(ttl_raw) if ttl_raw else DEFAULT_TTL_SECONDS
    except ValueError as e:
        raise ConfigurationError(
            f"PRODUCT_IMPORTER_CACHE_TTL must be a number of seconds, got {ttl_raw!r}"
        ) from e

    return ResponseCache(cache_dir=cache_dir, ttl_seconds=ttl_seconds)
