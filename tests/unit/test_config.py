"""Unit tests for environment-driven configuration."""

from pathlib import Path

import pytest

from product_importer.cache.response_cache import DEFAULT_CACHE_DIR, DEFAULT_TTL_SECONDS
from product_importer.config import (
    ProviderCredentials,
    load_cache_from_env,
    load_credentials_from_env,
)
from product_importer.exceptions import ConfigurationError, classify_error

CREDENTIAL_VARS = ("APIFY_TOKEN", "OXYLABS_USERNAME", "OXYLABS_PASSWORD", "OPENAI_API_KEY")


@pytest.fixture
def clean_env(monkeypatch):
    for name in CREDENTIAL_VARS + ("PRODUCT_IMPORTER_CACHE_DIR", "PRODUCT_IMPORTER_CACHE_TTL"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestCredentials:
    """Tests for credential loading."""

    @pytest.mark.unit
    def test_empty_environment(self, clean_env):
        credentials = load_credentials_from_env()

        assert credentials == ProviderCredentials()
        assert not credentials.has_apify
        assert not credentials.has_oxylabs
        assert not credentials.has_vision

    @pytest.mark.unit
    def test_reads_all_credentials(self, clean_env):
        clean_env.setenv("APIFY_TOKEN", "apify-token")
        clean_env.setenv("OXYLABS_USERNAME", "user")
        clean_env.setenv("OXYLABS_PASSWORD", "secret")
        clean_env.setenv("OPENAI_API_KEY", "sk-test")

        credentials = load_credentials_from_env()

        assert credentials.has_apify
        assert credentials.has_oxylabs
        assert credentials.has_vision

    @pytest.mark.unit
    def test_blank_values_count_as_missing(self, clean_env):
        clean_env.setenv("APIFY_TOKEN", "")
        clean_env.setenv("OXYLABS_USERNAME", "user")

        credentials = load_credentials_from_env()

        assert credentials.apify_token is None
        assert not credentials.has_oxylabs


class TestCacheSettings:
    """Tests for cache settings loading."""

    @pytest.mark.unit
    def test_defaults(self, clean_env):
        cache = load_cache_from_env()

        assert cache.cache_dir == DEFAULT_CACHE_DIR
        assert cache.ttl_seconds == DEFAULT_TTL_SECONDS

    @pytest.mark.unit
    def test_overrides(self, clean_env, tmp_path):
        clean_env.setenv("PRODUCT_IMPORTER_CACHE_DIR", str(tmp_path))
        clean_env.setenv("PRODUCT_IMPORTER_CACHE_TTL", "60")

        cache = load_cache_from_env()

        assert cache.cache_dir == Path(tmp_path)
        assert cache.ttl_seconds == 60.0

    @pytest.mark.unit
    def test_invalid_ttl(self, clean_env):
        clean_env.setenv("PRODUCT_IMPORTER_CACHE_TTL", "half an hour")

        with pytest.raises(ConfigurationError, match="PRODUCT_IMPORTER_CACHE_TTL") as exc_info:
            load_cache_from_env()

        assert classify_error(exc_info.value) == "configuration"
