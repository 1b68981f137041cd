"""Unit tests for the provider registry."""

import pytest

from product_importer.cache.response_cache import ResponseCache
from product_importer.config import ProviderCredentials
from product_importer.scrapers.apify_provider import ApifyProvider
from product_importer.scrapers.oxylabs_provider import OxylabsProvider
from product_importer.scrapers.registry import (
    PROVIDER_REGISTRY,
    build_providers,
    get_known_providers,
    get_provider_class,
)


class TestProviderRegistry:
    """Tests for the provider registry."""

    @pytest.mark.unit
    def test_registry_contains_all_providers(self):
        assert PROVIDER_REGISTRY == {"apify": ApifyProvider, "oxylabs": OxylabsProvider}

    @pytest.mark.unit
    def test_get_provider_class(self):
        assert get_provider_class("oxylabs") is OxylabsProvider

    @pytest.mark.unit
    def test_get_provider_class_unknown(self):
        with pytest.raises(ValueError, match="Unknown provider: scraperapi. Available: apify, oxylabs"):
            get_provider_class("scraperapi")

    @pytest.mark.unit
    def test_get_known_providers(self):
        assert get_known_providers() == ["apify", "oxylabs"]

    @pytest.mark.unit
    @pytest.mark.parametrize("name", ["apify", "oxylabs"])
    def test_every_provider_serves_both_platforms(self, name):
        provider_class = get_provider_class(name)

        assert provider_class.name == name
        assert set(provider_class.supported_platforms) == {"amazon", "aliexpress"}


class TestBuildProviders:
    """Tests for credential-driven instantiation."""

    @pytest.mark.unit
    def test_no_credentials_builds_nothing(self):
        assert build_providers(ProviderCredentials()) == {}

    @pytest.mark.unit
    def test_builds_only_configured_providers(self, tmp_path):
        cache = ResponseCache(cache_dir=tmp_path)
        providers = build_providers(
            ProviderCredentials(apify_token="apify-token"), timeout=30.0, cache=cache
        )

        assert list(providers) == ["apify"]
        assert providers["apify"].timeout == 30.0
        assert providers["apify"].cache is cache

    @pytest.mark.unit
    def test_oxylabs_needs_username_and_password(self):
        partial = ProviderCredentials(oxylabs_username="user")
        full = ProviderCredentials(oxylabs_username="user", oxylabs_password="secret")

        assert build_providers(partial) == {}
        assert isinstance(build_providers(full)["oxylabs"], OxylabsProvider)

    @pytest.mark.unit
    def test_builds_both(self):
        credentials = ProviderCredentials(
            apify_token="t", oxylabs_username="u", oxylabs_password="p"
        )

        assert sorted(build_providers(credentials)) == ["apify", "oxylabs"]
