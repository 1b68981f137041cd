"""Scraping provider registry.

Provides centralized mapping of provider names to adapter classes.
Adding a new vendor only requires adding an entry to PROVIDER_REGISTRY and
a branch in build_providers for its credentials.
"""

from typing import Type

from loguru import logger

from product_importer.cache.response_cache import ResponseCache
from product_importer.config import ProviderCredentials
from product_importer.scrapers.apify_provider import ApifyProvider
from product_importer.scrapers.base_provider import BaseProvider
from product_importer.scrapers.oxylabs_provider import OxylabsProvider

# Registry of available providers
PROVIDER_REGISTRY: dict[str, Type[BaseProvider]] = {
    "apify": ApifyProvider,
    "oxylabs": OxylabsProvider,
}


def get_provider_class(name: str) -> Type[BaseProvider]:
    """Get adapter class for a provider.

    Args:
        name: Provider name (e.g., 'oxylabs')

    Returns:
        Adapter class for the provider

    Raises:
        ValueError: If provider is not known
    """
    if name not in PROVIDER_REGISTRY:
        available = ", ".join(PROVIDER_REGISTRY.keys())
        raise ValueError(f"Unknown provider: {name}. Available: {available}")

    return PROVIDER_REGISTRY[name]


def get_known_providers() -> list[str]:
    """Get list of provider names this package ships adapters for.

    Returns:
        List of provider identifiers
    """
    return list(PROVIDER_REGISTRY.keys())


def build_providers(
    credentials: ProviderCredentials,
    timeout: float = 120.0,
    cache: ResponseCache | None = None,
) -> dict[str, BaseProvider]:
    """Instantiate every provider whose credentials are present.

    Args:
        credentials: Vendor credentials
        timeout: Per-request timeout in seconds
        cache: Response cache for providers that support one

    Returns:
        Mapping of provider name to ready-to-use adapter (may be empty)
    """
    providers: dict[str, BaseProvider] = {}

    if credentials.has_apify:
        providers["apify"] = get_provider_class("apify")(
            credentials.apify_token, timeout=timeout, cache=cache
        )
        logger.info("Apify provider initialized")

    if credentials.has_oxylabs:
        providers["oxylabs"] = get_provider_class("oxylabs")(
            credentials.oxylabs_username, credentials.oxylabs_password, timeout=timeout
        )
        logger.info("Oxylabs provider initialized")

    return providers
