"""Apify e-commerce actor adapter (managed-actor vendor).

Runs the apify/e-commerce-scraping-tool actor synchronously and reads the
resulting dataset items. Raw responses are cached on disk so repeated
imports of the same URL within the TTL cost nothing.

Actor ids can be overridden per platform:
    APIFY_ACTOR_AMAZON=owner/actor
    APIFY_ACTOR_ALIEXPRESS=owner/actor
    APIFY_ACTOR_DEFAULT=owner/actor (fallback for all)
"""

import os
from typing import Any

import httpx
from loguru import logger

from product_importer.cache.response_cache import ResponseCache
from product_importer.exceptions import ProviderDataError, ProviderError, UnsupportedUrlError
from product_importer.models import (
    Platform,
    ProductUrl,
    ProductVariant,
    ReviewSummary,
    ScrapedProduct,
    SellerInfo,
)
from product_importer.scrapers.base_provider import BaseProvider
from product_importer.scrapers.field_parsers import (
    collect_images,
    first_text,
    join_text_list,
    parse_brand,
    parse_float,
    parse_int,
    parse_key_value_pairs,
    parse_price,
)
from product_importer.scrapers.platform_detector import detect_platform

APIFY_API_BASE = "https://api.apify.com/v2"
DEFAULT_ACTOR = "apify/e-commerce-scraping-tool"


def resolve_actor_ids() -> dict[Platform, str]:
    """Read per-platform actor overrides from the environment."""
    default = os.getenv("APIFY_ACTOR_DEFAULT") or DEFAULT_ACTOR
    return {
        "amazon": os.getenv("APIFY_ACTOR_AMAZON") or default,
        "aliexpress": os.getenv("APIFY_ACTOR_ALIEXPRESS") or default,
    }


def build_actor_input(url: str) -> dict[str, Any]:
    """Actor input for a single product detail URL."""
    return {
        "detailsUrls": [{"url": url}],
        "maxProductResults": 1,
        "additionalProperties": True,
    }


def _first_item(response: Any) -> dict[str, Any]:
    """Return the first dataset item from a bare list or an {"items": [...]} envelope."""
    items = response.get("items") if isinstance(response, dict) else response
    if not isinstance(items, list) or not items:
        raise ProviderDataError("apify", "No product data returned from Apify")

    item = items[0]
    if not isinstance(item, dict):
        raise ProviderError("apify", "Apify returned a malformed dataset item")
    return item


def _extract_price(data: dict[str, Any]) -> float:
    price = parse_price(data.get("price"))
    if price is not None and price > 0:
        return price

    offers = data.get("offers")
    if isinstance(offers, dict):
        offer_price = parse_price(offers.get("price"))
        if offer_price is not None:
            return offer_price

    return price or 0.0


def _extract_description(data: dict[str, Any], extra: dict[str, Any]) -> str:
    return (
        first_text(data.get("description"))
        or join_text_list(extra.get("features"), separator="\n\n")
        or join_text_list(data.get("features"))
    )


def _extract_seller(data: dict[str, Any], extra: dict[str, Any]) -> SellerInfo | None:
    seller = extra.get("seller")
    if isinstance(seller, dict) and first_text(seller.get("name")):
        return SellerInfo(
            name=first_text(seller.get("name")),
            rating=parse_float(seller.get("rating")),
            url=first_text(seller.get("url")) or None,
        )

    name = first_text(data.get("seller"), data.get("sellerName"))
    return SellerInfo(name=name) if name else None


def _extract_variants(data: dict[str, Any]) -> list[ProductVariant] | None:
    variants = []
    for variant in data.get("variants") or []:
        if not isinstance(variant, dict):
            continue
        name = first_text(variant.get("name"))
        options = [o for o in variant.get("options") or [] if isinstance(o, str) and o]
        if name and options:
            variants.append(ProductVariant(name=name, options=options))
    return variants or None


def map_to_scraped_product(
    data: dict[str, Any], source_url: str, platform: Platform
) -> ScrapedProduct:
    """Map an Apify dataset item onto ScrapedProduct.

    Args:
        data: First dataset item
        source_url: Original product URL
        platform: Detected platform

    Returns:
        Normalized product (title may be empty)

    Raises:
        ProviderDataError: If the item has no usable images
    """
    extra = data.get("additionalProperties")
    if not isinstance(extra, dict):
        extra = {}

    images = collect_images(
        [extra.get("highResolutionImages"), data.get("images")],
        [data.get("mainImage"), data.get("image")],
    )
    if not images:
        raise ProviderDataError("apify", "No images found in scraped data")

    offers = data.get("offers") if isinstance(data.get("offers"), dict) else {}
    currency = first_text(offers.get("priceCurrency"), data.get("currency")) or "USD"

    review_summary = None
    rating = parse_float(data.get("rating"))
    review_count = parse_int(
        data.get("reviewsCount") or data.get("reviewCount") or extra.get("reviewsCount")
    )
    if rating and review_count:
        review_summary = ReviewSummary(rating=rating, count=review_count)

    specifications = (
        parse_key_value_pairs(data.get("specifications"))
        or parse_key_value_pairs(extra.get("attributes"))
        or parse_key_value_pairs(extra.get("productOverview"))
    )

    return ScrapedProduct(
        title=first_text(data.get("title"), data.get("name")),
        description=_extract_description(data, extra),
        price=_extract_price(data),
        currency=currency,
        images=images,
        source_url=ProductUrl(source_url),
        platform=platform,
        brand=parse_brand(data.get("brand")),
        sku=first_text(data.get("sku"), data.get("productId"), extra.get("asin")) or None,
        specifications=specifications or None,
        review_summary=review_summary,
        seller=_extract_seller(data, extra),
        variants=_extract_variants(data),
        provider="apify",
    )


class ApifyProvider(BaseProvider):
    """Managed-actor adapter with an on-disk response cache."""

    name = "apify"
    display_name = "Apify"
    supported_platforms = ("amazon", "aliexpress")

    def __init__(
        self,
        api_token: str,
        timeout: float = 120.0,
        cache: ResponseCache | None = None,
        actor_ids: dict[Platform, str] | None = None,
        http_client: httpx.Client | None = None,
    ):
        """Initialize provider.

        Args:
            api_token: Apify API token
            timeout: Per-request ceiling in seconds (actor runs are slow)
            cache: Response cache; defaults to ResponseCache() in .cache/
            actor_ids: Actor id per platform; defaults to resolve_actor_ids()
            http_client: Optional shared httpx client
        """
        super().__init__(timeout=timeout, http_client=http_client)
        self._api_token = api_token
        self.cache = cache if cache is not None else ResponseCache()
        self.actor_ids = actor_ids or resolve_actor_ids()

    def _run_actor(self, actor_id: str, url: str, timeout: float | None = None) -> Any:
        endpoint = (
            f"{APIFY_API_BASE}/acts/{actor_id.replace('/', '~')}/run-sync-get-dataset-items"
        )
        return self._post_json(
            endpoint,
            build_actor_input(url),
            headers={"Authorization": f"Bearer {self._api_token}"},
            timeout=timeout,
        )

    def scrape_product(
        self, url: str, force_refresh: bool = False, timeout: float | None = None
    ) -> ScrapedProduct:
        """Scrape product with caching support.

        Args:
            url: Product URL to scrape
            force_refresh: Skip cache and fetch fresh data
            timeout: Request ceiling for this call; defaults to self.timeout
        """
        platform = detect_platform(url)
        if not platform:
            raise UnsupportedUrlError(f"Unsupported URL: {url}")

        cache_key = self.cache.cache_key(url)

        if not force_refresh:
            cached = self.cache.get(cache_key)
            if cached is not None:
                age = self.cache.age_seconds(cache_key) or 0
                logger.info(f"Using cached response ({round(age)}s old)")
                return map_to_scraped_product(_first_item(cached), url, platform)

        actor_id = self.actor_ids.get(platform) or DEFAULT_ACTOR
        logger.info(f"Scraping {platform} product using actor: {actor_id}")
        logger.debug(f"URL: {url}")

        response = self._run_actor(actor_id, url, timeout)
        product = map_to_scraped_product(_first_item(response), url, platform)

        # Only responses that map cleanly are cached
        self.cache.set(cache_key, response)
        logger.debug(f"Response cached at {cache_key}")

        return product
