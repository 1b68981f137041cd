"""Oxylabs Web Scraper API adapter (structured-query vendor).

Uses:
- amazon_product source for Amazon (queried by ASIN + domain)
- universal_ecommerce source for AliExpress (queried by URL)
"""

from typing import Any

import httpx
from loguru import logger

from product_importer.exceptions import ProviderDataError, ProviderError, UnsupportedUrlError
from product_importer.models import (
    Platform,
    ProductUrl,
    ReviewSummary,
    ScrapedProduct,
    SellerInfo,
    ShippingInfo,
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
from product_importer.scrapers.platform_detector import (
    detect_platform,
    extract_amazon_domain,
    extract_product_id,
)

OXYLABS_API_URL = "https://realtime.oxylabs.io/v1/queries"


def build_query(url: str, platform: Platform) -> dict[str, Any]:
    """Build the structured query payload for a product URL.

    Raises:
        UnsupportedUrlError: If no ASIN can be extracted from an Amazon URL
    """
    if platform == "amazon":
        asin = extract_product_id(url, "amazon")
        if not asin:
            raise UnsupportedUrlError(f"Could not extract ASIN from URL: {url}")
        return {
            "source": "amazon_product",
            "query": asin,
            "domain": extract_amazon_domain(url),
            "parse": True,
        }

    return {
        "source": "universal_ecommerce",
        "url": url,
        "parse": True,
        "render": "html",
    }


def _extract_content(response: Any) -> dict[str, Any]:
    """Pull the parsed product object out of the results envelope."""
    if not isinstance(response, dict):
        raise ProviderError("oxylabs", "Oxylabs response is not a JSON object")

    results = response.get("results") or []
    if not isinstance(results, list):
        raise ProviderError("oxylabs", "Oxylabs returned a malformed results field")
    if not results:
        raise ProviderError("oxylabs", "No results returned from Oxylabs")

    result = results[0]
    if not isinstance(result, dict):
        raise ProviderError("oxylabs", "Oxylabs returned a malformed result entry")

    status_code = result.get("status_code")
    if status_code is not None and status_code != 200:
        raise ProviderError(
            "oxylabs", f"Oxylabs returned status {status_code}", status_code=status_code
        )

    content = result.get("content")
    if not isinstance(content, dict):
        raise ProviderError("oxylabs", "Oxylabs returned unparsed content")

    return content


def _review_summary(data: dict[str, Any]) -> ReviewSummary | None:
    rating = parse_float(data.get("rating"))
    count = parse_int(data.get("reviews_count"))
    if rating and count:
        return ReviewSummary(rating=rating, count=count)
    return None


def map_amazon_product(data: dict[str, Any], source_url: str) -> ScrapedProduct:
    """Map an amazon_product parsed response onto ScrapedProduct.

    Args:
        data: Parsed content object from Oxylabs
        source_url: Original product URL

    Returns:
        Normalized product (title may be empty)

    Raises:
        ProviderDataError: If the response has no images
    """
    description = first_text(data.get("description")) or join_text_list(
        data.get("feature_bullets")
    ) or first_text(data.get("bullet_points"))

    currency = first_text(data.get("currency")) or "USD"

    images = collect_images([data.get("images")], [data.get("image")])
    if not images:
        raise ProviderDataError("oxylabs", "No images found in Amazon product data")

    seller = None
    merchant = data.get("featured_merchant")
    seller_name = first_text(
        data.get("seller_name"), merchant.get("name") if isinstance(merchant, dict) else None
    )
    if seller_name:
        seller = SellerInfo(
            name=seller_name,
            url=first_text(
                data.get("seller_url"),
                merchant.get("link") if isinstance(merchant, dict) else None,
            )
            or None,
        )

    shipping = None
    shipping_price = parse_price(data.get("shipping_price"))
    if shipping_price is not None:
        shipping = ShippingInfo(
            cost=shipping_price, currency=currency, free_shipping=shipping_price == 0
        )

    return ScrapedProduct(
        title=first_text(data.get("title"), data.get("product_name")),
        description=description,
        price=parse_price(data.get("price")) or 0.0,
        currency=currency,
        images=images,
        source_url=ProductUrl(source_url),
        platform="amazon",
        brand=parse_brand(data.get("brand")),
        sku=first_text(data.get("asin")) or None,
        specifications=parse_key_value_pairs(data.get("specifications")) or None,
        review_summary=_review_summary(data),
        seller=seller,
        shipping=shipping,
        provider="oxylabs",
    )


def map_aliexpress_product(data: dict[str, Any], source_url: str) -> ScrapedProduct:
    """Map a universal_ecommerce parsed response onto ScrapedProduct.

    Raises:
        ProviderDataError: If the response has no images
    """
    images = collect_images([data.get("images")], [data.get("image")])
    if not images:
        raise ProviderDataError("oxylabs", "No images found in AliExpress product data")

    seller_name = first_text(data.get("seller"))

    return ScrapedProduct(
        title=first_text(data.get("title"), data.get("name")),
        description=first_text(data.get("description")),
        price=parse_price(data.get("price")) or 0.0,
        currency=first_text(data.get("currency")) or "USD",
        images=images,
        source_url=ProductUrl(source_url),
        platform="aliexpress",
        brand=parse_brand(data.get("brand")),
        sku=first_text(data.get("sku")) or None,
        review_summary=_review_summary(data),
        seller=SellerInfo(name=seller_name) if seller_name else None,
        provider="oxylabs",
    )


class OxylabsProvider(BaseProvider):
    """Structured-query adapter for the Oxylabs realtime API."""

    name = "oxylabs"
    display_name = "Oxylabs"
    supported_platforms = ("amazon", "aliexpress")

    def __init__(
        self,
        username: str,
        password: str,
        timeout: float = 120.0,
        http_client: httpx.Client | None = None,
    ):
        super().__init__(timeout=timeout, http_client=http_client)
        self._auth = (username, password)

    def scrape_product(
        self, url: str, force_refresh: bool = False, timeout: float | None = None
    ) -> ScrapedProduct:
        """Scrape a product through Oxylabs.

        Oxylabs keeps no local cache, so force_refresh has no effect.
        """
        platform = detect_platform(url)
        if not platform:
            raise UnsupportedUrlError(f"Unsupported URL: {url}")

        logger.info(f"Scraping {platform} product: {url}")

        payload = build_query(url, platform)
        response = self._post_json(
            OXYLABS_API_URL, payload, auth=self._auth, timeout=timeout
        )
        content = _extract_content(response)

        if platform == "amazon":
            return map_amazon_product(content, url)
        return map_aliexpress_product(content, url)
