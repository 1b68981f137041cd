"""Pure functions for recognizing marketplace product URLs.

No network access: everything is derived from the URL string.
"""

import re
from urllib.parse import urlparse

from product_importer.models import Platform, ProductId, ProductUrl

AMAZON_TLDS = (
    "com",
    "sa",
    "ae",
    "eg",
    "co.uk",
    "de",
    "fr",
    "it",
    "es",
    "ca",
    "com.au",
    "in",
    "co.jp",
    "com.mx",
    "com.br",
    "nl",
    "se",
    "pl",
    "com.tr",
    "sg",
)

_AMAZON_TLD_GROUP = "|".join(re.escape(tld) for tld in AMAZON_TLDS)

URL_PATTERNS: dict[Platform, re.Pattern[str]] = {
    "amazon": re.compile(
        rf"^https?://(?:www\.|smile\.)?amazon\.(?P<tld>{_AMAZON_TLD_GROUP})"
        r"(?:/.*)?/(?:dp|gp/product)/(?P<id>[A-Z0-9]{10})(?:[/?#]|$)",
        re.IGNORECASE,
    ),
    "aliexpress": re.compile(
        r"^https?://(?:[a-z]{2,3}\.|www\.|m\.)?aliexpress\.(?:com|us|ru)"
        r"/item/(?:[^/?#]+/)?(?P<id>\d+)\.html",
        re.IGNORECASE,
    ),
}

# Hostname fragments for proxied or shortened links the patterns reject
HOST_HINTS: dict[Platform, tuple[str, ...]] = {
    "amazon": ("amazon.", "amzn."),
    "aliexpress": ("aliexpress.",),
}

# Looser id patterns used when the strict URL pattern does not match
_FALLBACK_ID_PATTERNS: dict[Platform, re.Pattern[str]] = {
    "amazon": re.compile(r"/(?:dp|gp/product|ASIN)/([A-Z0-9]{10})(?:[/?#]|$)", re.IGNORECASE),
    "aliexpress": re.compile(r"/item/(?:[^/?#]+/)?(\d+)\.html", re.IGNORECASE),
}


def detect_platform(url: str) -> Platform | None:
    """Classify a URL into a supported marketplace.

    Args:
        url: Product page URL

    Returns:
        Platform name, or None when the URL belongs to no known marketplace

    Examples:
        >>> detect_platform("https://www.amazon.com/Widget/dp/B08N5WRWNW")
        'amazon'
        >>> detect_platform("https://www.aliexpress.com/item/1005001234567890.html")
        'aliexpress'
        >>> detect_platform("https://example.com/product/1") is None
        True
    """
    if not url:
        return None

    for platform, pattern in URL_PATTERNS.items():
        if pattern.search(url):
            return platform

    host = (urlparse(url.strip()).netloc or "").lower()
    for platform, hints in HOST_HINTS.items():
        if any(hint in host for hint in hints):
            return platform

    return None


def is_supported_url(url: str) -> bool:
    return detect_platform(url) is not None


def extract_product_id(url: str, platform: Platform) -> ProductId | None:
    """Extract the vendor-native identifier (ASIN or numeric item id).

    Examples:
        >>> extract_product_id("https://www.amazon.com/Widget/dp/b08n5wrwnw", "amazon")
        'B08N5WRWNW'
        >>> extract_product_id("https://www.aliexpress.com/item/123.html", "aliexpress")
        '123'
    """
    match = URL_PATTERNS[platform].search(url)
    if match:
        product_id = match.group("id")
    else:
        fallback = _FALLBACK_ID_PATTERNS[platform].search(url)
        if not fallback:
            return None
        product_id = fallback.group(1)

    if platform == "amazon":
        product_id = product_id.upper()
    return ProductId(product_id)


def extract_amazon_domain(url: str) -> str:
    """Return the Amazon TLD used in the URL (e.g. 'co.uk'), defaulting to 'com'."""
    host = (urlparse(url.strip()).netloc or "").lower()
    # Longest first so "com.au" wins over "com"
    for tld in sorted(AMAZON_TLDS, key=len, reverse=True):
        if host.endswith(f"amazon.{tld}"):
            return tld
    return "com"


def normalize_url(url: str, platform: Platform) -> ProductUrl:
    """Rebuild a canonical product URL from the extracted id.

    Tracking parameters, affiliate tags and SEO slugs are dropped.
    Normalizing an already canonical URL returns it unchanged.

    Examples:
        >>> normalize_url("https://www.amazon.com/Widget/dp/B08N5WRWNW?tag=aff-20", "amazon")
        'https://www.amazon.com/dp/B08N5WRWNW'
    """
    product_id = extract_product_id(url, platform)
    if not product_id:
        return ProductUrl(url)

    if platform == "amazon":
        return ProductUrl(f"https://www.amazon.{extract_amazon_domain(url)}/dp/{product_id}")

    return ProductUrl(f"https://www.aliexpress.com/item/{product_id}.html")
