"""Pure functions for decoding vendor response fields.

Vendors return the same field in several shapes (price as a number or a
formatted string, brand as a string or an object, images spread across
several keys). Each function here accepts every known shape of one field
and returns a single canonical value.
"""

import re
from typing import Any, Iterable

from product_importer.models import MAX_IMAGES, ImageUrl


def parse_price(value: Any) -> float | None:
    """Decode a price given as a number or a currency-formatted string.

    Args:
        value: Raw price value from a vendor response

    Returns:
        Price as float, or None if no price could be read

    Examples:
        >>> parse_price(19.99)
        19.99
        >>> parse_price("$1,299.99")
        1299.99
        >>> parse_price("19,99 €")
        19.99
        >>> parse_price("1.299,00 €")
        1299.0
        >>> parse_price("free") is None
        True
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        return float(value)

    if not isinstance(value, str):
        return None

    cleaned = re.sub(r"[^\d.,]", "", value)
    if not cleaned or not re.search(r"\d", cleaned):
        return None

    if "," in cleaned and "." in cleaned:
        # Whichever separator comes last is the decimal separator
        if cleaned.rfind(",") > cleaned.rfind("."):
            cleaned = cleaned.replace(".", "").replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
    elif "," in cleaned:
        head, _, tail = cleaned.rpartition(",")
        if len(tail) == 3 and head:
            cleaned = cleaned.replace(",", "")  # "1,299" thousands separator
        else:
            cleaned = head.replace(",", "") + "." + tail

    try:
        return float(cleaned)
    except ValueError:
        return None


def parse_brand(value: Any) -> str | None:
    """Decode a brand given as a string or as {"name": ..., "slogan": ...}.

    Examples:
        >>> parse_brand("Acme")
        'Acme'
        >>> parse_brand({"slogan": "Visit the Acme Store"})
        'Visit the Acme Store'
    """
    if isinstance(value, str):
        return value.strip() or None

    if isinstance(value, dict):
        for key in ("name", "slogan"):
            candidate = value.get(key)
            if isinstance(candidate, str) and candidate.strip():
                return candidate.strip()

    return None


def parse_int(value: Any) -> int | None:
    """Decode a count such as 1234, 1234.0 or "1,234 ratings"."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        digits = re.sub(r"[^\d]", "", value)
        return int(digits) if digits else None
    return None


def parse_float(value: Any) -> float | None:
    """Decode a rating such as 4.5 or "4.5 out of 5 stars"."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        match = re.search(r"\d+(?:[.,]\d+)?", value)
        if match:
            return float(match.group(0).replace(",", "."))
    return None


def first_text(*values: Any) -> str:
    """Return the first non-blank string among the candidates, stripped."""
    for value in values:
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def join_text_list(value: Any, separator: str = "\n") -> str:
    """Join a list of bullet strings (e.g. feature bullets) into one text."""
    if not isinstance(value, list):
        return ""
    parts = [item.strip() for item in value if isinstance(item, str) and item.strip()]
    return separator.join(parts)


def is_absolute_url(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(("http://", "https://"))


def dedupe_images(urls: Iterable[Any], limit: int = MAX_IMAGES) -> list[ImageUrl]:
    """Keep absolute URLs only, drop duplicates (first wins), cap at limit."""
    seen: set[str] = set()
    images: list[ImageUrl] = []
    for url in urls:
        if not is_absolute_url(url) or url in seen:
            continue
        seen.add(url)
        images.append(ImageUrl(url))
        if len(images) >= limit:
            break
    return images


def collect_images(
    galleries: Iterable[Any],
    featured: Iterable[Any] = (),
    limit: int = MAX_IMAGES,
) -> list[ImageUrl]:
    """Merge image fields in priority order.

    Args:
        galleries: Candidate image lists, highest priority first. Only the
            first list that yields at least one usable URL is used.
        featured: Single "main image" values; placed in front of the
            gallery (in the given order) when not already in it.
        limit: Maximum number of images returned

    Returns:
        Deduplicated list of absolute image URLs

    Examples:
        >>> collect_images([[], ["https://a/1.jpg", "https://a/1.jpg"]], ["https://a/0.jpg"])
        ['https://a/0.jpg', 'https://a/1.jpg']
    """
    gallery: list[ImageUrl] = []
    for candidate in galleries:
        if isinstance(candidate, list):
            gallery = dedupe_images(candidate, limit=len(candidate) or 1)
            if gallery:
                break

    front = [url for url in featured if is_absolute_url(url) and url not in gallery]
    return dedupe_images([*front, *gallery], limit=limit)


def parse_key_value_pairs(value: Any) -> dict[str, str]:
    """Decode specifications given as a dict or a list of pairs.

    Accepts {"Color": "Red"}, [{"key": "Color", "value": "Red"}] and
    [{"name": "Color", "value": "Red"}].
    """
    result: dict[str, str] = {}

    if isinstance(value, dict):
        for key, item in value.items():
            if isinstance(key, str) and key.strip() and item not in (None, ""):
                result[key.strip()] = str(item).strip()
        return result

    if isinstance(value, list):
        for entry in value:
            if not isinstance(entry, dict):
                continue
            key = entry.get("key") or entry.get("name")
            item = entry.get("value")
            if isinstance(key, str) and key.strip() and item not in (None, ""):
                result[key.strip()] = str(item).strip()

    return result
