"""Cost estimation for metered scraping vendor calls.

Estimates are approximate and based on public pricing tiers; they are used
for usage reporting and tier enforcement downstream, never for billing.
"""

from datetime import datetime, timezone

from loguru import logger

from product_importer.models import Platform, ScrapeCostMetadata

# Estimated USD per request by provider and platform
PROVIDER_COSTS: dict[str, dict[str, float]] = {
    "apify": {
        "aliexpress": 0.015,  # ~$15 per 1000 requests
        "amazon": 0.02,  # ~$20 per 1000 requests
    },
    "oxylabs": {
        "aliexpress": 0.025,
        "amazon": 0.02,
    },
}

VISION_COST_USD = 0.005  # per vision repair call
DEFAULT_COST_USD = 0.02  # conservative fallback for unknown combinations


def estimate_scrape_cost(provider: str, platform: Platform) -> float:
    """Estimate the cost of one scrape.

    Compound providers such as "oxylabs+vision" are split on "+" and the
    component costs summed.

    Args:
        provider: Provider name (e.g., "apify", "oxylabs+vision")
        platform: Target platform

    Returns:
        Estimated cost in USD

    Examples:
        >>> estimate_scrape_cost("apify", "amazon")
        0.02
        >>> round(estimate_scrape_cost("oxylabs+vision", "amazon"), 3)
        0.025
    """
    total_cost = 0.0

    for part in provider.lower().split("+"):
        name = part.strip()
        if name == "vision":
            total_cost += VISION_COST_USD
        elif name in PROVIDER_COSTS:
            total_cost += PROVIDER_COSTS[name].get(platform, 0.0)

    if total_cost == 0:
        logger.warning(
            f"Unknown provider/platform combination: {provider}/{platform}, "
            f"using default cost ${DEFAULT_COST_USD}"
        )
        total_cost = DEFAULT_COST_USD

    return total_cost


def create_cost_metadata(
    provider: str, platform: Platform, duration_ms: int
) -> ScrapeCostMetadata:
    """Build the cost record attached to a successful scrape."""
    return ScrapeCostMetadata(
        provider=provider,
        platform=platform,
        estimated_cost_usd=estimate_scrape_cost(provider, platform),
        scraped_at=datetime.now(timezone.utc).isoformat(),
        duration_ms=duration_ms,
    )


def sum_scrape_costs(costs: list[ScrapeCostMetadata]) -> float:
    """Total estimated spend across many scrapes (e.g. one merchant's month)."""
    return sum(cost.estimated_cost_usd for cost in costs)


def format_cost_for_display(cost_usd: float) -> str:
    """Format a cost as "$X.XX", or "< $0.01" for very small amounts.

    Examples:
        >>> format_cost_for_display(0.005)
        '< $0.01'
        >>> format_cost_for_display(1.5)
        '$1.50'
    """
    if cost_usd < 0.01:
        return "< $0.01"
    return f"${cost_usd:.2f}"
