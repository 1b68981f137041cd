"""Unit tests for cost_estimator."""

from datetime import datetime

import pytest

from product_importer.models import ScrapeCostMetadata
from product_importer.scrapers.cost_estimator import (
    DEFAULT_COST_USD,
    PROVIDER_COSTS,
    VISION_COST_USD,
    create_cost_metadata,
    estimate_scrape_cost,
    format_cost_for_display,
    sum_scrape_costs,
)


class TestEstimateScrapeCost:
    """Tests for estimate_scrape_cost function."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "provider,platform",
        [
            ("apify", "amazon"),
            ("apify", "aliexpress"),
            ("oxylabs", "amazon"),
            ("oxylabs", "aliexpress"),
        ],
    )
    def test_returns_configured_constant(self, provider, platform):
        """Should return the table value for each (provider, platform) pair."""
        assert estimate_scrape_cost(provider, platform) == PROVIDER_COSTS[provider][platform]

    @pytest.mark.unit
    def test_compound_provider_sums_vision_cost(self):
        """Should add vision cost to the base provider cost."""
        expected = PROVIDER_COSTS["oxylabs"]["amazon"] + VISION_COST_USD

        assert estimate_scrape_cost("oxylabs+vision", "amazon") == pytest.approx(expected)

    @pytest.mark.unit
    def test_compound_provider_is_case_and_space_insensitive(self):
        expected = PROVIDER_COSTS["apify"]["aliexpress"] + VISION_COST_USD

        assert estimate_scrape_cost("Apify + Vision", "aliexpress") == pytest.approx(expected)

    @pytest.mark.unit
    def test_unknown_provider_uses_default(self):
        assert estimate_scrape_cost("scraperapi", "amazon") == DEFAULT_COST_USD


class TestCreateCostMetadata:
    """Tests for create_cost_metadata function."""

    @pytest.mark.unit
    def test_builds_complete_record(self):
        metadata = create_cost_metadata("apify", "amazon", duration_ms=1234)

        assert metadata.provider == "apify"
        assert metadata.platform == "amazon"
        assert metadata.estimated_cost_usd == PROVIDER_COSTS["apify"]["amazon"]
        assert metadata.duration_ms == 1234
        assert datetime.fromisoformat(metadata.scraped_at)

    @pytest.mark.unit
    def test_metadata_is_immutable(self):
        metadata = create_cost_metadata("apify", "amazon", duration_ms=10)

        with pytest.raises(AttributeError):
            metadata.estimated_cost_usd = 0.0


class TestAggregation:
    """Tests for sum_scrape_costs and format_cost_for_display."""

    @pytest.mark.unit
    def test_sum_scrape_costs(self):
        costs = [
            ScrapeCostMetadata("apify", "amazon", 0.02, "2026-01-01T00:00:00+00:00", 10),
            ScrapeCostMetadata("oxylabs", "aliexpress", 0.025, "2026-01-01T00:00:00+00:00", 10),
        ]

        assert sum_scrape_costs(costs) == pytest.approx(0.045)

    @pytest.mark.unit
    def test_sum_of_empty_list_is_zero(self):
        assert sum_scrape_costs([]) == 0

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "cost,expected",
        [
            (0.005, "< $0.01"),
            (0.0, "< $0.01"),
            (0.01, "$0.01"),
            (1.5, "$1.50"),
            (12.345, "$12.35"),
        ],
    )
    def test_format_cost_for_display(self, cost, expected):
        assert format_cost_for_display(cost) == expected
