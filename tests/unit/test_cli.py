"""Unit tests for the command-line entry point.

The orchestrator and logging setup are patched; no vendor is contacted.
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from product_importer.cli import USER_MESSAGES, build_parser, main
from product_importer.exceptions import NoProvidersAvailableError, UnsupportedUrlError
from product_importer.models import ScrapedProduct
from product_importer.scrapers.cost_estimator import create_cost_metadata

AMAZON_URL = "https://www.amazon.com/dp/B08N5WRWNW"


def scraped_product():
    product = ScrapedProduct(
        title="Widget Pro",
        description="A widget.",
        price=19.99,
        images=["https://cdn.example.com/1.jpg"],
        source_url=AMAZON_URL,
        platform="amazon",
        provider="apify",
    )
    product.cost_metadata = create_cost_metadata("apify", "amazon", duration_ms=100)
    return product


class TestBuildParser:
    """Tests for argument parsing."""

    @pytest.mark.unit
    def test_defaults(self):
        args = build_parser().parse_args([AMAZON_URL])

        assert args.url == AMAZON_URL
        assert args.force_refresh is False
        assert args.output is None
        assert args.verbose is False

    @pytest.mark.unit
    def test_short_flags(self):
        args = build_parser().parse_args([AMAZON_URL, "-r", "-v", "-o", "out.json"])

        assert args.force_refresh is True
        assert args.verbose is True
        assert args.output == "out.json"

    @pytest.mark.unit
    def test_url_is_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


@patch("product_importer.cli.setup_logging")
@patch("product_importer.cli.ScrapingOrchestrator")
class TestMain:
    """Tests for main()."""

    @pytest.mark.unit
    def test_prints_product_json(self, mock_orchestrator, mock_logging, capsys):
        orchestrator = MagicMock()
        orchestrator.scrape_product.return_value = scraped_product()
        mock_orchestrator.from_env.return_value = orchestrator

        exit_code = main([AMAZON_URL, "--force-refresh"])

        assert exit_code == 0
        orchestrator.scrape_product.assert_called_once_with(AMAZON_URL, force_refresh=True)
        data = json.loads(capsys.readouterr().out)
        assert data["title"] == "Widget Pro"
        assert data["cost_metadata"]["estimated_cost_usd"] == 0.02
        mock_logging.assert_called_once_with(False)

    @pytest.mark.unit
    def test_writes_output_file(self, mock_orchestrator, mock_logging, tmp_path):
        orchestrator = MagicMock()
        orchestrator.scrape_product.return_value = scraped_product()
        mock_orchestrator.from_env.return_value = orchestrator
        output = tmp_path / "nested" / "product.json"

        exit_code = main([AMAZON_URL, "--output", str(output)])

        assert exit_code == 0
        assert json.loads(output.read_text(encoding="utf-8"))["provider"] == "apify"

    @pytest.mark.unit
    def test_scrape_error_returns_one(self, mock_orchestrator, mock_logging):
        orchestrator = MagicMock()
        orchestrator.scrape_product.side_effect = UnsupportedUrlError("Unsupported URL")
        mock_orchestrator.from_env.return_value = orchestrator

        assert main(["https://example.com/item"]) == 1

    @pytest.mark.unit
    def test_missing_credentials_returns_one(self, mock_orchestrator, mock_logging):
        mock_orchestrator.from_env.side_effect = NoProvidersAvailableError("none")

        assert main([AMAZON_URL]) == 1


@pytest.mark.unit
def test_user_messages_cover_every_category():
    assert set(USER_MESSAGES) == {"configuration", "vendor", "data"}


@pytest.mark.unit
@patch("product_importer.cli.setup_logging")
def test_bad_cache_ttl_reports_configuration_error(mock_logging, monkeypatch):
    monkeypatch.setenv("APIFY_TOKEN", "token")
    monkeypatch.setenv("PRODUCT_IMPORTER_CACHE_TTL", "half an hour")

    assert main([AMAZON_URL]) == 1
