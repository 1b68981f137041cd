"""Command-line interface for the product importer.

Usage:
    python -m product_importer.cli https://www.amazon.com/dp/B08N5WRWNW
    python -m product_importer.cli URL --force-refresh --output product.json
"""

import argparse
import json
import sys
from pathlib import Path

from loguru import logger

from product_importer.exceptions import ScrapingError, classify_error
from product_importer.orchestrator import ScrapingOrchestrator
from product_importer.scrapers.cost_estimator import format_cost_for_display

USER_MESSAGES = {
    "configuration": "Scraping is not configured correctly. Check provider credentials.",
    "vendor": "Scraping providers are unavailable right now. Please retry later.",
    "data": "This product page could not be imported. Try a different URL.",
}


def setup_logging(verbose: bool = False) -> None:
    """Configure loguru logging.

    Args:
        verbose: Whether to enable debug logging
    """
    logger.remove()  # Remove default handler

    log_level = "DEBUG" if verbose else "INFO"
    log_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
        "<level>{message}</level>"
    )

    logger.add(sys.stderr, format=log_format, level=log_level, colorize=True)
    logger.add(
        "logs/importer_{time:YYYY-MM-DD}.log",
        format=log_format,
        level="DEBUG",
        rotation="1 day",
        retention="30 days",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Import a product listing from Amazon or AliExpress",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Print the normalized product as JSON
  python -m product_importer.cli https://www.amazon.com/dp/B08N5WRWNW

  # Ignore cached vendor responses
  python -m product_importer.cli https://www.aliexpress.com/item/1005001234567890.html --force-refresh

  # Write the result to a file
  python -m product_importer.cli https://www.amazon.com/dp/B08N5WRWNW -o product.json
        """,
    )

    parser.add_argument("url", help="Product URL to import")
    parser.add_argument(
        "--force-refresh",
        "-r",
        action="store_true",
        help="Bypass the vendor response cache",
    )
    parser.add_argument(
        "--output",
        "-o",
        help="Write the product JSON to this file instead of stdout",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose debug logging",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    args = build_parser().parse_args(argv)

    setup_logging(args.verbose)

    try:
        orchestrator = ScrapingOrchestrator.from_env()
        product = orchestrator.scrape_product(args.url, force_refresh=args.force_refresh)
    except ScrapingError as e:
        logger.error(f"Import failed: {e}")
        logger.error(USER_MESSAGES[classify_error(e)])
        return 1

    payload = json.dumps(product.to_dict(), ensure_ascii=False, indent=2)

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(payload, encoding="utf-8")
        logger.info(f"Product written to {output_path}")
    else:
        print(payload)

    logger.success(
        f"Imported \"{product.title}\" via {product.provider} "
        f"({format_cost_for_display(product.cost_metadata.estimated_cost_usd)})"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
