"""Scraping orchestrator: provider fallback chains, retries and vision repair.

Flow per scrape:
    detect platform -> walk provider chain (retrying each provider with
    exponential backoff) -> validate -> vision repair if the title is
    missing -> attach cost metadata -> return.
"""

import threading
import time
from datetime import datetime, timezone
from typing import Callable

from loguru import logger

from product_importer.ai.vision import VisionAnalyzer
from product_importer.cache.response_cache import ResponseCache
from product_importer.config import (
    ProviderCredentials,
    load_cache_from_env,
    load_credentials_from_env,
)
from product_importer.exceptions import (
    AllProvidersFailedError,
    NoProvidersAvailableError,
    ProductValidationError,
    ScrapeCancelledError,
    UnsupportedUrlError,
    VisionNotConfiguredError,
    VisionRepairError,
)
from product_importer.models import (
    Platform,
    ScrapeAttempt,
    ScrapedProduct,
    ScrapeReport,
    ScrapingConfig,
)
from product_importer.scrapers.base_provider import BaseProvider
from product_importer.scrapers.cost_estimator import create_cost_metadata
from product_importer.scrapers.field_parsers import dedupe_images
from product_importer.scrapers.platform_detector import detect_platform
from product_importer.scrapers.registry import build_providers
from product_importer.utils.retry_handler import retry_with_backoff


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class ScrapingOrchestrator:
    """Coordinates provider fallback, retries, validation and vision repair.

    Safe to call from several threads at once: per-scrape state lives on the
    stack, and the config is a frozen object replaced as a whole.
    """

    def __init__(
        self,
        providers: dict[str, BaseProvider],
        config: ScrapingConfig | None = None,
        vision: VisionAnalyzer | None = None,
        sleep: Callable[[float], None] = time.sleep,
        on_attempt: Callable[[ScrapeAttempt], None] | None = None,
    ):
        """Initialize orchestrator.

        Args:
            providers: Registered adapters by name (only those with credentials)
            config: Fallback chains and retry policy; defaults to ScrapingConfig()
            vision: Vision analyzer used to repair title-less products
            sleep: Sleep function for backoff delays (tests pass a recorder)
            on_attempt: Telemetry hook called after every provider attempt

        Raises:
            NoProvidersAvailableError: If no provider is registered
        """
        if not providers:
            raise NoProvidersAvailableError(
                "No scraping providers configured. "
                "Please set APIFY_TOKEN or OXYLABS_USERNAME/OXYLABS_PASSWORD."
            )

        self._providers = dict(providers)
        self._config = config or ScrapingConfig()
        self._vision = vision
        self._sleep = sleep
        self._on_attempt = on_attempt

    @classmethod
    def from_credentials(
        cls,
        credentials: ProviderCredentials,
        config: ScrapingConfig | None = None,
        cache: ResponseCache | None = None,
    ) -> "ScrapingOrchestrator":
        """Build an orchestrator with every provider the credentials allow."""
        config = config or ScrapingConfig()
        providers = build_providers(credentials, timeout=config.timeout, cache=cache)
        vision = (
            VisionAnalyzer(api_key=credentials.openai_api_key)
            if credentials.has_vision
            else None
        )
        return cls(providers, config=config, vision=vision)

    @classmethod
    def from_env(cls, config: ScrapingConfig | None = None) -> "ScrapingOrchestrator":
        """Build an orchestrator from environment credentials and cache settings."""
        return cls.from_credentials(
            load_credentials_from_env(), config=config, cache=load_cache_from_env()
        )

    def get_available_providers(self) -> list[str]:
        """Get list of registered provider names."""
        return list(self._providers.keys())

    def get_config(self) -> ScrapingConfig:
        """Get current configuration snapshot."""
        return self._config

    def update_config(self, **changes) -> ScrapingConfig:
        """Replace the configuration with a copy that has the given fields changed.

        Scrapes already running keep the snapshot (and timeout) they started with.

        Example:
            orchestrator.update_config(max_retries=3, provider_chains={"amazon": ["apify"]})

        Raises:
            ValueError: If the resulting configuration is invalid
        """
        new_config = self._config.with_changes(**changes)
        self._config = new_config
        logger.info(f"Configuration updated: {new_config}")
        return new_config

    def scrape_product(
        self,
        url: str,
        force_refresh: bool = False,
        cancel_event: threading.Event | None = None,
    ) -> ScrapedProduct:
        """Scrape a product URL with automatic fallback.

        Args:
            url: Amazon or AliExpress product URL
            force_refresh: Bypass provider response caches
            cancel_event: Optional event that cancels the scrape between attempts

        Returns:
            Validated product with cost metadata attached

        Raises:
            UnsupportedUrlError: If the URL is not a supported marketplace
            NoProvidersAvailableError: If no configured provider serves the platform
            VisionNotConfiguredError: If the title is missing and vision is unavailable
            VisionRepairError: If the title is missing and vision repair failed
            AllProvidersFailedError: If every provider attempt failed
            ScrapeCancelledError: If cancel_event was set
        """
        return self.scrape_product_with_report(url, force_refresh, cancel_event).product

    def scrape_product_with_report(
        self,
        url: str,
        force_refresh: bool = False,
        cancel_event: threading.Event | None = None,
    ) -> ScrapeReport:
        """Same as scrape_product, but also returns the attempt log."""
        start = time.monotonic()
        config = self._config  # one snapshot for the whole scrape

        platform = detect_platform(url)
        if not platform:
            raise UnsupportedUrlError(
                f"Unsupported URL. Only AliExpress and Amazon URLs are supported.\nURL: {url}"
            )

        logger.info(f"Starting scrape for {platform}: {url}")

        chain = config.chain_for(platform)
        available = [name for name in chain if name in self._providers]
        if not available:
            raise NoProvidersAvailableError(
                f"No providers available for {platform}. "
                f"Configured: [{', '.join(chain)}], "
                f"Available: [{', '.join(self.get_available_providers())}]"
            )

        logger.info(f"Provider chain for {platform}: [{' → '.join(available)}]")

        attempts: list[ScrapeAttempt] = []
        last_error: Exception | None = None
        product: ScrapedProduct | None = None

        for provider_name in available:
            try:
                product = retry_with_backoff(
                    self._attempt_callable(provider_name, url, force_refresh, attempts, config),
                    max_attempts=config.max_retries,
                    base_delay=config.retry_delay_base,
                    max_delay=None,
                    should_retry=self._retry_predicate(config),
                    sleep=self._sleep,
                    cancel_event=cancel_event,
                )
                break
            except ScrapeCancelledError:
                raise
            except Exception as e:
                last_error = e
                logger.warning(
                    f"{provider_name} exhausted all retries, trying next provider..."
                )

        if product is None:
            summary = ", ".join(attempt.summary() for attempt in attempts)
            raise AllProvidersFailedError(
                f"All scraping providers failed for {platform}.\n"
                f"URL: {url}\n"
                f"Attempts: {summary}\n"
                f"Last error: {last_error or 'Unknown error'}",
                attempts=attempts,
                last_error=last_error,
            )

        if not product.title.strip():
            product = self._repair_with_vision(product, platform, url)

        duration_ms = _elapsed_ms(start)
        product.scraped_at = datetime.now(timezone.utc)
        product.cost_metadata = create_cost_metadata(product.provider, platform, duration_ms)

        logger.info(
            f"✓ Scraped \"{product.title}\" via {product.provider} in {duration_ms}ms "
            f"(est. ${product.cost_metadata.estimated_cost_usd:.3f})"
        )
        return ScrapeReport(product=product, attempts=attempts)

    def _attempt_callable(
        self,
        provider_name: str,
        url: str,
        force_refresh: bool,
        attempts: list[ScrapeAttempt],
        config: ScrapingConfig,
    ) -> Callable[[int], ScrapedProduct]:
        """Build the single-attempt function retried for one provider."""
        provider = self._providers[provider_name]

        def attempt_once(attempt: int) -> ScrapedProduct:
            logger.info(
                f"Attempting {provider_name} (attempt {attempt}/{config.max_retries})"
            )
            started = time.monotonic()
            try:
                product = provider.scrape_product(
                    url, force_refresh=force_refresh, timeout=config.timeout
                )
                product.provider = product.provider or provider_name
                product.images = dedupe_images(product.images)
                self._validate_product(product)
            except Exception as e:
                self._record(
                    attempts,
                    ScrapeAttempt(
                        provider=provider_name,
                        attempt=attempt,
                        success=False,
                        duration_ms=_elapsed_ms(started),
                        error=str(e),
                    ),
                )
                logger.error(f"✗ {provider_name} attempt {attempt} failed: {e}")
                raise

            duration_ms = _elapsed_ms(started)
            self._record(
                attempts,
                ScrapeAttempt(
                    provider=provider_name,
                    attempt=attempt,
                    success=True,
                    duration_ms=duration_ms,
                ),
            )
            logger.info(f"✓ Success with {provider_name} in {duration_ms}ms")
            return product

        return attempt_once

    def _record(self, attempts: list[ScrapeAttempt], attempt: ScrapeAttempt) -> None:
        attempts.append(attempt)
        if self._on_attempt is not None:
            self._on_attempt(attempt)

    @staticmethod
    def _retry_predicate(config: ScrapingConfig) -> Callable[[Exception], bool] | None:
        if not config.skip_retries_on_invalid_data:
            return None
        return lambda error: not isinstance(error, ProductValidationError)

    @staticmethod
    def _validate_product(product: ScrapedProduct) -> None:
        """Validate that scraped product has images and a sane price.

        A missing title is not an error here; it routes to vision repair.

        Raises:
            ProductValidationError: If images are missing or price is negative
        """
        errors = []

        if not product.images:
            errors.append("Missing images")

        if product.price is None or product.price < 0:
            errors.append("Invalid price")

        if errors:
            raise ProductValidationError(f"Invalid product data: {', '.join(errors)}")

        if not product.description.strip():
            logger.warning("Product has no description, AI enhancement recommended")

    def _repair_with_vision(
        self, product: ScrapedProduct, platform: Platform, url: str
    ) -> ScrapedProduct:
        """Fill in a missing title from the first product image.

        Raises:
            VisionNotConfiguredError: If no vision backend is configured
            VisionRepairError: If the vision call failed
        """
        logger.warning(
            f"{product.provider} returned images but no title, trying vision fallback"
        )

        if self._vision is None or not self._vision.is_configured:
            raise VisionNotConfiguredError(
                f"Scraped product from {product.provider} has no title and "
                f"vision fallback is not configured (set OPENAI_API_KEY).\nURL: {url}"
            )

        try:
            result = self._vision.analyze_image(product.images[0], platform)
        except Exception as e:
            raise VisionRepairError(
                f"Scraped product from {product.provider} has no title and "
                f"vision fallback failed: {e}\nURL: {url}"
            ) from e

        product.title = result.title
        product.description = result.description or product.description
        product.category = result.category
        product.provider = f"{product.provider}+vision"
        product.ai_generated = True

        logger.info(f"✓ Vision fallback supplied title: \"{product.title}\"")
        return product
