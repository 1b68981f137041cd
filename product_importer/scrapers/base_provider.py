"""Abstract base class for scraping vendor adapters.

Shared HTTP and error handling lives here; each vendor subclass only builds
its request and maps its response shape onto ScrapedProduct.
"""

from abc import ABC, abstractmethod
from typing import Any

import httpx
from loguru import logger

from product_importer.exceptions import ProviderError, ProviderTimeoutError
from product_importer.models import Platform, ScrapedProduct

MAX_ERROR_BODY_CHARS = 500


class BaseProvider(ABC):
    """Abstract base class for one external scraping vendor.

    Subclasses must implement:
    - scrape_product(url, force_refresh, timeout) - Fetch and normalize one product
    """

    name: str = ""
    display_name: str = ""
    supported_platforms: tuple[Platform, ...] = ()

    def __init__(self, timeout: float = 120.0, http_client: httpx.Client | None = None):
        """Initialize provider.

        Args:
            timeout: Default per-request ceiling in seconds, used when a call
                does not pass its own
            http_client: Optional shared client (tests inject a mock transport);
                a short-lived client is created per request otherwise
        """
        self.timeout = timeout
        self._http_client = http_client

    def supports(self, platform: Platform) -> bool:
        return platform in self.supported_platforms

    def _post_json(
        self,
        url: str,
        payload: dict[str, Any],
        auth: httpx.Auth | tuple[str, str] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """POST a JSON payload and return the decoded JSON body.

        Raises:
            ProviderTimeoutError: If the request exceeds the timeout
            ProviderError: On network failure, non-2xx status or invalid JSON
        """
        timeout = timeout if timeout is not None else self.timeout
        try:
            if self._http_client is not None:
                response = self._http_client.post(
                    url, json=payload, auth=auth, headers=headers, timeout=timeout
                )
            else:
                with httpx.Client() as client:
                    response = client.post(
                        url, json=payload, auth=auth, headers=headers, timeout=timeout
                    )
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(
                self.name, f"{self.display_name} request timed out after {timeout}s"
            ) from e
        except httpx.HTTPError as e:
            raise ProviderError(self.name, f"{self.display_name} network error: {e}") from e

        if not response.is_success:
            body = response.text[:MAX_ERROR_BODY_CHARS]
            logger.debug(f"{self.display_name} error body: {body}")
            raise ProviderError(
                self.name,
                f"{self.display_name} API error ({response.status_code}): {body}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(
                self.name, f"{self.display_name} returned invalid JSON: {e}"
            ) from e

    @abstractmethod
    def scrape_product(
        self, url: str, force_refresh: bool = False, timeout: float | None = None
    ) -> ScrapedProduct:
        """Fetch a product page through the vendor and normalize it.

        Must be implemented by each vendor adapter. The returned product may
        have an empty title (the orchestrator routes that to vision repair)
        but must have at least one image.

        Args:
            url: Marketplace product URL
            force_refresh: Bypass any response cache
            timeout: Request ceiling for this call; defaults to self.timeout

        Returns:
            Normalized product

        Raises:
            ProviderDataError: If the vendor answered without required fields
            ProviderError: If the vendor call fails or returns unusable data
        """
        pass
