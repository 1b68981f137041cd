"""Exception hierarchy for the scraping pipeline.

Callers match on these classes (or on ``classify_error``) to decide whether
a failure needs a configuration fix, a later retry, or a different URL.
"""

from typing import Literal, TYPE_CHECKING

if TYPE_CHECKING:
    from product_importer.models import ScrapeAttempt

ErrorCategory = Literal["configuration", "vendor", "data"]


class ScrapingError(Exception):
    """Base class for every error raised by the importer."""


class ConfigurationError(ScrapingError):
    """Credentials or settings are missing; fix the environment."""


class NoProvidersAvailableError(ConfigurationError):
    """No registered provider is configured for the requested platform."""


class VisionNotConfiguredError(ConfigurationError):
    """Vision repair was needed but no vision backend is configured."""


class UnsupportedUrlError(ScrapingError, ValueError):
    """URL does not belong to a supported marketplace."""


class ProviderError(ScrapingError):
    """A scraping vendor call failed or returned unusable data."""

    def __init__(self, provider: str, message: str, status_code: int | None = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class ProviderTimeoutError(ProviderError):
    """A scraping vendor call exceeded its timeout."""


class ProviderDataError(ProviderError):
    """The vendor answered, but the product data lacks a required field."""


class ProductValidationError(ScrapingError):
    """Scraped product is missing images or has an invalid price."""


class VisionAnalysisError(ScrapingError):
    """The vision model could not produce a usable title."""


class VisionRepairError(ScrapingError):
    """Vision repair was attempted for a title-less product and failed."""


class ScrapeCancelledError(ScrapingError):
    """The caller cancelled the scrape between attempts."""


class AllProvidersFailedError(ScrapingError):
    """Every provider and attempt in the chain failed."""

    def __init__(
        self,
        message: str,
        attempts: list["ScrapeAttempt"],
        last_error: Exception | None = None,
    ):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


def classify_error(error: Exception) -> ErrorCategory:
    """Map an error to the category shown to end users.

    Examples:
        >>> classify_error(NoProvidersAvailableError("..."))
        'configuration'
        >>> classify_error(UnsupportedUrlError("..."))
        'data'
    """
    data_errors = (UnsupportedUrlError, ProductValidationError, ProviderDataError)

    if isinstance(error, ConfigurationError):
        return "configuration"
    if isinstance(error, (*data_errors, VisionRepairError)):
        return "data"
    if isinstance(error, AllProvidersFailedError) and isinstance(error.last_error, data_errors):
        return "data"
    return "vendor"
