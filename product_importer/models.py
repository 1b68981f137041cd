"""Type definitions for the product importer.

Branded types (NewType) are used for identifiers so URLs and vendor ids
are not mixed up with arbitrary strings.
"""

from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Literal, NewType

# Branded types for type safety
ImageUrl = NewType("ImageUrl", str)
ProductUrl = NewType("ProductUrl", str)
ProductId = NewType("ProductId", str)
ProviderName = NewType("ProviderName", str)


Platform = Literal["amazon", "aliexpress"]

SUPPORTED_PLATFORMS: tuple[Platform, ...] = ("amazon", "aliexpress")

MAX_IMAGES = 15


@dataclass
class ReviewSummary:
    """Aggregate rating shown on the listing."""

    rating: float
    count: int


@dataclass
class SellerInfo:
    name: str
    rating: float | None = None
    url: str | None = None


@dataclass
class ShippingInfo:
    cost: float
    currency: str
    free_shipping: bool


@dataclass
class ProductVariant:
    """A selectable product dimension, e.g. {"name": "Color", "options": [...]}."""

    name: str
    options: list[str]


@dataclass(frozen=True)
class ScrapeCostMetadata:
    """Estimated vendor cost of one successful scrape.

    Created once by the orchestrator and never modified afterwards.
    """

    provider: str
    platform: str
    estimated_cost_usd: float
    scraped_at: str  # ISO timestamp
    duration_ms: int


@dataclass
class ScrapedProduct:
    """Canonical product shape every provider adapter produces."""

    title: str
    description: str
    price: float
    images: list[ImageUrl]
    source_url: ProductUrl
    platform: Platform
    currency: str = "USD"
    brand: str | None = None
    sku: str | None = None
    specifications: dict[str, str] | None = None
    review_summary: ReviewSummary | None = None
    seller: SellerInfo | None = None
    shipping: ShippingInfo | None = None
    variants: list[ProductVariant] | None = None
    category: str | None = None  # Only filled in by vision repair
    scraped_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    provider: str = ""
    ai_generated: bool = False
    cost_metadata: ScrapeCostMetadata | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to plain JSON-compatible data for persistence."""
        data = asdict(self)
        data["scraped_at"] = self.scraped_at.isoformat()
        return data


@dataclass(frozen=True)
class ScrapingConfig:
    """Runtime-tunable fallback chains and retry policy.

    Frozen so updates always replace the whole object; concurrent scrapes
    keep reading the snapshot they started with.
    """

    provider_chains: dict[str, tuple[str, ...]] = field(
        default_factory=lambda: {
            "amazon": ("oxylabs", "apify"),
            "aliexpress": ("apify", "oxylabs"),
        }
    )
    max_retries: int = 2  # attempts per provider before moving on
    retry_delay_base: float = 1.0  # seconds, doubled after every failed attempt
    timeout: float = 120.0  # seconds per vendor request
    skip_retries_on_invalid_data: bool = False

    def __post_init__(self):
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {self.max_retries}")
        if self.retry_delay_base < 0:
            raise ValueError(
                f"retry_delay_base must be non-negative, got {self.retry_delay_base}"
            )
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")

        unknown = set(self.provider_chains) - set(SUPPORTED_PLATFORMS)
        if unknown:
            raise ValueError(f"Unknown platforms in provider_chains: {sorted(unknown)}")

        # Normalize lists to tuples so the snapshot cannot be mutated in place
        object.__setattr__(
            self,
            "provider_chains",
            {platform: tuple(chain) for platform, chain in self.provider_chains.items()},
        )

    def chain_for(self, platform: Platform) -> tuple[str, ...]:
        return self.provider_chains.get(platform, ())

    def with_changes(self, **changes: Any) -> "ScrapingConfig":
        """Return a new validated config with the given fields replaced."""
        return replace(self, **changes)


@dataclass(frozen=True)
class ScrapeAttempt:
    """One provider call made during a scrape."""

    provider: str
    attempt: int
    success: bool
    duration_ms: int
    error: str | None = None

    def summary(self) -> str:
        marker = "✓" if self.success else "✗"
        return f"{self.provider}: {marker} ({self.duration_ms}ms)"


@dataclass
class ScrapeReport:
    """Successful scrape result together with the attempts it took."""

    product: ScrapedProduct
    attempts: list[ScrapeAttempt]
