"""Vision repair using the OpenAI vision API.

Last-resort enrichment: when text scraping returned images but no title,
the first product image is analyzed to synthesize a title, a description
and a category. Never used to replace a title that was scraped.
"""

import base64
import json
import re
from dataclasses import dataclass
from typing import Any

import httpx
import openai
from loguru import logger
from openai import OpenAI

from product_importer.exceptions import VisionAnalysisError
from product_importer.models import Platform

VISION_MODEL = "gpt-4o-mini"
VISION_TIMEOUT_SECONDS = 30.0
IMAGE_FETCH_TIMEOUT_SECONDS = 10.0
MAX_TITLE_LENGTH = 65

# Some marketplace CDNs reject requests without a browser user agent
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)
VALID_MIME_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")

PLATFORM_NAMES: dict[str, str] = {"amazon": "Amazon", "aliexpress": "AliExpress"}

VISION_PROMPT_TEMPLATE = """You are analyzing a product image from {platform_name} to generate listing content.

Look at this product image and provide:
1. A concise, benefit-focused product title (max {max_title} characters)
2. A marketing description (2 paragraphs) based on what you see
3. Product category (e.g., "Electronics", "Fashion", "Home & Garden")

Focus on:
- What the product IS (not assumptions about brand/price)
- Visible features and quality indicators
- Use case and benefits

Guidelines:
- Title should highlight the main benefit or key feature
- Description should be compelling marketing copy, not just a list of features
- Describe only what you can SEE, avoid making assumptions
- If you can identify text/branding in the image, you may include it

Return JSON: {{"title": "...", "description": "...", "category": "..."}}"""

_FIELD_PATTERN = r'"{field}"\s*:\s*"((?:[^"\\]|\\.)*)"'


@dataclass
class VisionAnalysisResult:
    """Title, description and category synthesized from a product image."""

    title: str
    description: str
    category: str | None = None
    source: str = "ai-vision"


def build_vision_prompt(platform: Platform) -> str:
    """Build the platform-aware analysis prompt."""
    return VISION_PROMPT_TEMPLATE.format(
        platform_name=PLATFORM_NAMES.get(platform, platform),
        max_title=MAX_TITLE_LENGTH,
    )


def _truncate_title(title: str) -> str:
    """Cap the title at MAX_TITLE_LENGTH characters, ending with an ellipsis.

    Examples:
        >>> len(_truncate_title("x" * 80))
        65
    """
    title = title.strip()
    if len(title) > MAX_TITLE_LENGTH:
        return title[: MAX_TITLE_LENGTH - 3] + "..."
    return title


def _unescape(value: str) -> str:
    """Decode JSON string escapes captured by the salvage regex."""
    try:
        return json.loads(f'"{value}"')
    except json.JSONDecodeError:
        return value.replace("\\n", "\n").replace('\\"', '"')


def _salvage_fields(text: str) -> dict[str, str]:
    """Best-effort regex recovery of fields from malformed JSON (lossy)."""
    fields = {}
    for name in ("title", "description", "category"):
        match = re.search(_FIELD_PATTERN.format(field=name), text)
        if match:
            fields[name] = _unescape(match.group(1))
    return fields


def parse_vision_response(text: str) -> VisionAnalysisResult:
    """Decode the model output: strict JSON first, then regex salvage.

    Args:
        text: Raw model output

    Returns:
        Parsed analysis with the title capped at MAX_TITLE_LENGTH

    Raises:
        VisionAnalysisError: If no title can be recovered
    """
    fields: dict[str, Any]
    try:
        fields = json.loads(text)
        if not isinstance(fields, dict):
            raise ValueError("response is not a JSON object")
    except ValueError:
        logger.warning("JSON parse failed, attempting lossy regex extraction...")
        fields = _salvage_fields(text)
        if fields.get("title"):
            logger.info(f"Recovered fields via regex: {sorted(fields)}")

    title = fields.get("title")
    if not isinstance(title, str) or not title.strip():
        raise VisionAnalysisError("Failed to parse vision response: no title found")

    description = fields.get("description")
    category = fields.get("category")

    return VisionAnalysisResult(
        title=_truncate_title(title),
        description=description.strip() if isinstance(description, str) else "",
        category=category.strip() if isinstance(category, str) and category.strip() else None,
    )


def _call_vision_api(
    client: OpenAI, image_data: bytes, mime_type: str, prompt: str, model: str
) -> str:
    """Send the image and prompt to the vision model (pure API logic).

    Returns:
        Raw response text from the API
    """
    base64_image = base64.b64encode(image_data).decode("utf-8")

    response = client.chat.completions.create(
        model=model,
        max_tokens=2048,
        temperature=0.5,
        response_format={"type": "json_object"},
        messages=[
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {
                        "type": "image_url",
                        "image_url": {"url": f"data:{mime_type};base64,{base64_image}"},
                    },
                ],
            }
        ],
    )

    content = response.choices[0].message.content
    if not content:
        raise VisionAnalysisError("No response from vision model")
    return content


class VisionAnalyzer:
    """Synthesizes listing text from a product image."""

    def __init__(
        self,
        api_key: str | None,
        model: str = VISION_MODEL,
        timeout: float = VISION_TIMEOUT_SECONDS,
        image_timeout: float = IMAGE_FETCH_TIMEOUT_SECONDS,
        http_client: httpx.Client | None = None,
    ):
        """Initialize analyzer.

        Args:
            api_key: OpenAI API key; analyzer reports not configured without one
            model: Vision-capable chat model
            timeout: Ceiling for the model call in seconds
            image_timeout: Ceiling for downloading the image in seconds
            http_client: Optional client used for image downloads
        """
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.image_timeout = image_timeout
        self._http_client = http_client

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _fetch_image(self, image_url: str) -> tuple[bytes, str]:
        """Download an image and return (bytes, mime type).

        Raises:
            VisionAnalysisError: On timeout or HTTP failure
        """
        headers = {"User-Agent": BROWSER_USER_AGENT}
        try:
            if self._http_client is not None:
                response = self._http_client.get(
                    image_url, headers=headers, timeout=self.image_timeout, follow_redirects=True
                )
            else:
                with httpx.Client() as client:
                    response = client.get(
                        image_url, headers=headers, timeout=self.image_timeout, follow_redirects=True
                    )
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise VisionAnalysisError(
                f"Image fetch timed out after {self.image_timeout}s"
            ) from e
        except httpx.HTTPStatusError as e:
            raise VisionAnalysisError(
                f"Failed to fetch product image: {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise VisionAnalysisError(f"Failed to fetch product image: {e}") from e

        content_type = response.headers.get("content-type", "").split(";")[0].strip().lower()
        mime_type = content_type if content_type in VALID_MIME_TYPES else "image/jpeg"
        return response.content, mime_type

    def analyze_image(self, image_url: str, platform: Platform) -> VisionAnalysisResult:
        """Analyze a product image and generate title/description/category.

        Args:
            image_url: URL of the product image to analyze
            platform: Source platform, used to tailor the prompt

        Returns:
            VisionAnalysisResult

        Raises:
            VisionAnalysisError: If the analyzer is unconfigured, the image
                cannot be fetched, the model call fails or times out, or no
                title can be parsed
        """
        if not self.is_configured:
            raise VisionAnalysisError("OPENAI_API_KEY is not configured")

        logger.info(f"Analyzing product image from {platform}: {image_url[:80]}")

        image_data, mime_type = self._fetch_image(image_url)

        client = OpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)
        try:
            text = _call_vision_api(
                client, image_data, mime_type, build_vision_prompt(platform), self.model
            )
        except openai.APITimeoutError as e:
            raise VisionAnalysisError(
                f"Vision analysis timed out after {self.timeout}s"
            ) from e
        except openai.OpenAIError as e:
            raise VisionAnalysisError(f"Vision API error: {e}") from e

        result = parse_vision_response(text)
        logger.info(f'Successfully analyzed image: "{result.title}"')
        return result
