"""OpenAI image generation provider.

Images come from /images/generations; the design title comes from a short
chat completion, the same way the chat-completions providers are called.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from printpay.domain.config.image import ImageConfig
from printpay.domain.errors import ConfigurationError, ExternalServiceError, FailureKind
from printpay.domain.models.order import GeneratedDesign
from printpay.infrastructure.http_client import post_json_with_retries
from printpay.infrastructure.imagegen.base import ImageGenerator
from printpay.infrastructure.retry import RetryPolicy, RetryPresets

logger = logging.getLogger(__name__)

SERVICE = "openai"

DESIGN_PROMPT_TEMPLATE = (
    "A print-ready t-shirt graphic, centered, on a plain background, no mockup. Design: {prompt}"
)
TITLE_PROMPT_TEMPLATE = (
    "Write a catchy product title of at most six words for a t-shirt with this design. "
    "Reply with the title only.\n\nDesign: {prompt}"
)


class OpenAIImageGenerator(ImageGenerator):
    """OpenAI-compatible image generator"""

    def __init__(
        self,
        config: ImageConfig,
        client: Optional[httpx.AsyncClient] = None,
        retry: RetryPolicy = RetryPresets.IMAGE_GENERATION,
    ):
        if not config.api_key:
            raise ConfigurationError(
                "API key is required. Set OPENAI_API_KEY environment variable or provide image.api_key in config."
            )
        self.config = config
        self.api_url = config.api_url.rstrip("/")
        self.retry = retry
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=config.timeout)
        self.headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {config.api_key}",
        }

    async def _generate_image(self, prompt: str) -> str:
        data = await post_json_with_retries(
            self.client,
            f"{self.api_url}/images/generations",
            service=SERVICE,
            payload={
                "model": self.config.model,
                "prompt": DESIGN_PROMPT_TEMPLATE.format(prompt=prompt),
                "size": self.config.size,
                "n": 1,
            },
            headers=self.headers,
            timeout=self.config.timeout,
            retry=self.retry,
            label="Image generation",
        )
        try:
            image = data["data"][0]
        except (TypeError, KeyError, IndexError) as e:
            raise ExternalServiceError(SERVICE, "Image response has no data", kind=FailureKind.INVALID_RESPONSE) from e
        if image.get("b64_json"):
            return f"data:image/png;base64,{image['b64_json']}"
        if image.get("url"):
            return image["url"]
        raise ExternalServiceError(SERVICE, "Image response has no url or b64_json", kind=FailureKind.INVALID_RESPONSE)

    async def _generate_title(self, prompt: str) -> str:
        data = await post_json_with_retries(
            self.client,
            f"{self.api_url}/chat/completions",
            service=SERVICE,
            payload={
                "model": self.config.title_model,
                "messages": [{"role": "user", "content": TITLE_PROMPT_TEMPLATE.format(prompt=prompt)}],
                "temperature": 0.7,
                "max_tokens": 30,
            },
            headers=self.headers,
            timeout=self.config.timeout,
            retry=self.retry,
            label="Title generation",
        )
        try:
            title = data["choices"][0]["message"]["content"]
        except (TypeError, KeyError, IndexError) as e:
            raise ExternalServiceError(SERVICE, "Failed to parse title response", kind=FailureKind.INVALID_RESPONSE) from e
        return title.strip().strip('"') or "Custom Shirt Design"

    async def generate_design(self, prompt: str) -> GeneratedDesign:
        logger.info("Generating shirt design")
        image_url = await self._generate_image(prompt)
        title = await self._generate_title(prompt)
        return GeneratedDesign(image_url=image_url, title=title)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
