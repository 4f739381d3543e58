"""Factory for creating image generators"""

import logging
from typing import Optional

import httpx

from printpay.domain.config.image import ImageConfig
from printpay.infrastructure.imagegen.base import ImageGenerator
from printpay.infrastructure.imagegen.mock import MockImageGenerator
from printpay.infrastructure.imagegen.openai import OpenAIImageGenerator
from printpay.infrastructure.retry import RetryPolicy, RetryPresets

logger = logging.getLogger(__name__)


class ImageGeneratorFactory:
    """Factory for creating image generator instances"""

    PROVIDERS = {
        "mock": MockImageGenerator,
        "openai": OpenAIImageGenerator,
    }

    @classmethod
    def create(
        cls,
        config: ImageConfig,
        client: Optional[httpx.AsyncClient] = None,
        retry: RetryPolicy = RetryPresets.IMAGE_GENERATION,
    ) -> ImageGenerator:
        """Create image generator instance

        Raises:
            ValueError: If provider type is not supported
        """
        provider = config.provider.lower()
        if provider not in cls.PROVIDERS:
            available = ", ".join(cls.PROVIDERS.keys())
            raise ValueError(f"Unknown image provider: {config.provider}. Available providers: {available}")

        logger.info(f"Creating {provider} image generator")
        if provider == "mock":
            return MockImageGenerator()
        return OpenAIImageGenerator(config, client=client, retry=retry)
