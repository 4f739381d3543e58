"""Image generation configuration model."""

from typing import Literal, Optional

from pydantic import BaseModel, Field


class ImageConfig(BaseModel):
    """Configuration for the design image generator.

    Attributes:
        provider: Generator implementation
        model: Image model identifier
        title_model: Chat model used to name the design
        api_key: Provider API key (falls back to OPENAI_API_KEY)
        api_url: Base URL of an OpenAI-compatible API
        size: Requested image size
        timeout: HTTP timeout in seconds
    """

    provider: Literal["mock", "openai"] = "mock"
    model: str = "gpt-image-1"
    title_model: str = "gpt-4o-mini"
    api_key: Optional[str] = None
    api_url: str = "https://api.openai.com/v1"
    size: str = "1024x1024"
    timeout: float = Field(120.0, gt=0.0)
