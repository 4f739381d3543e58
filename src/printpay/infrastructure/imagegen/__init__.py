"""Design image generators"""

from printpay.infrastructure.imagegen.base import ImageGenerator
from printpay.infrastructure.imagegen.mock import MockImageGenerator
from printpay.infrastructure.imagegen.openai import OpenAIImageGenerator

__all__ = ["ImageGenerator", "MockImageGenerator", "OpenAIImageGenerator"]
