"""Configuration models with Pydantic validation."""

from printpay.domain.config.app import AppConfig
from printpay.domain.config.fulfillment import FulfillmentConfig
from printpay.domain.config.image import ImageConfig
from printpay.domain.config.payment import PaymentConfig
from printpay.domain.config.payout import PayoutConfig
from printpay.domain.config.pricing import PricingConfig
from printpay.domain.config.retry import RetryConfig, RetryPresetsConfig
from printpay.domain.config.server import ServerConfig

__all__ = [
    "AppConfig",
    "PaymentConfig",
    "PricingConfig",
    "FulfillmentConfig",
    "ImageConfig",
    "PayoutConfig",
    "RetryConfig",
    "RetryPresetsConfig",
    "ServerConfig",
]
