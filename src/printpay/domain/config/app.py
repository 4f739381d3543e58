"""Main application configuration model."""

from pydantic import BaseModel, ConfigDict, Field

from printpay.domain.config.fulfillment import FulfillmentConfig
from printpay.domain.config.image import ImageConfig
from printpay.domain.config.payment import PaymentConfig
from printpay.domain.config.payout import PayoutConfig
from printpay.domain.config.pricing import PricingConfig
from printpay.domain.config.retry import RetryPresetsConfig
from printpay.domain.config.server import ServerConfig


class AppConfig(BaseModel):
    """Main application configuration.

    This is the root configuration model that aggregates all configuration sections.
    Validation is performed at load time to fail fast on configuration errors.

    Attributes:
        payment: x402 payment acceptance configuration
        pricing: Endpoint prices and descriptions
        fulfillment: Printify configuration
        image: Design image generator configuration
        payout: Creator payout configuration
        retry: Retry preset overrides
        server: HTTP server configuration
    """

    payment: PaymentConfig = Field(default_factory=PaymentConfig)
    pricing: PricingConfig = Field(default_factory=PricingConfig)
    fulfillment: FulfillmentConfig = Field(default_factory=FulfillmentConfig)
    image: ImageConfig = Field(default_factory=ImageConfig)
    payout: PayoutConfig = Field(default_factory=PayoutConfig)
    retry: RetryPresetsConfig = Field(default_factory=RetryPresetsConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    model_config = ConfigDict(
        validate_assignment=True,  # Validate on attribute assignment
        extra="forbid",  # Reject unknown fields
        json_schema_extra={
            "example": {
                "payment": {
                    "pay_to": "0xDDeAeb4639A7fC213264b57c8dc81a36229687dB",
                    "facilitator": "http",
                    "facilitator_url": "https://x402.org/facilitator",
                    "network": "base",
                },
                "pricing": {
                    "shirt_price": "$20.00",
                    "base_order_price_cents": 2000,
                    "base_product_price_cents": 2500,
                },
                "fulfillment": {
                    "shop_id": "123456",
                    "blueprint_id": 706,
                    "print_provider_id": 99,
                },
                "image": {"provider": "openai", "model": "gpt-image-1"},
                "payout": {"enabled": True, "rpc_url": "https://mainnet.base.org"},
                "retry": {"fulfillment_operation": {"max_attempts": 5}},
                "server": {"host": "0.0.0.0", "port": 8000},
            }
        },
    )
