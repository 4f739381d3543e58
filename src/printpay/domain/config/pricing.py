"""Pricing configuration model."""

from pydantic import BaseModel, Field


class PricingConfig(BaseModel):
    """Prices and descriptions for the paid endpoints.

    Attributes:
        shirt_price: Price of a prompt-generated shirt (decimal string, e.g. "$20.00")
        shirt_description: Description advertised for the prompt-generated shirt
        from_image_price: Price of a shirt printed from a caller-supplied image
        from_image_description: Description advertised for the image shirt
        base_order_price_cents: Base price of ordering a listed product
        base_product_price_cents: Base retail price of a newly listed product
    """

    shirt_price: str = "$20.00"
    shirt_description: str = "AI-generated shirt design + purchase"
    from_image_price: str = "$20.00"
    from_image_description: str = "Custom shirt from your image"
    base_order_price_cents: int = Field(2000, ge=0)
    base_product_price_cents: int = Field(2500, ge=0)
