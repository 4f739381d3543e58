"""Pydantic request schemas for the checkout API."""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from printpay.domain.models.order import ShippingAddress

Size = Literal["S", "M", "L", "XL", "2XL", "3XL", "4XL", "5XL"]
Color = Literal["Black", "White"]
Placement = Literal["front", "back"]

ETH_ADDRESS_PATTERN = r"^0x[a-fA-F0-9]{40}$"


class AddressTo(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone: Optional[str] = Field(None, max_length=40)
    country: str = Field(..., pattern=r"^[A-Z]{2}$")
    region: str = Field("", max_length=100)
    address1: str = Field(..., min_length=1, max_length=200)
    address2: Optional[str] = Field(None, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    zip: str = Field(..., min_length=1, max_length=20)

    def to_domain(self) -> ShippingAddress:
        return ShippingAddress(
            first_name=self.first_name,
            last_name=self.last_name,
            email=self.email,
            country=self.country,
            region=self.region,
            address1=self.address1,
            city=self.city,
            zip=self.zip,
            phone=self.phone,
            address2=self.address2,
        )


class CreateShirtBody(BaseModel):
    prompt: str = Field(..., min_length=10, max_length=4000)
    size: Size = "XL"
    color: Color = "White"
    address_to: AddressTo


class CreateShirtFromImageBody(BaseModel):
    """HTTP/HTTPS URL, base64 data URL or raw base64 of the design"""

    image_url: str = Field(..., alias="imageUrl", min_length=1)
    size: Size = "XL"
    color: Color = "White"
    address_to: AddressTo

    model_config = ConfigDict(populate_by_name=True)


class CreateProductBody(BaseModel):
    """Either ``prompt`` (we generate the image) or ``imageUrl`` (used directly)"""

    prompt: Optional[str] = Field(None, min_length=10, max_length=4000)
    image_url: Optional[str] = Field(None, alias="imageUrl", pattern=r"^https?://\S+$")
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    margin: int = Field(0, ge=0, le=10000)  # cents
    creator_address: str = Field(..., alias="creatorAddress", pattern=ETH_ADDRESS_PATTERN)
    placement: Placement = "front"

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def _prompt_or_image(self) -> "CreateProductBody":
        if not self.prompt and not self.image_url:
            raise ValueError("Either 'prompt' or 'imageUrl' must be provided")
        return self


class OrderProductBody(BaseModel):
    size: Size = "XL"
    color: Color = "White"
    quantity: int = Field(1, ge=1, le=100)
    address_to: AddressTo
