"""Fulfillment models - addresses, products, orders"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Comfort Colors variant id -> (size, color)
COMFORT_COLORS_VARIANTS: Dict[int, tuple] = {
    78994: ("S", "Black"),
    73199: ("M", "Black"),
    78993: ("L", "Black"),
    78962: ("XL", "Black"),
    78991: ("2XL", "Black"),
    78964: ("3XL", "Black"),
    78961: ("4XL", "Black"),
    78963: ("5XL", "Black"),
    73203: ("S", "White"),
    78992: ("M", "White"),
    73211: ("L", "White"),
    73207: ("XL", "White"),
    78965: ("2XL", "White"),
    73215: ("3XL", "White"),
    78995: ("4XL", "White"),
}
DEFAULT_VARIANT_ID = 73207  # XL White


@dataclass(frozen=True)
class ShippingAddress:
    first_name: str
    last_name: str
    email: str
    country: str
    region: str
    address1: str
    city: str
    zip: str
    phone: Optional[str] = None
    address2: Optional[str] = None

    def to_printify(self) -> Dict[str, Any]:
        data = {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "country": self.country,
            "region": self.region,
            "address1": self.address1,
            "city": self.city,
            "zip": self.zip,
        }
        if self.phone:
            data["phone"] = self.phone
        if self.address2:
            data["address2"] = self.address2
        return data


@dataclass(frozen=True)
class ProductVariant:
    id: int
    price: int  # cents
    is_enabled: bool = True
    sku: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "sku": self.sku, "price": self.price, "is_enabled": self.is_enabled}


@dataclass(frozen=True)
class Product:
    id: str
    title: str
    description: str
    variants: List[ProductVariant] = field(default_factory=list)

    @property
    def enabled_variants(self) -> List[ProductVariant]:
        return [v for v in self.variants if v.is_enabled]


@dataclass(frozen=True)
class TrackingInfo:
    carrier: str
    tracking_number: str
    tracking_url: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "carrier": self.carrier,
            "trackingNumber": self.tracking_number,
            "trackingUrl": self.tracking_url,
        }


@dataclass(frozen=True)
class Order:
    id: str
    product_id: Optional[str] = None
    tracking: Optional[TrackingInfo] = None


@dataclass(frozen=True)
class ProductMetadata:
    """Creator listing metadata embedded in a product's description"""

    description: str
    margin: int
    base_price: int
    creator_address: Optional[str] = None

    def encode(self) -> str:
        return json.dumps(
            {
                "description": self.description,
                "margin": self.margin,
                "basePrice": self.base_price,
                "creatorAddress": self.creator_address,
            }
        )

    @classmethod
    def from_product(cls, product: Product, default_base_price: int = 2500) -> "ProductMetadata":
        """Read metadata from the description, falling back to the variant price."""
        try:
            data = json.loads(product.description)
        except (TypeError, ValueError):
            data = None
        margin = data.get("margin") if isinstance(data, dict) else None
        # bool is an int subclass
        if isinstance(margin, int) and not isinstance(margin, bool):
            return cls(
                description=data.get("description") or "",
                margin=max(0, margin),
                base_price=data.get("basePrice") or default_base_price,
                creator_address=data.get("creatorAddress"),
            )

        variant_price = product.variants[0].price if product.variants else default_base_price
        return cls(
            description=product.description,
            margin=max(0, variant_price - default_base_price),
            base_price=default_base_price,
        )


@dataclass(frozen=True)
class GeneratedDesign:
    image_url: str
    title: str
