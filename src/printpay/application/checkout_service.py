"""Checkout service - the purchase side effects behind the paid endpoints"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from printpay.application.payment_gate import PaymentGate
from printpay.domain.config.pricing import PricingConfig
from printpay.domain.errors import NotFoundError
from printpay.domain.models.order import (
    GeneratedDesign,
    Order,
    Product,
    ProductMetadata,
    ProductVariant,
    ShippingAddress,
    TrackingInfo,
)
from printpay.domain.models.payment import PaymentOffer
from printpay.domain.pricing import OrderPrice, calculate_order_price
from printpay.infrastructure.imagegen.base import ImageGenerator
from printpay.infrastructure.payout.creator_payout import CreatorPayoutClient
from printpay.infrastructure.printify.client import PrintifyClient
from printpay.infrastructure.retry import RetryPolicy, RetryPresets, with_retry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShirtResult:
    job_id: str
    image_url: str
    product_id: Optional[str]
    order_id: str
    tracking: Optional[TrackingInfo] = None


@dataclass(frozen=True)
class Listing:
    product: Product
    image_url: str
    title: str
    description: str
    price_cents: int
    margin_cents: int


@dataclass(frozen=True)
class ProductQuote:
    """A listed product together with its dynamic order price"""

    product: Product
    metadata: ProductMetadata
    price: OrderPrice

    def pricing(self) -> Dict[str, Any]:
        return {
            "productId": self.product.id,
            "totalInCents": self.price.total_cents,
            "totalFormatted": self.price.formatted,
            "basePriceInCents": self.price.base_price_cents,
            "marginInCents": self.price.margin_cents,
            "creatorAddress": self.metadata.creator_address,
        }

    @property
    def pays_creator(self) -> bool:
        return bool(self.metadata.creator_address) and self.metadata.margin > 0


class CheckoutService:
    """Service for generating designs, listing products and placing orders"""

    def __init__(
        self,
        gate: PaymentGate,
        fulfillment: PrintifyClient,
        image_generator: ImageGenerator,
        pricing: PricingConfig,
        network: str,
        payout: Optional[CreatorPayoutClient] = None,
        workflow_policy: RetryPolicy = RetryPresets.WORKFLOW,
        mime_type: str = "application/json",
    ):
        """Initialize checkout service

        Args:
            gate: Payment gate used by the paid endpoints
            fulfillment: Printify client
            image_generator: Design generator
            pricing: Endpoint prices
            network: Network payments are requested on
            payout: Creator payout client (None disables value splits)
            workflow_policy: Retry policy for the full shirt workflow
            mime_type: MIME type advertised for the paid resources
        """
        self.gate = gate
        self.fulfillment = fulfillment
        self.image_generator = image_generator
        self.pricing = pricing
        self.network = network
        self.payout = payout
        self.workflow_policy = workflow_policy
        self.mime_type = mime_type

    # Offers -----------------------------------------------------------

    def shirt_offer(self, resource: str) -> PaymentOffer:
        return PaymentOffer(
            price=self.pricing.shirt_price,
            network=self.network,
            resource=resource,
            description=self.pricing.shirt_description,
            mime_type=self.mime_type,
        )

    def from_image_offer(self, resource: str) -> PaymentOffer:
        return PaymentOffer(
            price=self.pricing.from_image_price,
            network=self.network,
            resource=resource,
            description=self.pricing.from_image_description,
            mime_type=self.mime_type,
        )

    async def quote_product(self, product_id: str) -> ProductQuote:
        """Look up a listed product and compute base + margin

        Raises:
            NotFoundError: If the product does not exist
        """
        product = await self.fulfillment.get_product(product_id)
        metadata = ProductMetadata.from_product(product, self.pricing.base_product_price_cents)
        price = calculate_order_price(self.pricing.base_order_price_cents, metadata.margin)
        return ProductQuote(product=product, metadata=metadata, price=price)

    def order_offer(self, quote: ProductQuote, resource: str) -> PaymentOffer:
        return PaymentOffer(
            price=quote.price.formatted,
            network=self.network,
            resource=resource,
            description=f"Order of {quote.product.title}",
            mime_type=self.mime_type,
            pricing=quote.pricing(),
        )

    # Side effects -----------------------------------------------------

    async def create_shirt(
        self,
        job_id: str,
        prompt: str,
        size: str,
        color: str,
        address: ShippingAddress,
    ) -> ShirtResult:
        """Generate a design, create the product and submit the order"""

        async def _workflow() -> ShirtResult:
            design = await self.image_generator.generate_design(prompt)
            order = await self.fulfillment.create_direct_order(
                image_url=design.image_url, quantity=1, address=address, size=size, color=color
            )
            return ShirtResult(job_id, design.image_url, order.product_id, order.id, order.tracking)

        return await with_retry(_workflow, self.workflow_policy, f"Shirt creation workflow for job {job_id}")

    async def create_shirt_from_image(
        self,
        job_id: str,
        image_url: str,
        size: str,
        color: str,
        address: ShippingAddress,
    ) -> ShirtResult:
        order = await self.fulfillment.create_direct_order(
            image_url=image_url, quantity=1, address=address, size=size, color=color
        )
        return ShirtResult(job_id, image_url, order.product_id, order.id, order.tracking)

    async def create_listing(
        self,
        creator_address: str,
        margin_cents: int = 0,
        prompt: Optional[str] = None,
        image_url: Optional[str] = None,
        title: Optional[str] = None,
        description: Optional[str] = None,
        placement: str = "front",
    ) -> Listing:
        """Create a creator product priced at base + margin"""
        if prompt:
            logger.info("[Create Product] Generating image from prompt")
            design: GeneratedDesign = await self.image_generator.generate_design(prompt)
            image = design.image_url
            final_title = title or design.title
            final_description = description or prompt
        elif image_url:
            logger.info(f"[Create Product] Using provided image URL: {image_url[:100]}")
            image = image_url
            final_title = title or "Custom Shirt Design"
            final_description = description or "Custom shirt with uploaded image"
        else:
            raise ValueError("Either prompt or image_url must be provided")

        base_price = self.pricing.base_product_price_cents
        total = base_price + margin_cents
        metadata = ProductMetadata(
            description=final_description,
            margin=margin_cents,
            base_price=base_price,
            creator_address=creator_address,
        )
        product = await self.fulfillment.create_product(
            image_url=image,
            title=final_title,
            description=metadata.encode(),
            placement=placement,
            price_cents=total,
        )
        return Listing(product, image, final_title, final_description, total, margin_cents)

    def pick_variant(self, quote: ProductQuote, size: str, color: str) -> ProductVariant:
        """Choose the variant to order

        Raises:
            NotFoundError: If the product has no enabled variant
        """
        # TODO: match size/color against the product's variant options instead of the first enabled one
        enabled = quote.product.enabled_variants
        if not enabled:
            raise NotFoundError(
                f"No enabled variant found for size {size} and color {color}", code="VARIANT_NOT_FOUND"
            )
        return enabled[0]

    async def order_listed_product(
        self, quote: ProductQuote, variant: ProductVariant, quantity: int, address: ShippingAddress
    ) -> Order:
        return await self.fulfillment.create_order(quote.product.id, variant.id, quantity, address)

    async def pay_creator(self, quote: ProductQuote) -> str:
        """Transfer the listing margin to its creator

        Raises:
            RuntimeError: If payouts are disabled
        """
        if self.payout is None:
            raise RuntimeError("Creator payouts are disabled")
        assert quote.metadata.creator_address is not None
        return await self.payout.transfer_margin(quote.metadata.creator_address, quote.metadata.margin)
