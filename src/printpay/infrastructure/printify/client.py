"""Printify API client"""

from __future__ import annotations

import base64
import logging
import time
import uuid
from typing import Any, Dict, List, Optional

import httpx

from printpay.domain.config.fulfillment import FulfillmentConfig
from printpay.domain.errors import ConfigurationError, ExternalServiceError, FailureKind, NotFoundError
from printpay.domain.models.order import (
    COMFORT_COLORS_VARIANTS,
    DEFAULT_VARIANT_ID,
    Order,
    Product,
    ProductVariant,
    ShippingAddress,
    TrackingInfo,
)
from printpay.infrastructure.http_client import request_json
from printpay.infrastructure.retry import RetryPolicy, RetryPresets, describe_failure, with_retry

logger = logging.getLogger(__name__)

SERVICE = "printify"
DEFAULT_PRODUCT_PRICE_CENTS = 2500


class PrintifyClient:
    """Client for Printify catalog, product and order operations

    Every remote call runs under the fulfillment retry policy; the
    multi-step ``create_direct_order`` additionally runs under the workflow
    policy.
    """

    def __init__(
        self,
        config: FulfillmentConfig,
        client: Optional[httpx.AsyncClient] = None,
        retry_policy: RetryPolicy = RetryPresets.FULFILLMENT_OPERATION,
        workflow_policy: RetryPolicy = RetryPresets.WORKFLOW,
    ):
        """Initialize Printify client

        Args:
            config: Fulfillment configuration (tokens, shop ids, blueprint)
            client: Optional shared HTTP client
            retry_policy: Policy for individual API calls
            workflow_policy: Policy for the upload -> product -> order sequence
        """
        self.config = config
        self.base_url = config.base_url.rstrip("/")
        self.retry_policy = retry_policy
        self.workflow_policy = workflow_policy
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=config.timeout)

    def _catalog_auth(self) -> tuple:
        if not self.config.api_token or not self.config.shop_id:
            raise ConfigurationError("Printify api_token and shop_id must be set")
        return self.config.api_token, self.config.shop_id

    def _order_auth(self) -> tuple:
        token = self.config.effective_order_token
        shop_id = self.config.effective_order_shop_id
        if not token or not shop_id:
            raise ConfigurationError("Printify order_api_token and order_shop_id must be set")
        return token, shop_id

    def _headers(self, token: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "User-Agent": self.config.user_agent,
        }

    async def _call(
        self,
        method: str,
        path: str,
        token: str,
        label: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        return await with_retry(
            lambda: request_json(
                self.client,
                method,
                url,
                service=SERVICE,
                json=payload,
                headers=self._headers(token),
                timeout=self.config.timeout,
            ),
            self.retry_policy,
            label,
        )

    async def fetch_image_as_base64(self, url: str) -> str:
        """Download a remote image and return its base64 contents"""
        logger.info(f"[Printify] Fetching image from URL: {url}")

        async def _fetch() -> httpx.Response:
            try:
                response = await self.client.get(
                    url, headers={"User-Agent": self.config.user_agent}, timeout=self.config.timeout
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise ExternalServiceError(
                    "image-host",
                    f"HTTP {e.response.status_code} fetching {url}",
                    kind=FailureKind.HTTP,
                    status_code=e.response.status_code,
                ) from e
            except httpx.HTTPError as e:
                raise ExternalServiceError(
                    "image-host", f"Failed to fetch {url}: {e!r}", kind=describe_failure(e).kind
                ) from e
            return response

        response = await with_retry(_fetch, self.retry_policy, "Image download")
        content_type = response.headers.get("content-type", "")
        if not content_type.startswith("image/"):
            raise ExternalServiceError(
                "image-host",
                f"Invalid content type: {content_type or 'none'}. Expected image/*",
                kind=FailureKind.INVALID_RESPONSE,
            )
        return base64.b64encode(response.content).decode("ascii")

    async def _image_contents(self, image_ref: str) -> str:
        if image_ref.startswith("data:"):
            return image_ref.split(",", 1)[1]
        if image_ref.startswith(("http://", "https://")):
            return await self.fetch_image_as_base64(image_ref)
        return image_ref  # already base64

    async def upload_image(self, image_ref: str) -> Dict[str, str]:
        """Upload an image (data URL, remote URL or raw base64)

        Returns:
            Dict with ``id`` and ``preview_url``
        """
        token, _ = self._catalog_auth()
        contents = await self._image_contents(image_ref)
        result = await self._call(
            "POST",
            "/uploads/images.json",
            token,
            "Printify image upload",
            {"file_name": f"shirt-design-{int(time.time() * 1000)}.png", "contents": contents},
        )
        if not result or "id" not in result:
            raise ExternalServiceError(SERVICE, "Invalid response from image upload", kind=FailureKind.INVALID_RESPONSE)
        image_id = str(result["id"])
        return {
            "id": image_id,
            "preview_url": result.get("preview_url") or f"https://images-api.printify.com/{image_id}",
        }

    async def create_product(
        self,
        image_url: str,
        title: str,
        description: str,
        placement: str = "front",
        price_cents: Optional[int] = None,
    ) -> Product:
        """Upload the design, create a product on the shop and publish it"""
        token, shop_id = self._catalog_auth()
        upload = await self.upload_image(image_url)

        variant_ids = list(COMFORT_COLORS_VARIANTS)
        price = DEFAULT_PRODUCT_PRICE_CENTS if price_cents is None else price_cents
        payload = {
            "title": title,
            "description": description or "",
            "blueprint_id": self.config.blueprint_id,
            "print_provider_id": self.config.print_provider_id,
            "variants": [{"id": vid, "price": price, "is_enabled": True} for vid in variant_ids],
            "print_areas": [
                {
                    "variant_ids": variant_ids,
                    "placeholders": [
                        {
                            "position": "back" if placement == "back" else "front",
                            "images": [
                                {"id": upload["id"], "x": 0.5, "y": 0.4, "scale": 0.5, "angle": 0}
                            ],
                        }
                    ],
                }
            ],
        }
        data = await self._call(
            "POST", f"/shops/{shop_id}/products.json", token, "Printify product creation", payload
        )
        product = self._parse_product(data)
        await self.publish_product(product.id)
        logger.info(f"[Printify] Created and published product {product.id}")
        return product

    async def publish_product(self, product_id: str) -> None:
        token, shop_id = self._catalog_auth()
        await self._call(
            "POST",
            f"/shops/{shop_id}/products/{product_id}/publish.json",
            token,
            "Printify product publish",
            {
                "title": True,
                "description": True,
                "images": True,
                "variants": True,
                "tags": True,
                "keyFeatures": True,
                "shipping_template": True,
            },
        )

    async def get_product(self, product_id: str) -> Product:
        """Fetch a product

        Raises:
            NotFoundError: If the product does not exist
        """
        token, shop_id = self._catalog_auth()
        try:
            data = await self._call(
                "GET", f"/shops/{shop_id}/products/{product_id}.json", token, "Printify product lookup"
            )
        except ExternalServiceError as e:
            if e.status_code == 404:
                raise NotFoundError(f"Product {product_id} not found") from e
            raise
        return self._parse_product(data)

    async def get_variant_id(self, size: str, color: str) -> int:
        """Look up the catalog variant id for a size and color"""
        token, _ = self._order_auth()
        path = (
            f"/catalog/blueprints/{self.config.blueprint_id}"
            f"/print_providers/{self.config.print_provider_id}/variants.json"
        )
        data = await self._call("GET", path, token, "Printify variant lookup")
        variants = (data or {}).get("variants")
        if not isinstance(variants, list):
            raise ExternalServiceError(
                SERVICE, "Invalid response from Printify catalog API", kind=FailureKind.INVALID_RESPONSE
            )
        for variant in variants:
            options = variant.get("options") or {}
            if options.get("size") == size and options.get("color") == color:
                return int(variant["id"])
        raise NotFoundError(f"Variant not found for {size} {color}", code="VARIANT_NOT_FOUND")

    async def create_order(
        self,
        product_id: str,
        variant_id: int,
        quantity: int,
        address: ShippingAddress,
    ) -> Order:
        """Create and submit an order for production"""
        token, shop_id = self._order_auth()
        external_id = str(uuid.uuid4())
        payload = {
            "external_id": external_id,
            "label": external_id[:10],
            "line_items": [{"product_id": product_id, "variant_id": variant_id, "quantity": quantity}],
            "shipping_method": 1,
            "is_printify_express": False,
            "is_economy_shipping": False,
            "send_shipping_notification": True,
            "address_to": address.to_printify(),
        }
        data = await self._call(
            "POST", f"/shops/{shop_id}/orders.json", token, "Printify order creation", payload
        )
        if not data or not data.get("id"):
            raise ExternalServiceError(
                SERVICE, "Invalid response from Printify order submission API", kind=FailureKind.INVALID_RESPONSE
            )
        return Order(id=str(data["id"]), product_id=product_id, tracking=self._parse_tracking(data))

    async def create_direct_order(
        self,
        image_url: str,
        quantity: int,
        address: ShippingAddress,
        size: Optional[str] = None,
        color: Optional[str] = None,
        variant_id: Optional[int] = None,
    ) -> Order:
        """Create a product from an image and order it in one sequence"""

        async def _sequence() -> Order:
            product = await self.create_product(
                image_url=image_url,
                title=f"Custom Shirt Design {int(time.time() * 1000)}",
                description="Custom designed shirt",
                placement="front",
            )
            if variant_id:
                chosen = variant_id
            elif size and color:
                chosen = await self.get_variant_id(size, color)
            else:
                chosen = DEFAULT_VARIANT_ID
            return await self.create_order(product.id, chosen, quantity, address)

        return await with_retry(_sequence, self.workflow_policy, "Direct Printify order creation")

    def _parse_product(self, data: Any) -> Product:
        if not isinstance(data, dict) or not data.get("id"):
            raise ExternalServiceError(SERVICE, "Invalid product response", kind=FailureKind.INVALID_RESPONSE)
        variants: List[ProductVariant] = [
            ProductVariant(
                id=int(v["id"]),
                price=int(v.get("price", 0)),
                is_enabled=bool(v.get("is_enabled", True)),
                sku=v.get("sku"),
            )
            for v in data.get("variants") or []
        ]
        return Product(
            id=str(data["id"]),
            title=data.get("title", ""),
            description=data.get("description", ""),
            variants=variants,
        )

    @staticmethod
    def _parse_tracking(data: Dict[str, Any]) -> Optional[TrackingInfo]:
        shipments = data.get("shipments") or []
        shipment = shipments[0] if shipments else data.get("shipment")
        if not shipment:
            return None
        return TrackingInfo(
            carrier=shipment.get("carrier", ""),
            tracking_number=shipment.get("number") or shipment.get("tracking_number", ""),
            tracking_url=shipment.get("url") or shipment.get("tracking_url", ""),
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
