"""FastAPI routes for paid shirt creation, product listing and ordering."""

import json
import logging
import uuid
from typing import Any, Dict, Optional, Type, TypeVar

import pydantic
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from printpay.api.schemas import (
    CreateProductBody,
    CreateShirtBody,
    CreateShirtFromImageBody,
    OrderProductBody,
)
from printpay.application.checkout_service import ProductQuote, ShirtResult
from printpay.application.payment_gate import PAYMENT_HEADER, PAYMENT_RESPONSE_HEADER
from printpay.domain.errors import PaymentRequired, ValidationError
from printpay.domain.models.commit import CommitOutcome, PaymentRejection, VerifiedPayment
from printpay.domain.models.order import Order
from printpay.domain.models.payment import PaymentOffer
from printpay.domain.validators.address_validator import validate_address
from printpay.infrastructure.x402.codec import encode_settlement_response

logger = logging.getLogger(__name__)

BodyT = TypeVar("BodyT", bound=pydantic.BaseModel)

router = APIRouter(prefix="/api/shirts", tags=["shirts"])


def _services(request: Request) -> Any:
    return request.app.state.services


def _resource_url(request: Request) -> str:
    return f"{request.url.scheme}://{request.url.netloc}{request.url.path}"


def _log_idempotency_key(request: Request) -> Optional[str]:
    key = request.headers.get("Idempotency-Key")
    if key:
        logger.info(f"Idempotency-Key {key} on {request.url.path}")
    return key


async def _parse_body(request: Request, model: Type[BodyT]) -> BodyT:
    """Validate the JSON body against ``model``

    Raises:
        ValidationError: If the body is not JSON or does not match the schema
    """
    try:
        raw = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValidationError("Invalid request body", [{"msg": f"Malformed JSON: {e}"}]) from e
    try:
        return model.model_validate(raw)
    except pydantic.ValidationError as e:
        details = e.errors(include_url=False, include_context=False)
        raise ValidationError("Invalid request body", details) from e


def _ensure_verified(authorization: Any) -> VerifiedPayment:
    if isinstance(authorization, PaymentRejection):
        raise PaymentRequired(authorization)
    return authorization


def _settled_headers(outcome: CommitOutcome) -> Dict[str, str]:
    if outcome.settled and outcome.settlement is not None:
        return {PAYMENT_RESPONSE_HEADER: encode_settlement_response(outcome.settlement)}
    return {}


def _workflow_failed(outcome: CommitOutcome, code: str, message: str) -> JSONResponse:
    logger.error(f"{message}: {outcome.error!r}")
    return JSONResponse(status_code=500, content={"ok": False, "error": {"code": code, "message": message}})


def _shirt_response(outcome: CommitOutcome[ShirtResult]) -> JSONResponse:
    if not outcome.purchase_honored or outcome.value is None:
        return _workflow_failed(outcome, "WORKFLOW_FAILED", "Shirt creation workflow failed")
    result = outcome.value
    return JSONResponse(
        status_code=200,
        content={
            "id": result.job_id,
            "status": "completed",
            "productId": result.product_id,
            "orderId": result.order_id,
            "trackingInfo": result.tracking.to_dict() if result.tracking else None,
        },
        headers=_settled_headers(outcome),
    )


@router.post("")
async def create_shirt(request: Request) -> JSONResponse:
    """Generate a design from a prompt, create the product and order it ($20.00)."""
    services = _services(request)
    _log_idempotency_key(request)
    offer = services.checkout.shirt_offer(_resource_url(request))
    payment = _ensure_verified(await services.gate.authorize(offer, request.headers.get(PAYMENT_HEADER)))

    body = await _parse_body(request, CreateShirtBody)
    validate_address(body.address_to.country, body.address_to.zip)

    job_id = str(uuid.uuid4())
    outcome = await services.gate.commit(
        payment,
        lambda: services.checkout.create_shirt(
            job_id, body.prompt, body.size, body.color, body.address_to.to_domain()
        ),
    )
    return _shirt_response(outcome)


@router.post("/from-image")
async def create_shirt_from_image(request: Request) -> JSONResponse:
    """Create and order a shirt from a caller-supplied image ($20.00)."""
    services = _services(request)
    _log_idempotency_key(request)
    offer = services.checkout.from_image_offer(_resource_url(request))
    payment = _ensure_verified(await services.gate.authorize(offer, request.headers.get(PAYMENT_HEADER)))

    body = await _parse_body(request, CreateShirtFromImageBody)
    validate_address(body.address_to.country, body.address_to.zip)

    job_id = str(uuid.uuid4())
    outcome = await services.gate.commit(
        payment,
        lambda: services.checkout.create_shirt_from_image(
            job_id, body.image_url, body.size, body.color, body.address_to.to_domain()
        ),
    )
    return _shirt_response(outcome)


@router.post("/products")
async def create_product(request: Request) -> JSONResponse:
    """List a creator product priced at base + margin. Unpaid."""
    services = _services(request)
    body = await _parse_body(request, CreateProductBody)
    listing = await services.checkout.create_listing(
        creator_address=body.creator_address,
        margin_cents=body.margin,
        prompt=body.prompt,
        image_url=body.image_url,
        title=body.title,
        description=body.description,
        placement=body.placement,
    )
    return JSONResponse(
        status_code=200,
        content={
            "id": str(uuid.uuid4()),
            "productId": listing.product.id,
            "imageUrl": listing.image_url,
            "title": listing.title,
            "description": listing.description,
            "priceInCents": listing.price_cents,
            "marginInCents": listing.margin_cents,
            "variants": [v.to_dict() for v in listing.product.variants],
        },
    )


@router.get("/products/{product_id}/order")
async def get_product_pricing(product_id: str, request: Request) -> JSONResponse:
    """Price of ordering a listed product, so clients know it before paying."""
    quote = await _services(request).checkout.quote_product(product_id)
    pricing = quote.pricing()
    pricing.pop("productId")
    return JSONResponse(
        status_code=200,
        content={
            "productId": product_id,
            "title": quote.product.title,
            "pricing": pricing,
            "variants": [
                {"id": v.id, "sku": v.sku, "price": v.price} for v in quote.product.enabled_variants
            ],
        },
    )


@router.post("/products/{product_id}/order")
async def order_product(product_id: str, request: Request) -> JSONResponse:
    """Order a listed product at base + margin; the margin goes to its creator after settlement."""
    services = _services(request)
    checkout = services.checkout
    _log_idempotency_key(request)

    body = await _parse_body(request, OrderProductBody)
    validate_address(body.address_to.country, body.address_to.zip)

    resource = _resource_url(request)
    quotes: Dict[str, ProductQuote] = {}

    async def lookup() -> PaymentOffer:
        quotes["quote"] = await checkout.quote_product(product_id)
        return checkout.order_offer(quotes["quote"], resource)

    payment = _ensure_verified(
        await services.gate.authorize_deferred(lookup, request.headers.get(PAYMENT_HEADER))
    )
    quote = quotes["quote"]
    variant = checkout.pick_variant(quote, body.size, body.color)

    async def split(order: Order) -> str:
        return await checkout.pay_creator(quote)

    after_settlement = split if quote.pays_creator and checkout.payout is not None else None
    job_id = str(uuid.uuid4())
    outcome = await services.gate.commit(
        payment,
        lambda: checkout.order_listed_product(quote, variant, body.quantity, body.address_to.to_domain()),
        after_settlement,
    )
    if not outcome.purchase_honored or outcome.value is None:
        return _workflow_failed(outcome, "ORDER_FAILED", "Failed to create order")

    order = outcome.value
    split_tx = outcome.split.reference if outcome.split and outcome.split.succeeded else None
    return JSONResponse(
        status_code=200,
        content={
            "id": job_id,
            "status": "completed",
            "productId": product_id,
            "orderId": order.id,
            "variantId": variant.id,
            "pricing": {
                "totalPaid": quote.price.total_cents,
                "basePrice": quote.price.base_price_cents,
                "margin": quote.price.margin_cents,
                "creatorAddress": quote.metadata.creator_address,
                "splitPaymentTx": split_tx,
            },
            "trackingInfo": order.tracking.to_dict() if order.tracking else None,
        },
        headers=_settled_headers(outcome),
    )
