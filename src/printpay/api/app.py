"""FastAPI application for the paid shirt checkout.

Usage:
    printpay serve
    uvicorn printpay.api.app:create_app --factory --port 8000
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from printpay.api.routes import router
from printpay.application.checkout_service import CheckoutService
from printpay.application.payment_gate import PaymentGate
from printpay.domain.errors import (
    BusinessRuleError,
    ConfigurationError,
    NotFoundError,
    PaymentRequired,
    ValidationError,
)
from printpay.infrastructure.config.config_manager import ConfigManager
from printpay.infrastructure.imagegen.factory import ImageGeneratorFactory
from printpay.infrastructure.payout.creator_payout import CreatorPayoutClient
from printpay.infrastructure.printify.client import PrintifyClient
from printpay.infrastructure.retry import presets_from_config
from printpay.infrastructure.x402.factory import FacilitatorFactory

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything the routes need, plus what to close on shutdown"""

    gate: PaymentGate
    checkout: CheckoutService
    closers: List[Callable[[], Awaitable[None]]] = field(default_factory=list)

    async def aclose(self) -> None:
        for close in self.closers:
            try:
                await close()
            except Exception as e:
                logger.warning(f"Error while closing client: {e}")


def build_services(config_manager: ConfigManager) -> Services:
    """Wire facilitator, fulfillment, image generation and payouts from config"""
    payment_config = config_manager.get_payment_config()
    presets = presets_from_config(config_manager.get_retry_config())
    client = httpx.AsyncClient()

    facilitator = FacilitatorFactory.create(payment_config, client=client, verify_retry=presets["api_call"])
    fulfillment = PrintifyClient(
        config_manager.get_fulfillment_config(),
        client=client,
        retry_policy=presets["fulfillment_operation"],
        workflow_policy=presets["workflow"],
    )
    generator = ImageGeneratorFactory.create(
        config_manager.get_image_config(), client=client, retry=presets["image_generation"]
    )

    payout_config = config_manager.get_payout_config()
    payout = CreatorPayoutClient(payout_config) if payout_config.enabled else None
    if payout is None:
        logger.info("Creator payouts disabled")

    gate = PaymentGate(facilitator, payment_config)
    checkout = CheckoutService(
        gate,
        fulfillment,
        generator,
        config_manager.get_pricing_config(),
        network=payment_config.network,
        payout=payout,
        workflow_policy=presets["workflow"],
        mime_type=payment_config.mime_type,
    )
    return Services(gate=gate, checkout=checkout, closers=[client.aclose])


def _error(status_code: int, code: str, message: str, **extra: Any) -> JSONResponse:
    error = {"code": code, "message": message}
    error.update(extra)
    return JSONResponse(status_code=status_code, content={"ok": False, "error": error})


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain errors onto HTTP responses"""

    @app.exception_handler(PaymentRequired)
    async def payment_required(request: Request, exc: PaymentRequired) -> JSONResponse:
        return JSONResponse(status_code=exc.rejection.status_code, content=exc.rejection.to_body())

    @app.exception_handler(ValidationError)
    async def bad_request(request: Request, exc: ValidationError) -> JSONResponse:
        return _error(400, "BAD_REQUEST", exc.message, details=exc.details)

    @app.exception_handler(RequestValidationError)
    async def request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error(400, "BAD_REQUEST", "Invalid request body", details=_jsonable(exc.errors()))

    @app.exception_handler(BusinessRuleError)
    async def business_rule(request: Request, exc: BusinessRuleError) -> JSONResponse:
        return _error(422, exc.code, exc.message)

    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return _error(404, exc.code, exc.message)

    @app.exception_handler(ConfigurationError)
    async def configuration(request: Request, exc: ConfigurationError) -> JSONResponse:
        logger.error(f"Configuration error on {request.url.path}: {exc}")
        return _error(500, "CONFIGURATION_ERROR", str(exc))

    @app.middleware("http")
    async def internal_errors(request: Request, call_next):
        """Anything unhandled becomes a generic 500; nothing is settled on this path."""
        try:
            return await call_next(request)
        except Exception:
            logger.exception(f"Unhandled error on {request.method} {request.url.path}")
            return _error(500, "INTERNAL_ERROR", "Internal server error")


def _jsonable(errors: Any) -> Any:
    return [{k: v for k, v in e.items() if k in ("type", "loc", "msg", "input")} for e in errors]


def create_app(
    config_manager: Optional[ConfigManager] = None,
    services: Optional[Services] = None,
) -> FastAPI:
    """Create the checkout application

    Args:
        config_manager: Configuration (loaded from .printpay.yml/env if None)
        services: Pre-built services (tests inject fakes here)
    """
    if services is None:
        services = build_services(config_manager or ConfigManager())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await services.aclose()

    app = FastAPI(
        title="PrintPay API",
        description="Pay-per-request shirt creation and ordering over x402",
        lifespan=lifespan,
    )
    app.state.services = services
    register_exception_handlers(app)

    app.include_router(router)
    return app
