"""CLI interface for PrintPay"""

import json
import logging
from pathlib import Path
from typing import Optional

import click

from printpay.application.payment_gate import PaymentGate
from printpay.domain.errors import ConfigurationError
from printpay.domain.models.payment import PaymentOffer
from printpay.domain.pricing import SUPPORTED_NETWORKS
from printpay.infrastructure.config.config_manager import ConfigManager
from printpay.infrastructure.x402.mock import MockFacilitator

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration"""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
    logging.getLogger().setLevel(level)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def _die(message: str, verbose: bool = False, exc: Optional[Exception] = None) -> None:
    """Exit with a user-friendly error message"""
    if exc is not None:
        logger.error(message, exc_info=verbose)
    else:
        logger.error(message)
    raise click.ClickException(message)


def _load_config(ctx: click.Context) -> ConfigManager:
    try:
        return ConfigManager(config_path=ctx.obj.get("config_path"))
    except ConfigurationError as e:
        _die(str(e), verbose=ctx.obj.get("verbose", False), exc=e)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to .printpay.yml config file",
)
@click.pass_context
def cli(ctx, verbose: bool, config: Path):
    """PrintPay - pay-per-request shirt checkout over x402"""
    ctx.ensure_object(dict)
    setup_logging(verbose)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose


@cli.command()
@click.option("--host", type=str, help="Bind address. Overrides config.")
@click.option("--port", type=int, help="Bind port. Overrides config.")
@click.option(
    "--facilitator",
    type=click.Choice(["http", "mock"], case_sensitive=False),
    help="Payment facilitator to use. Overrides config.",
)
@click.pass_context
def serve(ctx, host: Optional[str], port: Optional[int], facilitator: Optional[str]):
    """Run the checkout API server."""
    import uvicorn

    from printpay.api.app import create_app

    verbose = ctx.obj.get("verbose", False)
    config_manager = _load_config(ctx)
    if facilitator:
        config_manager.config.payment.facilitator = facilitator.lower()
    server_config = config_manager.get_server_config()

    try:
        app = create_app(config_manager)
    except (ConfigurationError, ValueError) as e:
        _die(str(e), verbose=verbose, exc=e)

    bind_host = host or server_config.host
    bind_port = port or server_config.port
    logger.info(f"Starting PrintPay API on {bind_host}:{bind_port}")
    uvicorn.run(app, host=bind_host, port=bind_port, log_level="debug" if verbose else server_config.log_level)


@cli.command()
@click.argument("price", type=str)
@click.option("--network", type=click.Choice(SUPPORTED_NETWORKS), help="Payment network. Overrides config.")
@click.option("--resource", type=str, default="http://localhost:8000/api/shirts", show_default=True)
@click.option("--description", type=str, default="", help="Requirement description")
@click.pass_context
def quote(ctx, price: str, network: Optional[str], resource: str, description: str):
    """Print the payment requirements a 402 for PRICE would advertise.

    PRICE: Money string, e.g. '$20.00'
    """
    verbose = ctx.obj.get("verbose", False)
    config_manager = _load_config(ctx)
    payment_config = config_manager.get_payment_config()

    offer = PaymentOffer(
        price=price,
        network=network or payment_config.network,
        resource=resource,
        description=description,
        mime_type=payment_config.mime_type,
    )
    gate = PaymentGate(MockFacilitator(), payment_config)
    try:
        requirements = gate.requirements_for(offer)
    except ConfigurationError as e:
        _die(str(e), verbose=verbose, exc=e)

    body = {
        "x402Version": payment_config.x402_version,
        "accepts": [r.to_dict() for r in requirements],
    }
    click.echo(json.dumps(body, indent=2))


@cli.command("config")
@click.pass_context
def show_config(ctx):
    """Show the effective configuration with secrets masked."""
    config_manager = _load_config(ctx)
    source = config_manager.config_path or "defaults + environment"
    click.echo(f"# Source: {source}")
    click.echo(json.dumps(config_manager.masked_dump(), indent=2))


def main():
    """Main entry point"""
    cli(obj={})


if __name__ == "__main__":
    main()
