"""Price parsing and conversion to on-chain atomic amounts.

Prices arrive as human decimal strings ("$20.00", "20", "0.5") and are
converted to the smallest unit of the stablecoin accepted on a network.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Dict, Optional

from printpay.domain.errors import ConfigurationError

MIN_PRICE = Decimal("0.0001")
MAX_PRICE = Decimal("999999999")


@dataclass(frozen=True)
class AssetDescriptor:
    """Stablecoin accepted on a network."""

    address: str
    decimals: int
    eip712: Optional[Dict[str, str]] = None  # typed-data domain (name, version)


@dataclass(frozen=True)
class AtomicAmount:
    """A price resolved for a network."""

    max_amount_required: str  # integer string, smallest unit
    asset: AssetDescriptor
    network: str


# USDC deployments on the EVM networks the exact scheme supports
NETWORK_ASSETS: Dict[str, AssetDescriptor] = {
    "base": AssetDescriptor(
        "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913", 6, {"name": "USD Coin", "version": "2"}
    ),
    "base-sepolia": AssetDescriptor(
        "0x036CbD53842c5426634e7929541eC2318f3dCF7e", 6, {"name": "USDC", "version": "2"}
    ),
    "avalanche": AssetDescriptor(
        "0xB97EF9Ef8734C71904D8002F8b6Bc66Dd9c48a6E", 6, {"name": "USD Coin", "version": "2"}
    ),
    "avalanche-fuji": AssetDescriptor(
        "0x5425890298aed601595a70AB815c96711a31Bc65", 6, {"name": "USD Coin", "version": "2"}
    ),
    "polygon": AssetDescriptor(
        "0x3c499c542cEF5E3811e1192ce70d8cC03d5c3359", 6, {"name": "USD Coin", "version": "2"}
    ),
    "polygon-amoy": AssetDescriptor(
        "0x41E94Eb019C0762f9Bfcf9Fb1E58725BfB0e7582", 6, {"name": "USDC", "version": "2"}
    ),
}

SUPPORTED_NETWORKS = tuple(NETWORK_ASSETS)


def parse_money(price: str) -> Decimal:
    """Parse a human price string into a Decimal amount of dollars.

    Accepts an optional leading ``$`` and thousands separators.

    Raises:
        ConfigurationError: If the price is not a number or out of range
    """
    if isinstance(price, (int, float, Decimal)) and not isinstance(price, bool):
        text = str(price)
    elif isinstance(price, str):
        text = price.strip()
    else:
        raise ConfigurationError(f"Invalid price: {price!r}")

    if text.startswith("$"):
        text = text[1:]
    text = text.replace(",", "").strip()

    try:
        amount = Decimal(text)
    except InvalidOperation as e:
        raise ConfigurationError(f"Invalid price format: {price!r}") from e

    if not amount.is_finite():
        raise ConfigurationError(f"Invalid price format: {price!r}")
    if amount < MIN_PRICE:
        raise ConfigurationError(f"Price must be at least {MIN_PRICE}: {price!r}")
    if amount > MAX_PRICE:
        raise ConfigurationError(f"Price must not exceed {MAX_PRICE}: {price!r}")
    return amount


def get_network_asset(network: str) -> AssetDescriptor:
    """Return the default payment asset for a network.

    Raises:
        ConfigurationError: If the network is not supported
    """
    try:
        return NETWORK_ASSETS[network]
    except KeyError:
        raise ConfigurationError(f"Unsupported network: {network}") from None


def process_price_to_atomic_amount(price: str, network: str) -> AtomicAmount:
    """Convert a human price on a network into the asset's atomic amount.

    Fractions below the asset's smallest unit are truncated.
    """
    amount = parse_money(price)
    asset = get_network_asset(network)
    atomic = (amount * (Decimal(10) ** asset.decimals)).to_integral_value(ROUND_DOWN)
    return AtomicAmount(max_amount_required=str(int(atomic)), asset=asset, network=network)


def cents_to_atomic(cents: int, decimals: int = 6) -> int:
    """Convert US cents into atomic units of a dollar-pegged token."""
    if cents < 0:
        raise ValueError("cents must be non-negative")
    return int((Decimal(cents) / Decimal(100) * (Decimal(10) ** decimals)).to_integral_value(ROUND_DOWN))


def format_price(cents: int) -> str:
    """Format cents as an x402 price string, e.g. 2500 -> "$25.00"."""
    return f"${Decimal(cents) / Decimal(100):.2f}"


@dataclass(frozen=True)
class OrderPrice:
    """Dynamic price of ordering a listed product."""

    base_price_cents: int
    margin_cents: int

    @property
    def total_cents(self) -> int:
        return self.base_price_cents + self.margin_cents

    @property
    def formatted(self) -> str:
        return format_price(self.total_cents)


def calculate_order_price(base_price_cents: int, margin_cents: int) -> OrderPrice:
    if base_price_cents < 0 or margin_cents < 0:
        raise ValueError("prices must be non-negative")
    return OrderPrice(base_price_cents=base_price_cents, margin_cents=margin_cents)
