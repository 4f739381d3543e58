"""Creator payout configuration model."""

from typing import Optional

from pydantic import BaseModel, Field


class PayoutConfig(BaseModel):
    """Configuration for splitting margin to product creators.

    Attributes:
        enabled: Whether creator payouts are attempted at all
        rpc_url: JSON-RPC endpoint of the settlement chain
        private_key: Key of the splitter account holding settled funds
        token_address: ERC-20 contract transferred (USDC on Base by default)
        token_decimals: Decimals of the token
    """

    enabled: bool = True
    rpc_url: str = "https://mainnet.base.org"
    private_key: Optional[str] = None
    token_address: str = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
    token_decimals: int = Field(6, ge=0, le=36)
