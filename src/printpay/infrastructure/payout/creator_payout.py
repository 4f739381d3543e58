"""Creator payout - transfers a listing's margin to its creator after settlement"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from eth_account import Account
from eth_utils import is_address, to_checksum_address
from web3 import Web3
from web3.exceptions import Web3Exception

from printpay.domain.config.payout import PayoutConfig
from printpay.domain.errors import ConfigurationError, ExternalServiceError, FailureKind
from printpay.domain.pricing import cents_to_atomic

logger = logging.getLogger(__name__)

SERVICE = "payout"

ERC20_TRANSFER_ABI = [
    {
        "name": "transfer",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    }
]


class CreatorPayoutClient:
    """Sends ERC-20 (USDC) transfers from the splitter account"""

    def __init__(self, config: PayoutConfig, web3: Optional[Web3] = None):
        """Initialize payout client

        Args:
            config: Payout configuration
            web3: Optional Web3 instance (defaults to an HTTP provider on rpc_url)
        """
        self.config = config
        self.w3 = web3 or Web3(Web3.HTTPProvider(config.rpc_url))

    def _account(self) -> Any:
        if not self.config.private_key:
            raise ConfigurationError("payout.private_key (PAYMENT_SPLITTER_PRIVATE_KEY) not configured")
        return Account.from_key(self.config.private_key)

    def _send_transfer(self, to_address: str, amount: int) -> str:
        account = self._account()
        contract = self.w3.eth.contract(
            address=to_checksum_address(self.config.token_address), abi=ERC20_TRANSFER_ABI
        )
        try:
            txn = contract.functions.transfer(to_address, amount).build_transaction(
                {
                    "from": account.address,
                    "nonce": self.w3.eth.get_transaction_count(account.address),
                    "chainId": self.w3.eth.chain_id,
                }
            )
            signed = account.sign_transaction(txn)
            tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        except Web3Exception as e:
            raise ExternalServiceError(SERVICE, f"USDC transfer failed: {e}", kind=FailureKind.UNKNOWN) from e
        return Web3.to_hex(tx_hash)

    async def transfer_margin(self, creator_address: str, margin_cents: int) -> str:
        """Transfer ``margin_cents`` worth of USDC to the creator

        Returns:
            Transaction hash

        Raises:
            ConfigurationError: If the splitter key is missing
            ValueError: If the creator address or amount is invalid
            ExternalServiceError: If the chain rejects the transfer
        """
        if not is_address(creator_address):
            raise ValueError(f"Invalid creator address: {creator_address}")
        if margin_cents <= 0:
            raise ValueError("margin_cents must be positive")

        amount = cents_to_atomic(margin_cents, self.config.token_decimals)
        to_address = to_checksum_address(creator_address)
        # web3 calls block; keep them off the event loop
        tx_hash = await asyncio.to_thread(self._send_transfer, to_address, amount)
        logger.info(f"[Split Payment] Transferred {margin_cents} cents to {to_address}. Tx: {tx_hash}")
        return tx_hash
