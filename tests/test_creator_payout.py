"""Tests for CreatorPayoutClient"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from web3.exceptions import Web3Exception

from conftest import CREATOR
from printpay.domain.config.payout import PayoutConfig
from printpay.domain.errors import ConfigurationError, ExternalServiceError
from printpay.infrastructure.payout.creator_payout import CreatorPayoutClient

SPLITTER = "0x3333333333333333333333333333333333333333"


@pytest.fixture
def web3():
    w3 = MagicMock()
    w3.eth.get_transaction_count.return_value = 7
    w3.eth.chain_id = 8453
    w3.eth.send_raw_transaction.return_value = b"\xab\xcd"
    return w3


@pytest.fixture
def account(monkeypatch):
    account = MagicMock()
    account.address = SPLITTER
    account.sign_transaction.return_value = MagicMock(raw_transaction=b"signed")
    from_key = MagicMock(return_value=account)
    monkeypatch.setattr("printpay.infrastructure.payout.creator_payout.Account.from_key", from_key)
    return account


class TestCreatorPayoutClient:
    """Tests for margin transfers"""

    async def test_transfer_margin(self, web3, account):
        client = CreatorPayoutClient(PayoutConfig(private_key="0x" + "1" * 64), web3=web3)

        tx = await client.transfer_margin(CREATOR, 500)

        assert tx == "0xabcd"
        transfer = web3.eth.contract.return_value.functions.transfer
        transfer.assert_called_once_with(CREATOR, 5_000_000)
        transfer.return_value.build_transaction.assert_called_once_with(
            {"from": SPLITTER, "nonce": 7, "chainId": 8453}
        )
        web3.eth.send_raw_transaction.assert_called_once_with(b"signed")

    async def test_invalid_creator_address(self, web3):
        client = CreatorPayoutClient(PayoutConfig(private_key="0x" + "1" * 64), web3=web3)

        with pytest.raises(ValueError, match="Invalid creator address"):
            await client.transfer_margin("not-an-address", 500)
        web3.eth.send_raw_transaction.assert_not_called()

    @pytest.mark.parametrize("margin", [0, -100])
    async def test_margin_must_be_positive(self, web3, margin):
        client = CreatorPayoutClient(PayoutConfig(private_key="0x" + "1" * 64), web3=web3)

        with pytest.raises(ValueError, match="positive"):
            await client.transfer_margin(CREATOR, margin)

    async def test_missing_private_key(self, web3):
        client = CreatorPayoutClient(PayoutConfig(), web3=web3)

        with pytest.raises(ConfigurationError, match="PAYMENT_SPLITTER_PRIVATE_KEY"):
            await client.transfer_margin(CREATOR, 500)

    async def test_chain_rejection(self, web3, account):
        web3.eth.send_raw_transaction.side_effect = Web3Exception("nonce too low")
        client = CreatorPayoutClient(PayoutConfig(private_key="0x" + "1" * 64), web3=web3)

        with pytest.raises(ExternalServiceError, match="USDC transfer failed"):
            await client.transfer_margin(CREATOR, 500)
