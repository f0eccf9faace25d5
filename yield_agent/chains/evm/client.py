"""EVM RPC client with automatic endpoint fallback."""
from __future__ import annotations

import logging
from typing import Any

import aiohttp
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3

from ...config import ChainConfig
from ...errors import ConfigurationError, TransactionReverted
from ...models import TxReceipt
from ...rpc import ResilientClient
from .wallet import LocalWallet

logger = logging.getLogger(__name__)


class EvmClient:
    """Contract reads and signed writes, each routed through ResilientClient."""

    def __init__(
        self,
        config: ChainConfig,
        wallet: LocalWallet | None = None,
        resilient: ResilientClient | None = None,
    ) -> None:
        self._config = config
        self._wallet = wallet or LocalWallet()
        self._resilient = resilient or ResilientClient(
            config.rpc_endpoints,
            max_retries=config.max_retries,
            base_delay=config.retry_base_delay,
        )
        self._providers: dict[str, AsyncWeb3] = {}

    def _w3(self, url: str) -> AsyncWeb3:
        if url not in self._providers:
            self._providers[url] = AsyncWeb3(
                AsyncHTTPProvider(
                    url,
                    request_kwargs={
                        "timeout": aiohttp.ClientTimeout(total=self._config.rpc_timeout)
                    },
                )
            )
        return self._providers[url]

    @staticmethod
    def _function(
        w3: AsyncWeb3, address: str, abi: list[dict[str, Any]], function: str, args: tuple
    ) -> Any:
        contract = w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)
        return getattr(contract.functions, function)(*args)

    async def call(
        self, address: str, abi: list[dict[str, Any]], function: str, *args: Any
    ) -> Any:
        """Call a view function and return its decoded output."""

        async def _call(url: str) -> Any:
            return await self._function(self._w3(url), address, abi, function, args).call()

        return await self._resilient.run(_call)

    async def transact(
        self,
        address: str,
        abi: list[dict[str, Any]],
        function: str,
        *args: Any,
        value: int = 0,
    ) -> TxReceipt:
        """Sign, submit and wait for a state-changing call.

        The transaction is signed once; only the raw submission and the
        receipt wait are retried, so failover never produces a second nonce.
        """
        account = self._wallet.account
        if account is None:
            raise ConfigurationError("No wallet configured")

        async def _sign(url: str) -> bytes:
            w3 = self._w3(url)
            nonce = await w3.eth.get_transaction_count(account.address, "pending")
            tx = await self._function(w3, address, abi, function, args).build_transaction(
                {
                    "from": account.address,
                    "value": value,
                    "nonce": nonce,
                    "chainId": self._config.chain_id,
                }
            )
            return account.sign_transaction(tx).raw_transaction

        raw_tx = await self._resilient.run(_sign)
        tx_hash = await self._resilient.run(
            lambda url: self._w3(url).eth.send_raw_transaction(raw_tx)
        )
        hex_hash = Web3.to_hex(tx_hash)
        logger.info("Submitted %s.%s: %s", address, function, hex_hash)

        receipt = await self._resilient.run(
            lambda url: self._w3(url).eth.wait_for_transaction_receipt(
                tx_hash, timeout=self._config.receipt_timeout
            )
        )
        if receipt["status"] != 1:
            raise TransactionReverted(hex_hash)

        return TxReceipt(tx_hash=hex_hash, gas_used=int(receipt["gasUsed"]))

    async def gas_price_gwei(self) -> float:
        """Current network gas price in gwei."""

        async def _gas_price(url: str) -> int:
            return await self._w3(url).eth.gas_price

        wei = await self._resilient.run(_gas_price)
        return wei / 1e9
