"""Chain client protocol for EVM contract reads, writes and gas price."""
from typing import Any, Protocol

from ..models import TxReceipt


class ChainClient(Protocol):
    """Abstract interface for blockchain RPC interactions."""

    async def call(
        self, address: str, abi: list[dict[str, Any]], function: str, *args: Any
    ) -> Any: ...

    async def transact(
        self,
        address: str,
        abi: list[dict[str, Any]],
        function: str,
        *args: Any,
        value: int = 0,
    ) -> TxReceipt: ...

    async def gas_price_gwei(self) -> float: ...
