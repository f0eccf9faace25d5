"""Per-protocol rates, positions and writes."""
from typing import Protocol

from ..models import ActionResult, NormalizedRate, Position, ProtocolId, RateScan


class ProtocolAdapter(Protocol):
    """Abstract interface for a lending market backend."""

    @property
    def protocol(self) -> ProtocolId: ...

    def supported_tokens(self) -> list[str]: ...

    async def get_rate(self, symbol: str) -> NormalizedRate | None: ...

    async def get_rates(self) -> RateScan: ...

    async def get_positions(self, user_address: str) -> list[Position]: ...

    async def get_health_factor(self, user_address: str) -> float: ...

    async def supply(self, symbol: str, amount: float) -> ActionResult: ...

    async def withdraw(self, symbol: str, amount: float) -> ActionResult: ...

    async def borrow(self, symbol: str, amount: float) -> ActionResult: ...

    async def repay(self, symbol: str, amount: float) -> ActionResult: ...

    async def claim_rewards(self) -> ActionResult: ...
