"""Aave V3 adapter: per-second RAY rates, aToken positions and pool writes."""
from __future__ import annotations

import asyncio
import logging

from ...config import AaveConfig
from ...errors import ConfigurationError
from ...interfaces.chain import ChainClient
from ...interfaces.wallet import WalletProvider
from ...models import (
    ActionKind,
    ActionRequest,
    ActionResult,
    NormalizedRate,
    Position,
    PositionKind,
    ProtocolId,
    RateScan,
    ReadDiagnostic,
    Token,
    TxReceipt,
)
from ..writes import ensure_allowance, require_signer, submit, to_base_units
from . import parser
from .abi import DATA_PROVIDER_ABI, INCENTIVES_ABI, POOL_ABI, VARIABLE_RATE_MODE

logger = logging.getLogger(__name__)

DUST = 0.0001


class AaveAdapter:
    """Read and write Aave V3 reserves."""

    def __init__(
        self,
        chain_client: ChainClient,
        config: AaveConfig,
        tokens: dict[str, Token],
        wallet: WalletProvider,
    ) -> None:
        self._chain = chain_client
        self._config = config
        self._tokens = tokens
        self._wallet = wallet

    @property
    def protocol(self) -> ProtocolId:
        return ProtocolId.AAVE

    def supported_tokens(self) -> list[str]:
        return [s for s in self._config.underlyings if s in self._tokens]

    def _market(self, symbol: str) -> tuple[Token, str] | None:
        underlying = self._config.underlyings.get(symbol)
        token = self._tokens.get(symbol)
        if not underlying or not token:
            return None
        return token, underlying

    # ------------------------------------------------------------------
    # Rates
    # ------------------------------------------------------------------

    async def get_rate(self, symbol: str) -> NormalizedRate | None:
        market = self._market(symbol)
        if market is None:
            return None
        token, underlying = market

        reserve_data, config_data = await asyncio.gather(
            self._chain.call(
                self._config.data_provider, DATA_PROVIDER_ABI, "getReserveData", underlying
            ),
            self._chain.call(
                self._config.data_provider,
                DATA_PROVIDER_ABI,
                "getReserveConfigurationData",
                underlying,
            ),
        )
        return parser.build_rate(token, reserve_data, config_data)

    async def _scan_one(self, symbol: str) -> NormalizedRate | ReadDiagnostic | None:
        try:
            return await self.get_rate(symbol)
        except Exception as e:
            logger.error("Aave: failed to get rate for %s: %s", symbol, e)
            return ReadDiagnostic(self.protocol, symbol, "rate", str(e))

    async def get_rates(self) -> RateScan:
        outcomes = await asyncio.gather(
            *(self._scan_one(s) for s in self.supported_tokens())
        )
        return RateScan(
            rates=tuple(o for o in outcomes if isinstance(o, NormalizedRate)),
            diagnostics=tuple(o for o in outcomes if isinstance(o, ReadDiagnostic)),
        )

    # ------------------------------------------------------------------
    # Account reads
    # ------------------------------------------------------------------

    async def _positions_for(self, symbol: str, user_address: str) -> list[Position]:
        token, underlying = self._market(symbol)  # type: ignore[misc]
        user_reserve = await self._chain.call(
            self._config.data_provider,
            DATA_PROVIDER_ABI,
            "getUserReserveData",
            underlying,
            user_address,
        )
        supplied, borrowed = parser.user_balances(user_reserve, token.decimals)
        if supplied <= DUST and borrowed <= DUST:
            return []

        rate = await self.get_rate(symbol)
        positions: list[Position] = []
        if supplied > DUST:
            positions.append(
                Position(
                    protocol=self.protocol,
                    token=token,
                    kind=PositionKind.SUPPLY,
                    amount=supplied,
                    apy=rate.net_supply_apy if rate else 0.0,
                )
            )
        if borrowed > DUST:
            positions.append(
                Position(
                    protocol=self.protocol,
                    token=token,
                    kind=PositionKind.BORROW,
                    amount=borrowed,
                    apy=rate.net_borrow_apy if rate else 0.0,
                )
            )
        return positions

    async def get_positions(self, user_address: str) -> list[Position]:
        async def _safe(symbol: str) -> list[Position]:
            try:
                return await self._positions_for(symbol, user_address)
            except Exception as e:
                logger.error("Aave: failed to get position for %s: %s", symbol, e)
                return []

        results = await asyncio.gather(*(_safe(s) for s in self.supported_tokens()))
        return [p for group in results for p in group]

    async def get_health_factor(self, user_address: str) -> float:
        try:
            account = await self._chain.call(
                self._config.pool, POOL_ABI, "getUserAccountData", user_address
            )
        except Exception as e:
            logger.error("Aave: failed to read health factor: %s", e)
            return 0.0
        return parser.parse_health_factor(account[5])

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _request(self, action: ActionKind, symbol: str, amount: float) -> ActionRequest:
        return ActionRequest(self.protocol, action, symbol, amount)

    def _write_market(self, symbol: str) -> tuple[Token, str]:
        market = self._market(symbol)
        if market is None:
            raise ConfigurationError(f"Unsupported token: {symbol}")
        return market

    async def supply(self, symbol: str, amount: float) -> ActionResult:
        async def _write() -> TxReceipt:
            owner = require_signer(self._wallet)
            token, underlying = self._write_market(symbol)
            amount_wei = to_base_units(amount, token.decimals)

            await ensure_allowance(
                self._chain, underlying, owner, self._config.pool, amount_wei
            )
            receipt = await self._chain.transact(
                self._config.pool, POOL_ABI, "supply", underlying, amount_wei, owner, 0
            )
            try:
                await self._chain.transact(
                    self._config.pool,
                    POOL_ABI,
                    "setUserUseReserveAsCollateral",
                    underlying,
                    True,
                )
            except Exception as e:
                # The deposit itself went through.
                logger.warning("Aave: could not enable %s as collateral: %s", symbol, e)
            return receipt

        return await submit(self._request(ActionKind.SUPPLY, symbol, amount), _write)

    async def withdraw(self, symbol: str, amount: float) -> ActionResult:
        async def _write() -> TxReceipt:
            owner = require_signer(self._wallet)
            token, underlying = self._write_market(symbol)
            return await self._chain.transact(
                self._config.pool,
                POOL_ABI,
                "withdraw",
                underlying,
                to_base_units(amount, token.decimals),
                owner,
            )

        return await submit(self._request(ActionKind.WITHDRAW, symbol, amount), _write)

    async def borrow(self, symbol: str, amount: float) -> ActionResult:
        async def _write() -> TxReceipt:
            owner = require_signer(self._wallet)
            token, underlying = self._write_market(symbol)
            return await self._chain.transact(
                self._config.pool,
                POOL_ABI,
                "borrow",
                underlying,
                to_base_units(amount, token.decimals),
                VARIABLE_RATE_MODE,
                0,
                owner,
            )

        return await submit(self._request(ActionKind.BORROW, symbol, amount), _write)

    async def repay(self, symbol: str, amount: float) -> ActionResult:
        async def _write() -> TxReceipt:
            owner = require_signer(self._wallet)
            token, underlying = self._write_market(symbol)
            amount_wei = to_base_units(amount, token.decimals)

            await ensure_allowance(
                self._chain, underlying, owner, self._config.pool, amount_wei
            )
            return await self._chain.transact(
                self._config.pool,
                POOL_ABI,
                "repay",
                underlying,
                amount_wei,
                VARIABLE_RATE_MODE,
                owner,
            )

        return await submit(self._request(ActionKind.REPAY, symbol, amount), _write)

    async def claim_rewards(self) -> ActionResult:
        async def _write() -> TxReceipt:
            require_signer(self._wallet)
            assets = list(self._config.a_tokens.values()) + list(
                self._config.debt_tokens.values()
            )
            return await self._chain.transact(
                self._config.incentives_controller,
                INCENTIVES_ABI,
                "claimAllRewardsToSelf",
                assets,
            )

        return await submit(self._request(ActionKind.CLAIM, "AAVE_REWARDS", 0.0), _write)
