"""Venus protocol adapter (per-block rates, vToken positions, writes)."""
from __future__ import annotations

import asyncio
import logging

from ...config import VenusConfig
from ...errors import ConfigurationError
from ...interfaces.chain import ChainClient
from ...interfaces.price_oracle import PriceOracle
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
from ..rates import calc_health_factor, from_mantissa, to_units
from ..writes import ensure_allowance, require_signer, submit, to_base_units
from . import parser
from .abi import COMPTROLLER_ABI, ORACLE_ABI, VBNB_ABI, VTOKEN_ABI

logger = logging.getLogger(__name__)

DUST = 0.0001


class VenusAdapter:
    """Read and write Venus core pool markets."""

    def __init__(
        self,
        chain_client: ChainClient,
        config: VenusConfig,
        tokens: dict[str, Token],
        wallet: WalletProvider,
        price_oracle: PriceOracle | None = None,
    ) -> None:
        self._chain = chain_client
        self._config = config
        self._tokens = tokens
        self._wallet = wallet
        self._prices = price_oracle

    @property
    def protocol(self) -> ProtocolId:
        return ProtocolId.VENUS

    def supported_tokens(self) -> list[str]:
        return [s for s in self._config.vtokens if s in self._tokens]

    def _market(self, symbol: str) -> tuple[Token, str] | None:
        vtoken = self._config.vtokens.get(symbol)
        token = self._tokens.get(symbol)
        if not vtoken or not token:
            return None
        return token, vtoken

    # ------------------------------------------------------------------
    # Rates
    # ------------------------------------------------------------------

    async def get_rate(self, symbol: str) -> NormalizedRate | None:
        market = self._market(symbol)
        if market is None:
            return None
        token, vtoken = market

        call = self._chain.call
        (
            supply_rate,
            borrow_rate,
            total_supply,
            total_borrows,
            cash,
            exchange_rate,
            market_info,
        ) = await asyncio.gather(
            call(vtoken, VTOKEN_ABI, "supplyRatePerBlock"),
            call(vtoken, VTOKEN_ABI, "borrowRatePerBlock"),
            call(vtoken, VTOKEN_ABI, "totalSupply"),
            call(vtoken, VTOKEN_ABI, "totalBorrows"),
            call(vtoken, VTOKEN_ABI, "getCash"),
            call(vtoken, VTOKEN_ABI, "exchangeRateStored"),
            call(self._config.comptroller, COMPTROLLER_ABI, "markets", vtoken),
        )

        reward_apy = await self._reward_apy(
            token, vtoken, parser.underlying_amount(total_supply, exchange_rate, token.decimals)
        )

        return parser.build_rate(
            token,
            supply_rate_per_block=supply_rate,
            borrow_rate_per_block=borrow_rate,
            total_supply=total_supply,
            total_borrows=total_borrows,
            cash=cash,
            exchange_rate=exchange_rate,
            collateral_factor_mantissa=market_info[1],
            blocks_per_year=self._config.blocks_per_year,
            reward_apy=reward_apy,
        )

    async def _reward_apy(
        self, token: Token, vtoken: str, total_supply_units: float
    ) -> float | None:
        """XVS supply-side reward APY, or None when it cannot be valued."""
        if self._prices is None:
            return None
        try:
            speed = await self._chain.call(
                self._config.comptroller, COMPTROLLER_ABI, "venusSupplySpeeds", vtoken
            )
        except Exception as e:
            logger.debug("Venus: no reward speed for %s: %s", token.symbol, e)
            return None
        if int(speed) == 0:
            return 0.0

        prices = await self._prices.fetch_prices([self._config.xvs_symbol, token.symbol])
        return parser.calc_reward_apy(
            int(speed),
            self._config.blocks_per_year,
            prices.get(self._config.xvs_symbol, 0.0),
            total_supply_units,
            prices.get(token.symbol, 0.0),
        )

    async def _scan_one(self, symbol: str) -> NormalizedRate | ReadDiagnostic | None:
        try:
            return await self.get_rate(symbol)
        except Exception as e:
            logger.error("Venus: failed to get rate for %s: %s", symbol, e)
            return ReadDiagnostic(self.protocol, symbol, "rate", str(e))

    async def get_rates(self) -> RateScan:
        """Read every configured market concurrently; failures become diagnostics."""
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
        token, vtoken = self._market(symbol)  # type: ignore[misc]
        error, vtoken_balance, borrow_balance, exchange_rate = await self._chain.call(
            vtoken, VTOKEN_ABI, "getAccountSnapshot", user_address
        )
        if int(error) != 0:
            logger.warning("Venus: account snapshot error %s for %s", error, symbol)
            return []

        supplied = parser.underlying_amount(vtoken_balance, exchange_rate, token.decimals)
        borrowed = to_units(borrow_balance, token.decimals)
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
                logger.error("Venus: failed to get position for %s: %s", symbol, e)
                return []

        results = await asyncio.gather(*(_safe(s) for s in self.supported_tokens()))
        return [p for group in results for p in group]

    async def _account_values(self, symbol: str, user_address: str) -> tuple[float, float]:
        """(risk-adjusted collateral USD, debt USD) for one market."""
        token, vtoken = self._market(symbol)  # type: ignore[misc]
        snapshot, market_info, raw_price = await asyncio.gather(
            self._chain.call(vtoken, VTOKEN_ABI, "getAccountSnapshot", user_address),
            self._chain.call(self._config.comptroller, COMPTROLLER_ABI, "markets", vtoken),
            self._chain.call(self._config.oracle, ORACLE_ABI, "getUnderlyingPrice", vtoken),
        )
        error, vtoken_balance, borrow_balance, exchange_rate = snapshot
        if int(error) != 0:
            raise RuntimeError(f"account snapshot error {error} for {symbol}")

        price = parser.oracle_price(raw_price, token.decimals)
        collateral_factor = from_mantissa(market_info[1])
        supplied = parser.underlying_amount(vtoken_balance, exchange_rate, token.decimals)
        borrowed = to_units(borrow_balance, token.decimals)
        return supplied * price * collateral_factor, borrowed * price

    async def get_health_factor(self, user_address: str) -> float:
        """Σ(collateral · price · CF) / Σ(debt · price); 0 if any read fails."""
        try:
            values = await asyncio.gather(
                *(self._account_values(s, user_address) for s in self.supported_tokens())
            )
        except Exception as e:
            logger.error("Venus: failed to read health factor: %s", e)
            return 0.0

        collateral = sum(v[0] for v in values)
        debt = sum(v[1] for v in values)
        return calc_health_factor(collateral, debt)

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

    def _is_native(self, symbol: str) -> bool:
        return symbol == self._config.native_symbol

    async def _enter_market(self, owner: str, vtoken: str) -> None:
        member = await self._chain.call(
            self._config.comptroller, COMPTROLLER_ABI, "checkMembership", owner, vtoken
        )
        if not member:
            await self._chain.transact(
                self._config.comptroller, COMPTROLLER_ABI, "enterMarkets", [vtoken]
            )

    async def supply(self, symbol: str, amount: float) -> ActionResult:
        async def _write() -> TxReceipt:
            owner = require_signer(self._wallet)
            token, vtoken = self._write_market(symbol)
            amount_wei = to_base_units(amount, token.decimals)

            await self._enter_market(owner, vtoken)
            if self._is_native(symbol):
                return await self._chain.transact(vtoken, VBNB_ABI, "mint", value=amount_wei)

            await ensure_allowance(self._chain, token.address, owner, vtoken, amount_wei)
            return await self._chain.transact(vtoken, VTOKEN_ABI, "mint", amount_wei)

        return await submit(self._request(ActionKind.SUPPLY, symbol, amount), _write)

    async def withdraw(self, symbol: str, amount: float) -> ActionResult:
        async def _write() -> TxReceipt:
            require_signer(self._wallet)
            token, vtoken = self._write_market(symbol)
            return await self._chain.transact(
                vtoken, VTOKEN_ABI, "redeemUnderlying", to_base_units(amount, token.decimals)
            )

        return await submit(self._request(ActionKind.WITHDRAW, symbol, amount), _write)

    async def borrow(self, symbol: str, amount: float) -> ActionResult:
        async def _write() -> TxReceipt:
            require_signer(self._wallet)
            token, vtoken = self._write_market(symbol)
            return await self._chain.transact(
                vtoken, VTOKEN_ABI, "borrow", to_base_units(amount, token.decimals)
            )

        return await submit(self._request(ActionKind.BORROW, symbol, amount), _write)

    async def repay(self, symbol: str, amount: float) -> ActionResult:
        async def _write() -> TxReceipt:
            owner = require_signer(self._wallet)
            token, vtoken = self._write_market(symbol)
            amount_wei = to_base_units(amount, token.decimals)

            if self._is_native(symbol):
                return await self._chain.transact(
                    vtoken, VBNB_ABI, "repayBorrow", value=amount_wei
                )

            await ensure_allowance(self._chain, token.address, owner, vtoken, amount_wei)
            return await self._chain.transact(vtoken, VTOKEN_ABI, "repayBorrow", amount_wei)

        return await submit(self._request(ActionKind.REPAY, symbol, amount), _write)

    async def claim_rewards(self) -> ActionResult:
        async def _write() -> TxReceipt:
            owner = require_signer(self._wallet)
            return await self._chain.transact(
                self._config.comptroller, COMPTROLLER_ABI, "claimVenus", owner
            )

        return await submit(
            self._request(ActionKind.CLAIM, self._config.xvs_symbol, 0.0), _write
        )
