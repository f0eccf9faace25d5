"""Shared write-path helpers: unit conversion, allowances, result wrapping."""
from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from decimal import Decimal

from ..errors import ConfigurationError
from ..interfaces.chain import ChainClient
from ..interfaces.wallet import WalletProvider
from ..models import ActionRequest, ActionResult, FailureKind, TxReceipt
from .abi import ERC20_ABI, MAX_UINT256

logger = logging.getLogger(__name__)


def to_base_units(amount: float, decimals: int) -> int:
    """Token units → raw integer amount, without float rounding surprises."""
    return int(Decimal(str(amount)) * (Decimal(10) ** decimals))


def require_signer(wallet: WalletProvider) -> str:
    address = wallet.address()
    if not address:
        raise ConfigurationError("No wallet configured")
    return address


async def ensure_allowance(
    chain: ChainClient,
    token_address: str,
    owner: str,
    spender: str,
    amount: int,
) -> bool:
    """Approve ``spender`` for the max amount when the current allowance is short.

    Returns True when an approval was submitted.
    """
    allowance = await chain.call(token_address, ERC20_ABI, "allowance", owner, spender)
    if int(allowance) >= amount:
        return False

    logger.info("Approving %s to spend %s", spender, token_address)
    await chain.transact(token_address, ERC20_ABI, "approve", spender, MAX_UINT256)
    return True


async def submit(
    request: ActionRequest,
    write: Callable[[], Awaitable[TxReceipt]],
) -> ActionResult:
    """Run a write and turn every outcome into an ActionResult."""
    try:
        receipt = await write()
    except ConfigurationError as e:
        logger.error("%s %s on %s rejected: %s",
                     request.action.value, request.token, request.protocol.value, e)
        return ActionResult.failed(request, str(e), FailureKind.CONFIGURATION)
    except Exception as e:
        logger.error("%s %s on %s failed: %s",
                     request.action.value, request.token, request.protocol.value, e)
        return ActionResult.failed(request, str(e))

    logger.info("%s %s %s on %s confirmed: %s",
                request.action.value, request.amount, request.token,
                request.protocol.value, receipt.tx_hash)
    return ActionResult.confirmed(request, receipt)
