"""Minimal ABI fragments, built from short type signatures."""
from __future__ import annotations

from typing import Any


def fn(
    name: str,
    inputs: tuple[str, ...] = (),
    outputs: tuple[str, ...] = (),
    mutability: str = "view",
) -> dict[str, Any]:
    """Build one ABI function entry.

    Example:
        fn("allowance", ("address", "address"), ("uint256",))
    """
    return {
        "type": "function",
        "name": name,
        "stateMutability": mutability,
        "inputs": [{"name": f"arg{i}", "type": t} for i, t in enumerate(inputs)],
        "outputs": [{"name": f"out{i}", "type": t} for i, t in enumerate(outputs)],
    }


MAX_UINT256 = 2**256 - 1

ERC20_ABI = [
    fn("balanceOf", ("address",), ("uint256",)),
    fn("allowance", ("address", "address"), ("uint256",)),
    fn("approve", ("address", "uint256"), ("bool",), "nonpayable"),
]
