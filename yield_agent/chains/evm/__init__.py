"""EVM chain client and local signer."""
from .client import EvmClient
from .wallet import LocalWallet

__all__ = ["EvmClient", "LocalWallet"]
