"""Wallet provider protocol."""
from typing import Protocol


class WalletProvider(Protocol):
    """Returns the signer's address, or None when no signer is configured."""

    def address(self) -> str | None: ...
