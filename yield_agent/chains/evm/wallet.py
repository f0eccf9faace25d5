"""Local signer backed by a configured private key."""
import logging

from eth_account import Account
from eth_account.signers.local import LocalAccount

logger = logging.getLogger(__name__)


class LocalWallet:
    """Holds an eth-account signer, or nothing when no key is configured."""

    def __init__(self, private_key: str = "") -> None:
        self._account: LocalAccount | None = None
        if private_key:
            self._account = Account.from_key(private_key)
            logger.info("Signer loaded: %s", self._account.address)

    @property
    def account(self) -> LocalAccount | None:
        return self._account

    def address(self) -> str | None:
        return self._account.address if self._account else None
