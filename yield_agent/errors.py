"""Exception types raised inside the agent."""


class YieldAgentError(Exception):
    """Base class for agent errors."""


class ConfigurationError(YieldAgentError):
    """Missing signer, unsupported token/protocol, or invalid setup."""


class ChainError(YieldAgentError):
    """A remote call to the chain failed."""


class TransactionReverted(ChainError):
    """A submitted transaction was mined with a failed status."""

    def __init__(self, tx_hash: str) -> None:
        super().__init__(f"Transaction reverted: {tx_hash}")
        self.tx_hash = tx_hash
