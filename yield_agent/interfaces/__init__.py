"""Protocol interfaces for the yield agent."""
from .chain import ChainClient
from .notifier import Notifier
from .price_oracle import PriceOracle
from .protocol_adapter import ProtocolAdapter
from .wallet import WalletProvider

__all__ = [
    "ChainClient",
    "Notifier",
    "PriceOracle",
    "ProtocolAdapter",
    "WalletProvider",
]
