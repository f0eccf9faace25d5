"""Price oracle implementations."""
from .aave import AaveOracle
from .pyth import PythOracle

__all__ = ["AaveOracle", "PythOracle"]
