"""Remote-call helpers."""
from .resilient import ResilientClient

__all__ = ["ResilientClient"]
