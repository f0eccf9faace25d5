"""Aave V3 (per-second RAY rates) adapter."""
from .adapter import AaveAdapter

__all__ = ["AaveAdapter"]
