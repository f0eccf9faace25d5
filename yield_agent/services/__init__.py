"""Service modules"""
from .executor import ActionLog, Executor
from .monitor import Monitor
from .portfolio import PortfolioAggregator

__all__ = ["ActionLog", "Executor", "Monitor", "PortfolioAggregator"]
