from .engine import StrategyEngine, StrategyReport

__all__ = ["StrategyEngine", "StrategyReport"]
