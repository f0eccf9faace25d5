"""Venus (Compound-style, per-block rates) adapter."""
from .adapter import VenusAdapter

__all__ = ["VenusAdapter"]
