"""Cross-protocol lending yield agent."""

__version__ = "0.1.0"
