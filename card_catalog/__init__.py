"""Trading card catalog aggregator."""

__version__ = "0.1.0"
