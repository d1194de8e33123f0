"""bookkeeper — validated book metadata tracking for markdown vaults."""

__version__ = "0.1.0"
