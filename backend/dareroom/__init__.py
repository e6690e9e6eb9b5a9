"""Two-participant truth-or-dare state synchronisation service."""

__version__ = "0.1.0"
