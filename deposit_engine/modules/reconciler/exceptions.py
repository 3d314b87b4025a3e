"""Reconciler errors."""


class ConfigurationError(Exception):
    """The engine cannot process a scope as configured (no wallets, no adapter)."""
