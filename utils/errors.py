from __future__ import annotations

"""Shared exception types for the packs + gacha core.

Retryable inventory collisions are NOT exceptions (see utils.inventory_store.AddOutcome).
"""


class NonFatalError(Exception):
    """An expected failure whose message is safe to show to the user as-is."""


class PoolError(Exception):
    """No eligible candidate could be pulled (empty pool or time budget spent)."""

    def __init__(self, message: str = "pool exhausted"):
        super().__init__(message)


class PackNotFoundError(Exception):
    """The manifest is unknown or not installed in this guild."""

    def __init__(self, manifest_id: str = ""):
        super().__init__("404")
        self.manifest_id = manifest_id


class ConfigError(RuntimeError):
    """Static configuration is invalid (e.g. a weighted table not summing to 100)."""
