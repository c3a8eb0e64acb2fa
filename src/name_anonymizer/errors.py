"""Exception hierarchy."""

from __future__ import annotations


class AnonymizerError(Exception):
    """Base class for all name-anonymizer errors."""


class StoreCorruptedError(AnonymizerError):
    """The persisted alias table exists but cannot be read or parsed.

    Never swallowed: continuing with an empty table would issue new
    pseudonyms for names that already have one on disk.
    """


class ConfigError(AnonymizerError, ValueError):
    """Invalid configuration value."""
