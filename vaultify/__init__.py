"""vaultify - normalize exported note archives into a wiki-linked vault."""

__version__ = "0.1.0"
