"""Command implementations behind the vaultify CLI."""
