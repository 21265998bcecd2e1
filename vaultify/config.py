"""Migration settings, loadable from TOML."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

from .vault.names import DEFAULT_MAX_LENGTH

CONFIG_FILENAME = ".vaultify.toml"


@dataclass(frozen=True)
class MigrationConfig:
    max_name_length: int = DEFAULT_MAX_LENGTH
    metadata_scan_lines: int = 30
    batch_size: int = 50
    markdown_extension: str = ".md"
    skip_hidden: bool = True

    def __post_init__(self) -> None:
        if self.max_name_length < 8:
            raise ValueError("max_name_length must be at least 8")
        if self.batch_size <= 0:
            raise ValueError("batch_size must be a positive integer")
        if self.metadata_scan_lines < 0:
            raise ValueError("metadata_scan_lines must not be negative")
        if not self.markdown_extension.startswith("."):
            raise ValueError("markdown_extension must start with '.'")

    def with_overrides(self, **overrides: Any) -> "MigrationConfig":
        """Copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def _coerce_table(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def load_config(path: Path) -> MigrationConfig:
    """
    Load settings from the [migrate] table of a TOML file.

    Unknown keys are ignored; a known key with the wrong type raises ValueError.
    """
    import tomllib

    data = tomllib.loads(path.read_text(encoding="utf-8"))
    table = _coerce_table(data.get("migrate"))

    values: dict[str, Any] = {}
    for f in fields(MigrationConfig):
        if f.name not in table:
            continue
        raw = table[f.name]
        expected = type(getattr(MigrationConfig, f.name))
        # bool is an int subclass; reject it for numeric settings
        if not isinstance(raw, expected) or (expected is int and isinstance(raw, bool)):
            raise ValueError(f"{f.name} must be {expected.__name__}, got {type(raw).__name__}")
        values[f.name] = raw

    return MigrationConfig(**values)


def resolve_config(vault_path: Path, config_path: Path | None = None) -> MigrationConfig:
    """Explicit config file, else <vault>/.vaultify.toml, else defaults."""
    if config_path is not None:
        return load_config(config_path)
    default_path = vault_path / CONFIG_FILENAME
    if default_path.is_file():
        return load_config(default_path)
    return MigrationConfig()
