"""
Plan and result types for the migration.

The compute phase produces a plan without touching the vault; the execute
phase performs the writes and returns a result. Dry runs stop after the
compute phase.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .config import MigrationConfig
from .models import DuplicateGroup, FrontMatterRecord, VaultEntry
from .vault.indexer import RenameMap


@dataclass
class BasePlan(ABC):
    """Base class for operation plans (diagnostic output)."""
    vault_path: Path

    @abstractmethod
    def summary(self) -> str:
        """Human-readable summary of what would be done."""
        ...


@dataclass
class BaseResult:
    """Base class for operation results (action output)."""
    success: bool = True
    error: str | None = None


@dataclass
class FileMigration:
    """What happens to one indexed file."""
    entry: VaultEntry
    is_markdown: bool
    record: FrontMatterRecord | None = None  # derived metadata, markdown only


@dataclass
class MigrationPlan(BasePlan):
    """Plan for a vault migration."""
    config: MigrationConfig
    index: RenameMap
    files: list[FileMigration] = field(default_factory=list)
    directory_renames: list[VaultEntry] = field(default_factory=list)  # deepest first
    duplicates: list[DuplicateGroup] = field(default_factory=list)

    @property
    def markdown_files(self) -> list[FileMigration]:
        return [f for f in self.files if f.is_markdown]

    @property
    def files_to_rename(self) -> list[FileMigration]:
        return [f for f in self.files if f.entry.needs_rename]

    def summary(self) -> str:
        lines = [
            "Migration Plan",
            f"  Vault: {self.vault_path}",
            f"  Markdown files: {len(self.markdown_files)}",
            f"  Other files: {len(self.files) - len(self.markdown_files)}",
            f"  Files to rename: {len(self.files_to_rename)}",
            f"  Directories to rename: {len(self.directory_renames)}",
            f"  Duplicate names: {len(self.duplicates)}",
        ]
        if self.index.warnings:
            lines.append(f"  Indexing warnings: {len(self.index.warnings)}")
        return "\n".join(lines)


@dataclass
class FileOutcome(BaseResult):
    """Result of rewriting and renaming one file."""
    path: Path | None = None
    new_path: Path | None = None
    links_converted: int = 0
    assets_updated: int = 0
    rewritten: bool = False
    added_frontmatter: bool = False
    renamed: bool = False
    skipped: bool = False
    conflict: str | None = None  # set when the planned name was already taken


@dataclass
class NamingConflict:
    path: Path
    resolution: str


@dataclass
class MigrationResult(BaseResult):
    """Counters and failures of an executed migration."""
    total_files: int = 0
    processed_files: int = 0
    skipped_files: int = 0
    renamed_files: int = 0
    renamed_dirs: int = 0
    links_converted: int = 0
    assets_updated: int = 0
    frontmatter_added: int = 0
    duplicate_groups: int = 0
    conflicts: list[NamingConflict] = field(default_factory=list)
    failures: list[FileOutcome] = field(default_factory=list)

    def record(self, outcome: FileOutcome) -> None:
        """Fold one file outcome into the counters."""
        if outcome.conflict and outcome.path is not None:
            self.conflicts.append(NamingConflict(outcome.path, outcome.conflict))
        if not outcome.success:
            self.failures.append(outcome)
            self.success = False
            return
        if outcome.skipped:
            self.skipped_files += 1
        elif outcome.rewritten:
            self.processed_files += 1
        if outcome.renamed:
            self.renamed_files += 1
        self.links_converted += outcome.links_converted
        self.assets_updated += outcome.assets_updated
        if outcome.added_frontmatter:
            self.frontmatter_added += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "total_files": self.total_files,
            "processed_files": self.processed_files,
            "skipped_files": self.skipped_files,
            "renamed_files": self.renamed_files,
            "renamed_dirs": self.renamed_dirs,
            "links_converted": self.links_converted,
            "assets_updated": self.assets_updated,
            "frontmatter_added": self.frontmatter_added,
            "duplicate_groups": self.duplicate_groups,
            "conflicts": [{"path": str(c.path), "resolution": c.resolution} for c in self.conflicts],
            "failures": [{"path": str(f.path), "error": f.error} for f in self.failures],
        }
