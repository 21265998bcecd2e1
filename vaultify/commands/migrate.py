"""Migrate command implementation - rename, relink and add front matter."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

from rich.console import Console
from rich.table import Table

from ..config import MigrationConfig
from ..files import free_path, read_note, write_text_atomic
from ..planning import FileMigration, FileOutcome, MigrationPlan, MigrationResult
from ..vault.duplicates import duplicate_groups
from ..vault.frontmatter import (
    attach_frontmatter,
    derive_record,
    extract_inline_metadata,
    parse_frontmatter,
    strip_bom,
    synthesize,
)
from ..vault.indexer import build_index
from ..vault.links import LinkRewriter

logger = logging.getLogger(__name__)

T = TypeVar("T")

ESTIMATE_SAMPLE_SIZE = 10


@dataclass
class NoteTransform:
    """In-memory result of transforming one note's text."""

    text: str
    links_converted: int = 0
    assets_updated: int = 0
    added_frontmatter: bool = False
    skipped: bool = False


def _batched(items: list[T], size: int) -> Iterator[list[T]]:
    for i in range(0, len(items), size):
        yield items[i : i + size]


def _depth(relative_path: str) -> int:
    return relative_path.count("/")


# -----------------------------------------------------------------------------
# Compute (diagnostic) / execute (action)
# -----------------------------------------------------------------------------


def compute_migration_plan(vault_path: Path, config: MigrationConfig | None = None) -> MigrationPlan:
    """
    Index the vault and work out every rename without writing.

    This is the diagnostic phase - the rename map is complete before any
    file content is touched.
    """
    config = config or MigrationConfig()
    index = build_index(vault_path, max_length=config.max_name_length, skip_hidden=config.skip_hidden)

    extension = config.markdown_extension.lower()
    files = []
    for entry in index.files:
        is_markdown = entry.original_name.lower().endswith(extension)
        files.append(
            FileMigration(
                entry=entry,
                is_markdown=is_markdown,
                record=derive_record(entry, config.max_name_length) if is_markdown else None,
            )
        )

    directory_renames = sorted(
        (e for e in index.directories if e.needs_rename),
        key=lambda e: (-_depth(e.relative_path), e.relative_path),
    )

    return MigrationPlan(
        vault_path=vault_path,
        config=config,
        index=index,
        files=files,
        directory_renames=directory_renames,
        duplicates=duplicate_groups(index),
    )


def transform_note(text: str, migration: FileMigration, plan: MigrationPlan) -> NoteTransform:
    """Rewrite links and add front matter to one note's text."""
    if not text.strip():
        return NoteTransform(text=text, skipped=True)

    config = plan.config
    rewriter = LinkRewriter(
        plan.index,
        migration.entry.path,
        markdown_extension=config.markdown_extension,
        max_length=config.max_name_length,
    )
    outcome = rewriter.rewrite(text)
    new_text = outcome.text

    added = False
    parsed = parse_frontmatter(new_text)
    if not parsed.has_block and migration.record is not None:
        head = strip_bom(text).split("\n")[: config.metadata_scan_lines]
        inline = extract_inline_metadata(head)
        block = synthesize(inline, migration.record)
        new_text = attach_frontmatter(new_text, block)
        added = True

    return NoteTransform(
        text=new_text,
        links_converted=outcome.conversions,
        assets_updated=outcome.assets_updated,
        added_frontmatter=added,
    )


def _rename(source: Path, target: Path, *, is_dir: bool = False) -> Path:
    """Rename source to target, or to a free "-N" variant if target is taken."""
    if target.exists() and not os.path.samefile(source, target):
        target = free_path(target, is_dir=is_dir)
    source.rename(target)
    return target


def migrate_file(migration: FileMigration, plan: MigrationPlan) -> FileOutcome:
    """Rewrite (markdown only) and rename one file; never raises."""
    entry = migration.entry
    outcome = FileOutcome(path=entry.path)
    try:
        if migration.is_markdown:
            text = read_note(entry.path)
            transform = transform_note(text, migration, plan)
            if transform.skipped:
                outcome.skipped = True
            else:
                if transform.text != text:
                    write_text_atomic(entry.path, transform.text)
                outcome.rewritten = True
                outcome.links_converted = transform.links_converted
                outcome.assets_updated = transform.assets_updated
                outcome.added_frontmatter = transform.added_frontmatter

        if entry.needs_rename:
            planned = entry.path.with_name(entry.target_name)
            final = _rename(entry.path, planned)
            outcome.renamed = True
            outcome.new_path = final
            if final != planned:
                outcome.conflict = f"Target exists, renamed to {final.name}"
    except Exception as e:
        logger.error("Failed to migrate %s: %s", entry.path, e)
        outcome.success = False
        outcome.error = str(e)
    return outcome


def execute_migration_plan(plan: MigrationPlan, console: Console | None = None) -> MigrationResult:
    """
    Execute a migration plan.

    This is the action phase - files are rewritten and renamed first (inside
    their original directories), then directories are renamed deepest first.
    """
    result = MigrationResult(total_files=len(plan.files), duplicate_groups=len(plan.duplicates))

    done = 0
    for batch in _batched(plan.files, plan.config.batch_size):
        for migration in batch:
            result.record(migrate_file(migration, plan))
        done += len(batch)
        if console is not None:
            console.print(f"  Processed {done}/{len(plan.files)} files", style="dim")

    for entry in plan.directory_renames:
        planned = entry.path.with_name(entry.target_name)
        try:
            final = _rename(entry.path, planned, is_dir=True)
        except OSError as e:
            logger.error("Failed to rename directory %s: %s", entry.path, e)
            result.record(FileOutcome(success=False, path=entry.path, error=str(e)))
            continue
        result.renamed_dirs += 1
        if final != planned:
            result.record(FileOutcome(path=entry.path, conflict=f"Target exists, renamed to {final.name}"))

    return result


# -----------------------------------------------------------------------------
# Reporting
# -----------------------------------------------------------------------------


def estimate_link_count(plan: MigrationPlan, sample_size: int = ESTIMATE_SAMPLE_SIZE) -> int:
    """Extrapolate the link conversion count from the first few notes."""
    notes = plan.markdown_files
    sample = notes[:sample_size]
    if not sample:
        return 0
    converted = 0
    for migration in sample:
        try:
            text = read_note(migration.entry.path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Cannot read %s for estimate: %s", migration.entry.path, e)
            continue
        converted += transform_note(text, migration, plan).links_converted
    return round(converted / len(sample) * len(notes))


def plan_to_dict(plan: MigrationPlan) -> dict:
    return {
        "vault": str(plan.vault_path),
        "files": len(plan.files),
        "markdown_files": len(plan.markdown_files),
        "renames": [
            {"from": f.entry.relative_path, "to": f.entry.target_name} for f in plan.files_to_rename
        ],
        "directory_renames": [
            {"from": d.relative_path, "to": d.target_name} for d in plan.directory_renames
        ],
        "duplicates": {g.name: [str(p) for p in g.paths] for g in plan.duplicates},
        "warnings": list(plan.index.warnings),
    }


def _print_preview(console: Console, plan: MigrationPlan) -> None:
    console.print(plan.summary())

    renames = plan.files_to_rename
    if renames:
        sample = renames[0].entry
        console.print("\n[dim]Sample rename:[/dim]")
        console.print(f"  [red]-[/red] {sample.original_name}")
        console.print(f"  [green]+[/green] {sample.target_name}")

    if plan.duplicates:
        console.print("\n[yellow]Duplicate names (kept apart by folder):[/yellow]")
        for group in plan.duplicates[:3]:
            console.print(f"  {group.name}: {len(group.paths)} files", style="dim")

    if plan.markdown_files:
        sample = plan.markdown_files[0]
        console.print(f"\n[dim]Sample front matter for {sample.entry.target_name}:[/dim]")
        console.print(synthesize(extract_inline_metadata([]), sample.record), markup=False, highlight=False)

    console.print(f"\nEstimated link conversions: ~{estimate_link_count(plan)}")


def _print_result(console: Console, result: MigrationResult) -> None:
    table = Table(title="Migration summary", show_header=False)
    table.add_column("Metric")
    table.add_column("Count", justify="right")
    table.add_row("Files found", str(result.total_files))
    table.add_row("Notes processed", str(result.processed_files))
    table.add_row("Blank notes skipped", str(result.skipped_files))
    table.add_row("Front matter added", str(result.frontmatter_added))
    table.add_row("Links converted", str(result.links_converted))
    table.add_row("Asset links updated", str(result.assets_updated))
    table.add_row("Files renamed", str(result.renamed_files))
    table.add_row("Directories renamed", str(result.renamed_dirs))
    table.add_row("Duplicate names", str(result.duplicate_groups))
    table.add_row("Failures", str(len(result.failures)))
    console.print(table)

    if result.conflicts:
        console.print(f"\n{len(result.conflicts)} naming conflicts resolved:", style="yellow")
        for conflict in result.conflicts[:5]:
            console.print(f"  {conflict.path.name}: {conflict.resolution}", style="dim")
        if len(result.conflicts) > 5:
            console.print(f"  ... and {len(result.conflicts) - 5} more", style="dim")

    for failure in result.failures:
        console.print(f"  {failure.path}: {failure.error}", style="red")


def run_migrate(
    vault_path: Path,
    config: MigrationConfig | None = None,
    dry_run: bool = False,
    output_json: bool = False,
) -> int:
    """Migrate an exported note tree in place.

    Args:
        vault_path: Root of the exported tree
        config: Migration settings (defaults when None)
        dry_run: If True, show what would be done without writing
        output_json: Print the plan or result as JSON on stdout

    Returns:
        Exit code (0 = success, 1 = failures or fatal error)
    """
    console = Console(stderr=True)

    # Phase 1: Compute (diagnostic) - pure, no side effects
    console.print(f"Indexing {vault_path}...", style="dim")
    try:
        plan = compute_migration_plan(vault_path, config)
    except OSError as e:
        console.print(str(e), style="bold red")
        return 1

    if dry_run:
        if output_json:
            print(json.dumps(plan_to_dict(plan), indent=2))
        else:
            console.print("\n[bold]DRY RUN[/bold] - No changes will be made\n")
            _print_preview(console, plan)
        return 0

    # Phase 2: Execute (action) - performs writes
    result = execute_migration_plan(plan, console=None if output_json else console)

    if output_json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        _print_result(console, result)
        if result.success:
            console.print("Migration complete.", style="green")
        else:
            console.print(f"Migration finished with {len(result.failures)} failures.", style="red")

    return 0 if result.success else 1
