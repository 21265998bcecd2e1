"""Merge command implementation - fold key/value updates into a note's block."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml
from rich.console import Console

from ..files import read_note, write_text_atomic
from ..planning import FileOutcome
from ..vault.frontmatter import merge, parse_frontmatter, render_note

logger = logging.getLogger(__name__)


def parse_assignments(pairs: list[str] | tuple[str, ...]) -> dict[str, Any]:
    """Parse KEY=VALUE strings; values are read as YAML scalars.

    An empty value ("key=") maps to None and is therefore dropped by merge.
    """
    result: dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ValueError(f"Expected KEY=VALUE, got {pair!r}")
        result[key] = yaml.safe_load(raw) if raw.strip() else None
    return result


def merge_file_metadata(path: Path, incoming: dict[str, Any]) -> FileOutcome:
    """Merge incoming metadata into the block of the note at path.

    Notes without a recognized block are left untouched and reported as
    skipped.
    """
    outcome = FileOutcome(path=path)
    text = read_note(path)
    parsed = parse_frontmatter(text)
    if not parsed.has_block:
        logger.info("%s has no metadata block, leaving it unchanged", path)
        outcome.skipped = True
        return outcome

    merged = merge(parsed.metadata, incoming)
    new_text = render_note(merged, parsed.rest)
    if new_text != text:
        write_text_atomic(path, new_text)
        outcome.rewritten = True
    return outcome


def run_merge(path: Path, assignments: list[str] | tuple[str, ...], output_json: bool = False) -> int:
    """Merge KEY=VALUE assignments into one note.

    Returns:
        Exit code (0 = merged or nothing to do, 1 = error or no block)
    """
    console = Console(stderr=True)

    try:
        incoming = parse_assignments(assignments)
    except (ValueError, yaml.YAMLError) as e:
        console.print(f"Invalid assignment: {e}", style="bold red")
        return 1

    try:
        outcome = merge_file_metadata(path, incoming)
    except (OSError, UnicodeDecodeError) as e:
        console.print(f"Cannot update {path}: {e}", style="bold red")
        return 1

    if output_json:
        print(json.dumps({"path": str(path), "updated": outcome.rewritten, "skipped": outcome.skipped}))
    elif outcome.skipped:
        console.print(f"{path.name} has no metadata block; nothing merged.", style="yellow")
    elif outcome.rewritten:
        console.print(f"Updated {path.name}", style="green")
    else:
        console.print(f"{path.name} already up to date", style="dim")

    return 1 if outcome.skipped else 0
