"""Duplicate detection across the rename map.

Collisions are reported, never renamed away: files sharing a canonical name in
different directories stay apart through their folder metadata.
"""

from pathlib import Path

from ..models import DuplicateGroup
from .indexer import RenameMap


def find_duplicates(index: RenameMap) -> dict[str, list[Path]]:
    """Group files by canonical name, keeping groups of two or more.

    Paths within a group are sorted by their vault-relative path.
    """
    groups: dict[str, list[Path]] = {}
    for entry in sorted(index.files, key=lambda e: e.relative_path):
        groups.setdefault(entry.canonical_name, []).append(entry.path)
    return {name: paths for name, paths in groups.items() if len(paths) > 1}


def duplicate_groups(index: RenameMap) -> list[DuplicateGroup]:
    """Duplicate groups with the folder each member will carry."""
    result = []
    for name, paths in sorted(find_duplicates(index).items()):
        folders = []
        for path in paths:
            entry = index.entry_for(path)
            folders.append(entry.target_dir if entry else "")
        result.append(DuplicateGroup(name=name, paths=tuple(paths), folders=tuple(folders)))
    return result
