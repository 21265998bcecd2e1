"""Vault indexing: one walk over the tree, one immutable rename map."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from types import MappingProxyType
from urllib.parse import quote

from ..models import VaultEntry
from .names import DEFAULT_MAX_LENGTH, canonicalize, canonicalize_dir, extract_identifier, split_extension

logger = logging.getLogger(__name__)

# Characters encodeURIComponent leaves alone; exported links are encoded that way
URI_COMPONENT_SAFE = "!~*'()"


def encode_name(name: str) -> str:
    """Percent-encode a single path segment the way exported links do."""
    return quote(name, safe=URI_COMPONENT_SAFE)


@dataclass(frozen=True)
class RenameMap:
    """Read-only lookup from original identity to VaultEntry.

    Built once by build_index() before any file is rewritten. Files are keyed
    by their literal name and its percent-encoded form; every entry (file or
    directory) is also keyed by its vault-relative original path.
    """

    root: Path
    entries: tuple[VaultEntry, ...]
    by_name: Mapping[str, VaultEntry] = field(default_factory=lambda: MappingProxyType({}))
    by_path: Mapping[str, VaultEntry] = field(default_factory=lambda: MappingProxyType({}))
    warnings: tuple[str, ...] = ()

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[VaultEntry]:
        return iter(self.entries)

    @property
    def files(self) -> list[VaultEntry]:
        return [e for e in self.entries if not e.is_dir]

    @property
    def directories(self) -> list[VaultEntry]:
        return [e for e in self.entries if e.is_dir]

    def lookup_name(self, name: str) -> VaultEntry | None:
        """Find a file by its original (or percent-encoded) name."""
        return self.by_name.get(name)

    def lookup_path(self, relative_path: str) -> VaultEntry | None:
        """Find an entry by its vault-relative original path."""
        return self.by_path.get(relative_path)

    def entry_for(self, path: Path) -> VaultEntry | None:
        """Find the entry for an on-disk path inside the vault."""
        try:
            rel = path.relative_to(self.root)
        except ValueError:
            return None
        return self.by_path.get(rel.as_posix())


def _with_counter(name: str, counter: int, *, is_dir: bool) -> str:
    if is_dir:
        return f"{name}-{counter}"
    stem, ext = split_extension(name)
    return f"{stem}-{counter}{ext}"


def assign_target_names(siblings: list[tuple[str, str, bool]]) -> dict[str, str]:
    """Pick a collision-free target name for every entry of one directory.

    siblings holds (original_name, canonical_name, is_dir). Entries already in
    canonical form keep their name; the rest claim names in sorted order and
    get a -1, -2, ... suffix when the name is taken. Names compare
    case-insensitively.
    """
    claimed: set[str] = set()
    targets: dict[str, str] = {}
    ordered = sorted(siblings, key=lambda s: (s[0] != s[1], s[0]))
    for original, canonical, is_dir in ordered:
        target = canonical
        counter = 1
        while target.casefold() in claimed:
            target = _with_counter(canonical, counter, is_dir=is_dir)
            counter += 1
        claimed.add(target.casefold())
        targets[original] = target
    return targets


class _IndexBuilder:
    def __init__(self, root: Path, max_length: int, skip_hidden: bool):
        self.root = root
        self.max_length = max_length
        self.skip_hidden = skip_hidden
        self.entries: list[VaultEntry] = []
        self.warnings: list[str] = []
        self.visited: set[str] = set()

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    def scan(self, directory: Path, rel_dir: PurePosixPath, target_dir: PurePosixPath) -> None:
        real = os.path.realpath(directory)
        if real in self.visited:
            self.warn(f"Skipping already visited directory {directory}")
            return
        self.visited.add(real)

        try:
            with os.scandir(directory) as it:
                children = sorted(it, key=lambda e: e.name)
        except OSError as e:
            if directory == self.root:
                raise
            self.warn(f"Skipping unreadable directory {directory}: {e}")
            return

        kept: list[tuple[os.DirEntry, bool]] = []
        for child in children:
            if self.skip_hidden and child.name.startswith("."):
                continue
            try:
                if child.is_symlink():
                    logger.debug("Skipping symlink %s", child.path)
                    continue
                if child.is_dir(follow_symlinks=False):
                    kept.append((child, True))
                elif child.is_file(follow_symlinks=False):
                    kept.append((child, False))
            except OSError as e:
                self.warn(f"Skipping unreadable entry {child.path}: {e}")

        canonical = {
            child.name: canonicalize_dir(child.name, self.max_length)
            if is_dir
            else canonicalize(child.name, self.max_length)
            for child, is_dir in kept
        }
        targets = assign_target_names([(child.name, canonical[child.name], is_dir) for child, is_dir in kept])

        subdirs: list[tuple[Path, PurePosixPath, PurePosixPath]] = []
        for child, is_dir in kept:
            entry = VaultEntry(
                path=Path(child.path),
                original_name=child.name,
                canonical_name=canonical[child.name],
                target_name=targets[child.name],
                relative_dir=_posix(rel_dir),
                target_dir=_posix(target_dir),
                identifier=extract_identifier(child.name, has_extension=not is_dir),
                is_dir=is_dir,
            )
            self.entries.append(entry)
            if is_dir:
                subdirs.append((Path(child.path), rel_dir / child.name, target_dir / entry.target_name))

        for path, sub_rel, sub_target in subdirs:
            self.scan(path, sub_rel, sub_target)


def _posix(path: PurePosixPath) -> str:
    text = str(path)
    return "" if text == "." else text


def build_index(
    root: Path,
    *,
    max_length: int = DEFAULT_MAX_LENGTH,
    skip_hidden: bool = True,
) -> RenameMap:
    """Walk the vault once and build the rename map.

    Symlinks are never followed. Unreadable subdirectories are skipped with a
    recorded warning; a missing or unreadable root raises.

    Args:
        root: Vault root directory
        max_length: Maximum length of a canonical name
        skip_hidden: Ignore entries whose name starts with "."

    Returns:
        RenameMap covering every reachable file and directory
    """
    root = Path(root)
    if not root.exists():
        raise FileNotFoundError(f"Vault root not found: {root}")
    if not root.is_dir():
        raise NotADirectoryError(f"Vault root is not a directory: {root}")

    builder = _IndexBuilder(root, max_length, skip_hidden)
    builder.scan(root, PurePosixPath("."), PurePosixPath("."))

    by_name: dict[str, VaultEntry] = {}
    by_path: dict[str, VaultEntry] = {}
    for entry in builder.entries:
        by_path[entry.relative_path] = entry
        if entry.is_dir:
            continue
        by_name.setdefault(entry.original_name, entry)
        encoded = encode_name(entry.original_name)
        if encoded != entry.original_name:
            by_name.setdefault(encoded, entry)

    logger.debug("Indexed %d entries under %s", len(builder.entries), root)

    return RenameMap(
        root=root,
        entries=tuple(builder.entries),
        by_name=MappingProxyType(by_name),
        by_path=MappingProxyType(by_path),
        warnings=tuple(builder.warnings),
    )
