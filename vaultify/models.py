"""Data models for the rename-and-relink engine."""

import os
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any


@dataclass(frozen=True)
class VaultEntry:
    """One file or directory discovered while indexing the vault."""

    path: Path  # absolute path as found on disk
    original_name: str
    canonical_name: str  # identifier stripped, sanitized, length-bounded
    target_name: str  # canonical_name, suffixed when a sibling already claims it
    relative_dir: str  # parent directory relative to the vault root ("" at root)
    target_dir: str  # relative_dir with every segment renamed
    identifier: str | None = None
    is_dir: bool = False

    @property
    def relative_path(self) -> str:
        return str(PurePosixPath(self.relative_dir, self.original_name))

    @property
    def target_path(self) -> str:
        return str(PurePosixPath(self.target_dir, self.target_name))

    @property
    def needs_rename(self) -> bool:
        return self.original_name != self.target_name

    @property
    def title(self) -> str:
        """Target name without its extension."""
        if self.is_dir:
            return self.target_name
        return os.path.splitext(self.target_name)[0]


@dataclass
class InlineMetadata:
    """Key/value lines scraped from the top of a note body."""

    status: str | None = None
    owner: str | None = None
    dates: str | None = None
    priority: str | None = None
    completion: float | None = None
    summary: str | None = None

    def is_empty(self) -> bool:
        return all(value is None for value in vars(self).values())


@dataclass
class FrontMatterRecord:
    """Metadata synthesized for a note that has no recognized block."""

    title: str
    tags: list[str] = field(default_factory=list)
    aliases: list[str] = field(default_factory=list)
    notion_id: str | None = None
    folder: str | None = None
    banner: str | None = None
    inline: InlineMetadata = field(default_factory=InlineMetadata)
    published: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Render fields in their fixed serialization order, omitting empties."""
        data: dict[str, Any] = {"title": self.title}
        if self.tags:
            data["tags"] = list(self.tags)
        if self.aliases:
            data["aliases"] = list(self.aliases)
        if self.notion_id:
            data["notion-id"] = self.notion_id
        if self.folder:
            data["folder"] = self.folder
        if self.banner:
            data["banner"] = self.banner
        for key in ("status", "owner", "dates", "priority"):
            value = getattr(self.inline, key)
            if value:
                data[key] = value
        if self.inline.completion is not None:
            data["completion"] = self.inline.completion
        if self.inline.summary:
            data["summary"] = self.inline.summary
        data["published"] = self.published
        return data


@dataclass(frozen=True)
class DuplicateGroup:
    """Two or more files that share a canonical name."""

    name: str
    paths: tuple[Path, ...]
    folders: tuple[str, ...]  # target folder of each path, "" at the vault root

    @property
    def disambiguated_by_folder(self) -> bool:
        """True when every member carries a distinct folder value."""
        return len(set(self.folders)) == len(self.folders)
