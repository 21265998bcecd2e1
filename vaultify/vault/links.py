"""Markdown link scanning and wiki-link rewriting.

Links are found by a small scanner rather than one large pattern: find the next
[text](target) occurrence, classify it, then replace it. Each occurrence is
resolved on its own, so an unresolvable target only degrades that one link.
"""

from __future__ import annotations

import logging
import posixpath
import re
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath
from urllib.parse import unquote

from .indexer import RenameMap, encode_name
from .names import DEFAULT_MAX_LENGTH, canonicalize, canonicalize_dir

logger = logging.getLogger(__name__)

MARKDOWN_EXTENSION = ".md"
EXTERNAL_PREFIXES = ("http://", "https://", "mailto:")
_URI_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")


class LinkKind(Enum):
    EXTERNAL = "external"
    ASSET = "asset"
    NOTE = "note"


@dataclass(frozen=True)
class LinkReference:
    """One [display](target) occurrence inside a text."""

    start: int
    end: int
    display: str
    target: str

    @property
    def path_part(self) -> str:
        return self.target.partition("#")[0]

    @property
    def anchor(self) -> str | None:
        _, sep, anchor = self.target.partition("#")
        return anchor if sep and anchor else None


@dataclass(frozen=True)
class RewriteOutcome:
    text: str
    conversions: int = 0  # markdown links turned into wiki-links
    assets_updated: int = 0  # asset links whose path changed


def scan_links(text: str) -> Iterator[LinkReference]:
    """Yield every markdown link occurrence in order.

    Display text runs to the first "]" and must be non-empty; it must be
    followed directly by "(" and a non-empty target ending at the first ")".
    Wiki-links never qualify, so already converted text scans clean.
    """
    pos = 0
    while True:
        start = text.find("[", pos)
        if start == -1:
            return
        close = text.find("]", start + 1)
        if close == -1:
            return
        if close == start + 1 or not text.startswith("(", close + 1):
            pos = start + 1
            continue
        end = text.find(")", close + 2)
        if end == -1:
            return
        if end == close + 2:
            pos = start + 1
            continue
        yield LinkReference(
            start=start,
            end=end + 1,
            display=text[start + 1 : close],
            target=text[close + 2 : end],
        )
        pos = end + 1


def is_external(target: str) -> bool:
    lowered = target.lower()
    return lowered.startswith(EXTERNAL_PREFIXES) or _URI_SCHEME.match(target) is not None


def classify(ref: LinkReference, markdown_extension: str = MARKDOWN_EXTENSION) -> LinkKind:
    if is_external(ref.target):
        return LinkKind.EXTERNAL
    if unquote(ref.path_part).lower().endswith(markdown_extension.lower()):
        return LinkKind.NOTE
    return LinkKind.ASSET


def format_wikilink(title: str, anchor: str | None = None, display: str | None = None) -> str:
    target = f"{title}#{anchor}" if anchor else title
    if display is None:
        return f"[[{target}]]"
    return f"[[{target}|{display}]]"


def _join_inside_vault(current_dir: str, relative: str) -> str | None:
    """Resolve relative against current_dir; None when it escapes the vault."""
    if relative.startswith("/"):
        return None
    joined = posixpath.normpath(posixpath.join(current_dir, relative))
    if joined == ".." or joined.startswith("../"):
        return None
    return joined


class LinkRewriter:
    """Rewrites the links of one file against a complete rename map."""

    def __init__(
        self,
        rename_map: RenameMap,
        current_path: Path | str,
        *,
        markdown_extension: str = MARKDOWN_EXTENSION,
        max_length: int = DEFAULT_MAX_LENGTH,
    ):
        self.rename_map = rename_map
        self.markdown_extension = markdown_extension
        self.max_length = max_length
        self.current_dir = self._current_dir(Path(current_path))

    def _current_dir(self, current_path: Path) -> str:
        if current_path.is_absolute():
            entry = self.rename_map.entry_for(current_path)
            if entry is not None:
                return entry.relative_dir
            try:
                current_path = current_path.relative_to(self.rename_map.root)
            except ValueError:
                return ""
        parent = current_path.parent.as_posix()
        return "" if parent == "." else parent

    def rewrite(self, text: str) -> RewriteOutcome:
        pieces: list[str] = []
        conversions = 0
        assets_updated = 0
        last = 0
        for ref in scan_links(text):
            kind = classify(ref, self.markdown_extension)
            if kind is LinkKind.EXTERNAL:
                continue
            if kind is LinkKind.NOTE:
                replacement = self.convert_note_link(ref)
                conversions += 1
            else:
                replacement = self.convert_asset_link(ref)
                if replacement is None:
                    continue
                assets_updated += 1
            pieces.append(text[last : ref.start])
            pieces.append(replacement)
            last = ref.end
        pieces.append(text[last:])
        return RewriteOutcome("".join(pieces), conversions, assets_updated)

    def resolve_title(self, decoded_path: str) -> str:
        """Title of the note a decoded link path points at.

        Tries the vault-relative path first, then the bare filename, and
        finally canonicalizes the raw filename when the map has no entry.
        """
        filename = PurePosixPath(decoded_path).name
        entry = None
        resolved = _join_inside_vault(self.current_dir, decoded_path)
        if resolved is not None:
            entry = self.rename_map.lookup_path(resolved)
        if entry is None:
            entry = self.rename_map.lookup_name(filename)
        if entry is not None:
            return entry.title

        logger.debug("Link target %s not in rename map, using its name", decoded_path)
        cleaned = canonicalize(filename, self.max_length)
        if cleaned.lower().endswith(self.markdown_extension.lower()):
            cleaned = cleaned[: -len(self.markdown_extension)]
        return cleaned

    def convert_note_link(self, ref: LinkReference) -> str:
        decoded_path = unquote(ref.path_part)
        display = unquote(ref.display)
        anchor = unquote(ref.anchor) if ref.anchor else None

        title = self.resolve_title(decoded_path)
        if display in (title, title + self.markdown_extension):
            return format_wikilink(title, anchor)
        return format_wikilink(title, anchor, display)

    def convert_asset_link(self, ref: LinkReference) -> str | None:
        """Markdown link with canonical path segments, or None if unchanged."""
        decoded_path = unquote(ref.path_part)
        if not decoded_path:
            return None
        new_path = self.rewrite_asset_path(decoded_path)
        if new_path == decoded_path:
            return None
        encoded = "/".join(encode_name(segment) for segment in new_path.split("/"))
        if ref.anchor:
            encoded += "#" + ref.anchor
        return f"[{unquote(ref.display)}]({encoded})"

    def rewrite_asset_path(self, decoded_path: str) -> str:
        """Map each segment of an asset path to its renamed form."""
        segments = decoded_path.split("/")
        cursor: list[str] | None = None
        if not decoded_path.startswith("/"):
            cursor = self.current_dir.split("/") if self.current_dir else []

        out = []
        for i, segment in enumerate(segments):
            if segment in ("", "."):
                out.append(segment)
                continue
            if segment == "..":
                out.append(segment)
                if cursor:
                    cursor.pop()
                else:
                    cursor = None
                continue

            entry = None
            if cursor is not None:
                cursor.append(segment)
                entry = self.rename_map.lookup_path("/".join(cursor))
            if entry is not None:
                out.append(entry.target_name)
            elif i == len(segments) - 1:
                out.append(canonicalize(segment, self.max_length))
            else:
                out.append(canonicalize_dir(segment, self.max_length))
        return "/".join(out)


def rewrite_links(text: str, rename_map: RenameMap, current_path: Path | str) -> tuple[str, int]:
    """Rewrite every link in text; return (new_text, wiki-link conversions)."""
    outcome = LinkRewriter(rename_map, current_path).rewrite(text)
    return outcome.text, outcome.conversions
