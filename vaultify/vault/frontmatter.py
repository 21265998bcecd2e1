"""Front-matter synthesis, detection, parsing and merging.

A block is recognized only when the text opens (after an optional BOM) with a
line of exactly three hyphens and a matching closing line, and the YAML in
between parses to a mapping. Anything else counts as "no block".
"""

from __future__ import annotations

import json
import logging
import os
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

import yaml
from frontmatter import YAMLHandler

from ..models import FrontMatterRecord, InlineMetadata, VaultEntry
from .names import DEFAULT_MAX_LENGTH, canonicalize_dir, slugify_tag

logger = logging.getLogger(__name__)

BOM = "\ufeff"
DELIMITER = "---"
PUBLIC_URL_KEY = "public-url"
PUBLISHED_KEY = "published"
DEFAULT_SCAN_LINES = 30

# "Prefix:" at the start of a line -> metadata field
INLINE_FIELDS = {
    "Status:": "status",
    "Owner:": "owner",
    "Dates:": "dates",
    "Priority:": "priority",
    "Completion:": "completion",
    "Summary:": "summary",
}

_LEADING_NUMBER = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")

_handler = YAMLHandler()


class _Quoted(str):
    pass


class _FlowList(list):
    pass


class MetadataDumper(yaml.SafeDumper):
    """Double-quotes string values and writes lists inline."""


def _represent_quoted(dumper: yaml.SafeDumper, data: _Quoted) -> yaml.Node:
    return dumper.represent_scalar("tag:yaml.org,2002:str", str(data), style='"')


def _represent_flow_list(dumper: yaml.SafeDumper, data: _FlowList) -> yaml.Node:
    return dumper.represent_sequence("tag:yaml.org,2002:seq", list(data), flow_style=True)


MetadataDumper.add_representer(_Quoted, _represent_quoted)
MetadataDumper.add_representer(_FlowList, _represent_flow_list)


@dataclass
class ParsedNote:
    metadata: dict[str, Any] = field(default_factory=dict)
    rest: str = ""  # text after the closing delimiter, or the whole text
    has_block: bool = False


# -----------------------------------------------------------------------------
# Inline metadata and derived fields
# -----------------------------------------------------------------------------


def parse_completion(text: str) -> float | None:
    """Leading number of a completion value ("0.75", "50%"), else None."""
    match = _LEADING_NUMBER.match(text.strip())
    return float(match.group(0)) if match else None


def extract_inline_metadata(lines: Iterable[str]) -> InlineMetadata:
    """Scrape Status/Owner/Dates/Priority/Completion/Summary lines.

    Later lines win when a prefix repeats.
    """
    metadata = InlineMetadata()
    for line in lines:
        for prefix, key in INLINE_FIELDS.items():
            if not line.startswith(prefix):
                continue
            value = line[len(prefix) :].strip()
            if key == "completion":
                metadata.completion = parse_completion(value)
            else:
                setattr(metadata, key, value)
    return metadata


def tags_from_path(relative_dir: str, max_length: int = DEFAULT_MAX_LENGTH) -> list[str]:
    """One tag per directory segment, slugified, first occurrence kept."""
    if not relative_dir or relative_dir == ".":
        return []
    tags: list[str] = []
    for segment in relative_dir.split("/"):
        tag = slugify_tag(canonicalize_dir(segment, max_length))
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def derive_record(entry: VaultEntry, max_length: int = DEFAULT_MAX_LENGTH) -> FrontMatterRecord:
    """Metadata that follows from a file's place in the vault."""
    original_title = os.path.splitext(entry.original_name)[0]
    return FrontMatterRecord(
        title=entry.title,
        tags=tags_from_path(entry.relative_dir, max_length),
        aliases=[original_title] if original_title != entry.title else [],
        notion_id=entry.identifier,
        folder=entry.target_dir or None,
    )


# -----------------------------------------------------------------------------
# Detection and parsing
# -----------------------------------------------------------------------------


def strip_bom(text: str) -> str:
    return text[1:] if text.startswith(BOM) else text


def has_frontmatter(text: str) -> bool:
    """True if text opens with a line of exactly three hyphens."""
    first_line = strip_bom(text).split("\n", 1)[0]
    return first_line.rstrip("\r") == DELIMITER


def split_frontmatter(text: str) -> tuple[str, str] | None:
    """Split into (metadata_text, rest); rest starts right after the closing "---"."""
    text = strip_bom(text)
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].rstrip("\r\n") != DELIMITER:
        return None
    opening = len(lines[0])
    offset = opening
    for line in lines[1:]:
        if line.rstrip("\r\n") == DELIMITER:
            return text[opening:offset], text[offset + len(DELIMITER) :]
        offset += len(line)
    return None


def parse_frontmatter(text: str) -> ParsedNote:
    """Parse a recognized block; malformed blocks count as absent."""
    body = strip_bom(text)
    parts = split_frontmatter(body)
    if parts is None:
        if has_frontmatter(body):
            logger.warning("Metadata block has no closing delimiter, treating as absent")
        return ParsedNote(rest=body)

    metadata_text, rest = parts
    try:
        metadata = _handler.load(metadata_text)
    except yaml.YAMLError as e:
        logger.warning("Malformed metadata block, treating as absent: %s", e)
        return ParsedNote(rest=body)

    if metadata is None:
        metadata = {}
    if not isinstance(metadata, dict):
        logger.warning("Metadata block is not a mapping, treating as absent")
        return ParsedNote(rest=body)
    return ParsedNote(metadata=metadata, rest=rest, has_block=True)


# -----------------------------------------------------------------------------
# Serialization
# -----------------------------------------------------------------------------


def _prepare(value: Any) -> Any:
    if isinstance(value, str):
        return _Quoted(value)
    if isinstance(value, (list, tuple)):
        return _FlowList(_prepare(v) for v in value)
    if isinstance(value, dict):
        return {k: _prepare(v) for k, v in value.items()}
    return value


def fallback_block(data: Mapping[str, Any]) -> str:
    """Hand-built block with JSON-quoted scalars, for values YAML rejects."""
    lines = [DELIMITER]
    for key, value in data.items():
        if isinstance(value, (list, tuple)):
            lines.append(f"{key}:")
            for item in value:
                lines.append(f"  - {json.dumps(item, ensure_ascii=False, default=str)}")
        else:
            lines.append(f"{key}: {json.dumps(value, ensure_ascii=False, default=str)}")
    lines.append(DELIMITER)
    return "\n".join(lines)


def dump_metadata(data: Mapping[str, Any]) -> str:
    """Serialize metadata as a delimited block (no trailing newline)."""
    try:
        body = _handler.export(
            _prepare(dict(data)),
            Dumper=MetadataDumper,
            sort_keys=False,
            width=4096,
        )
    except yaml.YAMLError as e:
        logger.warning("Metadata serialization failed, writing a plain block: %s", e)
        return fallback_block(data)
    if not data:
        return f"{DELIMITER}\n{DELIMITER}"
    return f"{DELIMITER}\n{body}\n{DELIMITER}"


# -----------------------------------------------------------------------------
# Contract A: synthesis
# -----------------------------------------------------------------------------


def synthesize(
    inline: InlineMetadata,
    derived: FrontMatterRecord,
    relative_dir: str | None = None,
    *,
    banner: str | None = None,
) -> str:
    """Build the metadata block for a note without one.

    Field order is fixed: title, tags, aliases, notion-id, folder, banner,
    inline fields, published.
    """
    record = replace(derived, inline=inline)
    if relative_dir is not None:
        record = replace(record, folder=relative_dir if relative_dir not in ("", ".") else None)
    if banner:
        record = replace(record, banner=banner)
    return dump_metadata(record.to_dict())


def line_ending(text: str) -> str:
    """Line ending used by text: CRLF if it has any, else LF."""
    return "\r\n" if "\r\n" in text else "\n"


def _with_line_ending(block: str, newline: str) -> str:
    return block if newline == "\n" else block.replace("\n", newline)


def attach_frontmatter(text: str, block: str) -> str:
    """Prefix text with a block and a blank line, dropping any BOM.

    The block and the blank line follow the line endings of text.
    """
    body = strip_bom(text)
    newline = line_ending(body)
    return _with_line_ending(block, newline) + newline * 2 + body


# -----------------------------------------------------------------------------
# Contract B: merge
# -----------------------------------------------------------------------------


def merge(existing: Mapping[str, Any], incoming: Mapping[str, Any]) -> dict[str, Any]:
    """Merge incoming metadata over an existing block.

    None values in incoming are dropped; remaining keys overwrite. published
    is owned by the public URL rule: incoming values for it are ignored, and a
    public URL in incoming sets it to true.
    """
    merged = dict(existing)
    for key, value in incoming.items():
        if value is None or key == PUBLISHED_KEY:
            continue
        merged[key] = value
    if incoming.get(PUBLIC_URL_KEY):
        merged[PUBLISHED_KEY] = True
    return merged


def render_note(metadata: Mapping[str, Any], rest: str) -> str:
    """Reassemble a note from metadata and the text after its block."""
    return _with_line_ending(dump_metadata(metadata), line_ending(rest)) + rest
