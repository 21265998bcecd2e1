"""Name canonicalization: identifier stripping, sanitizing, length bounding.

Every function here is pure. The same rules are applied to file names (which
keep their extension) and directory names (which have none).
"""

import os
import re

DEFAULT_MAX_LENGTH = 50

# Exported pages carry a 32-char hex identifier as the last word of the name
HEX_ID_PATTERN = re.compile(r"[0-9a-fA-F]{32}")
_TRAILING_ID = re.compile(r"(?P<head>.*?\S)\s+(?P<identifier>[0-9a-fA-F]{32})", re.DOTALL)

# Characters rejected by common filesystems, plus ASCII control characters
FORBIDDEN_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')

ELLIPSIS = "..."
TAIL_LENGTH = 5


def is_identifier(token: str) -> bool:
    """True if token is exactly 32 hexadecimal characters."""
    return HEX_ID_PATTERN.fullmatch(token) is not None


def split_extension(name: str) -> tuple[str, str]:
    """Split a file name into (stem, extension); dotfiles have no extension."""
    return os.path.splitext(name)


def split_identifier(stem: str) -> tuple[str, str | None]:
    """Separate a trailing standalone identifier token from a stem.

    The token must be the final whitespace-delimited word and must be exactly
    32 hex characters; anything looser (shorter hex runs, hex glued to other
    text, a name made of the token alone) leaves the stem untouched.
    Whitespace after the token is ignored.
    """
    match = _TRAILING_ID.fullmatch(stem.rstrip())
    if not match:
        return stem, None
    return match.group("head").rstrip(), match.group("identifier")


def extract_identifier(name: str, *, has_extension: bool = True) -> str | None:
    """Return the identifier embedded in a file or directory name, if any."""
    stem = split_extension(name)[0] if has_extension else name
    return split_identifier(stem)[1]


def sanitize(name: str) -> str:
    """Replace forbidden and control characters with hyphens."""
    return FORBIDDEN_CHARS.sub("-", name)


def shorten(name: str, max_length: int = DEFAULT_MAX_LENGTH, *, has_extension: bool = True) -> str:
    """Bound a name to max_length while keeping the tail of its stem.

    "A very long meeting title number 12.md" keeps its prefix, an ellipsis, the
    last five characters of the stem and the extension, so numeric counters
    at the end of a title survive truncation.
    """
    if len(name) <= max_length:
        return name

    stem, ext = split_extension(name) if has_extension else (name, "")

    available_for_start = max_length - (len(ext) + len(ELLIPSIS) + TAIL_LENGTH)
    if available_for_start > TAIL_LENGTH and len(stem) > 2 * TAIL_LENGTH:
        return stem[:available_for_start] + ELLIPSIS + stem[-TAIL_LENGTH:] + ext

    available = max_length - len(ext) - len(ELLIPSIS)
    if available > 0:
        return stem[:available] + ELLIPSIS + ext

    return name[: max(max_length - len(ELLIPSIS), 0)] + ELLIPSIS


def canonicalize(name: str, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """Canonical form of a file name: identifier dropped, sanitized, bounded."""
    stem, ext = split_extension(name)
    stem, _ = split_identifier(stem)
    return shorten(sanitize(stem + ext), max_length)


def canonicalize_dir(name: str, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """Canonical form of a directory name (no extension handling)."""
    stem, _ = split_identifier(name)
    return shorten(sanitize(stem), max_length, has_extension=False)


def slugify_tag(segment: str) -> str:
    """Lower-case a path segment and collapse non-alphanumeric runs to hyphens."""
    return re.sub(r"[^a-z0-9]+", "-", segment.lower()).strip("-")
