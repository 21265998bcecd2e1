"""Vault indexing, naming, link and metadata utilities."""

from .duplicates import duplicate_groups, find_duplicates
from .frontmatter import merge, parse_frontmatter, synthesize
from .indexer import RenameMap, build_index
from .links import rewrite_links
from .names import canonicalize

__all__ = [
    "build_index",
    "RenameMap",
    "canonicalize",
    "find_duplicates",
    "duplicate_groups",
    "rewrite_links",
    "synthesize",
    "merge",
    "parse_frontmatter",
]
