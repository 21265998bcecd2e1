import pytest

from vaultify.vault.names import (
    canonicalize,
    canonicalize_dir,
    extract_identifier,
    is_identifier,
    sanitize,
    shorten,
    slugify_tag,
    split_identifier,
)

from helpers import ALPHA_ID


def test_trailing_identifier_is_stripped() -> None:
    assert canonicalize(f"Project Alpha {ALPHA_ID}.md") == "Project Alpha.md"
    assert extract_identifier(f"Project Alpha {ALPHA_ID}.md") == ALPHA_ID


def test_whitespace_after_identifier_is_ignored() -> None:
    assert canonicalize(f"Project Alpha {ALPHA_ID} .md") == "Project Alpha.md"
    assert extract_identifier(f"Projects {ALPHA_ID}  ", has_extension=False) == ALPHA_ID
    assert canonicalize_dir(f"Projects {ALPHA_ID} ") == "Projects"


def test_identifier_stripped_from_directory_names() -> None:
    assert canonicalize_dir(f"Projects {ALPHA_ID}") == "Projects"
    assert extract_identifier(f"Projects {ALPHA_ID}", has_extension=False) == ALPHA_ID


@pytest.mark.parametrize(
    "name",
    [
        "Meeting 2023.md",
        "Build abc123.md",
        # 31 hex characters
        "Notes " + "a" * 31 + ".md",
        # 33 hex characters
        "Notes " + "a" * 33 + ".md",
        # glued to the title, not a separate word
        "Notes" + ALPHA_ID + ".md",
    ],
)
def test_looser_matches_leave_stem_unchanged(name: str) -> None:
    assert canonicalize(name, max_length=200) == name
    assert extract_identifier(name) is None


def test_name_made_only_of_identifier_is_kept() -> None:
    assert split_identifier(ALPHA_ID) == (ALPHA_ID, None)


def test_is_identifier() -> None:
    assert is_identifier(ALPHA_ID)
    assert is_identifier(ALPHA_ID.upper())
    assert not is_identifier(ALPHA_ID[:-1] + "g")


def test_forbidden_characters_become_hyphens() -> None:
    assert sanitize('a<b>c:d"e|f?g*h\\i') == "a-b-c-d-e-f-g-h-i"
    assert sanitize("tab\there") == "tab-here"
    assert canonicalize(f"Q1: Plan? {ALPHA_ID}.md") == "Q1- Plan-.md"


def test_short_names_are_not_shortened() -> None:
    assert shorten("short.md", 50) == "short.md"


def test_long_names_keep_tail_of_stem() -> None:
    name = "A very long meeting title that keeps going on 12.md"
    result = shorten(name, 30)
    assert len(result) == 30
    assert result.endswith("...on 12.md")
    assert result.startswith("A very long meeting")


def test_short_stem_falls_back_to_prefix_truncation() -> None:
    assert shorten("abcdefgh.markdownish", 16) == "a....markdownish"


def test_extension_that_does_not_fit_truncates_unconditionally() -> None:
    assert shorten("a.verylongextensionname", 10) == "a.veryl..."


def test_canonicalize_is_a_fixed_point() -> None:
    for name in [
        f"Project Alpha {ALPHA_ID}.md",
        "A very long meeting title that keeps going on and on 12.md",
        f"Q1: Plan? {ALPHA_ID}.md",
    ]:
        once = canonicalize(name)
        assert canonicalize(once) == once


def test_slugify_tag() -> None:
    assert slugify_tag("Engineering & Ops") == "engineering-ops"
    assert slugify_tag("  Q1 / 2024 ") == "q1-2024"
    assert slugify_tag("!!!") == ""
