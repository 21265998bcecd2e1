"""Shared identifiers and builders for test vaults."""

from pathlib import Path

ALPHA_ID = "abc111222333444555666777888999aa"
BETA_ID = "def999888777666555444333222111bb"
GAMMA_ID = "0123456789abcdef0123456789abcdef"


def write_note(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path
