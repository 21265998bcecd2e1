"""File reads and writes that never leave a half-written note behind."""

import os
import shutil
from pathlib import Path


def read_note(path: Path) -> str:
    """Read a note as UTF-8 without newline translation."""
    return path.read_bytes().decode("utf-8")


def write_text_atomic(path: Path, content: str) -> int:
    """Write content to path via a temporary sibling and an atomic replace.

    The permission bits of an existing file are carried over. Returns the
    number of bytes written.
    """
    data = content.encode("utf-8")
    temp_path = path.with_name(f".{path.name}.tmp")
    try:
        with temp_path.open("wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        if path.exists():
            shutil.copymode(path, temp_path)
        temp_path.replace(path)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise
    return len(data)


def free_path(path: Path, *, is_dir: bool = False) -> Path:
    """path itself if unused, else the first "name-N" variant that is free."""
    if not path.exists():
        return path
    counter = 1
    while True:
        if is_dir:
            candidate = path.with_name(f"{path.name}-{counter}")
        else:
            candidate = path.with_name(f"{path.stem}-{counter}{path.suffix}")
        if not candidate.exists():
            return candidate
        counter += 1
