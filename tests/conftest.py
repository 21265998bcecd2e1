"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from vaultify.vault.indexer import RenameMap, build_index

from helpers import ALPHA_ID, BETA_ID, GAMMA_ID, write_note


@pytest.fixture
def export_path(tmp_path: Path) -> Path:
    """A small exported tree with identifiers, links, assets and a subfolder."""
    root = tmp_path / "export"
    write_note(
        root / f"Project Alpha {ALPHA_ID}.md",
        "\n".join(
            [
                "# Project Alpha",
                "",
                "Status: In progress",
                "Owner: Dana",
                "Completion: 0.5",
                "",
                f"See [Project Beta](Project%20Beta%20{BETA_ID}.md).",
                f"Details in [the plan](Projects%20{GAMMA_ID}/Plan%20{ALPHA_ID}.md#Milestones).",
                "Docs at [site](https://example.com/Page.md).",
                "",
            ]
        ),
    )
    write_note(
        root / f"Project Beta {BETA_ID}.md",
        "# Project Beta\n\nBack to [Project Alpha](Project%20Alpha%20" + ALPHA_ID + ".md)\n",
    )
    write_note(
        root / f"Projects {GAMMA_ID}" / f"Plan {ALPHA_ID}.md",
        "# Plan\n\n![diagram](diagram%20" + BETA_ID + ".png)\n\n## Milestones\n",
    )
    (root / f"Projects {GAMMA_ID}" / f"diagram {BETA_ID}.png").write_bytes(b"\x89PNG")
    return root


@pytest.fixture
def export_index(export_path: Path) -> RenameMap:
    return build_index(export_path)
