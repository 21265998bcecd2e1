import json
import os
from pathlib import Path

from vaultify.commands.migrate import (
    compute_migration_plan,
    estimate_link_count,
    execute_migration_plan,
    run_migrate,
    transform_note,
)
from vaultify.config import MigrationConfig
from vaultify.vault.frontmatter import parse_frontmatter

from helpers import ALPHA_ID, BETA_ID, GAMMA_ID, write_note


def _snapshot(root: Path) -> dict[str, bytes]:
    return {
        p.relative_to(root).as_posix(): p.read_bytes() if p.is_file() else b""
        for p in sorted(root.rglob("*"))
    }


def _metadata(path: Path) -> dict:
    parsed = parse_frontmatter(path.read_text(encoding="utf-8"))
    assert parsed.has_block
    return parsed.metadata


def test_scenario_rename_relink_and_front_matter(export_path: Path) -> None:
    plan = compute_migration_plan(export_path)
    result = execute_migration_plan(plan)

    assert result.success
    assert sorted(_snapshot(export_path)) == [
        "Project Alpha.md",
        "Project Beta.md",
        "Projects",
        "Projects/Plan.md",
        "Projects/diagram.png",
    ]

    alpha = (export_path / "Project Alpha.md").read_text(encoding="utf-8")
    assert "[[Project Beta]]" in alpha
    assert "[[Plan#Milestones|the plan]]" in alpha
    assert "[site](https://example.com/Page.md)" in alpha
    assert f'notion-id: "{ALPHA_ID}"' in alpha
    assert f'aliases: ["Project Alpha {ALPHA_ID}"]' in alpha
    assert alpha.startswith('---\ntitle: "Project Alpha"\n')
    assert "\n---\n\n# Project Alpha\n" in alpha

    meta = _metadata(export_path / "Project Alpha.md")
    assert meta["status"] == "In progress"
    assert meta["owner"] == "Dana"
    assert meta["completion"] == 0.5
    assert meta["published"] is False
    assert "folder" not in meta

    plan_meta = _metadata(export_path / "Projects" / "Plan.md")
    assert plan_meta["folder"] == "Projects"
    assert plan_meta["tags"] == ["projects"]
    assert "banner" not in plan_meta
    assert "![diagram](diagram.png)" in (export_path / "Projects" / "Plan.md").read_text(encoding="utf-8")

    assert result.total_files == 4
    assert result.processed_files == 3
    assert result.frontmatter_added == 3
    assert result.links_converted == 3
    assert result.assets_updated == 1
    assert result.renamed_files == 4
    assert result.renamed_dirs == 1
    assert result.duplicate_groups == 0
    assert result.failures == []


def test_second_run_changes_nothing(export_path: Path) -> None:
    execute_migration_plan(compute_migration_plan(export_path))
    before = _snapshot(export_path)

    result = execute_migration_plan(compute_migration_plan(export_path))

    assert _snapshot(export_path) == before
    assert result.renamed_files == 0
    assert result.renamed_dirs == 0
    assert result.links_converted == 0
    assert result.frontmatter_added == 0


def test_duplicates_survive_with_distinct_folders(tmp_path: Path) -> None:
    root = tmp_path / "export"
    write_note(root / f"Team A {GAMMA_ID}" / f"Meeting Notes {ALPHA_ID}.md", "# A\n")
    write_note(root / "Team B" / f"Meeting Notes {BETA_ID}.md", "# B\n")

    plan = compute_migration_plan(root)
    result = execute_migration_plan(plan)

    assert result.duplicate_groups == 1
    assert [g.name for g in plan.duplicates] == ["Meeting Notes.md"]
    a = _metadata(root / "Team A" / "Meeting Notes.md")
    b = _metadata(root / "Team B" / "Meeting Notes.md")
    assert a["folder"] == "Team A"
    assert b["folder"] == "Team B"
    assert a["notion-id"] == ALPHA_ID
    assert b["notion-id"] == BETA_ID


def test_failed_file_does_not_stop_the_run(export_path: Path) -> None:
    broken = export_path / f"Broken {GAMMA_ID}.md"
    broken.write_bytes(b"\xff\xfe not utf-8 \x80")

    result = execute_migration_plan(compute_migration_plan(export_path))

    assert not result.success
    assert [f.path for f in result.failures] == [broken]
    assert broken.exists()
    assert (export_path / "Project Alpha.md").exists()
    assert result.processed_files == 3


def test_blank_notes_are_skipped_but_renamed(tmp_path: Path) -> None:
    root = tmp_path / "export"
    write_note(root / f"Empty {ALPHA_ID}.md", "  \n\n")

    result = execute_migration_plan(compute_migration_plan(root))

    assert result.skipped_files == 1
    assert result.processed_files == 0
    assert (root / "Empty.md").read_text(encoding="utf-8") == "  \n\n"


def test_existing_block_is_kept_and_links_rewritten(tmp_path: Path) -> None:
    root = tmp_path / "export"
    write_note(root / "Other.md", "# Other\n")
    original = '---\ntitle: "Mine"\n---\n\nSee [Other](Other.md)\n'
    write_note(root / "Mine.md", original)

    result = execute_migration_plan(compute_migration_plan(root))

    assert (root / "Mine.md").read_text(encoding="utf-8") == '---\ntitle: "Mine"\n---\n\nSee [[Other]]\n'
    assert result.frontmatter_added == 1


def test_images_in_body_do_not_become_banner(tmp_path: Path) -> None:
    root = tmp_path / "export"
    write_note(root / "Report.md", "# Report\n\nSome text.\n\n![chart](chart.png)\n\nMore.\n")

    execute_migration_plan(compute_migration_plan(root))

    assert "banner" not in _metadata(root / "Report.md")


def test_crlf_notes_keep_their_line_endings(tmp_path: Path) -> None:
    root = tmp_path / "export"
    write_note(root / "Other.md", "# Other\n")
    (root / "Note.md").write_bytes(b"# Note\r\n\r\nSee [Other](Other.md)\r\nline2\r\n")

    execute_migration_plan(compute_migration_plan(root))

    data = (root / "Note.md").read_bytes()
    assert data.startswith(b'---\r\ntitle: "Note"\r\n')
    assert data.endswith(b"---\r\n\r\n# Note\r\n\r\nSee [[Other]]\r\nline2\r\n")
    assert data.count(b"\n") == data.count(b"\r\n")

    # a second run leaves the CRLF note as written
    execute_migration_plan(compute_migration_plan(root))
    assert (root / "Note.md").read_bytes() == data


def test_name_taken_on_disk_gets_counter(tmp_path: Path) -> None:
    root = tmp_path / "export"
    outside = write_note(tmp_path / "outside.md", "elsewhere")
    write_note(root / f"Note {ALPHA_ID}.md", "# Note\n")
    # symlinks are never indexed, but they still occupy the name
    os.symlink(outside, root / "Note.md")

    result = execute_migration_plan(compute_migration_plan(root))

    assert (root / "Note-1.md").exists()
    assert len(result.conflicts) == 1
    assert "Note-1.md" in result.conflicts[0].resolution


def test_directories_renamed_deepest_first(tmp_path: Path) -> None:
    root = tmp_path / "export"
    write_note(root / f"Outer {ALPHA_ID}" / f"Inner {BETA_ID}" / "Leaf.md", "# Leaf\n")

    plan = compute_migration_plan(root)

    assert [d.original_name for d in plan.directory_renames] == [f"Inner {BETA_ID}", f"Outer {ALPHA_ID}"]
    execute_migration_plan(plan)
    leaf = _metadata(root / "Outer" / "Inner" / "Leaf.md")
    assert leaf["folder"] == "Outer/Inner"
    assert leaf["tags"] == ["outer", "inner"]


def test_small_batches_cover_every_file(export_path: Path) -> None:
    config = MigrationConfig(batch_size=1)

    result = execute_migration_plan(compute_migration_plan(export_path, config))

    assert result.renamed_files == 4


def test_transform_note_does_not_touch_disk(export_path: Path) -> None:
    plan = compute_migration_plan(export_path)
    migration = next(f for f in plan.markdown_files if f.entry.original_name.startswith("Project Beta"))
    before = _snapshot(export_path)

    transform = transform_note(migration.entry.path.read_text(encoding="utf-8"), migration, plan)

    assert transform.added_frontmatter
    assert transform.links_converted == 1
    assert "[[Project Alpha]]" in transform.text
    assert _snapshot(export_path) == before


def test_estimate_link_count(export_path: Path) -> None:
    plan = compute_migration_plan(export_path)
    assert estimate_link_count(plan) == 3
    assert estimate_link_count(plan, sample_size=1) == 6


def test_dry_run_writes_nothing(export_path: Path, capsys) -> None:
    before = _snapshot(export_path)

    exit_code = run_migrate(export_path, dry_run=True, output_json=True)

    assert exit_code == 0
    assert _snapshot(export_path) == before
    report = json.loads(capsys.readouterr().out)
    assert report["files"] == 4
    assert {"from": f"Project Alpha {ALPHA_ID}.md", "to": "Project Alpha.md"} in report["renames"]
    assert report["directory_renames"] == [{"from": f"Projects {GAMMA_ID}", "to": "Projects"}]


def test_run_migrate_reports_json_result(export_path: Path, capsys) -> None:
    exit_code = run_migrate(export_path, output_json=True)

    assert exit_code == 0
    report = json.loads(capsys.readouterr().out)
    assert report["success"] is True
    assert report["links_converted"] == 3


def test_run_migrate_missing_root(tmp_path: Path) -> None:
    assert run_migrate(tmp_path / "missing") == 1
