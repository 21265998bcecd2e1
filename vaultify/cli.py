"""CLI entrypoint for vaultify."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(__version__, prog_name="vaultify")
@click.option("--verbose", is_flag=True, help="Log every decision (DEBUG level)")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """vaultify - Turn a Notion export into an Obsidian vault.

    Renames files and folders, converts markdown links to wiki-links and
    adds front matter, all in place.
    """
    ctx.ensure_object(dict)
    _configure_logging(verbose)
    ctx.obj["verbose"] = verbose


@cli.command()
@click.argument(
    "vault",
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Show what would be done without writing",
)
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    help="Output the plan or result as JSON",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="TOML settings file (defaults to <vault>/.vaultify.toml)",
)
@click.option(
    "--max-length",
    type=int,
    default=None,
    help="Maximum length of a cleaned file name",
)
@click.option(
    "--batch-size",
    type=int,
    default=None,
    help="Files processed per progress step",
)
def migrate(
    vault: Path,
    dry_run: bool,
    output_json: bool,
    config_path: Path | None,
    max_length: int | None,
    batch_size: int | None,
) -> None:
    """Rename, relink and add front matter across an exported tree.

    Examples:

        vaultify migrate ./export --dry-run

        vaultify migrate ./export --max-length 60
    """
    from .commands.migrate import run_migrate
    from .config import resolve_config

    try:
        config = resolve_config(vault, config_path).with_overrides(
            max_name_length=max_length,
            batch_size=batch_size,
        )
    except (OSError, ValueError) as e:
        raise click.ClickException(f"Invalid configuration: {e}")

    exit_code = run_migrate(
        vault.resolve(),
        config=config,
        dry_run=dry_run,
        output_json=output_json,
    )
    sys.exit(exit_code)


@cli.command()
@click.argument(
    "note",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.argument("assignments", nargs=-1, required=True, metavar="KEY=VALUE...")
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    help="Output the outcome as JSON",
)
def merge(note: Path, assignments: tuple[str, ...], output_json: bool) -> None:
    """Merge KEY=VALUE pairs into a note's existing front matter.

    Values are read as YAML scalars. Setting public-url also sets
    published to true.

    Example:

        vaultify merge "Project Alpha.md" status=Done public-url=https://example.com
    """
    from .commands.merge import run_merge

    sys.exit(run_merge(note, assignments, output_json=output_json))


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
