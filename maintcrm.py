#!/usr/bin/env python3
"""Maintenance CRM management CLI."""

import os
import subprocess
import sys
from pathlib import Path

import click

from crm.maintenance.csv_import import SAMPLE_CSV, parse_with_stats


def _run(args: list[str], *, replace: bool = False) -> None:
    click.echo(
        f"  {click.style('>', dim=True)} {click.style(' '.join(args), dim=True)}\n"
    )
    if replace:
        os.execvp(args[0], args)
    result = subprocess.run(args)
    if result.returncode != 0:
        click.echo(
            f"  {click.style('✗', fg='red')} exited with code {result.returncode}"
        )
        sys.exit(result.returncode)


def _ok(text: str) -> None:
    click.echo(f"  {click.style('✓', fg='green')} {text}")


def _warn(text: str) -> None:
    click.echo(f"  {click.style('!', fg='yellow')} {text}")


def _header(text: str) -> None:
    click.echo(f"\n  {click.style(text, fg='cyan', bold=True)}\n")


@click.group()
def cli() -> None:
    """Maintenance CRM management CLI."""


@cli.command()
@click.argument("uvicorn_args", nargs=-1)
def app(uvicorn_args: tuple[str, ...]) -> None:
    """Start uvicorn with --reload."""
    _header("Starting Maintenance CRM")
    _run(
        ["uv", "run", "uvicorn", "crm.app:app", "--reload", *uvicorn_args],
        replace=True,
    )


@cli.group()
def db() -> None:
    """Database management commands."""


@db.command()
def up() -> None:
    """Start PostgreSQL (docker compose up)."""
    _header("Starting PostgreSQL")
    _run(["docker", "compose", "up", "-d"])
    _ok("PostgreSQL is running")


@db.command()
def down() -> None:
    """Stop PostgreSQL (docker compose down)."""
    _header("Stopping PostgreSQL")
    _run(["docker", "compose", "down"])
    _ok("PostgreSQL stopped")


@db.command()
def migrate() -> None:
    """Run alembic upgrade head."""
    _header("Running migrations")
    _run(["uv", "run", "alembic", "upgrade", "head"])
    _ok("Migrations applied")


@db.command()
@click.argument("message", default="auto")
def revision(message: str) -> None:
    """Generate alembic migration."""
    _header(f"Generating migration: {message}")
    _run(["uv", "run", "alembic", "revision", "--autogenerate", "-m", message])
    _ok("Migration generated")


@cli.command()
@click.argument(
    "csv_file", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.option("--limit", default=10, show_default=True, help="Rows to print.")
def preview(csv_file: Path, limit: int) -> None:
    """Parse a maintenance CSV/TSV export without storing anything."""
    _header(f"Previewing {csv_file.name}")
    result = parse_with_stats(csv_file.read_text(encoding="utf-8-sig"))

    if not result.records:
        _warn("No rows detected. Check the delimiter and header row.")
        sys.exit(1)

    for record in result.records[:limit]:
        click.echo(
            f"  {record.product_name:<32} {record.product_type.value:<9} "
            f"{record.vendor_name or 'N/A':<24} {record.end_date or 'N/A':<10} "
            f"{'N/A' if record.cost is None else f'${record.cost:,.2f}'}"
        )
    if len(result.records) > limit:
        click.echo(f"\n  ... {len(result.records) - limit} more")

    _ok(
        f"{len(result.records)} of {result.data_rows} rows parsed "
        f"(header at line {result.header_line + 1}, delimiter {result.delimiter!r})"
    )


@cli.command()
def sample() -> None:
    """Print the sample import CSV."""
    click.echo(SAMPLE_CSV)


@cli.command()
@click.argument("pytest_args", nargs=-1)
def test(pytest_args: tuple[str, ...]) -> None:
    """Run pytest."""
    _header("Running tests")
    _run(["uv", "run", "pytest", "tests/", "-v", *pytest_args], replace=True)


@cli.command()
def lint() -> None:
    """Run mypy."""
    _header("Running mypy")
    _run(["uv", "run", "mypy", "."])
    _ok("Type check passed")


if __name__ == "__main__":
    cli()
