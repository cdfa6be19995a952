"""
schema-agent CLI.
- all: create/drop scripts for every (dialect, concept)
- run: one combination, script or table metadata
- metadata: table metadata report for a preset concept (postgres)
- concepts: list concepts and their topics
- watch: regenerate one combination whenever a fragment changes
"""
from __future__ import annotations
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from schema_agent.commands.generate import (
    METADATA_PRESETS,
    Action,
    GenerationRequest,
    run_all,
    run_generation,
)
from schema_agent.concepts import CONCEPT_TOPICS, Dialect
from schema_agent.config import settings
from schema_agent.errors import SchemaAgentError
from schema_agent.fragments import list_topics
from schema_agent.log import setup_logging

console = Console()

app = typer.Typer(
    name="schema-agent",
    add_completion=False,
    help="Merge Hibernate mapping fragments per concept and generate SQL scripts or table documentation.",
)


@contextmanager
def fatal_errors() -> Iterator[None]:
    """Any failure prints a diagnostic and exits with status 1."""
    try:
        yield
    except (SchemaAgentError, OSError, ValidationError, ValueError) as e:
        console.print(f"[bold red]ERROR:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)


def _overrides(**kwargs) -> dict:
    return {k: v for k, v in kwargs.items() if v is not None}


@app.callback()
def main(
    log_level: str = typer.Option(settings.log_level, "--log-level", help="DEBUG / INFO / WARNING / ERROR"),
):
    setup_logging(log_level)


@app.command("all")
def all_scripts(
    fragments: Optional[Path] = typer.Option(None, help="Fragment root (topic directories)"),
    out_dir: Optional[Path] = typer.Option(None, help="Output directory"),
    schema: Optional[str] = typer.Option(None, help="Default database schema"),
    fresh: bool = typer.Option(False, help="Discard previously merged fragments first"),
):
    """Create/drop scripts for every dialect and concept. Aborts on the first failure."""
    with fatal_errors():
        written = run_all(**_overrides(
            fragment_root=fragments, output_dir=out_dir, db_schema=schema, fresh=fresh))
    console.print(f"[bold green]Done.[/bold green] {len(written)} file(s) written")


@app.command("run")
def run_one(
    concept: str = typer.Option(..., "--concept", "-c", help="Concept name, see `schema-agent concepts`"),
    dialect: str = typer.Option(Dialect.POSTGRES.value, "--dialect", "-d", help=f"One of {[d.value for d in Dialect]}"),
    action: str = typer.Option(Action.SCRIPT.value, "--action", "-a", help="script / metadata"),
    fragments: Optional[Path] = typer.Option(None, help="Fragment root (topic directories)"),
    out_dir: Optional[Path] = typer.Option(None, help="Output directory"),
    schema: Optional[str] = typer.Option(None, help="Default database schema"),
    fresh: bool = typer.Option(False, help="Discard previously merged fragments first"),
    stamp: bool = typer.Option(False, help="Add a creation date to the metadata report"),
):
    """Script or table metadata for one (dialect, concept) combination."""
    with fatal_errors():
        request = GenerationRequest(
            concept=concept,
            dialect=dialect,
            action=action,
            fresh=fresh,
            stamp=stamp,
            **_overrides(fragment_root=fragments, output_dir=out_dir, db_schema=schema),
        )
        run_generation(request)


@app.command("metadata")
def metadata_preset(
    preset: str = typer.Argument(..., help=f"One of {list(METADATA_PRESETS)}"),
    fragments: Optional[Path] = typer.Option(None, help="Fragment root (topic directories)"),
    out_dir: Optional[Path] = typer.Option(None, help="Output directory"),
    fresh: bool = typer.Option(False, help="Discard previously merged fragments first"),
):
    """Table metadata report for a preset concept, SQL types for PostgreSQL."""
    with fatal_errors():
        if preset not in METADATA_PRESETS:
            raise ValueError(f"Unknown preset {preset!r}, expected one of {list(METADATA_PRESETS)}")
        request = GenerationRequest(
            concept=METADATA_PRESETS[preset],
            dialect=Dialect.POSTGRES,
            action=Action.METADATA,
            fresh=fresh,
            **_overrides(fragment_root=fragments, output_dir=out_dir),
        )
        run_generation(request)


@app.command("concepts")
def list_concepts(
    fragments: Optional[Path] = typer.Option(None, help="Fragment root (topic directories)"),
):
    """Concepts and their topics, in merge order. Topics absent from the fragment root are flagged."""
    present = set(list_topics(fragments or settings.fragment_root))
    table = Table("concept", "topics (later overrides earlier)", "missing")
    for concept, topics in CONCEPT_TOPICS.items():
        missing = [t for t in topics if t not in present]
        table.add_row(concept.value, ", ".join(topics), ", ".join(missing) or "-")
    console.print(table)


@app.command("watch")
def watch_cmd(
    concept: str = typer.Option(..., "--concept", "-c"),
    dialect: str = typer.Option(Dialect.POSTGRES.value, "--dialect", "-d"),
    action: str = typer.Option(Action.SCRIPT.value, "--action", "-a"),
    fragments: Optional[Path] = typer.Option(None, help="Fragment root (topic directories)"),
    out_dir: Optional[Path] = typer.Option(None, help="Output directory"),
):
    """Regenerate whenever a fragment below the fragment root changes."""
    from schema_agent.watch import watch

    with fatal_errors():
        request = GenerationRequest(
            concept=concept,
            dialect=dialect,
            action=action,
            fresh=True,
            **_overrides(fragment_root=fragments, output_dir=out_dir),
        )
        if not request.fragment_root.is_dir():
            raise typer.BadParameter(f"fragment root {request.fragment_root} is not a directory")
        watch(request)


if __name__ == "__main__":
    app()
