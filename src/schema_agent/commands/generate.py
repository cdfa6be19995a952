"""SQL script / table metadata generation for one (dialect, concept) combination."""
from __future__ import annotations
import logging
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from rich.console import Console

from schema_agent.builder import HbmXmlBuilder, SchemaModelBuilder, ScriptAction
from schema_agent.concepts import Concept, Dialect, parse_concept, parse_dialect, resolve_topics
from schema_agent.config import settings
from schema_agent.dedupe import dedupe
from schema_agent.docs_writer import write_table_metadata
from schema_agent.merger import clear_scratch, merge_topics
from schema_agent.metadata import extract_table_metadata
from schema_agent.script_writer import write_script

console = Console()
log = logging.getLogger(__name__)


class Action(str, Enum):
    SCRIPT = "script"
    METADATA = "metadata"


class GenerationRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    concept: Concept
    dialect: Dialect = Dialect.POSTGRES
    action: Action = Action.SCRIPT
    db_schema: Optional[str] = Field(default_factory=lambda: settings.default_schema)
    fragment_root: Path = Field(default_factory=lambda: settings.fragment_root)
    scratch_dir: Path = Field(default_factory=lambda: settings.scratch_dir)
    output_dir: Path = Field(default_factory=lambda: settings.output_dir)
    fresh: bool = False
    stamp: bool = False
    dedup_role: str = Field(default_factory=lambda: settings.dedup_role)

    @field_validator("concept", mode="before")
    @classmethod
    def _concept(cls, v):
        return parse_concept(v)

    @field_validator("dialect", mode="before")
    @classmethod
    def _dialect(cls, v):
        return parse_dialect(v)

    @property
    def merged_dir(self) -> Path:
        return self.scratch_dir / self.concept.value

    def create_path(self) -> Path:
        return self.output_dir / f"{self.dialect}_{self.concept}_create.sql"

    def drop_path(self) -> Path:
        return self.output_dir / f"{self.dialect}_{self.concept}_drop.sql"

    def metadata_path(self) -> Path:
        return self.output_dir / f"{self.concept}_table_metadata.md"


# schema used per dialect by the batch run unless one is given explicitly
BATCH_SCHEMAS: dict[Dialect, str] = {
    Dialect.POSTGRES: "public",
    Dialect.ORACLE: "oracle",
    Dialect.MYSQL: "sos",
    Dialect.SQLSERVER: "dbo",
}

# fixed metadata reports (postgres)
METADATA_PRESETS: dict[str, Concept] = {
    "minimal": Concept.MINIMAL,
    "default": Concept.DEFAULT,
    "specialized-variant": Concept.SPECIALIZED_VARIANT,
    "full-without-feature": Concept.FULL_WITHOUT_FEATURE,
}


def run_generation(request: GenerationRequest, builder: SchemaModelBuilder | None = None) -> list[Path]:
    """
    resolve concept -> merge fragments -> build model -> scripts or metadata.
    Returns the written files.
    """
    builder = builder or HbmXmlBuilder()
    topics = resolve_topics(request.concept)
    console.print(f"[bold]Concept:[/bold] {request.concept} ({', '.join(topics)})  "
                  f"[bold]Dialect:[/bold] {request.dialect}")

    if request.fresh:
        clear_scratch(request.merged_dir)
    report = merge_topics(topics, request.fragment_root, request.merged_dir)
    console.print(f"Merged [green]{len(report.written)}[/green] mapping file(s) "
                  f"([dim]{len(report.skipped)} already present[/dim])")

    model = builder.build_model(request.merged_dir, request.dialect, request.db_schema)
    request.output_dir.mkdir(parents=True, exist_ok=True)

    if request.action is Action.METADATA:
        out = request.metadata_path()
        out.unlink(missing_ok=True)
        tables = extract_table_metadata(model, request.dialect, builder)
        created_at = datetime.now(timezone.utc) if request.stamp else None
        write_table_metadata(tables, request.dialect.label, out, created_at)
        console.print(f"[bold green]Metadata:[/bold green] {out}")
        return [out]

    create_path, drop_path = request.create_path(), request.drop_path()
    create_path.unlink(missing_ok=True)
    drop_path.unlink(missing_ok=True)

    create = builder.emit_script(model, ScriptAction.CREATE)
    deduped = dedupe(create, key_hint=request.dedup_role)
    if len(deduped) != len(create):
        log.info("Removed %d duplicate constraint statement(s)", len(create) - len(deduped))
    write_script(deduped, create_path)
    console.print(f"[bold green]Create:[/bold green] {create_path}")

    write_script(builder.emit_script(model, ScriptAction.DROP), drop_path)
    console.print(f"[bold green]Drop:[/bold green]   {drop_path}")
    return [create_path, drop_path]


def run_all(builder: SchemaModelBuilder | None = None, **overrides) -> list[Path]:
    """
    Scripts for every (dialect, concept) combination. Stops at the first failure.
    Without an explicit or configured schema each dialect gets its entry from BATCH_SCHEMAS.
    """
    written: list[Path] = []
    for dialect in Dialect:
        schema = overrides.get("db_schema") or settings.default_schema or BATCH_SCHEMAS.get(dialect)
        options = {**overrides, "db_schema": schema}
        for concept in Concept:
            request = GenerationRequest(concept=concept, dialect=dialect, action=Action.SCRIPT, **options)
            written += run_generation(request, builder)
    return written
