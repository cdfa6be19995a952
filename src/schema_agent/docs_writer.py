from __future__ import annotations
from datetime import datetime
from pathlib import Path
from typing import Mapping, Optional

from schema_agent.metadata import TableMetadata
from schema_agent.script_writer import write_atomic

PLACEHOLDER = "-"


def _or_placeholder(value: Optional[str]) -> str:
    if not value:
        return PLACEHOLDER
    # one physical line per row, pipes must not split the cell
    return " ".join(value.splitlines()).replace("|", "\\|")


def table_section(table: TableMetadata) -> str:
    lines = []
    lines.append(f"### {table.name}")
    lines.append(f"**Description**: {_or_placeholder(table.comment)}")
    lines.append("")
    lines.append("| column | comment | NOT-NULL | default | SQL type | type |")
    lines.append("| --- | --- | --- | --- | --- | --- |")
    for col in table.columns.values():
        lines.append(
            f"| {col.name} | {_or_placeholder(col.comment)} | {_or_placeholder(col.not_null)} | "
            f"{_or_placeholder(col.default_value)} | {_or_placeholder(col.sql_type)} | {_or_placeholder(col.type)} |"
        )
    lines.append("")
    lines.append("[top](#tables)")
    lines.append("")
    return "\n".join(lines)


def render_markdown(tables: Mapping[str, TableMetadata], dialect_label: str,
                    created_at: Optional[datetime] = None) -> str:
    names = sorted(tables)
    lines = []
    lines.append("# Database table/column description")
    lines.append("This page describes the tables and columns in the database.")
    lines.append(f"The *SQL type* column in the tables is generated for dialect: *{dialect_label}*")
    lines.append("")
    lines.append("## Tables")
    for name in names:
        lines.append(f"- [{name}](#{name.lower()})")
    lines.append("")
    for name in names:
        lines.append(table_section(tables[name]))
    if created_at is not None:
        lines.append(f"*Creation date: {created_at.strftime('%Y-%m-%d %H:%M:%S %z').strip()}*")
        lines.append("")
    return "\n".join(lines)


def write_table_metadata(tables: Mapping[str, TableMetadata], dialect_label: str, out_path: Path,
                         created_at: Optional[datetime] = None) -> Path:
    return write_atomic(render_markdown(tables, dialect_label, created_at), out_path)
