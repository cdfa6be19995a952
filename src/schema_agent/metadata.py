"""
Table/column metadata extraction.

The same column is usually described several times (table definition, property
mapping, join, identifier). Every field keeps the first non-empty value it sees,
so a later and less informative mapping never overwrites an earlier one.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional

from schema_agent.builder.base import SchemaModelBuilder
from schema_agent.concepts import Dialect
from schema_agent.errors import ModelInconsistency
from schema_agent.model import ColumnDef, SchemaModel, TableDef


def first_non_empty(existing: Optional[str], candidate: Optional[str]) -> Optional[str]:
    if existing:
        return existing
    return candidate or None


@dataclass
class ColumnMetadata:
    name: str
    comment: Optional[str] = None
    sql_type: Optional[str] = None
    type: Optional[str] = None
    default_value: Optional[str] = None
    not_null: Optional[str] = None

    def fold(self, comment=None, sql_type=None, type=None, default_value=None, not_null=None) -> None:
        self.comment = first_non_empty(self.comment, comment)
        self.sql_type = first_non_empty(self.sql_type, sql_type)
        self.type = first_non_empty(self.type, type)
        self.default_value = first_non_empty(self.default_value, default_value)
        self.not_null = first_non_empty(self.not_null, not_null)


@dataclass
class TableMetadata:
    name: str
    comment: Optional[str] = None
    columns: Dict[str, ColumnMetadata] = field(default_factory=dict)


class MetadataExtractor:
    def __init__(self, model: SchemaModel, dialect: Dialect, builder: SchemaModelBuilder):
        self.model = model
        self.dialect = dialect
        self.builder = builder
        self.tables: Dict[str, TableMetadata] = {}

    def extract(self) -> Dict[str, TableMetadata]:
        for entity in self.model.entities:
            tm = self._table(self._resolve(entity.table, f"entity {entity.name}"))
            for join in entity.joins:
                jt = self._table(self._resolve(join.table, f"join of {entity.name}"))
                for prop in join.properties:
                    self._fold(jt, prop.columns)
            for coll in entity.collections:
                if coll.table:
                    ct = self._table(self._resolve(coll.table, f"collection {entity.name}.{coll.name}"))
                    self._fold(ct, coll.key_columns + coll.element_columns)
            for prop in entity.properties:
                self._fold(tm, prop.columns)
            if entity.identifier is not None:
                self._fold(tm, entity.identifier.columns)
        return {name: self.tables[name] for name in sorted(self.tables)}

    def _resolve(self, name: Optional[str], what: str) -> TableDef:
        table = self.model.tables.get(name) if name else None
        if table is None:
            raise ModelInconsistency(f"Table {name!r} of {what} is not part of the schema model")
        return table

    def _table(self, table: TableDef) -> TableMetadata:
        tm = self.tables.get(table.name)
        if tm is None:
            tm = self.tables[table.name] = TableMetadata(table.name, table.comment or None)
        self._fold(tm, table.columns.values())
        return tm

    def _fold(self, tm: TableMetadata, columns: Iterable[ColumnDef]) -> None:
        for col in columns:
            cm = tm.columns.get(col.name)
            if cm is None:
                cm = tm.columns[col.name] = ColumnMetadata(col.name)
            cm.fold(
                comment=col.comment,
                sql_type=self.builder.sql_type(col, self.dialect),
                type=col.type_name,
                default_value=col.default,
                not_null=str(not col.nullable).lower(),
            )


def extract_table_metadata(model: SchemaModel, dialect: Dialect, builder: SchemaModelBuilder) -> Dict[str, TableMetadata]:
    return MetadataExtractor(model, dialect, builder).extract()
