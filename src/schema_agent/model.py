from __future__ import annotations
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, Dict, List

if TYPE_CHECKING:
    from schema_agent.concepts import Dialect

@dataclass
class ColumnDef:
    name: str
    type_name: str = "string"   # hibernate type name or entity class for references
    length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    nullable: bool = True
    unique: bool = False
    default: Optional[str] = None
    comment: Optional[str] = None
    sql_type: Optional[str] = None   # explicit sql-type override
    storage_type: Optional[str] = None   # type of the referenced identifier for FK columns

@dataclass
class ForeignKeyDef:
    name: str
    table: str
    columns: List[str]
    ref_table: str
    ref_columns: List[str]

@dataclass
class TableDef:
    name: str
    comment: Optional[str] = None
    columns: Dict[str, ColumnDef] = field(default_factory=dict)
    primary_key: List[str] = field(default_factory=list)

    def add_column(self, col: ColumnDef) -> ColumnDef:
        # first definition of a column name is kept
        return self.columns.setdefault(col.name, col)

@dataclass
class PropertyDef:
    name: str
    columns: List[ColumnDef] = field(default_factory=list)

@dataclass
class CollectionDef:
    name: str
    table: Optional[str] = None   # None for one-to-many (no link table)
    key_columns: List[ColumnDef] = field(default_factory=list)
    element_columns: List[ColumnDef] = field(default_factory=list)

@dataclass
class JoinDef:
    table: str
    key_columns: List[ColumnDef] = field(default_factory=list)
    properties: List[PropertyDef] = field(default_factory=list)

@dataclass
class EntityDef:
    name: str
    table: Optional[str]
    identifier: Optional[PropertyDef] = None
    properties: List[PropertyDef] = field(default_factory=list)
    collections: List[CollectionDef] = field(default_factory=list)
    joins: List[JoinDef] = field(default_factory=list)
    parent: Optional[str] = None

@dataclass
class SchemaModel:
    dialect: Optional["Dialect"] = None
    schema: Optional[str] = None
    tables: Dict[str, TableDef] = field(default_factory=dict)
    entities: List[EntityDef] = field(default_factory=list)
    foreign_keys: List[ForeignKeyDef] = field(default_factory=list)

    def ensure_table(self, name: str, comment: Optional[str] = None) -> TableDef:
        if name not in self.tables:
            self.tables[name] = TableDef(name=name, comment=comment)
        elif comment and not self.tables[name].comment:
            self.tables[name].comment = comment
        return self.tables[name]

    def entity(self, name: str) -> Optional[EntityDef]:
        """Exact class name first, then the unqualified name."""
        for e in self.entities:
            if e.name == name:
                return e
        wanted = name.rsplit(".", 1)[-1]
        for e in self.entities:
            if e.name.rsplit(".", 1)[-1] == wanted:
                return e
        return None
