"""SchemaModel -> SQLAlchemy Core tables, compiled to dialect specific DDL."""
from __future__ import annotations
import logging
from typing import Dict, List, Tuple

from sqlalchemy import (
    BigInteger,
    Boolean,
    CHAR,
    Column,
    Date,
    DateTime,
    Double,
    Float,
    ForeignKeyConstraint,
    Integer,
    LargeBinary,
    MetaData,
    Numeric,
    SmallInteger,
    String,
    Table,
    Text,
    Time,
    text,
)
from sqlalchemy.engine.interfaces import Dialect as SQLDialect
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.schema import (
    AddConstraint,
    CreateTable,
    DropConstraint,
    DropTable,
    SetColumnComment,
    SetTableComment,
)
from sqlalchemy.types import TypeEngine, UserDefinedType

from schema_agent.model import ColumnDef, SchemaModel

log = logging.getLogger(__name__)


class Geometry(UserDefinedType):
    cache_ok = True

    def get_col_spec(self, **kw):
        return "GEOMETRY"


@compiles(Geometry, "postgresql")
def _pg_geometry(type_, compiler, **kw):
    return "geometry"


@compiles(Geometry, "oracle")
def _oracle_geometry(type_, compiler, **kw):
    return "SDO_GEOMETRY"


class LiteralType(UserDefinedType):
    """Column type given verbatim via ``sql-type`` in the mapping."""
    cache_ok = True

    def __init__(self, spec: str):
        self.spec = spec

    def get_col_spec(self, **kw):
        return self.spec


SMALL_BOOLEAN = "org.n52.hibernate.type.SmallBooleanType"

SIMPLE_TYPES: Dict[str, type] = {
    "long": BigInteger,
    "java.lang.Long": BigInteger,
    "big_integer": BigInteger,
    "java.math.BigInteger": BigInteger,
    "integer": Integer,
    "int": Integer,
    "java.lang.Integer": Integer,
    "short": SmallInteger,
    "byte": SmallInteger,
    "small_boolean": SmallInteger,
    SMALL_BOOLEAN: SmallInteger,
    "double": Double,
    "java.lang.Double": Double,
    "float": Float,
    "boolean": Boolean,
    "java.lang.Boolean": Boolean,
    "timestamp": DateTime,
    "java.util.Date": DateTime,
    "calendar": DateTime,
    "date": Date,
    "time": Time,
    "text": Text,
    "clob": Text,
    "materialized_clob": Text,
    "binary": LargeBinary,
    "blob": LargeBinary,
    "jts_geometry": Geometry,
    "geolatte_geometry": Geometry,
    "org.hibernate.spatial.GeometryType": Geometry,
}


def to_sqlalchemy_type(col: ColumnDef) -> TypeEngine:
    if col.sql_type:
        return LiteralType(col.sql_type)
    name = col.storage_type or col.type_name
    if name in ("big_decimal", "java.math.BigDecimal"):
        return Numeric(precision=col.precision or 19, scale=col.scale if col.scale is not None else 2)
    if name in ("character", "char", "yes_no", "true_false"):
        return CHAR(col.length or 1)
    if name in ("string", "java.lang.String"):
        return String(col.length or 255)
    if name in SIMPLE_TYPES:
        return SIMPLE_TYPES[name]()
    log.warning("Unknown type %r for column %s, falling back to varchar", name, col.name)
    return String(col.length or 255)


def compile_type(col: ColumnDef, dialect: SQLDialect) -> str:
    return to_sqlalchemy_type(col).compile(dialect=dialect)


def to_metadata(model: SchemaModel) -> Tuple[MetaData, Dict[str, Table], List[ForeignKeyConstraint]]:
    md = MetaData(schema=model.schema)
    tables: Dict[str, Table] = {}
    for t in model.tables.values():
        cols = [
            Column(
                c.name,
                to_sqlalchemy_type(c),
                primary_key=c.name in t.primary_key,
                nullable=c.nullable and c.name not in t.primary_key,
                unique=c.unique or None,
                server_default=text(c.default) if c.default else None,
                comment=c.comment,
            )
            for c in t.columns.values()
        ]
        tables[t.name] = Table(t.name, md, *cols, comment=t.comment)

    fks: List[ForeignKeyConstraint] = []
    for fk in model.foreign_keys:
        table, ref = tables[fk.table], tables[fk.ref_table]
        constraint = ForeignKeyConstraint(
            fk.columns,
            [ref.c[name] for name in fk.ref_columns],
            name=fk.name,
        )
        table.append_constraint(constraint)
        fks.append(constraint)
    return md, tables, fks


def _sql(construct, dialect: SQLDialect) -> str:
    return str(construct.compile(dialect=dialect)).strip()


def create_statements(model: SchemaModel, dialect: SQLDialect) -> List[str]:
    _, tables, fks = to_metadata(model)
    out: List[str] = []
    separate_comments = dialect.supports_comments and not dialect.inline_comments
    for table in tables.values():
        out.append(_sql(CreateTable(table, include_foreign_key_constraints=[]), dialect))
        if not separate_comments:
            continue
        if table.comment:
            out.append(_sql(SetTableComment(table), dialect))
        for col in table.columns:
            if col.comment:
                out.append(_sql(SetColumnComment(col), dialect))
    for fk in fks:
        out.append(_sql(AddConstraint(fk), dialect))
    return out


def drop_statements(model: SchemaModel, dialect: SQLDialect) -> List[str]:
    _, tables, fks = to_metadata(model)
    out: List[str] = []
    dropped: set[str] = set()
    for fk in fks:
        if fk.name in dropped:
            continue
        dropped.add(fk.name)
        out.append(_sql(DropConstraint(fk), dialect))
    for table in reversed(list(tables.values())):
        out.append(_sql(DropTable(table, if_exists=True), dialect))
    return out
