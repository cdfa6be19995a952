"""Concepts (named schema variants) and the SQL dialects scripts can be generated for."""
from __future__ import annotations
from enum import Enum

from sqlalchemy.dialects.mssql.base import MSDialect
from sqlalchemy.dialects.mysql.base import MySQLDialect
from sqlalchemy.dialects.oracle.base import OracleDialect
from sqlalchemy.dialects.postgresql.base import PGDialect
from sqlalchemy.engine.interfaces import Dialect as SQLDialect

from schema_agent.errors import InvalidProfile


class Concept(str, Enum):
    MINIMAL = "minimal"
    DEFAULT = "default"
    FULL_WITHOUT_FEATURE = "full-without-feature"
    FULL = "full"
    SPECIALIZED_VARIANT = "specialized-variant"
    EXTENDED_REPORTING = "extended-reporting"

    def __str__(self) -> str:
        return self.value


_FULL_WITHOUT_FEATURE = (
    "core",
    "dataset",
    "datatypes",
    "expandedDataset",
    "hierarchies",
    "hierarchiesPhenomenon",
    "metadata",
    "parameter",
    "procedureHistory",
    "referencedDataset",
    "relations",
    "transactional",
    "translations",
)

# Order matters: later topics override fragments of earlier ones.
CONCEPT_TOPICS: dict[Concept, tuple[str, ...]] = {
    Concept.MINIMAL: ("core", "dataset"),
    Concept.DEFAULT: ("core", "dataset", "datasetType", "expandedDataset", "datatypes"),
    Concept.FULL_WITHOUT_FEATURE: _FULL_WITHOUT_FEATURE,
    Concept.FULL: _FULL_WITHOUT_FEATURE + ("feature",),
    Concept.SPECIALIZED_VARIANT: ("core", "dataset", "referencedDataset", "translations"),
    Concept.EXTENDED_REPORTING: ("ereporting",),
}


def parse_concept(value: str | Concept) -> Concept:
    if isinstance(value, Concept):
        return value
    key = str(value).strip().lower().replace("_", "-")
    for c in Concept:
        if c.value == key:
            return c
    raise InvalidProfile(value)


def resolve_topics(concept: str | Concept) -> tuple[str, ...]:
    """Ordered topic names whose fragments make up ``concept``."""
    return CONCEPT_TOPICS[parse_concept(concept)]


class Dialect(str, Enum):
    POSTGRES = "postgres"
    ORACLE = "oracle"
    MYSQL = "mysql"
    SQLSERVER = "sqlserver"

    def __str__(self) -> str:
        return self.value

    def sqlalchemy_dialect(self) -> SQLDialect:
        if self is Dialect.POSTGRES:
            return PGDialect()
        if self is Dialect.ORACLE:
            return OracleDialect()
        if self is Dialect.MYSQL:
            return MySQLDialect()
        return MSDialect()

    @property
    def label(self) -> str:
        return type(self.sqlalchemy_dialect()).__name__


def parse_dialect(value: str | Dialect) -> Dialect:
    if isinstance(value, Dialect):
        return value
    key = str(value).strip().lower().replace("_", "-")
    for d in Dialect:
        if d.value == key:
            return d
    raise ValueError(f"Unknown dialect: {value!r} (expected one of {[d.value for d in Dialect]})")
