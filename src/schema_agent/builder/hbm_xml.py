"""
Hand-rolled compiler from (merged) Hibernate mapping XML files to a SchemaModel.

Supported subset: class / subclass / joined-subclass, id / composite-id,
discriminator, version, property, many-to-one, component, natural-id, join,
and set / list / bag / map / idbag collections with many-to-many, element or
one-to-many content.
"""
from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional
from xml.etree import ElementTree as ET

from schema_agent.builder.base import SchemaModelBuilder, ScriptAction
from schema_agent.builder.sql import compile_type, create_statements, drop_statements
from schema_agent.concepts import Dialect
from schema_agent.dedupe import constraint_name
from schema_agent.errors import FragmentParseError, ModelInconsistency
from schema_agent.model import (
    CollectionDef,
    ColumnDef,
    EntityDef,
    ForeignKeyDef,
    JoinDef,
    PropertyDef,
    SchemaModel,
    TableDef,
)

log = logging.getLogger(__name__)

COLLECTION_TAGS = {"set", "list", "bag", "map", "idbag", "array"}
PROPERTY_GROUP_TAGS = {"component", "natural-id", "properties", "dynamic-component"}
SUBCLASS_TAGS = {"subclass", "joined-subclass"}


def simple_name(class_name: str) -> str:
    return class_name.rsplit(".", 1)[-1]


def relation_role(*parts: str) -> str:
    """``("observation_has_offering",)`` -> ``observationHasOffering``"""
    words = [w for p in parts for w in re.split(r"[^0-9A-Za-z]+", p) if w]
    if not words:
        return ""
    return words[0][:1].lower() + words[0][1:] + "".join(w[:1].upper() + w[1:] for w in words[1:])


def _bool(value: Optional[str]) -> bool:
    return (value or "").strip().lower() == "true"


def _int(value: Optional[str]) -> Optional[int]:
    return int(value) if value and value.strip().isdigit() else None


def _comment(el: ET.Element) -> Optional[str]:
    c = el.find("comment")
    if c is not None and c.text and c.text.strip():
        return " ".join(c.text.split())
    return None


def _id_columns(entity: EntityDef) -> List[ColumnDef]:
    return entity.identifier.columns if entity.identifier else []


def _type_name(el: ET.Element, default: str = "string") -> str:
    if el.get("type"):
        return el.get("type")
    t = el.find("type")
    if t is not None and t.get("name"):
        return t.get("name")
    return default


@dataclass
class _Pending:
    element: ET.Element
    entity: EntityDef
    source: Path


class HbmXmlBuilder(SchemaModelBuilder):
    def __init__(self, pattern: str = "*.xml"):
        self.pattern = pattern

    # ------------------------------------------------------------------ build

    def build_model(self, merged_dir: Path, dialect: Dialect, schema: Optional[str] = None) -> SchemaModel:
        model = SchemaModel(dialect=dialect, schema=schema)
        pending: List[_Pending] = []

        files = sorted(merged_dir.glob(self.pattern))
        log.info("Building schema model from %d mapping file(s) in %s", len(files), merged_dir)

        # 1) entities, tables and identifiers, so references can be resolved afterwards
        for f in files:
            root = self._parse(f)
            package = root.get("package")
            for el in root:
                if el.tag == "class":
                    self._register(model, el, None, package, f, pending)
                elif el.tag in SUBCLASS_TAGS:
                    parent = el.get("extends")
                    if not parent:
                        raise ModelInconsistency(f"{f}: top-level <{el.tag}> without 'extends'")
                    self._register(model, el, self._require_entity(model, parent, f), package, f, pending)

        # 2) properties, collections, joins and foreign keys
        for p in pending:
            self._populate(model, p)

        log.info("Schema model: %d entities, %d tables, %d foreign keys",
                 len(model.entities), len(model.tables), len(model.foreign_keys))
        return model

    def _parse(self, path: Path) -> ET.Element:
        try:
            return ET.parse(path).getroot()
        except ET.ParseError as e:
            raise FragmentParseError(path, str(e)) from e

    def _register(self, model: SchemaModel, el: ET.Element, parent: Optional[EntityDef],
                  package: Optional[str], source: Path, pending: List[_Pending]) -> None:
        name = el.get("name") or el.get("entity-name")
        if el.tag == "subclass":
            table = parent.table if parent else None
        else:
            table = el.get("table") or (simple_name(name) if name else None)
        if not name or not table:
            raise ModelInconsistency(f"{source}: cannot determine table of <{el.tag} name={name!r}>")
        if package and "." not in name:
            name = f"{package}.{name}"

        entity = EntityDef(name=name, table=table, parent=parent.name if parent else None)
        table_def = model.ensure_table(table, _comment(el))

        id_el = el.find("id")
        cid_el = el.find("composite-id")
        if id_el is not None:
            entity.identifier = PropertyDef(
                name=id_el.get("name", "id"),
                columns=self._columns(id_el, id_el.get("name", "id"), _type_name(id_el, "long"), not_null=True),
            )
        elif cid_el is not None:
            cols: List[ColumnDef] = []
            for kp in cid_el:
                if kp.tag in ("key-property", "key-many-to-one"):
                    cols += self._columns(kp, kp.get("name"), _type_name(kp, "long"), not_null=True)
            entity.identifier = PropertyDef(name=cid_el.get("name", "id"), columns=cols)
        elif parent is not None and el.tag == "joined-subclass":
            key = el.find("key")
            ref = _id_columns(parent)
            cols = self._key_columns(key, ref) if key is not None else []
            entity.identifier = PropertyDef(name="id", columns=cols)
        elif parent is not None:
            entity.identifier = parent.identifier

        if entity.identifier is not None and (parent is None or el.tag == "joined-subclass"):
            for c in entity.identifier.columns:
                table_def.add_column(c)
                if c.name not in table_def.primary_key:
                    table_def.primary_key.append(c.name)

        model.entities.append(entity)
        pending.append(_Pending(el, entity, source))

        for child in el:
            if child.tag in SUBCLASS_TAGS:
                self._register(model, child, entity, package, source, pending)

    def _populate(self, model: SchemaModel, p: _Pending) -> None:
        entity, el = p.entity, p.element
        table = model.tables[entity.table]

        if el.tag == "joined-subclass" and entity.parent:
            parent = self._require_entity(model, entity.parent, p.source)
            self._add_fk(model, relation_role(entity.table), table.name,
                         [c.name for c in _id_columns(entity)],
                         parent.table, [c.name for c in _id_columns(parent)], el.find("key"))

        for child in el:
            if child.tag == "discriminator":
                col = self._columns(child, "class", _type_name(child), not_null=True)
                entity.properties.append(PropertyDef(name="class", columns=self._attach(table, col)))
            elif child.tag == "join":
                entity.joins.append(self._join(model, entity, child, p.source))
            elif child.tag in COLLECTION_TAGS:
                coll = self._collection(model, entity, child, p.source)
                if coll is not None:
                    entity.collections.append(coll)
            else:
                for prop in self._properties(model, table, child, p.source):
                    entity.properties.append(prop)

    # ------------------------------------------------------------ properties

    def _properties(self, model: SchemaModel, table: TableDef, el: ET.Element, source: Path) -> Iterator[PropertyDef]:
        if el.tag in ("property", "version", "timestamp"):
            default_type = "timestamp" if el.tag == "timestamp" else ("integer" if el.tag == "version" else "string")
            cols = self._columns(el, el.get("name"), _type_name(el, default_type))
            yield PropertyDef(name=el.get("name"), columns=self._attach(table, cols))
        elif el.tag == "many-to-one":
            yield self._many_to_one(model, table, el, source)
        elif el.tag in PROPERTY_GROUP_TAGS:
            for child in el:
                yield from self._properties(model, table, child, source)

    def _many_to_one(self, model: SchemaModel, table: TableDef, el: ET.Element, source: Path) -> PropertyDef:
        target = self._require_entity(model, el.get("class") or el.get("entity-name"), source)
        ref_cols = _id_columns(target)
        cols = self._columns(el, el.get("name"), target.name)
        for c, ref in zip(cols, ref_cols):
            c.storage_type = ref.storage_type or ref.type_name
        cols = self._attach(table, cols)
        self._add_fk(model, relation_role(table.name, *[c.name for c in cols]), table.name,
                     [c.name for c in cols], target.table, [c.name for c in ref_cols], el)
        return PropertyDef(name=el.get("name"), columns=cols)

    def _join(self, model: SchemaModel, entity: EntityDef, el: ET.Element, source: Path) -> JoinDef:
        name = el.get("table")
        if not name:
            raise ModelInconsistency(f"{source}: <join> of {entity.name} without table")
        table = model.ensure_table(name, _comment(el))
        ref = _id_columns(entity)
        key = self._attach(table, self._key_columns(el.find("key"), ref))
        for c in key:
            if c.name not in table.primary_key:
                table.primary_key.append(c.name)
        join = JoinDef(table=name, key_columns=key)
        self._add_fk(model, relation_role(name), name, [c.name for c in key],
                     entity.table, [c.name for c in ref], el.find("key"))
        for child in el:
            join.properties.extend(self._properties(model, table, child, source))
        return join

    def _collection(self, model: SchemaModel, owner: EntityDef, el: ET.Element, source: Path) -> Optional[CollectionDef]:
        owner_id = _id_columns(owner)
        key_el = el.find("key")
        one_to_many = el.find("one-to-many")

        if one_to_many is not None:
            # key column lives on the element entity's table
            target = self._require_entity(model, one_to_many.get("class") or one_to_many.get("entity-name"), source)
            target_table = model.tables[target.table]
            key = self._attach(target_table, self._key_columns(key_el, owner_id, not_null=False))
            self._add_fk(model, relation_role(target.table, *[c.name for c in key]), target.table,
                         [c.name for c in key], owner.table, [c.name for c in owner_id], key_el)
            return CollectionDef(name=el.get("name"), table=None, key_columns=key)

        name = el.get("table")
        if not name:
            log.warning("%s: collection %s.%s has no table, skipped", source, owner.name, el.get("name"))
            return None

        table = model.ensure_table(name, _comment(el))
        key = self._attach(table, self._key_columns(key_el, owner_id))
        coll = CollectionDef(name=el.get("name"), table=name, key_columns=key)
        # the key constraint is named after the link table alone
        self._add_fk(model, relation_role(name), name, [c.name for c in key],
                     owner.table, [c.name for c in owner_id], key_el)

        index_el = el.find("list-index")
        if index_el is None:
            index_el = el.find("index")
        index_cols: List[ColumnDef] = []
        if index_el is not None:
            index_cols = self._attach(table, self._columns(index_el, "idx", _type_name(index_el, "integer"), not_null=True))

        m2m = el.find("many-to-many")
        element = el.find("element")
        if m2m is not None:
            target = self._require_entity(model, m2m.get("class") or m2m.get("entity-name"), source)
            ref_cols = _id_columns(target)
            cols = self._columns(m2m, "elt", target.name, not_null=True)
            for c, ref in zip(cols, ref_cols):
                c.storage_type = ref.storage_type or ref.type_name
            coll.element_columns = self._attach(table, cols)
            self._add_fk(model, relation_role(name, *[c.name for c in cols]), name,
                         [c.name for c in cols], target.table, [c.name for c in ref_cols], m2m)
        elif element is not None:
            coll.element_columns = self._attach(
                table, self._columns(element, "elt", _type_name(element), not_null=True))

        pk_tail = index_cols if index_cols else (coll.element_columns if el.tag == "set" else [])
        if not table.primary_key and pk_tail:
            table.primary_key.extend(c.name for c in key + pk_tail)
        return coll

    # --------------------------------------------------------------- columns

    def _columns(self, el: ET.Element, default_name: Optional[str], type_name: str,
                 not_null: bool = False) -> List[ColumnDef]:
        nested = el.findall("column")
        if not nested:
            name = el.get("column") or default_name
            if not name:
                return []
            return [ColumnDef(
                name=name,
                type_name=type_name,
                length=_int(el.get("length")),
                precision=_int(el.get("precision")),
                scale=_int(el.get("scale")),
                nullable=not (not_null or _bool(el.get("not-null"))),
                unique=_bool(el.get("unique")),
                comment=_comment(el),
            )]
        cols = []
        for c in nested:
            cols.append(ColumnDef(
                name=c.get("name"),
                type_name=type_name,
                length=_int(c.get("length") or el.get("length")),
                precision=_int(c.get("precision") or el.get("precision")),
                scale=_int(c.get("scale") or el.get("scale")),
                nullable=not (not_null or _bool(c.get("not-null")) or _bool(el.get("not-null"))),
                unique=_bool(c.get("unique")) or _bool(el.get("unique")),
                default=c.get("default"),
                comment=_comment(c),
                sql_type=c.get("sql-type"),
            ))
        return cols

    def _key_columns(self, key_el: Optional[ET.Element], ref: List[ColumnDef], not_null: bool = True) -> List[ColumnDef]:
        if key_el is None:
            return []
        cols = self._columns(key_el, None, "long", not_null=not_null or _bool(key_el.get("not-null")))
        for c, r in zip(cols, ref):
            c.type_name = r.type_name
            c.storage_type = r.storage_type
        return cols

    def _attach(self, table: TableDef, cols: List[ColumnDef]) -> List[ColumnDef]:
        # the property keeps its own column facts; the table keeps the first definition
        for c in cols:
            table.add_column(c)
        return cols

    # ----------------------------------------------------------- references

    def _require_entity(self, model: SchemaModel, class_name: Optional[str], source: Path) -> EntityDef:
        entity = model.entity(class_name) if class_name else None
        if entity is not None:
            return entity
        raise ModelInconsistency(f"{source}: reference to unknown entity {class_name!r}")

    def _add_fk(self, model: SchemaModel, role: str, table: str, columns: List[str],
                ref_table: str, ref_columns: List[str], el: Optional[ET.Element]) -> None:
        explicit = el.get("foreign-key") if el is not None else None
        if explicit == "none" or not columns or len(columns) != len(ref_columns):
            return
        for fk in model.foreign_keys:
            if (fk.table, fk.columns, fk.ref_table, fk.ref_columns) == (table, columns, ref_table, ref_columns):
                return
        model.foreign_keys.append(ForeignKeyDef(
            name=explicit or constraint_name(role),
            table=table,
            columns=columns,
            ref_table=ref_table,
            ref_columns=ref_columns,
        ))

    # ----------------------------------------------------------------- emit

    def emit_script(self, model: SchemaModel, action: ScriptAction) -> List[str]:
        dialect = (model.dialect or Dialect.POSTGRES).sqlalchemy_dialect()
        if action is ScriptAction.CREATE:
            return create_statements(model, dialect)
        return drop_statements(model, dialect)

    def sql_type(self, column: ColumnDef, dialect: Dialect) -> str:
        return compile_type(column, dialect.sqlalchemy_dialect())
