"""End-to-end tests: concept -> merged fragments -> scripts / metadata."""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import write_fragment
from schema_agent.builder import HbmXmlBuilder
import schema_agent.commands.generate as generate
from schema_agent.commands.generate import BATCH_SCHEMAS, Action, GenerationRequest, run_all, run_generation
from schema_agent.concepts import Concept, Dialect
from schema_agent.dedupe import collision_signature
from schema_agent.errors import FragmentMergeError, InvalidProfile
from schema_agent.metadata import extract_table_metadata

CORE_X = """
<hibernate-mapping>
  <class name="TableX" table="table_x">
    <id name="id" column="id" type="long"/>
  </class>
</hibernate-mapping>
"""

DATASET_X = """
<hibernate-mapping>
  <class name="TableX" table="table_x">
    <property name="value" column="value" type="double"/>
  </class>
</hibernate-mapping>
"""

CORE_OBSERVATION = """
<hibernate-mapping>
  <class name="Offering" table="offering">
    <id name="id" column="offering_id" type="long"/>
  </class>
  <class name="Observation" table="observation">
    <id name="id" column="observation_id" type="long"/>
    <set name="offerings" table="observation_has_offering">
      <key column="fk_observation_id"/>
      <many-to-many class="Offering" column="fk_offering_id"/>
    </set>
  </class>
</hibernate-mapping>
"""

DATASET_OBSERVATION = """
<hibernate-mapping>
  <class name="LegacyObservation" table="legacy_observation">
    <id name="id" column="observation_id" type="long"/>
    <set name="offerings" table="observation_has_offering">
      <key column="fk_observation_id"/>
      <many-to-many class="Offering" column="fk_offering_id"/>
    </set>
  </class>
</hibernate-mapping>
"""


@pytest.fixture
def minimal_store(store: Path) -> Path:
    write_fragment(store, "core", "table_x.hbm.xml", CORE_X)
    write_fragment(store, "dataset", "table_x.hbm.xml", DATASET_X)
    return store


def test_minimal_concept_merges_and_extracts_in_order(minimal_store: Path) -> None:
    request = GenerationRequest(concept="minimal", action=Action.METADATA)
    [out] = run_generation(request)

    merged = request.merged_dir / "table_x.hbm.xml"
    assert merged.exists()
    assert [p.name for p in request.merged_dir.iterdir()] == ["table_x.hbm.xml"]

    builder = HbmXmlBuilder()
    model = builder.build_model(request.merged_dir, Dialect.POSTGRES)
    tables = extract_table_metadata(model, Dialect.POSTGRES, builder)
    assert list(tables["table_x"].columns) == ["id", "value"]

    text = out.read_text(encoding="utf-8")
    assert out.name == "minimal_table_metadata.md"
    assert "- [table_x](#table_x)" in text
    assert text.index("| id |") < text.index("| value |")
    assert "| id | - | true | - | BIGINT | long |" in text


def test_script_generation_writes_create_and_drop(minimal_store: Path) -> None:
    request = GenerationRequest(concept=Concept.MINIMAL, dialect="mysql")
    create, drop = run_generation(request)

    assert create.name == "mysql_minimal_create.sql"
    assert drop.name == "mysql_minimal_drop.sql"
    assert "CREATE TABLE table_x" in create.read_text(encoding="utf-8")
    assert "DROP TABLE IF EXISTS table_x" in drop.read_text(encoding="utf-8")


def test_create_script_is_deduplicated(store: Path) -> None:
    write_fragment(store, "core", "Observation.hbm.xml", CORE_OBSERVATION)
    write_fragment(store, "dataset", "Legacy.hbm.xml", DATASET_OBSERVATION)
    create, _ = run_generation(GenerationRequest(concept="minimal"))
    assert create.read_text(encoding="utf-8").count(collision_signature()) == 1


def test_rerun_reuses_merged_fragments_unless_fresh(minimal_store: Path) -> None:
    request = GenerationRequest(concept="minimal", action="metadata")
    run_generation(request)

    write_fragment(minimal_store, "dataset", "table_x.hbm.xml", """
        <hibernate-mapping>
          <class name="TableX" table="table_x">
            <property name="other" column="other" type="string"/>
          </class>
        </hibernate-mapping>
    """)
    [out] = run_generation(request)
    assert "| other |" not in out.read_text(encoding="utf-8")

    fresh = request.model_copy(update={"fresh": True})
    [out] = run_generation(fresh)
    assert "| other |" in out.read_text(encoding="utf-8")


def test_unknown_concept() -> None:
    with pytest.raises(InvalidProfile):
        GenerationRequest(concept="everything")


def test_missing_topic_directory(store: Path) -> None:
    write_fragment(store, "core", "table_x.hbm.xml", CORE_X)
    with pytest.raises(FileNotFoundError):
        run_generation(GenerationRequest(concept="minimal"))


def test_merge_failures_abort_before_building(store: Path) -> None:
    write_fragment(store, "core", "table_x.hbm.xml", "<hibernate-mapping>")
    write_fragment(store, "dataset", "other.hbm.xml", CORE_X)
    request = GenerationRequest(concept="minimal")
    with pytest.raises(FragmentMergeError):
        run_generation(request)
    assert (request.merged_dir / "other.hbm.xml").exists()
    assert not request.create_path().exists()


def test_batch_uses_a_schema_per_dialect(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[GenerationRequest] = []
    monkeypatch.setattr(generate, "run_generation", lambda request, builder=None: seen.append(request) or [])

    run_all()

    assert len(seen) == len(Dialect) * len(Concept)
    assert {(r.dialect, r.db_schema) for r in seen} == set(BATCH_SCHEMAS.items())
    assert BATCH_SCHEMAS[Dialect.SQLSERVER] == "dbo"


def test_batch_explicit_schema_wins(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[GenerationRequest] = []
    monkeypatch.setattr(generate, "run_generation", lambda request, builder=None: seen.append(request) or [])

    run_all(db_schema="custom")

    assert {r.db_schema for r in seen} == {"custom"}
