"""Tests for fragment grouping and the structural XML merge."""

from __future__ import annotations

from pathlib import Path
from xml.etree import ElementTree as ET

import pytest

from conftest import write_fragment
from schema_agent.builder import HbmXmlBuilder
from schema_agent.concepts import Dialect
from schema_agent.errors import FragmentMergeError, FragmentParseError
from schema_agent.fragments import group_fragments, list_fragments, list_topics
from schema_agent.merger import clear_scratch, merge_element, merge_topics

CORE_X = """
<hibernate-mapping>
  <class name="TableX" table="table_x">
    <id name="id" column="id" type="long"/>
    <property name="value" column="value" type="string" length="10"/>
  </class>
</hibernate-mapping>
"""

DATASET_X = """
<hibernate-mapping>
  <class name="TableX" table="table_x">
    <property name="value" column="value" type="string" length="20"/>
    <property name="label" column="label" type="string"/>
  </class>
</hibernate-mapping>
"""


def _property(path: Path, name: str) -> ET.Element:
    root = ET.parse(path).getroot()
    return root.find(f"./class/property[@name='{name}']")


def test_group_fragments_keeps_topic_order(store: Path) -> None:
    a = write_fragment(store, "core", "X.hbm.xml", CORE_X)
    b = write_fragment(store, "dataset", "X.hbm.xml", DATASET_X)
    c = write_fragment(store, "dataset", "sub/Y.hbm.xml", "<hibernate-mapping/>")
    groups = group_fragments(store, ["core", "dataset"])
    assert list(groups) == ["X.hbm.xml", "Y.hbm.xml"]
    assert groups["X.hbm.xml"] == [a, b]
    assert groups["Y.hbm.xml"] == [c]


def test_list_fragments_files_before_subdirectories(store: Path) -> None:
    write_fragment(store, "core", "b/nested.xml", "<a/>")
    write_fragment(store, "core", "z.xml", "<a/>")
    write_fragment(store, "core", "a.xml", "<a/>")
    names = [p.relative_to(store / "core").as_posix() for p in list_fragments(store, "core")]
    assert names == ["a.xml", "z.xml", "b/nested.xml"]


def test_missing_topic_is_an_io_error(store: Path) -> None:
    with pytest.raises(FileNotFoundError):
        list_fragments(store, "nope")


def test_list_topics(store: Path, tmp_path: Path) -> None:
    write_fragment(store, "dataset", "X.hbm.xml", CORE_X)
    write_fragment(store, "core", "X.hbm.xml", CORE_X)
    assert list_topics(store) == ["core", "dataset"]
    assert list_topics(tmp_path / "absent") == []


def test_merge_unions_children_across_topics(store: Path, tmp_path: Path) -> None:
    write_fragment(store, "core", "X.hbm.xml", CORE_X)
    write_fragment(store, "dataset", "X.hbm.xml", DATASET_X)
    dest = tmp_path / "merged"
    report = merge_topics(["core", "dataset"], store, dest)
    assert report.written == ["X.hbm.xml"]

    root = ET.parse(dest / "X.hbm.xml").getroot()
    classes = root.findall("class")
    assert len(classes) == 1
    assert [p.get("name") for p in classes[0].findall("property")] == ["value", "label"]
    assert classes[0].find("id").get("column") == "id"


def test_later_topic_wins_on_conflicting_scalars(store: Path, tmp_path: Path) -> None:
    write_fragment(store, "core", "X.hbm.xml", CORE_X)
    write_fragment(store, "dataset", "X.hbm.xml", DATASET_X)

    merge_topics(["core", "dataset"], store, tmp_path / "ab")
    merge_topics(["dataset", "core"], store, tmp_path / "ba")

    assert _property(tmp_path / "ab" / "X.hbm.xml", "value").get("length") == "20"
    assert _property(tmp_path / "ba" / "X.hbm.xml", "value").get("length") == "10"


OWNER_CORE = """
<hibernate-mapping>
  <class name="Owner" table="owner">
    <id name="id" column="owner_id" type="long"/>
    <set name="tags" table="owner_tag">
      <key column="owner_ref"/>
      <element column="tag" type="string"/>
    </set>
  </class>
</hibernate-mapping>
"""

OWNER_DATASET = """
<hibernate-mapping>
  <class name="Owner" table="owner">
    <set name="tags" table="owner_tag">
      <key column="fk_owner_id"/>
    </set>
  </class>
</hibernate-mapping>
"""


def test_later_topic_overrides_collection_key(store: Path, tmp_path: Path) -> None:
    write_fragment(store, "core", "Owner.hbm.xml", OWNER_CORE)
    write_fragment(store, "dataset", "Owner.hbm.xml", OWNER_DATASET)
    dest = tmp_path / "merged"
    merge_topics(["core", "dataset"], store, dest)

    tags = ET.parse(dest / "Owner.hbm.xml").getroot().find("./class/set[@name='tags']")
    assert [k.get("column") for k in tags.findall("key")] == ["fk_owner_id"]
    assert [e.get("column") for e in tags.findall("element")] == ["tag"]

    model = HbmXmlBuilder().build_model(dest, Dialect.POSTGRES)
    assert list(model.tables["owner_tag"].columns) == ["fk_owner_id", "tag"]


def test_second_run_writes_nothing(store: Path, tmp_path: Path) -> None:
    write_fragment(store, "core", "X.hbm.xml", CORE_X)
    dest = tmp_path / "merged"
    merge_topics(["core"], store, dest)
    before = (dest / "X.hbm.xml").read_bytes()

    write_fragment(store, "core", "X.hbm.xml", DATASET_X)
    report = merge_topics(["core"], store, dest)

    assert report.written == []
    assert report.skipped == ["X.hbm.xml"]
    assert (dest / "X.hbm.xml").read_bytes() == before


def test_existing_destination_file_is_not_clobbered(store: Path, tmp_path: Path) -> None:
    write_fragment(store, "core", "X.hbm.xml", CORE_X)
    dest = tmp_path / "merged"
    dest.mkdir()
    (dest / "X.hbm.xml").write_text("sentinel", encoding="utf-8")
    (dest / "unrelated.txt").write_text("keep me", encoding="utf-8")

    merge_topics(["core"], store, dest)

    assert (dest / "X.hbm.xml").read_text(encoding="utf-8") == "sentinel"
    assert (dest / "unrelated.txt").read_text(encoding="utf-8") == "keep me"


def test_broken_group_does_not_stop_the_others(store: Path, tmp_path: Path) -> None:
    write_fragment(store, "core", "A.hbm.xml", "<hibernate-mapping><class")
    write_fragment(store, "core", "B.hbm.xml", CORE_X)
    write_fragment(store, "core", "C.hbm.xml", "<other/>")
    write_fragment(store, "dataset", "C.hbm.xml", "<hibernate-mapping/>")
    dest = tmp_path / "merged"

    with pytest.raises(FragmentMergeError) as exc:
        merge_topics(["core", "dataset"], store, dest)

    failures = exc.value.failures
    assert len(failures) == 2
    assert all(isinstance(f, FragmentParseError) for f in failures)
    assert {f.path.name for f in failures} == {"A.hbm.xml", "C.hbm.xml"}
    assert (dest / "B.hbm.xml").exists()
    assert not (dest / "A.hbm.xml").exists()


def test_merge_element_overrides_unnamed_singletons() -> None:
    target = ET.fromstring('<class name="X" lazy="true"><comment>old</comment><key column="a"/></class>')
    source = ET.fromstring('<class name="X" lazy="false"><comment>new</comment><key column="b"/></class>')
    merge_element(target, source)
    assert target.get("lazy") == "false"
    assert target.find("comment").text == "new"
    assert [k.get("column") for k in target.findall("key")] == ["b"]


def test_merge_element_appends_new_named_children() -> None:
    target = ET.fromstring('<class name="X"><property name="a"/></class>')
    merge_element(target, ET.fromstring('<class name="X"><property name="b"/></class>'))
    assert [p.get("name") for p in target.findall("property")] == ["a", "b"]


def test_siblings_of_one_fragment_stay_distinct() -> None:
    target = ET.fromstring("<hibernate-mapping><database-object/></hibernate-mapping>")
    source = ET.fromstring(
        "<hibernate-mapping>"
        "<import class='x.A' rename='A1'/><import class='x.B' rename='B1'/>"
        "<database-object><create>one</create></database-object>"
        "<database-object><create>two</create></database-object>"
        "</hibernate-mapping>"
    )
    merge_element(target, source)
    assert [(i.get("class"), i.get("rename")) for i in target.findall("import")] == [("x.A", "A1"), ("x.B", "B1")]
    assert [d.findtext("create") for d in target.findall("database-object")] == ["one", "two"]


def test_blank_text_does_not_override() -> None:
    target = ET.fromstring("<comment>kept</comment>")
    merge_element(target, ET.fromstring("<comment>   </comment>"))
    assert target.text == "kept"


def test_clear_scratch(tmp_path: Path) -> None:
    dest = tmp_path / "merged"
    dest.mkdir()
    (dest / "X.hbm.xml").write_text("<a/>", encoding="utf-8")
    clear_scratch(dest)
    assert not dest.exists()
    clear_scratch(dest)
