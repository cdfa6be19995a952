"""
Fragment merger: all fragments sharing a file name across the topics of a concept
are folded into one composite mapping document, later topics overriding earlier ones.
"""
from __future__ import annotations
import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple
from xml.etree import ElementTree as ET

from schema_agent.errors import FragmentMergeError, FragmentParseError
from schema_agent.fragments import group_fragments

log = logging.getLogger(__name__)

# Naming attributes that identify an element among its siblings, in priority order.
# Elements without one (key, element, generator, comment ...) pair up by tag.
IDENTITY_ATTRS = ("name", "entity-name", "table")
TAG_IDENTITY = {"import": "class"}


@dataclass
class MergeReport:
    destination: Path
    written: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


def _identity(el: ET.Element) -> Tuple[str, Optional[str], Optional[str]]:
    if el.tag in TAG_IDENTITY:
        attr = TAG_IDENTITY[el.tag]
        return el.tag, attr, el.get(attr)
    for attr in IDENTITY_ATTRS:
        value = el.get(attr)
        if value is not None:
            return el.tag, attr, value
    return el.tag, None, None


def _find_match(candidates: List[ET.Element], child: ET.Element) -> Optional[ET.Element]:
    key = _identity(child)
    for candidate in candidates:
        if _identity(candidate) == key:
            return candidate
    return None


def merge_element(target: ET.Element, source: ET.Element) -> None:
    """Graft ``source`` onto ``target`` in place. ``source`` wins on conflicting attributes and text."""
    target.attrib.update(source.attrib)
    if source.text and source.text.strip():
        target.text = source.text
    # each existing child pairs with at most one incoming sibling
    candidates = list(target)
    for child in source:
        match = _find_match(candidates, child)
        if match is None:
            target.append(child)
        else:
            candidates.remove(match)
            merge_element(match, child)


def _parse(path: Path) -> ET.Element:
    try:
        return ET.parse(path).getroot()
    except ET.ParseError as e:
        raise FragmentParseError(path, str(e)) from e


def combine_fragments(paths: Sequence[Path]) -> ET.Element:
    composite: Optional[ET.Element] = None
    for p in paths:
        root = _parse(p)
        if composite is None:
            composite = root
            continue
        if root.tag != composite.tag:
            raise FragmentParseError(p, f"root element <{root.tag}> does not match <{composite.tag}>")
        merge_element(composite, root)
    if composite is None:
        raise ValueError("no fragments to combine")
    return composite


def merge_group(name: str, paths: Sequence[Path], destination: Path) -> bool:
    """
    Write the composite of ``paths`` to ``destination/name``.
    Returns False without touching anything when that file already exists.
    """
    target = destination / name
    if target.exists():
        log.debug("Skipping %s, already merged", target)
        return False

    composite = combine_fragments(paths)
    ET.indent(composite)
    ET.ElementTree(composite).write(target, encoding="utf-8", xml_declaration=True)
    log.debug("Merged %d fragment(s) into %s", len(paths), target)
    return True


def merge_topics(topics: Sequence[str], store_root: Path, destination: Path) -> MergeReport:
    """
    Merge every fragment group of ``topics`` into ``destination``.
    A failing group does not stop the others; all failures are raised together at the end.
    """
    destination.mkdir(parents=True, exist_ok=True)
    groups = group_fragments(store_root, topics)
    report = MergeReport(destination=destination)
    failures: List[Exception] = []

    for name, paths in groups.items():
        try:
            if merge_group(name, paths, destination):
                report.written.append(name)
            else:
                report.skipped.append(name)
        except (FragmentParseError, OSError) as e:
            log.error("Failed to merge %s: %s", name, e)
            failures.append(e)

    if failures:
        raise FragmentMergeError(failures)

    log.info(
        "Merged %d fragment group(s) from %s into %s (%d already present)",
        len(report.written), ", ".join(topics), destination, len(report.skipped),
    )
    return report


def clear_scratch(destination: Path) -> None:
    if destination.exists():
        shutil.rmtree(destination)
