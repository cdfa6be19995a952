from __future__ import annotations
from pathlib import Path
from typing import Dict, List, Sequence


def _walk(directory: Path, out: List[Path]) -> None:
    entries = sorted(directory.iterdir(), key=lambda p: p.name)
    for p in entries:
        if p.is_file():
            out.append(p)
    for p in entries:
        if p.is_dir():
            _walk(p, out)


def list_fragments(store_root: Path, topic: str) -> List[Path]:
    """
    Every file below ``store_root/topic``.
    Files of a directory come before the files of its sub-directories, names sorted.
    """
    topic_dir = store_root / topic
    if not topic_dir.is_dir():
        raise FileNotFoundError(f"Topic directory not found: {topic_dir}")
    files: List[Path] = []
    _walk(topic_dir, files)
    return files


def list_topics(store_root: Path) -> List[str]:
    if not store_root.is_dir():
        return []
    return sorted(p.name for p in store_root.iterdir() if p.is_dir())


def group_fragments(store_root: Path, topics: Sequence[str]) -> Dict[str, List[Path]]:
    # base file name -> fragments in topic order, then traversal order
    groups: Dict[str, List[Path]] = {}
    for topic in topics:
        for f in list_fragments(store_root, topic):
            groups.setdefault(f.name, []).append(f)
    return groups
