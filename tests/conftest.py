"""Shared fixtures: a throw-away fragment store and isolated settings."""

from __future__ import annotations

from pathlib import Path
from textwrap import dedent

import pytest

from schema_agent.config import settings


@pytest.fixture(autouse=True)
def _isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "fragment_root", tmp_path / "hbm")
    monkeypatch.setattr(settings, "scratch_dir", tmp_path / "merged")
    monkeypatch.setattr(settings, "output_dir", tmp_path / "out")
    monkeypatch.setattr(settings, "default_schema", None)


@pytest.fixture
def store(tmp_path: Path) -> Path:
    root = tmp_path / "hbm"
    root.mkdir()
    return root


def write_fragment(root: Path, topic: str, name: str, xml: str) -> Path:
    path = root / topic / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dedent(xml).strip() + "\n", encoding="utf-8")
    return path


def write_mapping(directory: Path, name: str, xml: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text(dedent(xml).strip() + "\n", encoding="utf-8")
    return path
