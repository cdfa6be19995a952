from __future__ import annotations
from pathlib import Path
from typing import Iterable


def write_atomic(content: str, out_path: Path) -> Path:
    """Write through a sibling temp file so ``out_path`` is either absent or complete."""
    out_path.parent.mkdir(parents=True, exist_ok=True)
    tmp = out_path.with_name(out_path.name + ".tmp")
    try:
        tmp.write_text(content, encoding="utf-8")
        tmp.replace(out_path)
    finally:
        if tmp.exists():
            tmp.unlink()
    return out_path


def to_script(statements: Iterable[str], delimiter: str = ";") -> str:
    parts = [f"{s.rstrip().rstrip(delimiter)}{delimiter}" for s in statements if s.strip()]
    return "\n\n".join(parts) + "\n" if parts else ""


def write_script(statements: Iterable[str], out_path: Path, delimiter: str = ";") -> Path:
    return write_atomic(to_script(statements, delimiter), out_path)
