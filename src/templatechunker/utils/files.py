"""Utility helpers for working with template files."""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any, Dict


def load_template(path: Path) -> Dict[str, Any]:
    """Read a template JSON document from ``path``."""
    with Path(path).open("r", encoding="utf-8") as handle:
        return json.load(handle)


def write_json(path: Path, payload: Any) -> Path:
    """Write ``payload`` as 2-space indented UTF-8 JSON, creating parent dirs."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    return target


def compute_sha256(path: Path) -> str:
    """Compute SHA256 hash for a file."""
    sha = hashlib.sha256()
    with Path(path).open("rb") as handle:
        for chunk in iter(lambda: handle.read(1 << 20), b""):
            sha.update(chunk)
    return sha.hexdigest()
