"""Tests for file utility functions."""

from __future__ import annotations

import hashlib
import json
from pathlib import Path

import pytest

from templatechunker.utils.files import compute_sha256, load_template, write_json


class TestLoadTemplate:
    """Test load_template function."""

    def test_load_template(self, tmp_path: Path) -> None:
        path = tmp_path / "template.json"
        path.write_text(
            json.dumps({"name": "План", "sections": []}, ensure_ascii=False), encoding="utf-8"
        )

        assert load_template(path) == {"name": "План", "sections": []}

    def test_key_order_preserved(self, tmp_path: Path) -> None:
        path = tmp_path / "template.json"
        path.write_text('{"z": 1, "a": 2, "m": 3}', encoding="utf-8")

        assert list(load_template(path)) == ["z", "a", "m"]

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_template(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(json.JSONDecodeError):
            load_template(path)


class TestWriteJson:
    """Test write_json function."""

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        target = tmp_path / "nested" / "dir" / "out.json"

        written = write_json(target, {"a": 1})

        assert written == target
        assert json.loads(target.read_text(encoding="utf-8")) == {"a": 1}

    def test_pretty_prints_with_two_spaces(self, tmp_path: Path) -> None:
        target = tmp_path / "out.json"

        write_json(target, {"a": [1]})

        assert target.read_text(encoding="utf-8") == '{\n  "a": [\n    1\n  ]\n}'

    def test_keeps_non_ascii(self, tmp_path: Path) -> None:
        target = tmp_path / "out.json"

        write_json(target, {"name": "Раздел"})

        assert "Раздел" in target.read_text(encoding="utf-8")


class TestComputeSha256:
    """Test compute_sha256 function."""

    def test_compute_sha256(self, tmp_path: Path) -> None:
        path = tmp_path / "file.json"
        path.write_bytes(b"{}")

        assert compute_sha256(path) == hashlib.sha256(b"{}").hexdigest()

    def test_different_content_different_hash(self, tmp_path: Path) -> None:
        first = tmp_path / "a.json"
        second = tmp_path / "b.json"
        first.write_bytes(b'{"a": 1}')
        second.write_bytes(b'{"a": 2}')

        assert compute_sha256(first) != compute_sha256(second)
