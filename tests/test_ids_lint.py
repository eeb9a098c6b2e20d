"""Tests for scripts/ids_lint.py."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from ids_repertoire.ids_source import read_ids_lines
from scripts.ids_lint import lint_payload, main


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "ids.txt"
    path.write_text(text, encoding="utf-8")
    return path


class TestLintPayload:
    def test_counts(self) -> None:
        result = read_ids_lines(["U+674E\t李\t⿰木子\t⿰木", "U+6797\t林\t⿰木木"])
        payload = lint_payload(result)
        assert payload["total_lines"] == 2
        assert payload["characters"] == 2
        assert payload["total_descriptions"] == 3
        assert payload["parsed_descriptions"] == 2
        assert len(payload["issues"]) == 1
        assert "normalized" not in payload

    def test_normalize_flags_respelled_descriptions(self) -> None:
        result = read_ids_lines(["U+674E\t李\t⿰木{子变}"])
        rows = lint_payload(result, normalize=True)["normalized"]
        assert rows == [{
            "line": 1,
            "char": "李",
            "description": "⿰木{子变}",
            "canonical": "⿰木{子}",
            "changed": True,
        }]


class TestMain:
    def test_json_output(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        path = _write(tmp_path, "U+674E\t李\t⿰木子\n")
        assert main(["--ids", str(path), "--json"]) == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["parsed_descriptions"] == 1
        assert payload["issues"] == []

    def test_text_output_lists_issues(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        path = _write(tmp_path, "U+674E\t李\t⿰木子\nU+674F\t李\t⿰木子\n")
        assert main(["--ids", str(path)]) == 0
        out = capsys.readouterr().out
        assert f"{path}:2: [consistency]" in out

    def test_fail_on_issues(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "U+674E\t李\t⿰木\n")
        assert main(["--ids", str(path), "--fail-on-issues"]) == 1

    def test_missing_file(self, tmp_path: Path) -> None:
        assert main(["--ids", str(tmp_path / "absent.txt")]) == 2
