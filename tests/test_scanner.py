"""Tests for directory scanning and report generation."""

import json

import pytest

from core.config import Config
from core.report import ReportGenerator
from core.scanner import SliceScanner


@pytest.fixture
def scanner(bundled_catalog):
    return SliceScanner(Config.from_dict({}), bundled_catalog)


@pytest.fixture
def results(scanner, test_cases_dir):
    return scanner.scan(str(test_cases_dir))


class TestSliceScanner:
    def test_scans_every_slice(self, results):
        names = [SliceScanner.display_name(r["file"]) for r in results["slices"]]

        assert results["files_scanned"] == 5
        assert names == sorted(names)

    def test_per_slice_verdicts(self, results):
        by_name = {SliceScanner.display_name(r["file"]): r for r in results["slices"]}

        assert by_name["hardslice.json"]["vulnerable"] is True
        assert by_name["hardslice.json"]["violated_patterns"] == ["SQL injection"]
        assert by_name["safeslice.json"]["vulnerable"] is False
        assert by_name["safeslice.json"]["sanitizers_applied"] == ["mysql_real_escape_string"]
        assert by_name["slice.json"]["vulnerable"] is False
        assert by_name["while_slice.json"]["loop_iterations"] == 2

    def test_findings_and_summary(self, results):
        summary = results["summary"]

        assert summary["total_slices"] == 5
        assert summary["vulnerable_slices"] == 3
        assert summary["safe_slices"] == 2
        assert summary["by_pattern"] == {
            "SQL injection": 1,
            "Cross site scripting": 1,
            "Command injection": 1,
        }
        assert {f["pattern"] for f in results["findings"]} == set(summary["by_pattern"])
        assert all(f["analyzer"] == "TaintAnalyzer" for f in results["findings"])

    def test_broken_slice_is_isolated(self, scanner, tmp_path, test_cases_dir):
        (tmp_path / "broken.json").write_text('{"kind": "program", "children": [', encoding="utf-8")
        (tmp_path / "good.json").write_text((test_cases_dir / "hardslice.json").read_text(encoding="utf-8"),
                                            encoding="utf-8")

        results = scanner.scan(str(tmp_path))

        assert results["summary"]["failed_slices"] == 1
        assert results["summary"]["vulnerable_slices"] == 1
        broken = results["slices"][0]
        assert broken["error"]
        assert broken["vulnerable"] is False

    def test_deeply_nested_slice_is_isolated(self, scanner, tmp_path, test_cases_dir):
        depth = 3000
        expression = (
            '{"kind": "bin", "type": ".", "left": ' * depth
            + '{"kind": "string", "value": "a"}'
            + ', "right": {"kind": "string", "value": "b"}}' * depth
        )
        (tmp_path / "deep.json").write_text(
            '{"kind": "program", "children": [{"kind": "assign", '
            '"left": {"kind": "variable", "name": "q"}, "right": ' + expression + '}]}',
            encoding="utf-8",
        )
        (tmp_path / "good.json").write_text((test_cases_dir / "hardslice.json").read_text(encoding="utf-8"),
                                            encoding="utf-8")

        results = scanner.scan(str(tmp_path))

        assert results["summary"]["failed_slices"] == 1
        assert results["summary"]["vulnerable_slices"] == 1
        deep = results["slices"][0]
        assert "嵌套过深" in deep["error"]

    def test_single_file_target(self, scanner, test_cases_dir):
        results = scanner.scan(str(test_cases_dir / "xss_echo.json"))

        assert results["files_scanned"] == 1
        assert results["slices"][0]["violated_patterns"] == ["Cross site scripting"]

    def test_empty_target(self, scanner, tmp_path):
        results = scanner.scan(str(tmp_path))

        assert results["files_scanned"] == 0
        assert results["summary"]["total_slices"] == 0

    def test_loads_catalog_from_config(self, tmp_path, test_cases_dir):
        patterns = tmp_path / "patterns.txt"
        patterns.write_text("XSS\n$_GET\nhtmlspecialchars\necho\n-\n", encoding="utf-8")
        scanner = SliceScanner(Config.from_dict({"patterns": {"file": str(patterns)}}))

        results = scanner.scan(str(test_cases_dir / "xss_echo.json"))

        assert results["patterns"] == ["XSS"]
        assert results["slices"][0]["violated_patterns"] == ["XSS"]


class TestReportGenerator:
    def test_json_report(self, results, tmp_path):
        path = ReportGenerator(Config.from_dict({})).generate(results, str(tmp_path), "json")

        data = json.loads(open(path, encoding="utf-8").read())
        assert data["summary"]["vulnerable_slices"] == 3

    def test_txt_report(self, results, tmp_path):
        path = ReportGenerator(Config.from_dict({})).generate(results, str(tmp_path), "txt")

        content = open(path, encoding="utf-8").read()
        assert "hardslice.json" in content
        assert "SQL injection" in content

    def test_html_report_escapes_pattern_names(self, results, tmp_path):
        results["patterns"] = ["<script>alert(1)</script>"]

        path = ReportGenerator(Config.from_dict({})).generate(results, str(tmp_path), "html")

        content = open(path, encoding="utf-8").read()
        assert "&lt;script&gt;" in content
        assert "<script>alert" not in content

    def test_all_formats(self, results, tmp_path):
        path = ReportGenerator(Config.from_dict({})).generate(results, str(tmp_path), "all")

        assert path.endswith(".json")
        suffixes = sorted(p.suffix for p in tmp_path.iterdir())
        assert suffixes == [".html", ".json", ".txt"]
