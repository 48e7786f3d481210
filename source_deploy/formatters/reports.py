"""Coverage and JUnit report writers"""

import json
import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, List

import aiofiles

from ..models.request import ReportOptions
from ..models.result import CoverageRecord, DeployResult, TestRunSummary

logger = logging.getLogger(__name__)

COVERAGE_DIR = "coverage"
JUNIT_DIR = "junit"
JUNIT_FILE = "junit.xml"


def _source_path(record: CoverageRecord) -> str:
    return record.file_path or record.name


def _line_hits(record: CoverageRecord) -> List[tuple]:
    hits = [(line, 1) for line in record.covered_lines] + [(line, 0) for line in record.uncovered_lines]
    return sorted(hits)


def _totals(coverage: List[CoverageRecord]) -> Dict[str, float]:
    total = sum(r.num_locations for r in coverage)
    covered = sum(r.covered for r in coverage)
    return {
        "total": total,
        "covered": covered,
        "skipped": 0,
        "pct": round(100.0 * covered / total, 2) if total else 100.0,
    }


def _to_xml(root: ET.Element) -> str:
    ET.indent(root)
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(root, encoding="unicode") + "\n"


def render_json(coverage: List[CoverageRecord]) -> str:
    data = {}
    for record in coverage:
        hits = _line_hits(record)
        data[_source_path(record)] = {
            "path": _source_path(record),
            "name": record.name,
            "type": record.type,
            "statementMap": {
                str(i): {"start": {"line": line, "column": 0}, "end": {"line": line, "column": 0}}
                for i, (line, _) in enumerate(hits)
            },
            "s": {str(i): count for i, (_, count) in enumerate(hits)},
        }
    return json.dumps(data, indent=2)


def render_json_summary(coverage: List[CoverageRecord]) -> str:
    data = {"total": {"lines": _totals(coverage)}}
    for record in coverage:
        data[_source_path(record)] = {"lines": _totals([record])}
    return json.dumps(data, indent=2)


def render_lcovonly(coverage: List[CoverageRecord]) -> str:
    lines = []
    for record in coverage:
        lines.append("TN:")
        lines.append(f"SF:{_source_path(record)}")
        for line, count in _line_hits(record):
            lines.append(f"DA:{line},{count}")
        lines.append(f"LF:{record.num_locations}")
        lines.append(f"LH:{record.covered}")
        lines.append("end_of_record")
    return "\n".join(lines) + "\n"


def render_text_summary(coverage: List[CoverageRecord]) -> str:
    totals = _totals(coverage)
    return (
        "\n=============================== Coverage summary ===============================\n"
        f"Lines        : {totals['pct']}% ( {totals['covered']}/{totals['total']} )\n"
        "================================================================================\n"
    )


def render_clover(coverage: List[CoverageRecord]) -> str:
    totals = _totals(coverage)
    root = ET.Element("coverage", {"clover": "3.2.0"})
    project = ET.SubElement(root, "project")
    ET.SubElement(project, "metrics", {
        "statements": str(totals["total"]),
        "coveredstatements": str(totals["covered"]),
        "files": str(len(coverage)),
    })
    for record in coverage:
        file_element = ET.SubElement(project, "file", {"name": record.name, "path": _source_path(record)})
        ET.SubElement(file_element, "metrics", {
            "statements": str(record.num_locations),
            "coveredstatements": str(record.covered),
        })
        for line, count in _line_hits(record):
            ET.SubElement(file_element, "line", {"num": str(line), "count": str(count), "type": "stmt"})
    return _to_xml(root)


def render_cobertura(coverage: List[CoverageRecord]) -> str:
    totals = _totals(coverage)
    rate = f"{totals['pct'] / 100:.4f}"
    root = ET.Element("coverage", {
        "lines-valid": str(totals["total"]),
        "lines-covered": str(totals["covered"]),
        "line-rate": rate,
        "branches-valid": "0",
        "branches-covered": "0",
        "branch-rate": "1",
        "version": "0.1",
    })
    ET.SubElement(ET.SubElement(root, "sources"), "source").text = "."
    package = ET.SubElement(ET.SubElement(root, "packages"), "package", {"name": "main", "line-rate": rate})
    classes = ET.SubElement(package, "classes")
    for record in coverage:
        cls = ET.SubElement(classes, "class", {
            "name": record.name,
            "filename": _source_path(record),
            "line-rate": f"{record.percentage / 100:.4f}",
        })
        lines = ET.SubElement(cls, "lines")
        for line, count in _line_hits(record):
            ET.SubElement(lines, "line", {"number": str(line), "hits": str(count)})
    return _to_xml(root)


COVERAGE_RENDERERS: Dict[str, tuple] = {
    "clover": ("clover.xml", render_clover),
    "cobertura": ("cobertura-coverage.xml", render_cobertura),
    "json": ("coverage.json", render_json),
    "json-summary": ("coverage-summary.json", render_json_summary),
    "lcovonly": ("lcov.info", render_lcovonly),
    "text-summary": ("text-summary.txt", render_text_summary),
}


def render_junit(result: DeployResult, summary: TestRunSummary) -> str:
    suite = ET.Element("testsuite", {
        "name": "force.apex",
        "timestamp": result.completed_date or "",
        "tests": str(summary.num_tests_run),
        "failures": str(summary.num_failures),
        "errors": "0",
        "skipped": "0",
        "time": f"{summary.total_time:.2f}",
    })
    for test in summary.successes + summary.failures:
        case = ET.SubElement(suite, "testcase", {
            "name": test.method_name,
            "classname": test.name,
            "time": f"{test.time:.2f}",
        })
        if not test.passed:
            failure = ET.SubElement(case, "failure", {"message": test.message})
            failure.text = test.stack_trace or ""
    root = ET.Element("testsuites")
    root.append(suite)
    return _to_xml(root)


async def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    async with aiofiles.open(path, 'w') as f:
        await f.write(content)
    logger.debug(f"Wrote {path}")
    return path


async def write_reports(result: DeployResult, options: ReportOptions, results_dir: Path) -> List[Path]:
    """Write the requested coverage formats and JUnit file for a finished deploy

    Returns:
        Paths of the files written
    """
    summary = result.test_summary
    if summary is None:
        logger.info("No test results available; no reports written")
        return []

    written = []
    for name in options.coverage_formatters:
        if name == "none":
            continue
        filename, render = COVERAGE_RENDERERS[name]
        written.append(await _write(results_dir / COVERAGE_DIR / filename, render(summary.code_coverage)))

    if options.junit:
        written.append(await _write(results_dir / JUNIT_DIR / JUNIT_FILE, render_junit(result, summary)))

    return written
