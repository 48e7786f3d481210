"""End-to-end tests for the command line interface"""

import json

import pytest
from click.testing import CliRunner

from conftest import CLASSES, PROJECT_CONFIG, TRIGGERS, add_class, write
from source_deploy.__version__ import __version__
from source_deploy.cli.main import cli


PACKAGE = """<?xml version="1.0" encoding="UTF-8"?>
<Package xmlns="http://soap.sforce.com/2006/04/metadata">
    <types>
        <members>{member}</members>
        <name>{type}</name>
    </types>
    <version>57.0</version>
</Package>
"""


@pytest.fixture
def runner():
    return CliRunner()


def invoke(runner, *args):
    return runner.invoke(cli, list(args), catch_exceptions=False)


def invoke_json(runner, *args):
    result = invoke(runner, *args, "--json")
    return result, json.loads(result.stdout)


class TestDeployCommand:

    def test_async_deploy_prints_id(self, runner, project_dir):
        result, data = invoke_json(runner, "deploy", "-m", "ApexClass", "--wait", "0")

        assert result.exit_code == 0
        assert data == {"id": "0Af000000000001"}

    def test_synchronous_deploy(self, runner, project_dir, org_dir):
        result = invoke(runner, "deploy", "-p", "force-app", "--wait", "1")

        assert result.exit_code == 0
        assert "Deploy 0Af000000000001 succeeded." in result.output
        assert (org_dir / "metadata" / CLASSES / "Foo.cls").is_file()

    def test_partial_success_exit_code(self, runner, project_dir):
        add_class(project_dir, "Empty", "")
        result, data = invoke_json(runner, "deploy", "-m", "ApexClass", "--ignore-errors", "-w", "1")

        assert result.exit_code == 68
        assert data["status"] == "SucceededPartial"

    def test_failure_exit_code(self, runner, project_dir):
        add_class(project_dir, "Empty", "")
        result = invoke(runner, "deploy", "-m", "ApexClass", "-w", "1")

        assert result.exit_code == 1
        assert "Empty metadata file" in result.output

    def test_validate_then_quick_deploy(self, runner, project_dir, org_dir):
        result, validation = invoke_json(
            runner, "deploy", "-x", "manifest/package.xml", "--check-only", "-l", "RunLocalTests", "-w", "1"
        )
        assert result.exit_code == 0
        assert validation["check_only"] is True
        assert not (org_dir / "metadata" / CLASSES / "Foo.cls").exists()

        result, replay = invoke_json(runner, "deploy", "-q", validation["id"], "-w", "1")
        assert result.exit_code == 0
        assert replay["id"] == "0Af000000000002"
        assert replay["status"] == "Succeeded"
        assert (org_dir / "metadata" / CLASSES / "Foo.cls").is_file()

    def test_conflict_json(self, runner, project_dir, org_dir):
        write(org_dir, f"metadata/{CLASSES}/Foo.cls", "public class Foo { /* org */ }\n")
        result, data = invoke_json(runner, "deploy", "-m", "ApexClass", "--track-source", "-w", "1")

        assert result.exit_code == 1
        assert data["name"] == "ConflictError"
        assert data["exit_code"] == 1
        assert data["data"] == [{
            "state": "Conflict",
            "full_name": "Foo",
            "type": "ApexClass",
            "file_path": f"{CLASSES}/Foo.cls",
        }]
        assert not (org_dir / "requests").exists() or not list((org_dir / "requests").glob("*.json"))

    def test_conflict_table(self, runner, project_dir, org_dir):
        write(org_dir, f"metadata/{CLASSES}/Foo.cls", "public class Foo { /* org */ }\n")
        result = invoke(runner, "deploy", "-m", "ApexClass", "--track-source", "-w", "1")

        assert result.exit_code == 1
        assert "Conflicts" in result.output
        assert f"{CLASSES}/Foo.cls" in result.output

    def test_tracked_redeploy_has_no_conflicts(self, runner, project_dir):
        assert invoke(runner, "deploy", "-p", "force-app", "-t", "-w", "1").exit_code == 0
        assert invoke(runner, "deploy", "-p", "force-app", "-t", "-w", "1").exit_code == 0

    def test_tracked_destructive_deploy(self, runner, project_dir, org_dir):
        assert invoke(runner, "deploy", "-p", "force-app", "-t", "-w", "1").exit_code == 0
        (project_dir / CLASSES / "Foo.cls").unlink()
        write(project_dir, "manifest/trigger.xml", PACKAGE.format(type="ApexTrigger", member="AccountTrigger"))
        write(project_dir, "manifest/destructive.xml", PACKAGE.format(type="ApexClass", member="Foo"))

        result = invoke(runner, "deploy", "-x", "manifest/trigger.xml",
                        "--post-destructive-changes", "manifest/destructive.xml", "-t", "-w", "1")

        assert result.exit_code == 0
        assert "Local deletions were detected" not in result.output
        assert not (org_dir / "metadata" / CLASSES / "Foo.cls").exists()
        tracked = json.loads((project_dir / ".source-deploy" / "tracking.json").read_text())["files"]
        assert f"{CLASSES}/Foo.cls" not in tracked
        assert f"{TRIGGERS}/AccountTrigger.trigger" in tracked

    def test_json_output_is_not_mixed_with_log_records(self, runner, project_dir):
        write(project_dir, ".source-deploy.yaml",
              PROJECT_CONFIG.replace("    - force-app\n", "    - force-app\n    - missing-dir\n"))

        result, data = invoke_json(runner, "deploy", "-m", "ApexClass", "--wait", "0")

        assert data == {"id": "0Af000000000001"}
        assert "Package directory does not exist" in result.stderr

    @pytest.mark.parametrize("args, message", [
        (["-m", "ApexClass", "--purge-on-delete"], "--purge-on-delete"),
        (["-m", "ApexClass", "-x", "manifest/package.xml"], "Only one"),
        ([], "Exactly one"),
        (["-q", "12345"], "invalid"),
    ])
    def test_invalid_flags(self, runner, project_dir, args, message):
        result = invoke(runner, "deploy", *args)

        assert result.exit_code == 1
        assert "Error:" in result.output
        assert message in result.output

    def test_outside_a_project(self, runner, tmp_path, monkeypatch):
        empty = tmp_path / "empty"
        empty.mkdir()
        monkeypatch.chdir(empty)
        monkeypatch.delenv("SOURCE_DEPLOY_CONFIG", raising=False)

        result, data = invoke_json(runner, "deploy", "-m", "ApexClass")
        assert result.exit_code == 1
        assert data["name"] == "ProjectNotFoundError"


class TestReportCommand:

    def test_report_from_stash(self, runner, project_dir):
        invoke_json(runner, "deploy", "-m", "ApexClass", "--wait", "0")
        result, data = invoke_json(runner, "report")

        assert result.exit_code == 0
        assert data["id"] == "0Af000000000001"
        assert data["status"] == "Succeeded"

    def test_report_is_repeatable(self, runner, project_dir):
        invoke_json(runner, "deploy", "-m", "ApexClass", "--wait", "0")
        _, first = invoke_json(runner, "report", "-i", "0Af000000000001")
        _, second = invoke_json(runner, "report", "-i", "0Af000000000001")
        assert first == second

    def test_failed_deploy_report_exits_zero(self, runner, project_dir):
        add_class(project_dir, "Empty", "")
        invoke_json(runner, "deploy", "-m", "ApexClass", "--wait", "0")
        result, data = invoke_json(runner, "report")

        assert result.exit_code == 0
        assert data["status"] == "Failed"

    def test_report_writes_junit(self, runner, project_dir, tmp_path):
        invoke_json(runner, "deploy", "-m", "ApexClass", "-l", "RunLocalTests", "--wait", "0")
        result = invoke(runner, "report", "--junit", "--results-dir", str(tmp_path / "results"))

        assert result.exit_code == 0
        assert (tmp_path / "results" / "0Af000000000001" / "junit" / "junit.xml").is_file()

    def test_no_stash(self, runner, project_dir):
        result, data = invoke_json(runner, "report")
        assert result.exit_code == 1
        assert "No job ID" in data["message"]

    def test_unknown_job_id(self, runner, project_dir):
        result = invoke(runner, "report", "-i", "0Af000000000099")
        assert result.exit_code == 1
        assert "No deploy request found" in result.output

    def test_wait_minimum(self, runner, project_dir):
        result = invoke(runner, "report", "-i", "0Af000000000001", "-w", "0")
        assert result.exit_code == 1
        assert "at least 1 minute" in result.output


def test_version(runner):
    result = invoke(runner, "--version")
    assert result.exit_code == 0
    assert __version__ in result.output
