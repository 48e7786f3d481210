"""Pytest configuration and fixtures for source-deploy tests."""

import io
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from rich.console import Console

from source_deploy.core.project import Project
from source_deploy.models.component import ComponentSet
from source_deploy.models.result import ComponentOutcome, ComponentState, DeployResult, RequestStatus
from source_deploy.transport.base import DeployHandle, DeployTransport
from source_deploy.transport.factory import TransportFactory

CLASSES = "force-app/main/default/classes"
TRIGGERS = "force-app/main/default/triggers"

CLASS_META = """<?xml version="1.0" encoding="UTF-8"?>
<ApexClass xmlns="http://soap.sforce.com/2006/04/metadata">
    <apiVersion>57.0</apiVersion>
    <status>Active</status>
</ApexClass>
"""

FOO_SOURCE = """public with sharing class Foo {
    public static Integer bar() {
        return 1;
    }
}
"""

FOO_TEST_SOURCE = """@isTest
private class FooTest {
    @isTest
    static void testBar() {
        System.assertEquals(1, Foo.bar());
    }
}
"""

TRIGGER_SOURCE = """trigger AccountTrigger on Account (before insert) {
    System.debug('insert');
}
"""

PROJECT_CONFIG = """project:
  name: demo
  package_directories:
    - force-app
  api_version: "57.0"
org:
  username: test@example.com
  transport: filesystem
  path: ../org
  poll_interval: 0
  batch_size: 2
"""

MANIFEST = """<?xml version="1.0" encoding="UTF-8"?>
<Package xmlns="http://soap.sforce.com/2006/04/metadata">
    <types>
        <members>Foo</members>
        <members>FooTest</members>
        <name>ApexClass</name>
    </types>
    <version>56.0</version>
</Package>
"""


def write(root: Path, rel_path: str, content: str) -> Path:
    path = root / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


def add_class(root: Path, name: str, source: str) -> None:
    write(root, f"{CLASSES}/{name}.cls", source)
    write(root, f"{CLASSES}/{name}.cls-meta.xml", CLASS_META)


@pytest.fixture
def project_dir(tmp_path, monkeypatch) -> Path:
    """A project with two classes and a trigger; the org lives next to it"""
    root = tmp_path / "project"
    write(root, ".source-deploy.yaml", PROJECT_CONFIG)
    add_class(root, "Foo", FOO_SOURCE)
    add_class(root, "FooTest", FOO_TEST_SOURCE)
    write(root, f"{TRIGGERS}/AccountTrigger.trigger", TRIGGER_SOURCE)
    write(root, f"{TRIGGERS}/AccountTrigger.trigger-meta.xml", CLASS_META.replace("ApexClass", "ApexTrigger"))
    write(root, "manifest/package.xml", MANIFEST)

    monkeypatch.chdir(root)
    monkeypatch.setenv("SOURCE_DEPLOY_USE_PROGRESS_BAR", "false")
    monkeypatch.delenv("SOURCE_DEPLOY_REST_DEPLOY", raising=False)
    monkeypatch.delenv("SOURCE_DEPLOY_CONFIG", raising=False)
    return root


@pytest.fixture
def org_dir(project_dir) -> Path:
    return project_dir.parent / "org"


@pytest.fixture
def project(project_dir) -> Project:
    return Project.load(project_dir)


@pytest.fixture
def transport(project):
    return TransportFactory.create_from_config(project.config.org, project.root)


@pytest.fixture
def console() -> Console:
    return Console(file=io.StringIO(), width=200)


def console_text(console: Console) -> str:
    return console.file.getvalue()


def make_result(deploy_id: str = "0Af000000000001",
                status: RequestStatus = RequestStatus.SUCCEEDED,
                components: Optional[List[ComponentOutcome]] = None,
                total: int = 1) -> DeployResult:
    components = components or []
    return DeployResult(
        id=deploy_id,
        status=status,
        number_components_total=total,
        number_components_deployed=sum(1 for c in components if c.success),
        number_component_errors=sum(1 for c in components if not c.success),
        components=components,
    )


class FakeHandle(DeployHandle):
    """Handle replaying scripted statuses, one per poll"""

    def __init__(self, deploy_id: str, statuses: List[DeployResult]):
        super().__init__(deploy_id, poll_interval=0.001)
        self.statuses = list(statuses)
        self.polls = 0
        self.status_checks = 0
        self.current = self.statuses[0]

    async def _poll_once(self) -> DeployResult:
        self.polls += 1
        if self.statuses:
            self.current = self.statuses.pop(0)
        return self.current

    async def check_status(self) -> DeployResult:
        self.status_checks += 1
        return self.current


class FakeTransport(DeployTransport):
    """Transport that records calls and hands out scripted handles"""

    def __init__(self, statuses: Optional[List[DeployResult]] = None,
                 remote: Optional[Dict[str, str]] = None):
        super().__init__({"username": "fake@example.com"})
        self.statuses = statuses
        self.remote = remote
        self.deploy_calls: List[Any] = []
        self.replay_calls: List[Any] = []
        self.handles: List[FakeHandle] = []

    def _handle(self, deploy_id: str) -> FakeHandle:
        statuses = self.statuses or [make_result(deploy_id)]
        handle = FakeHandle(deploy_id, statuses)
        self.handles.append(handle)
        return handle

    async def deploy(self, components: ComponentSet, api_options: Dict[str, Any]) -> FakeHandle:
        self.deploy_calls.append((components, api_options))
        await self.emit("api_version", {
            "manifest_version": "57.0",
            "api_version": "57.0",
            "web_service": "REST" if api_options.get("rest") else "SOAP",
            "username": self.username,
        })
        return self._handle("0Af000000000001")

    async def deploy_recent_validation(self, validated_id: str, rest: bool = False) -> FakeHandle:
        self.replay_calls.append((validated_id, rest))
        return self._handle("0Af000000000002")

    def attach(self, deploy_id: str) -> FakeHandle:
        return self._handle(deploy_id)

    async def remote_checksums(self) -> Dict[str, str]:
        if self.remote is None:
            return await super().remote_checksums()
        return dict(self.remote)


class FakeBuilder:
    """Component resolver returning a fixed set"""

    def __init__(self, component_set: ComponentSet):
        self.component_set = component_set
        self.calls = []

    def build(self, options):
        self.calls.append(options)
        return self.component_set


def outcome(full_name: str, state: ComponentState = ComponentState.CHANGED,
            type: str = "ApexClass", file_path: Optional[str] = None) -> ComponentOutcome:
    return ComponentOutcome(full_name, type, state, file_path=file_path or f"{CLASSES}/{full_name}.cls")
