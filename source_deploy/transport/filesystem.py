"""Filesystem transport: a local directory that behaves like an org

Layout under the org root::

    metadata/<project-relative source paths>
    requests/<id>.json        request record
    requests/<id>/payload/    snapshot of the submitted source
"""

import json
import logging
import re
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import aiofiles

from ..api.exceptions import TransportError
from ..constants import (
    DEFAULT_API_VERSION,
    DEFAULT_BATCH_SIZE,
    ORG_METADATA_DIR,
    ORG_REQUESTS_DIR,
)
from ..core.component_resolver import identify
from ..models.component import ComponentSet, DestructiveType, MetadataComponent
from ..models.result import (
    ComponentOutcome,
    ComponentState,
    CoverageRecord,
    DeployResult,
    RequestStatus,
    TestOutcome,
    TestRunSummary,
)
from ..utils.hash_utils import calculate_sha256, checksum_files
from .base import EVENT_API_VERSION, DeployHandle, DeployTransport

logger = logging.getLogger(__name__)

FAILING_ASSERTION = "System.assert(false"
_TEST_METHOD_PATTERN = re.compile(r"void\s+(\w+)\s*\(\s*\)")
_TESTABLE_TYPES = ("ApexClass", "ApexTrigger")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _is_test_class(component: Dict[str, Any]) -> bool:
    return component["type"] == "ApexClass" and component["full_name"].endswith("Test")


class FilesystemDeployHandle(DeployHandle):
    """Handle whose polls advance processing of the request record"""

    def __init__(self, transport: 'FilesystemTransport', deploy_id: str):
        super().__init__(deploy_id, transport.poll_interval)
        self.transport = transport

    async def check_status(self) -> DeployResult:
        record = await self.transport.load_record(self.id)
        return self.transport.to_result(record)

    async def _poll_once(self) -> DeployResult:
        record = await self.transport.load_record(self.id)
        if not RequestStatus(record["status"]).is_done:
            record = self.transport.process_batch(record)
            await self.transport.save_record(record)
        return self.transport.to_result(record)


class FilesystemTransport(DeployTransport):
    """Local org directory transport"""

    def __init__(self, config: Dict[str, Any] = None):
        """
        Initialize filesystem transport

        Args:
            config: Configuration including:
                - path: Org root directory (required)
                - project_root: Directory submitted source paths are relative to
                - username: Name reported in deploy messages
                - poll_interval: Seconds between status polls
                - batch_size: Components processed per poll
        """
        super().__init__(config)
        if not self.config.get("path"):
            raise TransportError("Filesystem transport requires 'path'")
        self.org_root = Path(self.config["path"])
        self.project_root = Path(self.config.get("project_root") or Path.cwd())
        self.batch_size = int(self.config.get("batch_size", DEFAULT_BATCH_SIZE))

    @property
    def username(self) -> str:
        return self.config.get("username") or f"local@{self.org_root.name}"

    @property
    def metadata_dir(self) -> Path:
        return self.org_root / ORG_METADATA_DIR

    @property
    def requests_dir(self) -> Path:
        return self.org_root / ORG_REQUESTS_DIR

    async def _do_initialize(self) -> None:
        self.metadata_dir.mkdir(parents=True, exist_ok=True)
        self.requests_dir.mkdir(parents=True, exist_ok=True)

    # Request records

    def _record_path(self, deploy_id: str) -> Path:
        return self.requests_dir / f"{deploy_id}.json"

    def _payload_dir(self, deploy_id: str) -> Path:
        return self.requests_dir / deploy_id / "payload"

    def _next_id(self) -> str:
        count = len(list(self.requests_dir.glob("*.json"))) if self.requests_dir.is_dir() else 0
        return f"0Af{count + 1:012d}"

    async def load_record(self, deploy_id: str) -> Dict[str, Any]:
        path = self._record_path(deploy_id)
        if not path.is_file():
            raise TransportError(f"No deploy request found with id {deploy_id}")
        async with aiofiles.open(path, 'r') as f:
            content = await f.read()
        try:
            return json.loads(content)
        except ValueError as e:
            raise TransportError(f"Corrupt deploy request record {path}: {e}")

    async def save_record(self, record: Dict[str, Any]) -> None:
        path = self._record_path(record["id"])
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".tmp")
        async with aiofiles.open(tmp_path, 'w') as f:
            await f.write(json.dumps(record, indent=2))
        tmp_path.replace(path)

    # Submission

    async def deploy(self, components: ComponentSet, api_options: Dict[str, Any]) -> FilesystemDeployHandle:
        await self.initialize()
        rest = bool(api_options.get("rest"))
        await self.emit(EVENT_API_VERSION, {
            "manifest_version": components.source_api_version or components.api_version or DEFAULT_API_VERSION,
            "api_version": components.api_version or DEFAULT_API_VERSION,
            "web_service": "REST" if rest else "SOAP",
            "username": self.username,
        })

        deploy_id = self._next_id()
        payload_dir = self._payload_dir(deploy_id)
        for component in components:
            for rel_path in component.files:
                if component.is_deletion:
                    continue
                source = self.project_root / rel_path
                if not source.is_file():
                    raise TransportError(f"Cannot read source file {rel_path}")
                target = payload_dir / rel_path
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(source, target)

        record = self._new_record(deploy_id, [c.to_dict() for c in components], api_options)
        await self.save_record(record)
        logger.info(f"Queued deploy {deploy_id} with {len(components)} components")
        return FilesystemDeployHandle(self, deploy_id)

    async def deploy_recent_validation(self, validated_id: str, rest: bool = False) -> FilesystemDeployHandle:
        await self.initialize()
        try:
            validated = await self.load_record(validated_id)
        except TransportError:
            raise TransportError(f"No validated deploy found with id {validated_id}")

        if not validated.get("validated"):
            raise TransportError(
                f"Deploy {validated_id} is not a successful validation and cannot be deployed"
            )
        if validated.get("replayed_by"):
            raise TransportError(
                f"Validation {validated_id} was already deployed as {validated['replayed_by']}"
            )

        deploy_id = self._next_id()
        source_payload = self._payload_dir(validated_id)
        if source_payload.is_dir():
            shutil.copytree(source_payload, self._payload_dir(deploy_id))

        options = dict(validated["options"], check_only=False, rest=rest)
        options.pop("test_level", None)
        options.pop("run_tests", None)
        record = self._new_record(deploy_id, validated["components"], options)
        record["validated_from"] = validated_id
        await self.save_record(record)

        validated["replayed_by"] = deploy_id
        await self.save_record(validated)
        logger.info(f"Queued quick deploy {deploy_id} of validation {validated_id}")
        return FilesystemDeployHandle(self, deploy_id)

    def attach(self, deploy_id: str) -> FilesystemDeployHandle:
        return FilesystemDeployHandle(self, deploy_id)

    def _new_record(self, deploy_id: str, components: List[Dict[str, Any]],
                    options: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "id": deploy_id,
            "status": RequestStatus.QUEUED.value,
            "check_only": bool(options.get("check_only")),
            "options": options,
            "created_date": _now(),
            "completed_date": None,
            "components": components,
            "processed": 0,
            "outcomes": [],
            "test_summary": None,
            "validated": False,
        }

    # Processing

    def process_batch(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """Process the next batch of components; finish the request when all are done"""
        record = dict(record)
        components = record["components"]
        start = record["processed"]
        batch = components[start:start + self.batch_size]

        record["status"] = RequestStatus.IN_PROGRESS.value
        record["outcomes"] = record["outcomes"] + [self._process_component(record["id"], c) for c in batch]
        record["processed"] = start + len(batch)

        if record["processed"] >= len(components):
            self._complete(record)
        return record

    def _process_component(self, deploy_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        component = MetadataComponent.from_dict(data)

        if component.is_deletion:
            org_files = self.org_files(component)
            if not org_files:
                return ComponentOutcome(
                    component.full_name, component.type, ComponentState.FAILED,
                    file_path=component.content_file,
                    problem=f"No {component.type} named {component.full_name} found",
                ).to_dict()
            return ComponentOutcome(
                component.full_name, component.type, ComponentState.DELETED,
                file_path=org_files[0],
            ).to_dict()

        payload_dir = self._payload_dir(deploy_id)
        content_file = component.content_file
        payload_file = payload_dir / content_file
        if not payload_file.is_file() or payload_file.stat().st_size == 0:
            return ComponentOutcome(
                component.full_name, component.type, ComponentState.FAILED,
                file_path=content_file, problem="Empty metadata file", line=1, column=1,
            ).to_dict()

        org_file = self.metadata_dir / content_file
        if not org_file.is_file():
            state = ComponentState.CREATED
        elif calculate_sha256(org_file) != calculate_sha256(payload_file):
            state = ComponentState.CHANGED
        else:
            state = ComponentState.UNCHANGED
        return ComponentOutcome(component.full_name, component.type, state, file_path=content_file).to_dict()

    def _complete(self, record: Dict[str, Any]) -> None:
        options = record["options"]
        outcomes = [ComponentOutcome.from_dict(o) for o in record["outcomes"]]
        failures = [o for o in outcomes if not o.success]

        summary = self._run_tests(record)
        if summary is not None:
            record["test_summary"] = summary.to_dict()

        if summary is not None and summary.num_failures:
            status = RequestStatus.FAILED
        elif failures and options.get("rollback_on_error", True):
            status = RequestStatus.FAILED
        elif failures and len(failures) == len(outcomes):
            status = RequestStatus.FAILED
        elif failures:
            status = RequestStatus.SUCCEEDED_PARTIAL
        else:
            status = RequestStatus.SUCCEEDED

        if status.is_success:
            if record["check_only"]:
                record["validated"] = status == RequestStatus.SUCCEEDED
            else:
                self._commit(record, outcomes)

        record["status"] = status.value
        record["completed_date"] = _now()
        logger.info(f"Deploy {record['id']} finished with status {status.value}")

    def _commit(self, record: Dict[str, Any], outcomes: List[ComponentOutcome]) -> None:
        """Apply successful outcomes to the org: pre deletions, source, post deletions"""
        components = [MetadataComponent.from_dict(c) for c in record["components"]]
        succeeded = {(o.type, o.full_name) for o in outcomes if o.success}
        payload_dir = self._payload_dir(record["id"])

        def delete(destructive: DestructiveType) -> None:
            for component in components:
                if component.destructive == destructive and component.key in succeeded:
                    for rel_path in self.org_files(component):
                        (self.metadata_dir / rel_path).unlink(missing_ok=True)

        delete(DestructiveType.PRE)
        for component in components:
            if component.is_deletion or component.key not in succeeded:
                continue
            for rel_path in component.files:
                target = self.metadata_dir / rel_path
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(payload_dir / rel_path, target)
        delete(DestructiveType.POST)

    # Tests

    def _run_tests(self, record: Dict[str, Any]) -> Optional[TestRunSummary]:
        options = record["options"]
        level = options.get("test_level")
        if not level or level == "NoTestRun":
            return None

        sources = self._apex_sources(record)
        if level == "RunSpecifiedTests":
            requested = options.get("run_tests", [])
        else:
            requested = sorted(name for name in sources if name.endswith("Test"))

        summary = TestRunSummary()
        executed_sources = []
        for test in requested:
            class_name, _, method = test.partition(".")
            source = sources.get(class_name)
            if source is None:
                summary.failures.append(TestOutcome(
                    class_name, method or "<class>",
                    message=f"No test class named {class_name} was found",
                ))
                continue

            executed_sources.append(source)
            methods = [method] if method else _TEST_METHOD_PATTERN.findall(source)
            failing = FAILING_ASSERTION in source
            for method_name in methods:
                if failing:
                    summary.failures.append(TestOutcome(
                        class_name, method_name,
                        message="System.AssertException: Assertion Failed",
                        stack_trace=f"Class.{class_name}.{method_name}: line 1, column 1",
                    ))
                else:
                    summary.successes.append(TestOutcome(class_name, method_name))

        summary.code_coverage = self._coverage(record, executed_sources)
        return summary

    def _apex_sources(self, record: Dict[str, Any]) -> Dict[str, str]:
        """Class name to source, org content overlaid with the deployed payload"""
        sources = {}
        for path in self._iter_files(self.metadata_dir, "*.cls"):
            sources[path.stem] = path.read_text(errors="replace")

        payload_dir = self._payload_dir(record["id"])
        for component in record["components"]:
            if component["type"] != "ApexClass" or component.get("destructive"):
                continue
            for rel_path in component["files"]:
                if rel_path.endswith(".cls") and (payload_dir / rel_path).is_file():
                    sources[component["full_name"]] = (payload_dir / rel_path).read_text(errors="replace")
        return sources

    def _coverage(self, record: Dict[str, Any], test_sources: List[str]) -> List[CoverageRecord]:
        payload_dir = self._payload_dir(record["id"])
        coverage = []
        for component in record["components"]:
            if component["type"] not in _TESTABLE_TYPES or component.get("destructive") or _is_test_class(component):
                continue
            content = MetadataComponent.from_dict(component).content_file
            if not content or not (payload_dir / content).is_file():
                continue

            lines = [
                number for number, line in
                enumerate((payload_dir / content).read_text(errors="replace").splitlines(), start=1)
                if line.strip()
            ]
            covered = any(component["full_name"] in source for source in test_sources)
            coverage.append(CoverageRecord(
                name=component["full_name"],
                type=component["type"],
                num_locations=len(lines),
                num_locations_not_covered=0 if covered else len(lines),
                uncovered_lines=[] if covered else lines,
                covered_lines=lines if covered else [],
                file_path=content,
            ))
        return coverage

    # Status

    def to_result(self, record: Dict[str, Any]) -> DeployResult:
        outcomes = [ComponentOutcome.from_dict(o) for o in record["outcomes"]]
        summary = TestRunSummary.from_dict(record["test_summary"]) if record.get("test_summary") else None
        status = RequestStatus(record["status"])

        result = DeployResult(
            id=record["id"],
            status=status,
            check_only=record["check_only"],
            number_components_total=len(record["components"]),
            number_components_deployed=sum(1 for o in outcomes if o.success),
            number_component_errors=sum(1 for o in outcomes if not o.success),
            created_date=record["created_date"],
            completed_date=record.get("completed_date"),
            components=outcomes,
            test_summary=summary,
        )
        if summary is not None:
            result.number_tests_total = summary.num_tests_run
            result.number_tests_completed = len(summary.successes)
            result.number_test_errors = summary.num_failures
        if status == RequestStatus.FAILED:
            result.error_message = self._failure_message(outcomes, summary, record["options"])
        return result

    @staticmethod
    def _failure_message(outcomes: List[ComponentOutcome], summary: Optional[TestRunSummary],
                         options: Dict[str, Any]) -> str:
        failures = [o for o in outcomes if not o.success]
        if summary is not None and summary.num_failures:
            return f"{summary.num_failures} test failure(s)"
        if failures and options.get("rollback_on_error", True):
            return f"{len(failures)} component failure(s); all changes were rolled back"
        return f"{len(failures)} component failure(s)"

    # Org content

    def org_files(self, component: MetadataComponent) -> List[str]:
        """Org-relative files backing a component, found by path or by identity"""
        files = [f for f in component.files if (self.metadata_dir / f).is_file()]
        if files:
            return files
        return [
            path.relative_to(self.metadata_dir).as_posix()
            for path in self._iter_files(self.metadata_dir, "*")
            if identify(path.relative_to(self.metadata_dir).as_posix()) == component.key
        ]

    async def remote_checksums(self) -> Dict[str, str]:
        await self.initialize()
        return checksum_files(self.metadata_dir, self._iter_files(self.metadata_dir, "*"))

    @staticmethod
    def _iter_files(root: Path, pattern: str) -> Iterable[Path]:
        if not root.is_dir():
            return []
        return sorted(p for p in root.rglob(pattern) if p.is_file())
