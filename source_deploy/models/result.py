"""Deploy result models"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class RequestStatus(Enum):
    """Status of a deploy request as reported by the org"""
    PENDING = "Pending"
    QUEUED = "Queued"
    IN_PROGRESS = "InProgress"
    SUCCEEDED = "Succeeded"
    SUCCEEDED_PARTIAL = "SucceededPartial"
    FAILED = "Failed"
    CANCELING = "Canceling"
    CANCELED = "Canceled"

    @property
    def is_done(self) -> bool:
        return self in (
            RequestStatus.SUCCEEDED,
            RequestStatus.SUCCEEDED_PARTIAL,
            RequestStatus.FAILED,
            RequestStatus.CANCELED,
        )

    @property
    def is_success(self) -> bool:
        return self in (RequestStatus.SUCCEEDED, RequestStatus.SUCCEEDED_PARTIAL)


class ComponentState(Enum):
    CREATED = "Created"
    CHANGED = "Changed"
    UNCHANGED = "Unchanged"
    DELETED = "Deleted"
    FAILED = "Failed"


@dataclass
class ComponentOutcome:
    """Per-component deploy record"""

    full_name: str
    type: str
    state: ComponentState
    file_path: Optional[str] = None
    problem: Optional[str] = None
    problem_type: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None

    @property
    def success(self) -> bool:
        return self.state != ComponentState.FAILED

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "full_name": self.full_name,
            "type": self.type,
            "state": self.state.value,
            "file_path": self.file_path,
        }
        if self.problem:
            data["problem"] = self.problem
            data["problem_type"] = self.problem_type or "Error"
            data["line"] = self.line
            data["column"] = self.column
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ComponentOutcome':
        return cls(
            full_name=data["full_name"],
            type=data["type"],
            state=ComponentState(data["state"]),
            file_path=data.get("file_path"),
            problem=data.get("problem"),
            problem_type=data.get("problem_type"),
            line=data.get("line"),
            column=data.get("column"),
        )


@dataclass
class TestOutcome:
    """One executed test method"""

    __test__ = False

    name: str
    method_name: str
    time: float = 0.0
    message: Optional[str] = None
    stack_trace: Optional[str] = None

    @property
    def passed(self) -> bool:
        return self.message is None

    def to_dict(self) -> Dict[str, Any]:
        data = {"name": self.name, "method_name": self.method_name, "time": self.time}
        if self.message is not None:
            data["message"] = self.message
            data["stack_trace"] = self.stack_trace
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TestOutcome':
        return cls(
            name=data["name"],
            method_name=data["method_name"],
            time=data.get("time", 0.0),
            message=data.get("message"),
            stack_trace=data.get("stack_trace"),
        )


@dataclass
class CoverageRecord:
    """Line coverage for one class or trigger"""

    name: str
    type: str
    num_locations: int
    num_locations_not_covered: int = 0
    uncovered_lines: List[int] = field(default_factory=list)
    covered_lines: List[int] = field(default_factory=list)
    file_path: Optional[str] = None

    @property
    def covered(self) -> int:
        return self.num_locations - self.num_locations_not_covered

    @property
    def percentage(self) -> float:
        if not self.num_locations:
            return 100.0
        return 100.0 * self.covered / self.num_locations

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "num_locations": self.num_locations,
            "num_locations_not_covered": self.num_locations_not_covered,
            "uncovered_lines": list(self.uncovered_lines),
            "covered_lines": list(self.covered_lines),
            "file_path": self.file_path,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CoverageRecord':
        return cls(
            name=data["name"],
            type=data["type"],
            num_locations=data["num_locations"],
            num_locations_not_covered=data.get("num_locations_not_covered", 0),
            uncovered_lines=list(data.get("uncovered_lines", [])),
            covered_lines=list(data.get("covered_lines", [])),
            file_path=data.get("file_path"),
        )


@dataclass
class TestRunSummary:
    """Test execution summary attached to a deploy"""

    __test__ = False

    successes: List[TestOutcome] = field(default_factory=list)
    failures: List[TestOutcome] = field(default_factory=list)
    code_coverage: List[CoverageRecord] = field(default_factory=list)
    total_time: float = 0.0

    @property
    def num_tests_run(self) -> int:
        return len(self.successes) + len(self.failures)

    @property
    def num_failures(self) -> int:
        return len(self.failures)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "num_tests_run": self.num_tests_run,
            "num_failures": self.num_failures,
            "total_time": self.total_time,
            "successes": [t.to_dict() for t in self.successes],
            "failures": [t.to_dict() for t in self.failures],
            "code_coverage": [c.to_dict() for c in self.code_coverage],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TestRunSummary':
        return cls(
            successes=[TestOutcome.from_dict(t) for t in data.get("successes", [])],
            failures=[TestOutcome.from_dict(t) for t in data.get("failures", [])],
            code_coverage=[CoverageRecord.from_dict(c) for c in data.get("code_coverage", [])],
            total_time=data.get("total_time", 0.0),
        )


@dataclass
class DeployResult:
    """Outcome of a polled deploy request

    Built fresh from every status response; terminal once ``status.is_done``.
    """

    id: str
    status: RequestStatus
    check_only: bool = False
    number_components_total: int = 0
    number_components_deployed: int = 0
    number_component_errors: int = 0
    number_tests_total: int = 0
    number_tests_completed: int = 0
    number_test_errors: int = 0
    created_date: Optional[str] = None
    completed_date: Optional[str] = None
    error_message: Optional[str] = None
    components: List[ComponentOutcome] = field(default_factory=list)
    test_summary: Optional[TestRunSummary] = None

    @property
    def done(self) -> bool:
        return self.status.is_done

    @property
    def success(self) -> bool:
        return self.status.is_success

    @property
    def component_successes(self) -> List[ComponentOutcome]:
        return [c for c in self.components if c.success]

    @property
    def component_failures(self) -> List[ComponentOutcome]:
        return [c for c in self.components if not c.success]

    def progress_key(self) -> tuple:
        """Counts that identify a distinct progress state"""
        return (
            self.status,
            self.number_components_deployed,
            self.number_component_errors,
            self.number_tests_completed,
            self.number_test_errors,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "status": self.status.value,
            "done": self.done,
            "success": self.success,
            "check_only": self.check_only,
            "number_components_total": self.number_components_total,
            "number_components_deployed": self.number_components_deployed,
            "number_component_errors": self.number_component_errors,
            "number_tests_total": self.number_tests_total,
            "number_tests_completed": self.number_tests_completed,
            "number_test_errors": self.number_test_errors,
            "created_date": self.created_date,
            "completed_date": self.completed_date,
            "components": [c.to_dict() for c in self.components],
        }
        if self.error_message:
            data["error_message"] = self.error_message
        if self.test_summary is not None:
            data["test_summary"] = self.test_summary.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DeployResult':
        summary = data.get("test_summary")
        return cls(
            id=data["id"],
            status=RequestStatus(data["status"]),
            check_only=data.get("check_only", False),
            number_components_total=data.get("number_components_total", 0),
            number_components_deployed=data.get("number_components_deployed", 0),
            number_component_errors=data.get("number_component_errors", 0),
            number_tests_total=data.get("number_tests_total", 0),
            number_tests_completed=data.get("number_tests_completed", 0),
            number_test_errors=data.get("number_test_errors", 0),
            created_date=data.get("created_date"),
            completed_date=data.get("completed_date"),
            error_message=data.get("error_message"),
            components=[ComponentOutcome.from_dict(c) for c in data.get("components", [])],
            test_summary=TestRunSummary.from_dict(summary) if summary else None,
        )


@dataclass(frozen=True)
class AsyncDeployHandle:
    """Identifier of a deploy submitted without polling"""

    id: str

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id}
