"""Deploy and report request models"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union


class InputMode(Enum):
    """The four mutually exclusive ways to say what gets deployed"""
    MANIFEST = "manifest"
    METADATA = "metadata"
    SOURCE_PATH = "sourcepath"
    VALIDATED_REPLAY = "validateddeployrequestid"


class DeployMode(Enum):
    SYNCHRONOUS = "synchronous"
    ASYNCHRONOUS = "asynchronous"
    VALIDATED_REPLAY = "validated-replay"


class TestLevel(Enum):
    __test__ = False

    NO_TEST_RUN = "NoTestRun"
    RUN_SPECIFIED_TESTS = "RunSpecifiedTests"
    RUN_LOCAL_TESTS = "RunLocalTests"
    RUN_ALL_TESTS_IN_ORG = "RunAllTestsInOrg"


@dataclass(frozen=True)
class ManifestInput:
    path: str
    pre_destructive_changes: Optional[str] = None
    post_destructive_changes: Optional[str] = None
    mode = InputMode.MANIFEST


@dataclass(frozen=True)
class MetadataInput:
    entries: Tuple[str, ...]
    mode = InputMode.METADATA


@dataclass(frozen=True)
class SourcePathInput:
    paths: Tuple[str, ...]
    mode = InputMode.SOURCE_PATH


@dataclass(frozen=True)
class ValidatedReplayInput:
    request_id: str
    mode = InputMode.VALIDATED_REPLAY


DeployInput = Union[ManifestInput, MetadataInput, SourcePathInput, ValidatedReplayInput]


@dataclass(frozen=True)
class ReportOptions:
    """Result reporting flags shared by deploy and report"""

    results_dir: Optional[str] = None
    coverage_formatters: Tuple[str, ...] = ()
    junit: bool = False
    verbose: bool = False

    @property
    def wants_reports(self) -> bool:
        formatters = [f for f in self.coverage_formatters if f != "none"]
        return bool(formatters) or self.junit


@dataclass(frozen=True)
class DeployRequest:
    """One deploy attempt, immutable once built from the resolved flags"""

    input: DeployInput
    wait_minutes: float
    test_level: Optional[TestLevel] = None
    run_tests: Tuple[str, ...] = ()
    ignore_errors: bool = False
    ignore_warnings: bool = False
    check_only: bool = False
    rest: bool = False
    purge_on_delete: bool = False
    track_source: bool = False
    force_overwrite: bool = False
    api_version: Optional[str] = None
    report: ReportOptions = field(default_factory=ReportOptions)

    @property
    def input_mode(self) -> InputMode:
        return self.input.mode

    @property
    def is_async(self) -> bool:
        return self.wait_minutes == 0

    @property
    def mode(self) -> DeployMode:
        if self.input_mode == InputMode.VALIDATED_REPLAY:
            return DeployMode.VALIDATED_REPLAY
        return DeployMode.ASYNCHRONOUS if self.is_async else DeployMode.SYNCHRONOUS

    @property
    def wait_seconds(self) -> float:
        return self.wait_minutes * 60

    @property
    def tests_requested(self) -> bool:
        return self.test_level is not None and self.test_level != TestLevel.NO_TEST_RUN

    def api_options(self) -> Dict[str, Any]:
        """Options sent with the deploy submission

        Test options are only included when set; an explicit NoTestRun is
        rejected by production orgs.
        """
        options = {
            "purge_on_delete": self.purge_on_delete,
            "ignore_warnings": self.ignore_warnings,
            "rollback_on_error": not self.ignore_errors,
            "check_only": self.check_only,
            "rest": self.rest,
        }
        if self.test_level is not None:
            options["test_level"] = self.test_level.value
        if self.run_tests:
            options["run_tests"] = list(self.run_tests)
        return options


@dataclass(frozen=True)
class ReportRequest:
    """Re-entry into polling for an already submitted deploy"""

    job_id: Optional[str]
    wait_minutes: float
    report: ReportOptions = field(default_factory=ReportOptions)

    @property
    def wait_seconds(self) -> float:
        return self.wait_minutes * 60
