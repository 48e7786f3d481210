"""Data models for source-deploy"""

from .component import ComponentSet, DestructiveType, MetadataComponent
from .config import CONFIG_SCHEMA, OrgConfig, ProjectConfig
from .request import (
    DeployInput,
    DeployMode,
    DeployRequest,
    InputMode,
    ManifestInput,
    MetadataInput,
    ReportOptions,
    ReportRequest,
    SourcePathInput,
    TestLevel,
    ValidatedReplayInput,
)
from .result import (
    AsyncDeployHandle,
    ComponentOutcome,
    ComponentState,
    CoverageRecord,
    DeployResult,
    RequestStatus,
    TestOutcome,
    TestRunSummary,
)

__all__ = [
    # Component models
    "ComponentSet",
    "DestructiveType",
    "MetadataComponent",

    # Config models
    "CONFIG_SCHEMA",
    "OrgConfig",
    "ProjectConfig",

    # Request models
    "DeployInput",
    "DeployMode",
    "DeployRequest",
    "InputMode",
    "ManifestInput",
    "MetadataInput",
    "ReportOptions",
    "ReportRequest",
    "SourcePathInput",
    "TestLevel",
    "ValidatedReplayInput",

    # Result models
    "AsyncDeployHandle",
    "ComponentOutcome",
    "ComponentState",
    "CoverageRecord",
    "DeployResult",
    "RequestStatus",
    "TestOutcome",
    "TestRunSummary",
]
