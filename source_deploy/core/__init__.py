"""Core functionality for source-deploy"""

from .path_resolver import DeployIdStash, PathResolver, find_project_root, resolve_results_dir
from .project import Project, load_config
from .manifest import PackageManifest, read_manifest
from .component_resolver import BuildOptions, ComponentSetBuilder, MetadataType, identify
from .hooks import DeployHooks, ScriptHooks
from .input_mode import build_deploy_request, build_report_request, resolve_input_mode
from .orchestrator import (
    DeployContext,
    DeployOrchestrator,
    DeployState,
    ReportOrchestrator,
    ReportOutcome,
    resolve_exit_code,
)

__all__ = [
    "DeployIdStash",
    "PathResolver",
    "find_project_root",
    "resolve_results_dir",
    "Project",
    "load_config",
    "PackageManifest",
    "read_manifest",
    "BuildOptions",
    "ComponentSetBuilder",
    "MetadataType",
    "identify",
    "DeployHooks",
    "ScriptHooks",
    "build_deploy_request",
    "build_report_request",
    "resolve_input_mode",
    "DeployContext",
    "DeployOrchestrator",
    "DeployState",
    "ReportOrchestrator",
    "ReportOutcome",
    "resolve_exit_code",
]
