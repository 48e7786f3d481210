"""Deploy lifecycle orchestration

The deploy command is a state machine over an immutable :class:`DeployContext`.
Each transition receives the current context and returns the next one::

    Init -> PreChecking -> ComponentResolving -> ConflictChecking -> Submitting
         -> (AsyncDone | Polling -> PostProcessing) -> Formatted

The report command re-enters at polling for an already submitted request.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from rich.console import Console

from ..api.exceptions import ConfigurationError, PollTimeout
from ..constants import (
    MSG_API_VERSION,
    MSG_ASYNC_COVERAGE_JUNIT,
    MSG_DEPLOY_WONT_DELETE,
    MSG_POLL_TIMEOUT,
    ExitCode,
)
from ..formatters.progress import create_progress_formatter
from ..formatters.reports import write_reports
from ..formatters.result import (
    DeployAsyncResultFormatter,
    DeployReportResultFormatter,
    DeployResultFormatter,
)
from ..models.component import ComponentSet
from ..models.request import (
    DeployRequest,
    ManifestInput,
    MetadataInput,
    ReportOptions,
    ReportRequest,
    SourcePathInput,
    ValidatedReplayInput,
)
from ..models.result import AsyncDeployHandle, DeployResult, RequestStatus
from ..tracking.functions import (
    filter_conflicts_by_component_set,
    local_deletes_not_in_set,
    tracking_setup,
    update_tracking,
)
from ..tracking.store import LocalTrackingStore
from ..transport.base import EVENT_API_VERSION, DeployHandle, DeployTransport
from .component_resolver import BuildOptions, ComponentSetBuilder
from .hooks import DeployHooks
from .path_resolver import DeployIdStash, resolve_results_dir
from .project import Project

logger = logging.getLogger(__name__)


class DeployState(Enum):
    INIT = "Init"
    PRE_CHECKING = "PreChecking"
    COMPONENT_RESOLVING = "ComponentResolving"
    CONFLICT_CHECKING = "ConflictChecking"
    SUBMITTING = "Submitting"
    ASYNC_DONE = "AsyncDone"
    POLLING = "Polling"
    POST_PROCESSING = "PostProcessing"
    FORMATTED = "Formatted"


@dataclass(frozen=True)
class DeployContext:
    """Everything known about one deploy run at a given state"""

    request: DeployRequest
    state: DeployState = DeployState.INIT
    tracking: Optional[LocalTrackingStore] = None
    component_set: Optional[ComponentSet] = None
    handle: Optional[DeployHandle] = None
    async_handle: Optional[AsyncDeployHandle] = None
    result: Optional[DeployResult] = None
    warnings: Tuple[str, ...] = ()
    report_files: Tuple[Path, ...] = ()
    output: Optional[Dict[str, Any]] = None

    def advance(self, state: DeployState, **changes) -> 'DeployContext':
        return replace(self, state=state, **changes)

    @property
    def deploy_id(self) -> Optional[str]:
        if self.handle is not None:
            return self.handle.id
        return None


def resolve_exit_code(result: Optional[DeployResult]) -> int:
    """Process exit code for the outcome of a deploy

    Results that are not terminal (async submit, poll timeout) exit 0.
    """
    if result is None or not result.done:
        return ExitCode.SUCCESS
    if result.status == RequestStatus.SUCCEEDED:
        return ExitCode.SUCCESS
    if result.status == RequestStatus.SUCCEEDED_PARTIAL:
        return ExitCode.PARTIAL_SUCCESS
    return ExitCode.FAILURE


def build_options_for(request: DeployRequest, project: Optional[Project] = None) -> BuildOptions:
    """Translate the request's input mode into component resolution options"""
    config = project.config if project is not None else None
    options = BuildOptions(
        api_version=request.api_version or (config.api_version if config else None),
        source_api_version=config.source_api_version if config else None,
    )
    deploy_input = request.input
    if isinstance(deploy_input, ManifestInput):
        return replace(
            options,
            manifest=deploy_input.path,
            pre_destructive_changes=deploy_input.pre_destructive_changes,
            post_destructive_changes=deploy_input.post_destructive_changes,
        )
    if isinstance(deploy_input, MetadataInput):
        return replace(options, metadata=deploy_input.entries)
    if isinstance(deploy_input, SourcePathInput):
        return replace(options, source_paths=deploy_input.paths)
    raise ConfigurationError(f"{deploy_input.mode.value} does not resolve components")


class _ResultOutput:
    """Report writing and display shared by deploy and report"""

    def __init__(self, project: Optional[Project], console: Optional[Console], json_output: bool):
        self.project = project
        self.console = console or Console()
        self.json_output = json_output

    def warn(self, message: str) -> None:
        logger.debug(f"Warning: {message}")
        if not self.json_output:
            self.console.print(f"[yellow]Warning:[/yellow] {message}")

    @property
    def stash(self) -> Optional[DeployIdStash]:
        if self.project is None:
            return None
        return DeployIdStash(self.project.path_resolver.stash_path)

    async def write_reports(self, result: DeployResult, options: ReportOptions) -> Tuple[Path, ...]:
        if not result.done:
            return ()
        results_dir = resolve_results_dir(options.wants_reports, options.results_dir, result.id)
        if results_dir is None:
            return ()
        return tuple(await write_reports(result, options, results_dir))

    def attach_progress(self, handle: DeployHandle, verbose: bool, use_progress_bar: Optional[bool]):
        if self.json_output:
            return None
        formatter = create_progress_formatter(self.console, handle, verbose, use_progress_bar)
        formatter.progress()
        return formatter


class DeployOrchestrator(_ResultOutput):
    """Runs the deploy state machine against a transport"""

    def __init__(self,
                 transport: DeployTransport,
                 builder: Optional[ComponentSetBuilder] = None,
                 project: Optional[Project] = None,
                 hooks: Optional[DeployHooks] = None,
                 console: Optional[Console] = None,
                 json_output: bool = False,
                 use_progress_bar: Optional[bool] = None):
        super().__init__(project, console, json_output)
        self.transport = transport
        self.builder = builder
        self.hooks = hooks or DeployHooks()
        self.use_progress_bar = use_progress_bar

        self._transitions: Dict[DeployState, Callable[[DeployContext], Awaitable[DeployContext]]] = {
            DeployState.INIT: self._init,
            DeployState.PRE_CHECKING: self._pre_check,
            DeployState.COMPONENT_RESOLVING: self._resolve_components,
            DeployState.CONFLICT_CHECKING: self._check_conflicts,
            DeployState.SUBMITTING: self._submit,
            DeployState.ASYNC_DONE: self._async_done,
            DeployState.POLLING: self._poll,
            DeployState.POST_PROCESSING: self._post_process,
        }

    async def run(self, request: DeployRequest) -> DeployContext:
        """Drive one deploy from Init to Formatted

        Raises:
            TrackingInitError: Tracking was requested and could not be set up
            ResolutionError: The inputs resolve to no deployable components
            ConflictError: Tracked conflicts exist and overwrite was not forced
            TransportError: The transport failed
        """
        context = DeployContext(request)
        while context.state != DeployState.FORMATTED:
            logger.debug(f"Deploy state: {context.state.value}")
            context = await self._transitions[context.state](context)
        logger.debug(f"Deploy state: {context.state.value}")
        return context

    def _warned(self, warnings: Tuple[str, ...], message: str) -> Tuple[str, ...]:
        self.warn(message)
        return warnings + (message,)

    async def _init(self, context: DeployContext) -> DeployContext:
        tracking = None
        if context.request.track_source:
            if self.project is None:
                raise ConfigurationError("--track-source requires a project")
            tracking = await tracking_setup(
                self.project.path_resolver.tracking_path,
                self.project.root,
                self.project.package_dirs(),
                self.transport,
            )
        return context.advance(DeployState.PRE_CHECKING, tracking=tracking)

    async def _pre_check(self, context: DeployContext) -> DeployContext:
        warnings = context.warnings
        if self.project is not None:
            for message in self.project.api_version_warnings(context.request.api_version):
                warnings = self._warned(warnings, message)

        if isinstance(context.request.input, ValidatedReplayInput):
            return context.advance(DeployState.SUBMITTING, warnings=warnings)
        return context.advance(DeployState.COMPONENT_RESOLVING, warnings=warnings)

    async def _resolve_components(self, context: DeployContext) -> DeployContext:
        if self.builder is None:
            raise ConfigurationError("No component resolver configured")
        component_set = self.builder.build(build_options_for(context.request, self.project))
        next_state = DeployState.CONFLICT_CHECKING if context.tracking else DeployState.SUBMITTING
        return context.advance(next_state, component_set=component_set)

    async def _check_conflicts(self, context: DeployContext) -> DeployContext:
        if context.request.force_overwrite:
            logger.debug("Conflict check skipped: --force-overwrite")
        else:
            filter_conflicts_by_component_set(context.tracking, context.component_set)

        warnings = context.warnings
        local_deletes = local_deletes_not_in_set(context.tracking, context.component_set)
        if local_deletes:
            logger.debug(f"Local deletes not deployed: {', '.join(local_deletes)}")
            warnings = self._warned(context.warnings, MSG_DEPLOY_WONT_DELETE)
        return context.advance(DeployState.SUBMITTING, warnings=warnings)

    def _log_api_version(self, payload: Dict[str, Any]) -> None:
        logger.info(MSG_API_VERSION.format(**payload))

    async def _submit(self, context: DeployContext) -> DeployContext:
        request = context.request
        if isinstance(request.input, ValidatedReplayInput):
            handle = await self.transport.deploy_recent_validation(request.input.request_id, request.rest)
        else:
            await self.hooks.fire_predeploy(context.component_set.to_list())
            self.transport.subscribe(EVENT_API_VERSION, self._log_api_version, once=True)
            handle = await self.transport.deploy(context.component_set, request.api_options())

        logger.debug(f"Deploy ID: {handle.id}")
        if self.stash is not None:
            self.stash.set(handle.id)

        if request.is_async:
            warnings = context.warnings
            if request.report.wants_reports:
                warnings = self._warned(context.warnings, MSG_ASYNC_COVERAGE_JUNIT)
            return context.advance(
                DeployState.ASYNC_DONE,
                handle=handle,
                async_handle=AsyncDeployHandle(handle.id),
                warnings=warnings,
            )
        return context.advance(DeployState.POLLING, handle=handle)

    async def _async_done(self, context: DeployContext) -> DeployContext:
        formatter = DeployAsyncResultFormatter(context.async_handle)
        if not self.json_output:
            formatter.display(self.console)
        return context.advance(DeployState.FORMATTED, output=formatter.get_json())

    async def _poll(self, context: DeployContext) -> DeployContext:
        request = context.request
        progress = self.attach_progress(context.handle, request.report.verbose, self.use_progress_bar)
        warnings = context.warnings
        try:
            result = await context.handle.poll_status(request.wait_seconds)
        except PollTimeout:
            warnings = self._warned(context.warnings, MSG_POLL_TIMEOUT.format(id=context.handle.id))
            result = await context.handle.check_status()
        finally:
            if progress is not None:
                progress.stop()
        return context.advance(DeployState.POST_PROCESSING, result=result, warnings=warnings)

    async def _post_process(self, context: DeployContext) -> DeployContext:
        result = context.result
        if result.done:
            await self.hooks.fire_postdeploy(result)

            if context.tracking is not None and result.success:
                await update_tracking(context.tracking, result, context.component_set)

        report_files = await self.write_reports(result, context.request.report)
        formatter = DeployResultFormatter(result, context.request.report.verbose, list(report_files))
        if not self.json_output:
            formatter.display(self.console)
        return context.advance(DeployState.FORMATTED, report_files=report_files, output=formatter.get_json())


@dataclass(frozen=True)
class ReportOutcome:
    result: DeployResult
    output: Dict[str, Any]
    report_files: Tuple[Path, ...] = field(default_factory=tuple)


class ReportOrchestrator(_ResultOutput):
    """Re-enter polling for a submitted deploy and format its status"""

    def __init__(self,
                 transport: DeployTransport,
                 project: Optional[Project] = None,
                 console: Optional[Console] = None,
                 json_output: bool = False,
                 use_progress_bar: Optional[bool] = None):
        super().__init__(project, console, json_output)
        self.transport = transport
        self.use_progress_bar = use_progress_bar

    def resolve_job_id(self, request: ReportRequest) -> str:
        if request.job_id:
            return request.job_id
        deploy_id = self.stash.get() if self.stash is not None else None
        if not deploy_id:
            raise ConfigurationError(
                "No job ID was provided and no recent deploy was found. Use --job-id to specify one."
            )
        return deploy_id

    async def run(self, request: ReportRequest) -> ReportOutcome:
        """Poll the request until done or the wait elapses, then report its status

        Reporting never changes a finished deploy, so repeated reports of
        the same id produce the same result.
        """
        deploy_id = self.resolve_job_id(request)
        handle = self.transport.attach(deploy_id)

        progress = self.attach_progress(handle, request.report.verbose, self.use_progress_bar)
        try:
            await handle.poll_status(request.wait_seconds)
        except PollTimeout as e:
            logger.debug(f"Report polling stopped, fetching status: {e}")
        finally:
            if progress is not None:
                progress.stop()

        result = await handle.check_status()
        report_files = await self.write_reports(result, request.report)

        formatter = DeployReportResultFormatter(result, request.report.verbose, list(report_files))
        if not self.json_output:
            formatter.display(self.console)
        return ReportOutcome(result=result, output=formatter.get_json(), report_files=report_files)
