"""Deployer API: deploy and report against the project's org"""

import logging
from pathlib import Path
from typing import Optional, Union

from rich.console import Console

from ..constants import ENV_REST_DEPLOY
from ..core.component_resolver import ComponentSetBuilder
from ..core.hooks import DeployHooks, ScriptHooks
from ..core.orchestrator import DeployContext, DeployOrchestrator, ReportOrchestrator, ReportOutcome
from ..core.project import Project
from ..models.request import DeployRequest, ReportRequest
from ..transport.base import DeployTransport
from ..transport.factory import TransportFactory
from ..utils.async_utils import run_async
from ..utils.env_utils import env_bool

logger = logging.getLogger(__name__)


class Deployer:
    """Deployer class wiring a project to its transport, resolver and hooks"""

    def __init__(self,
                 project: Optional[Project] = None,
                 project_root: Optional[Union[str, Path]] = None,
                 transport: Optional[DeployTransport] = None,
                 hooks: Optional[DeployHooks] = None,
                 console: Optional[Console] = None,
                 json_output: bool = False,
                 use_progress_bar: Optional[bool] = None):
        """
        Initialize deployer

        Args:
            project: Loaded project; discovered from ``project_root`` or the cwd when omitted
            transport: Transport to use instead of the configured one
            hooks: Hooks fired in addition to the project's hook scripts
            console: Console for human-readable output
            json_output: Suppress all display output
            use_progress_bar: Force bar (True) or status-line (False) progress
        """
        self.project = project or Project.load(project_root)
        config = self.project.config

        self.transport = transport or TransportFactory.create_from_config(config.org, self.project.root)
        self.builder = ComponentSetBuilder(self.project.root, self.project.package_dirs())

        script_hooks = ScriptHooks(self.project.path_resolver.resolve(config.hooks_dir), config.hook_timeout)
        self.hooks = script_hooks.as_deploy_hooks()
        if hooks is not None:
            self.hooks = self.hooks.extend(hooks)

        self.console = console or Console()
        self.json_output = json_output
        self.use_progress_bar = use_progress_bar

    @property
    def default_wait_minutes(self) -> float:
        return self.project.config.wait_minutes

    def resolve_rest(self, soap_deploy: bool = False) -> bool:
        """Flag, then environment, then configuration decide; SOAP otherwise"""
        if soap_deploy:
            return False
        from_env = env_bool(ENV_REST_DEPLOY)
        if from_env is not None:
            return from_env
        if self.project.config.rest is not None:
            return self.project.config.rest
        return False

    async def deploy_async(self, request: DeployRequest) -> DeployContext:
        orchestrator = DeployOrchestrator(
            self.transport,
            builder=self.builder,
            project=self.project,
            hooks=self.hooks,
            console=self.console,
            json_output=self.json_output,
            use_progress_bar=self.use_progress_bar,
        )
        async with self.transport:
            return await orchestrator.run(request)

    def deploy(self, request: DeployRequest) -> DeployContext:
        """
        Deploy to the project's org

        Args:
            request: Validated deploy request

        Returns:
            Final deploy context; ``output`` holds the machine-readable result

        Raises:
            SourceDeployError: On any fatal orchestration error
        """
        return run_async(self.deploy_async(request))

    async def report_async(self, request: ReportRequest) -> ReportOutcome:
        orchestrator = ReportOrchestrator(
            self.transport,
            project=self.project,
            console=self.console,
            json_output=self.json_output,
            use_progress_bar=self.use_progress_bar,
        )
        async with self.transport:
            return await orchestrator.run(request)

    def report(self, request: ReportRequest) -> ReportOutcome:
        """Report the status of a submitted deploy"""
        return run_async(self.report_async(request))
