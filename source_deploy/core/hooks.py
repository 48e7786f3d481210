"""Pre/post deploy hooks

Hooks are passed explicitly to the orchestrator. Failures raised by a hook
propagate unchanged and abort the command.
"""

import asyncio
import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List

from ..api.exceptions import HookError
from ..constants import DEFAULT_HOOK_TIMEOUT
from ..models.component import MetadataComponent
from ..models.result import DeployResult
from ..utils.async_utils import call_handler

logger = logging.getLogger(__name__)

PreDeployHook = Callable[[List[MetadataComponent]], Any]
PostDeployHook = Callable[[DeployResult], Any]


@dataclass
class DeployHooks:
    """Callables fired around a deploy; sync or async"""

    predeploy: List[PreDeployHook] = field(default_factory=list)
    postdeploy: List[PostDeployHook] = field(default_factory=list)

    async def fire_predeploy(self, components: List[MetadataComponent]) -> None:
        for hook in self.predeploy:
            await call_handler(hook, components)

    async def fire_postdeploy(self, result: DeployResult) -> None:
        for hook in self.postdeploy:
            await call_handler(hook, result)

    def extend(self, other: 'DeployHooks') -> 'DeployHooks':
        return DeployHooks(
            predeploy=self.predeploy + other.predeploy,
            postdeploy=self.postdeploy + other.postdeploy,
        )


class ScriptHooks:
    """Execute project scripts named after the hook, e.g. ``predeploy.sh``"""

    def __init__(self, hooks_dir: Path, timeout: float = DEFAULT_HOOK_TIMEOUT):
        self.hooks_dir = Path(hooks_dir)
        self.timeout = timeout

    def find_scripts(self, hook_name: str) -> List[Path]:
        """Find scripts for a specific hook"""
        if not self.hooks_dir.is_dir():
            return []

        scripts = [p for p in sorted(self.hooks_dir.glob(f"{hook_name}*")) if p.is_file()]

        # Numbered scripts run in order after the plain ones
        for script in sorted(self.hooks_dir.glob(f"[0-9][0-9]-{hook_name}*")):
            if script.is_file():
                scripts.append(script)

        return scripts

    def as_deploy_hooks(self) -> DeployHooks:
        return DeployHooks(predeploy=[self.predeploy], postdeploy=[self.postdeploy])

    async def predeploy(self, components: List[MetadataComponent]) -> None:
        await self.run("predeploy", {
            "COMPONENTS": ",".join(str(c) for c in components),
            "COMPONENT_COUNT": len(components),
        })

    async def postdeploy(self, result: DeployResult) -> None:
        await self.run("postdeploy", {
            "DEPLOY_ID": result.id,
            "STATUS": result.status.value,
        })

    async def run(self, hook_name: str, data: Dict[str, Any]) -> None:
        for script in self.find_scripts(hook_name):
            logger.info(f"Executing hook script: {script}")
            await self._execute_script(script, hook_name, data)

    async def _execute_script(self, script_path: Path, hook_name: str, data: Dict[str, Any]) -> None:
        env = os.environ.copy()
        env['SOURCE_DEPLOY_HOOK'] = hook_name
        for key, value in data.items():
            env[f"SOURCE_DEPLOY_{key.upper()}"] = str(value)

        if script_path.suffix == '.py':
            cmd = [sys.executable, str(script_path)]
        elif os.access(script_path, os.X_OK):
            cmd = [str(script_path)]
        else:
            cmd = ['sh', str(script_path)]

        process = await asyncio.create_subprocess_exec(
            *cmd,
            env=env,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE
        )

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise HookError(f"Hook script {script_path} timed out after {self.timeout}s")

        if stdout:
            logger.debug(f"{script_path.name}: {stdout.decode(errors='replace').strip()}")
        if process.returncode != 0:
            detail = stderr.decode(errors='replace').strip() if stderr else ""
            raise HookError(
                f"Hook script {script_path} exited with code {process.returncode}"
                + (f": {detail}" if detail else "")
            )
