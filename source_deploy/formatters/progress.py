"""Deploy progress display"""

from typing import Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from ..constants import ENV_USE_PROGRESS_BAR
from ..models.result import DeployResult
from ..transport.base import EVENT_FINISH, EVENT_UPDATE, DeployHandle
from ..utils.env_utils import env_bool


def _status_line(result: DeployResult) -> str:
    line = (
        f"{result.status.value}: {result.number_components_deployed}/{result.number_components_total} components"
    )
    if result.number_component_errors:
        line += f", {result.number_component_errors} errors"
    if result.number_tests_total:
        line += f", {result.number_tests_completed}/{result.number_tests_total} tests"
        if result.number_test_errors:
            line += f", {result.number_test_errors} test errors"
    return line


class DeployProgressBarFormatter:
    """Cumulative progress bar, redrawn on every status update"""

    def __init__(self, console: Console, handle: DeployHandle):
        self.console = console
        self.handle = handle
        self._progress: Optional[Progress] = None
        self._task_id: Optional[TaskID] = None
        self.renders = 0

    def progress(self) -> None:
        """Start rendering and subscribe to the handle"""
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TextColumn("{task.fields[detail]}"),
            TimeElapsedColumn(),
            console=self.console,
            transient=False,
        )
        self._progress.start()
        self._task_id = self._progress.add_task(f"Deploying {self.handle.id}", total=None, detail="")
        self.handle.subscribe(EVENT_UPDATE, self._on_update)
        self.handle.subscribe(EVENT_FINISH, self._on_finish, once=True)

    def _on_update(self, result: DeployResult) -> None:
        total = result.number_components_total + result.number_tests_total
        completed = (
            result.number_components_deployed + result.number_component_errors
            + result.number_tests_completed + result.number_test_errors
        )
        self._progress.update(
            self._task_id,
            total=total or None,
            completed=completed,
            detail=result.status.value,
        )
        self.renders += 1

    def _on_finish(self, result: DeployResult) -> None:
        self.stop()

    def stop(self) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None


class DeployProgressStatusFormatter:
    """One line per distinct status; unchanged counts are not repeated unless verbose"""

    def __init__(self, console: Console, handle: DeployHandle, verbose: bool = False):
        self.console = console
        self.handle = handle
        self.verbose = verbose
        self._last_key = None
        self.renders = 0

    def progress(self) -> None:
        self.handle.subscribe(EVENT_UPDATE, self._on_update)

    def _on_update(self, result: DeployResult) -> None:
        key = result.progress_key()
        if key == self._last_key and not self.verbose:
            return
        self._last_key = key
        self._print_status(result)

    def _print_status(self, result: DeployResult) -> None:
        self.console.print(f"Deploy {result.id} {_status_line(result)}", highlight=False)
        self.renders += 1

    def stop(self) -> None:
        pass


def create_progress_formatter(console: Console, handle: DeployHandle, verbose: bool = False,
                              use_progress_bar: Optional[bool] = None):
    """Pick the bar or the status-line formatter

    Defaults to the bar unless SOURCE_DEPLOY_USE_PROGRESS_BAR is false.
    """
    if use_progress_bar is None:
        use_progress_bar = env_bool(ENV_USE_PROGRESS_BAR, True)
    if use_progress_bar:
        return DeployProgressBarFormatter(console, handle)
    return DeployProgressStatusFormatter(console, handle, verbose)
