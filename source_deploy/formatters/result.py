"""Deploy result display and machine-readable output"""

from pathlib import Path
from typing import Any, Dict, List, Optional

from rich import box
from rich.console import Console
from rich.table import Table

from ..constants import (
    EMOJI_ERROR,
    EMOJI_SUCCESS,
    EMOJI_WARNING,
    MSG_ASYNC_DEPLOY,
    MSG_REPORT_IN_PROGRESS,
)
from ..models.result import AsyncDeployHandle, DeployResult, RequestStatus
from ..utils.formatting import format_percentage


class DeployAsyncResultFormatter:
    """Output for a deploy submitted without waiting"""

    def __init__(self, handle: AsyncDeployHandle):
        self.handle = handle

    def display(self, console: Console) -> None:
        console.print(MSG_ASYNC_DEPLOY.format(id=self.handle.id), highlight=False)

    def get_json(self) -> Dict[str, str]:
        return self.handle.to_dict()


class DeployResultFormatter:
    """Output for a polled deploy result

    The result is only read; ``get_json`` returns a fresh dictionary.
    """

    def __init__(self, result: DeployResult, verbose: bool = False,
                 report_files: Optional[List[Path]] = None):
        self.result = result
        self.verbose = verbose
        self.report_files = report_files or []

    def get_json(self) -> Dict[str, Any]:
        return self.result.to_dict()

    def display(self, console: Console) -> None:
        self._display_status(console)
        self._display_successes(console)
        self._display_failures(console)
        self._display_tests(console)
        self._display_report_files(console)

    def _display_status(self, console: Console) -> None:
        result = self.result
        action = "Validation" if result.check_only else "Deploy"
        if result.status == RequestStatus.SUCCEEDED:
            console.print(f"[green]{EMOJI_SUCCESS}[/green] {action} {result.id} succeeded.")
        elif result.status == RequestStatus.SUCCEEDED_PARTIAL:
            console.print(f"[yellow]{EMOJI_WARNING}[/yellow] {action} {result.id} partially succeeded.")
        elif result.done:
            console.print(f"[red]{EMOJI_ERROR}[/red] {action} {result.id} {result.status.value.lower()}.")
            if result.error_message:
                console.print(f"[red]Error:[/red] {result.error_message}")
        else:
            console.print(f"{action} {result.id} status: {result.status.value}")

    def _display_successes(self, console: Console) -> None:
        successes = self.result.component_successes
        if not successes:
            return

        title = "Validated Source" if self.result.check_only else "Deployed Source"
        table = Table(title=title, box=box.SIMPLE)
        table.add_column("State", style="cyan")
        table.add_column("Name")
        table.add_column("Type")
        table.add_column("Path", style="dim")
        for outcome in successes:
            table.add_row(outcome.state.value, outcome.full_name, outcome.type, outcome.file_path or "")
        console.print(table)

    def _display_failures(self, console: Console) -> None:
        failures = self.result.component_failures
        if not failures:
            return

        table = Table(title="Component Failures", box=box.SIMPLE, title_style="bold red")
        table.add_column("Type")
        table.add_column("Name")
        table.add_column("Problem", style="red")
        table.add_column("Line:Column")
        for outcome in failures:
            position = f"{outcome.line}:{outcome.column}" if outcome.line is not None else ""
            table.add_row(outcome.type, outcome.full_name, outcome.problem or "", position)
        console.print(table)

    def _display_tests(self, console: Console) -> None:
        summary = self.result.test_summary
        if summary is None:
            return

        if summary.failures:
            table = Table(title="Test Failures", box=box.SIMPLE, title_style="bold red")
            table.add_column("Name")
            table.add_column("Method")
            table.add_column("Message", style="red")
            table.add_column("Stacktrace", style="dim")
            for test in summary.failures:
                table.add_row(test.name, test.method_name, test.message or "", test.stack_trace or "")
            console.print(table)

        if self.verbose and summary.successes:
            table = Table(title="Test Success", box=box.SIMPLE)
            table.add_column("Name")
            table.add_column("Method")
            for test in summary.successes:
                table.add_row(test.name, test.method_name)
            console.print(table)

        if self.verbose and summary.code_coverage:
            table = Table(title="Apex Code Coverage", box=box.SIMPLE)
            table.add_column("Name")
            table.add_column("% Covered", justify="right")
            table.add_column("Uncovered Lines")
            for record in summary.code_coverage:
                table.add_row(
                    record.name,
                    format_percentage(record.covered, record.num_locations) if record.num_locations else "100%",
                    ",".join(str(line) for line in record.uncovered_lines),
                )
            console.print(table)

        console.print(
            f"Tests run: {summary.num_tests_run}, passing: {len(summary.successes)}, "
            f"failing: {summary.num_failures}",
            highlight=False,
        )

    def _display_report_files(self, console: Console) -> None:
        for path in self.report_files:
            console.print(f"Report written to [cyan]{path}[/cyan]")


class DeployReportResultFormatter(DeployResultFormatter):
    """Output of the report command, which may see an unfinished deploy"""

    def display(self, console: Console) -> None:
        if not self.result.done:
            self._display_status(console)
            console.print(MSG_REPORT_IN_PROGRESS.format(id=self.result.id), highlight=False)
            return
        super().display(console)
