"""Report command implementation"""

import sys

import click

from ..context import Context
from ..decorators import require_project
from ..utils.output import console, print_error, print_json
from ...api import Deployer
from ...api.exceptions import SourceDeployError
from ...constants import COVERAGE_FORMATTERS, DEFAULT_REPORT_MIN_WAIT
from ...core.input_mode import build_report_request


@click.command()
@click.option('-i', '--job-id', help='Deploy id to report on; defaults to the most recent deploy')
@click.option('-w', '--wait', 'wait_minutes', type=int, default=DEFAULT_REPORT_MIN_WAIT, show_default=True,
              help='Minutes to wait for the deploy to finish')
@click.option('--results-dir', type=click.Path(file_okay=False),
              help='Directory for coverage and JUnit reports')
@click.option('--coverage-formatters', multiple=True,
              help=f"Coverage report formats: {', '.join(COVERAGE_FORMATTERS)}")
@click.option('--junit', is_flag=True, help='Write JUnit test results')
@click.option('--verbose', is_flag=True, help='Show every status update and all test results')
@click.option('--json', 'json_output', is_flag=True, help='Print the result as JSON')
@click.pass_context
@require_project
def report(ctx, job_id, wait_minutes, results_dir, coverage_formatters, junit, verbose, json_output):
    """Check the status of a deploy

    Reporting never changes the deploy; it may be repeated any number of times.

    Examples:

        # Status of the most recent deploy
        source-deploy report

        # Wait up to 10 minutes for a specific deploy and write JUnit results
        source-deploy report -i 0Af000000000001 -w 10 --junit
    """
    context = ctx.ensure_object(Context)

    try:
        request = build_report_request(
            job_id=job_id,
            wait_minutes=wait_minutes,
            results_dir=results_dir,
            coverage_formatters=coverage_formatters,
            junit=junit,
            verbose=verbose,
        )

        deployer = Deployer(project=context.project, console=console, json_output=json_output)
        outcome = deployer.report(request)

    except SourceDeployError as e:
        print_error(e, json_output)
        if context.debug and not json_output:
            console.print_exception()
        sys.exit(1)

    if json_output:
        print_json(outcome.output)
