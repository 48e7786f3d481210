"""Deploy command implementation"""

import sys

import click

from ..context import Context
from ..decorators import require_project
from ..utils.output import console, print_error, print_json
from ...api import Deployer
from ...api.exceptions import SourceDeployError
from ...constants import COVERAGE_FORMATTERS, TEST_LEVELS
from ...core.input_mode import build_deploy_request
from ...core.orchestrator import resolve_exit_code


@click.command()
@click.option('-x', '--manifest', type=click.Path(dir_okay=False),
              help='Manifest (package.xml) listing the components to deploy')
@click.option('-m', '--metadata', multiple=True,
              help='Metadata to deploy, e.g. ApexClass or ApexClass:MyClass (repeatable, comma separated)')
@click.option('-p', '--source-path', 'source_paths', multiple=True,
              help='Source file or directory to deploy (repeatable, comma separated)')
@click.option('-q', '--validated-deploy-request-id',
              help='Deploy a previously validated (check-only) request by id')
@click.option('-w', '--wait', 'wait_minutes', type=int,
              help='Minutes to wait for the deploy to finish; 0 submits asynchronously')
@click.option('-l', '--test-level', type=click.Choice(TEST_LEVELS),
              help='Which tests to run during the deploy')
@click.option('-r', '--run-tests', multiple=True,
              help='Tests to run with RunSpecifiedTests (repeatable, comma separated)')
@click.option('-o', '--ignore-errors', is_flag=True,
              help='Keep successful components when others fail (no rollback)')
@click.option('-g', '--ignore-warnings', is_flag=True, help='Do not fail the deploy on warnings')
@click.option('-c', '--check-only', is_flag=True, help='Validate the deploy without saving changes')
@click.option('--purge-on-delete', is_flag=True,
              help='Delete components permanently instead of moving them to the recycle bin')
@click.option('--pre-destructive-changes', type=click.Path(dir_okay=False),
              help='Manifest of components to delete before the deploy')
@click.option('--post-destructive-changes', type=click.Path(dir_okay=False),
              help='Manifest of components to delete after the deploy')
@click.option('-t', '--track-source', is_flag=True,
              help='Check for conflicts and update source tracking')
@click.option('-f', '--force-overwrite', is_flag=True,
              help='Deploy even if the org has conflicting changes')
@click.option('--results-dir', type=click.Path(file_okay=False),
              help='Directory for coverage and JUnit reports')
@click.option('--coverage-formatters', multiple=True,
              help=f"Coverage report formats: {', '.join(COVERAGE_FORMATTERS)}")
@click.option('--junit', is_flag=True, help='Write JUnit test results')
@click.option('--soap-deploy', is_flag=True, help='Use the SOAP API instead of REST')
@click.option('-a', '--api-version', help='API version to deploy with, e.g. 57.0')
@click.option('--verbose', is_flag=True, help='Show every status update and all test results')
@click.option('--json', 'json_output', is_flag=True, help='Print the result as JSON')
@click.pass_context
@require_project
def deploy(ctx, manifest, metadata, source_paths, validated_deploy_request_id, wait_minutes,
           test_level, run_tests, ignore_errors, ignore_warnings, check_only, purge_on_delete,
           pre_destructive_changes, post_destructive_changes, track_source, force_overwrite,
           results_dir, coverage_formatters, junit, soap_deploy, api_version, verbose, json_output):
    """Deploy source to the org

    Exactly one of --manifest, --metadata, --source-path or
    --validated-deploy-request-id selects what is deployed.

    Examples:

        # Deploy a directory and wait for it to finish
        source-deploy deploy -p force-app

        # Queue a deploy and check on it later
        source-deploy deploy -m ApexClass --wait 0
        source-deploy report

        # Validate, then deploy the validation
        source-deploy deploy -x manifest/package.xml --check-only -l RunLocalTests
        source-deploy deploy -q 0Af000000000001
    """
    context = ctx.ensure_object(Context)

    try:
        deployer = Deployer(project=context.project, console=console, json_output=json_output)

        request = build_deploy_request(
            manifest=manifest,
            metadata=metadata,
            source_paths=source_paths,
            validated_request_id=validated_deploy_request_id,
            wait_minutes=deployer.default_wait_minutes if wait_minutes is None else wait_minutes,
            test_level=test_level,
            run_tests=run_tests,
            ignore_errors=ignore_errors,
            ignore_warnings=ignore_warnings,
            check_only=check_only,
            rest=deployer.resolve_rest(soap_deploy),
            purge_on_delete=purge_on_delete,
            pre_destructive_changes=pre_destructive_changes,
            post_destructive_changes=post_destructive_changes,
            track_source=track_source,
            force_overwrite=force_overwrite,
            api_version=api_version,
            results_dir=results_dir,
            coverage_formatters=coverage_formatters,
            junit=junit,
            verbose=verbose,
        )

        outcome = deployer.deploy(request)

    except SourceDeployError as e:
        print_error(e, json_output)
        if context.debug and not json_output:
            console.print_exception()
        sys.exit(1)

    if json_output:
        print_json(outcome.output)

    sys.exit(resolve_exit_code(outcome.result))
