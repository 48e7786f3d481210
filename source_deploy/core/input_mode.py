"""Input mode resolution and flag validation for deploy requests"""

from typing import Iterable, List, Optional, Sequence, Tuple

from packaging.version import InvalidVersion, Version

from ..api.exceptions import ConfigurationError
from ..constants import COVERAGE_FORMATTERS, DEPLOY_ID_PATTERN
from ..models.request import (
    DeployInput,
    DeployRequest,
    ManifestInput,
    MetadataInput,
    ReportOptions,
    ReportRequest,
    SourcePathInput,
    TestLevel,
    ValidatedReplayInput,
)

_MODE_FLAGS = ("--manifest", "--metadata", "--source-path", "--validated-deploy-request-id")


def split_list_flag(values: Optional[Iterable[str]]) -> Tuple[str, ...]:
    """Flatten repeated and comma separated flag values"""
    if not values:
        return ()
    items: List[str] = []
    for value in values:
        items.extend(part.strip() for part in value.split(",") if part.strip())
    return tuple(items)


def is_valid_deploy_id(deploy_id: str) -> bool:
    return bool(DEPLOY_ID_PATTERN.match(deploy_id or ""))


def validate_deploy_id(deploy_id: str) -> str:
    if not is_valid_deploy_id(deploy_id):
        raise ConfigurationError(
            f"The deploy ID \"{deploy_id}\" is invalid. "
            "Deploy IDs start with 0Af and are 15 or 18 characters long."
        )
    return deploy_id


def validate_api_version(api_version: Optional[str], flag: str = "--api-version") -> Optional[str]:
    if api_version is None:
        return None
    try:
        Version(api_version)
    except InvalidVersion:
        raise ConfigurationError(f"{flag} must be a version like 57.0, got \"{api_version}\"")
    return api_version


def resolve_input_mode(manifest: Optional[str] = None,
                       metadata: Sequence[str] = (),
                       source_paths: Sequence[str] = (),
                       validated_request_id: Optional[str] = None,
                       pre_destructive_changes: Optional[str] = None,
                       post_destructive_changes: Optional[str] = None) -> DeployInput:
    """Determine which of the four deploy input modes is active

    Raises:
        ConfigurationError: If none or more than one mode is provided
    """
    provided = [
        flag for flag, value in zip(
            _MODE_FLAGS, (manifest, metadata, source_paths, validated_request_id)
        ) if value
    ]

    if not provided:
        raise ConfigurationError(f"Exactly one of the following must be provided: {', '.join(_MODE_FLAGS)}")
    if len(provided) > 1:
        raise ConfigurationError(f"Only one of the following can be provided: {', '.join(provided)}")

    if manifest:
        return ManifestInput(
            path=manifest,
            pre_destructive_changes=pre_destructive_changes,
            post_destructive_changes=post_destructive_changes,
        )
    if metadata:
        return MetadataInput(entries=tuple(metadata))
    if source_paths:
        return SourcePathInput(paths=tuple(source_paths))
    return ValidatedReplayInput(request_id=validate_deploy_id(validated_request_id))


def _resolve_test_level(test_level: Optional[str], run_tests: Tuple[str, ...]) -> Optional[TestLevel]:
    if test_level is None:
        if run_tests:
            raise ConfigurationError("--run-tests can only be used with --test-level RunSpecifiedTests")
        return None

    try:
        level = TestLevel(test_level)
    except ValueError:
        raise ConfigurationError(f"Unknown test level: {test_level}")

    if level == TestLevel.RUN_SPECIFIED_TESTS and not run_tests:
        raise ConfigurationError("--test-level RunSpecifiedTests requires --run-tests")
    if run_tests and level != TestLevel.RUN_SPECIFIED_TESTS:
        raise ConfigurationError("--run-tests can only be used with --test-level RunSpecifiedTests")
    return level


def resolve_report_options(results_dir: Optional[str] = None,
                           coverage_formatters: Sequence[str] = (),
                           junit: bool = False,
                           verbose: bool = False) -> ReportOptions:
    formatters = split_list_flag(coverage_formatters)
    unknown = [f for f in formatters if f not in COVERAGE_FORMATTERS]
    if unknown:
        raise ConfigurationError(
            f"Unknown coverage formatter(s): {', '.join(unknown)}. "
            f"Valid values: {', '.join(COVERAGE_FORMATTERS)}"
        )
    return ReportOptions(
        results_dir=results_dir,
        coverage_formatters=formatters,
        junit=junit,
        verbose=verbose,
    )


def build_deploy_request(manifest: Optional[str] = None,
                         metadata: Sequence[str] = (),
                         source_paths: Sequence[str] = (),
                         validated_request_id: Optional[str] = None,
                         wait_minutes: float = 0,
                         test_level: Optional[str] = None,
                         run_tests: Sequence[str] = (),
                         ignore_errors: bool = False,
                         ignore_warnings: bool = False,
                         check_only: bool = False,
                         rest: bool = False,
                         purge_on_delete: bool = False,
                         pre_destructive_changes: Optional[str] = None,
                         post_destructive_changes: Optional[str] = None,
                         track_source: bool = False,
                         force_overwrite: bool = False,
                         api_version: Optional[str] = None,
                         results_dir: Optional[str] = None,
                         coverage_formatters: Sequence[str] = (),
                         junit: bool = False,
                         verbose: bool = False) -> DeployRequest:
    """Validate raw flag values and build an immutable :class:`DeployRequest`

    Every check here runs before any transport is contacted.

    Raises:
        ConfigurationError: On missing, contradictory or malformed flags
    """
    metadata = split_list_flag(metadata)
    source_paths = split_list_flag(source_paths)
    run_tests = split_list_flag(run_tests)

    deploy_input = resolve_input_mode(
        manifest=manifest,
        metadata=metadata,
        source_paths=source_paths,
        validated_request_id=validated_request_id,
        pre_destructive_changes=pre_destructive_changes,
        post_destructive_changes=post_destructive_changes,
    )

    if not manifest:
        for flag, value in (("--purge-on-delete", purge_on_delete),
                            ("--pre-destructive-changes", pre_destructive_changes),
                            ("--post-destructive-changes", post_destructive_changes)):
            if value:
                raise ConfigurationError(f"{flag} can only be used with --manifest")

    if validated_request_id:
        for flag, value in (("--check-only", check_only),
                            ("--test-level", test_level),
                            ("--run-tests", run_tests),
                            ("--track-source", track_source)):
            if value:
                raise ConfigurationError(f"{flag} cannot be used with --validated-deploy-request-id")

    if track_source and check_only:
        raise ConfigurationError("--track-source cannot be used with --check-only")
    if force_overwrite and not track_source:
        raise ConfigurationError("--force-overwrite can only be used with --track-source")
    if wait_minutes < 0:
        raise ConfigurationError("--wait must be 0 or greater")

    return DeployRequest(
        input=deploy_input,
        wait_minutes=wait_minutes,
        test_level=_resolve_test_level(test_level, run_tests),
        run_tests=run_tests,
        ignore_errors=ignore_errors,
        ignore_warnings=ignore_warnings,
        check_only=check_only,
        rest=rest,
        purge_on_delete=purge_on_delete,
        track_source=track_source,
        force_overwrite=force_overwrite,
        api_version=validate_api_version(api_version),
        report=resolve_report_options(results_dir, coverage_formatters, junit, verbose),
    )


def build_report_request(job_id: Optional[str] = None,
                         wait_minutes: float = 1,
                         results_dir: Optional[str] = None,
                         coverage_formatters: Sequence[str] = (),
                         junit: bool = False,
                         verbose: bool = False) -> ReportRequest:
    """Validate report flags"""
    if job_id is not None:
        validate_deploy_id(job_id)
    if wait_minutes < 1:
        raise ConfigurationError("--wait must be at least 1 minute for report")
    return ReportRequest(
        job_id=job_id,
        wait_minutes=wait_minutes,
        report=resolve_report_options(results_dir, coverage_formatters, junit, verbose),
    )
