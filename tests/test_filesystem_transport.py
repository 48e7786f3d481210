"""Tests for the filesystem org transport."""

import pytest

from conftest import CLASSES, TRIGGERS, add_class, write
from source_deploy.api.exceptions import PollTimeout, TransportError
from source_deploy.core.component_resolver import BuildOptions, ComponentSetBuilder
from source_deploy.models.component import ComponentSet, DestructiveType, MetadataComponent
from source_deploy.models.result import ComponentState, RequestStatus
from source_deploy.transport.base import EVENT_API_VERSION, EVENT_FINISH, EVENT_UPDATE

DEFAULT_OPTIONS = {"rollback_on_error": True, "check_only": False, "rest": False}


def build(project, **options) -> ComponentSet:
    builder = ComponentSetBuilder(project.root, project.package_dirs())
    return builder.build(BuildOptions(**options))


def options(**overrides):
    return dict(DEFAULT_OPTIONS, **overrides)


class TestDeploy:

    @pytest.mark.asyncio
    async def test_deploy_commits_to_org(self, project, transport, org_dir):
        component_set = build(project, metadata=["ApexClass", "ApexTrigger"])
        handle = await transport.deploy(component_set, options())

        assert handle.id == "0Af000000000001"
        result = await handle.poll_status(timeout=10)

        assert result.status == RequestStatus.SUCCEEDED
        assert result.number_components_total == 3
        assert result.number_components_deployed == 3
        assert {c.state for c in result.components} == {ComponentState.CREATED}
        assert (org_dir / "metadata" / CLASSES / "Foo.cls").read_text().startswith("public with sharing")
        assert (org_dir / "metadata" / TRIGGERS / "AccountTrigger.trigger-meta.xml").is_file()

    @pytest.mark.asyncio
    async def test_ids_are_sequential(self, project, transport):
        component_set = build(project, metadata=["ApexClass"])
        first = await transport.deploy(component_set, options())
        second = await transport.deploy(component_set, options())
        assert (first.id, second.id) == ("0Af000000000001", "0Af000000000002")

    @pytest.mark.asyncio
    async def test_redeploy_reports_unchanged_and_changed(self, project, project_dir, transport):
        component_set = build(project, metadata=["ApexClass"])
        await (await transport.deploy(component_set, options())).poll_status(timeout=10)

        write(project_dir, f"{CLASSES}/Foo.cls", "public class Foo { }\n")
        result = await (await transport.deploy(component_set, options())).poll_status(timeout=10)

        states = {c.full_name: c.state for c in result.components}
        assert states == {"Foo": ComponentState.CHANGED, "FooTest": ComponentState.UNCHANGED}

    @pytest.mark.asyncio
    async def test_batches_emit_progress(self, project, transport):
        component_set = build(project, metadata=["ApexClass", "ApexTrigger"])
        handle = await transport.deploy(component_set, options())

        updates, finished = [], []
        handle.subscribe(EVENT_UPDATE, updates.append)
        handle.subscribe(EVENT_FINISH, finished.append, once=True)
        await handle.poll_status(timeout=10)

        # batch size 2: one partial batch, then the final one
        assert [u.status for u in updates] == [RequestStatus.IN_PROGRESS, RequestStatus.SUCCEEDED]
        assert updates[0].number_components_deployed == 2
        assert len(finished) == 1

    @pytest.mark.asyncio
    async def test_api_version_event(self, project, transport):
        payloads = []
        transport.subscribe(EVENT_API_VERSION, payloads.append)
        await transport.deploy(build(project, metadata=["ApexClass"]), options(rest=True))

        assert payloads == [{
            "manifest_version": "57.0",
            "api_version": "57.0",
            "web_service": "REST",
            "username": "test@example.com",
        }]

    @pytest.mark.asyncio
    async def test_poll_timeout(self, project, transport):
        handle = await transport.deploy(build(project, metadata=["ApexClass", "ApexTrigger"]), options())
        with pytest.raises(PollTimeout) as exc_info:
            await handle.poll_status(timeout=0)
        assert exc_info.value.deploy_id == handle.id

        result = await handle.check_status()
        assert result.status == RequestStatus.IN_PROGRESS


class TestFailures:

    @pytest.fixture
    def with_empty_class(self, project_dir):
        add_class(project_dir, "Empty", "")

    @pytest.mark.asyncio
    async def test_rollback_on_error(self, with_empty_class, project, transport, org_dir):
        result = await (await transport.deploy(build(project, metadata=["ApexClass"]), options())).poll_status(10)

        assert result.status == RequestStatus.FAILED
        assert [c.full_name for c in result.component_failures] == ["Empty"]
        assert result.component_failures[0].problem == "Empty metadata file"
        assert "rolled back" in result.error_message
        assert not (org_dir / "metadata" / CLASSES / "Foo.cls").exists()

    @pytest.mark.asyncio
    async def test_ignore_errors_keeps_successes(self, with_empty_class, project, transport, org_dir):
        handle = await transport.deploy(build(project, metadata=["ApexClass"]), options(rollback_on_error=False))
        result = await handle.poll_status(10)

        assert result.status == RequestStatus.SUCCEEDED_PARTIAL
        assert result.number_component_errors == 1
        assert (org_dir / "metadata" / CLASSES / "Foo.cls").exists()
        assert not (org_dir / "metadata" / CLASSES / "Empty.cls").exists()

    @pytest.mark.asyncio
    async def test_ignore_errors_all_failed(self, with_empty_class, project, transport):
        handle = await transport.deploy(build(project, metadata=["ApexClass:Empty"]), options(rollback_on_error=False))
        assert (await handle.poll_status(10)).status == RequestStatus.FAILED

    @pytest.mark.asyncio
    async def test_unknown_id(self, transport):
        with pytest.raises(TransportError, match="No deploy request"):
            await transport.attach("0Af000000000099").check_status()


class TestTestsAndCoverage:

    @pytest.mark.asyncio
    async def test_local_tests_and_coverage(self, project, transport):
        handle = await transport.deploy(
            build(project, metadata=["ApexClass", "ApexTrigger"]),
            options(test_level="RunLocalTests"),
        )
        result = await handle.poll_status(10)

        assert result.status == RequestStatus.SUCCEEDED
        summary = result.test_summary
        assert [(t.name, t.method_name) for t in summary.successes] == [("FooTest", "testBar")]
        assert result.number_tests_total == 1

        coverage = {c.name: c for c in summary.code_coverage}
        assert set(coverage) == {"Foo", "AccountTrigger"}
        assert coverage["Foo"].num_locations_not_covered == 0
        assert coverage["Foo"].covered_lines == [1, 2, 3, 4, 5]
        assert coverage["AccountTrigger"].uncovered_lines == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_failing_test_fails_deploy(self, project, project_dir, transport, org_dir):
        add_class(project_dir, "BrokenTest", "@isTest\nclass BrokenTest {\n  static void fails() { System.assert(false); }\n}\n")
        handle = await transport.deploy(
            build(project, metadata=["ApexClass"]),
            options(test_level="RunSpecifiedTests", run_tests=["BrokenTest"]),
        )
        result = await handle.poll_status(10)

        assert result.status == RequestStatus.FAILED
        failure = result.test_summary.failures[0]
        assert (failure.name, failure.method_name) == ("BrokenTest", "fails")
        assert "AssertException" in failure.message
        assert not (org_dir / "metadata" / CLASSES / "Foo.cls").exists()

    @pytest.mark.asyncio
    async def test_specified_test_not_found(self, project, transport):
        handle = await transport.deploy(
            build(project, metadata=["ApexClass:Foo"]),
            options(test_level="RunSpecifiedTests", run_tests=["MissingTest"]),
        )
        result = await handle.poll_status(10)
        assert result.status == RequestStatus.FAILED
        assert "MissingTest" in result.test_summary.failures[0].message


class TestValidation:

    @pytest.mark.asyncio
    async def test_check_only_persists_nothing(self, project, transport, org_dir):
        handle = await transport.deploy(build(project, metadata=["ApexClass"]), options(check_only=True))
        result = await handle.poll_status(10)

        assert result.status == RequestStatus.SUCCEEDED
        assert result.check_only
        assert not (org_dir / "metadata" / CLASSES / "Foo.cls").exists()

    @pytest.mark.asyncio
    async def test_replay_validation(self, project, transport, org_dir):
        validation = await transport.deploy(build(project, metadata=["ApexClass"]), options(check_only=True))
        await validation.poll_status(10)

        handle = await transport.deploy_recent_validation(validation.id, rest=True)
        result = await handle.poll_status(10)

        assert handle.id == "0Af000000000002"
        assert result.status == RequestStatus.SUCCEEDED
        assert not result.check_only
        assert (org_dir / "metadata" / CLASSES / "Foo.cls").exists()

    @pytest.mark.asyncio
    async def test_replay_only_once(self, project, transport):
        validation = await transport.deploy(build(project, metadata=["ApexClass"]), options(check_only=True))
        await validation.poll_status(10)
        await transport.deploy_recent_validation(validation.id)

        with pytest.raises(TransportError, match="already deployed"):
            await transport.deploy_recent_validation(validation.id)

    @pytest.mark.asyncio
    async def test_replay_requires_validation(self, project, transport):
        deploy = await transport.deploy(build(project, metadata=["ApexClass"]), options())
        await deploy.poll_status(10)

        with pytest.raises(TransportError, match="not a successful validation"):
            await transport.deploy_recent_validation(deploy.id)

    @pytest.mark.asyncio
    async def test_replay_unknown_id(self, transport):
        with pytest.raises(TransportError, match="No validated deploy"):
            await transport.deploy_recent_validation("0Af000000000042")


class TestDeletionsAndChecksums:

    @pytest.mark.asyncio
    async def test_destructive_changes(self, project, transport, org_dir):
        await (await transport.deploy(build(project, metadata=["ApexTrigger"]), options())).poll_status(10)
        assert (org_dir / "metadata" / TRIGGERS / "AccountTrigger.trigger").exists()

        component_set = build(project, metadata=["ApexClass:Foo"])
        component_set.add(MetadataComponent("ApexTrigger", "AccountTrigger", destructive=DestructiveType.POST))
        result = await (await transport.deploy(component_set, options())).poll_status(10)

        assert result.status == RequestStatus.SUCCEEDED
        states = {c.full_name: c.state for c in result.components}
        assert states["AccountTrigger"] == ComponentState.DELETED
        assert not (org_dir / "metadata" / TRIGGERS / "AccountTrigger.trigger").exists()

    @pytest.mark.asyncio
    async def test_deleting_missing_component_fails(self, project, transport):
        component_set = build(project, metadata=["ApexClass:Foo"])
        component_set.add(MetadataComponent("ApexClass", "Ghost", destructive=DestructiveType.PRE))
        result = await (await transport.deploy(component_set, options())).poll_status(10)

        assert result.status == RequestStatus.FAILED
        assert result.component_failures[0].full_name == "Ghost"

    @pytest.mark.asyncio
    async def test_remote_checksums(self, project, transport):
        assert await transport.remote_checksums() == {}
        await (await transport.deploy(build(project, metadata=["ApexClass:Foo"]), options())).poll_status(10)

        checksums = await transport.remote_checksums()
        assert sorted(checksums) == [f"{CLASSES}/Foo.cls", f"{CLASSES}/Foo.cls-meta.xml"]
