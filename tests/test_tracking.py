"""Tests for local source tracking"""

import json

import pytest

from conftest import CLASSES, TRIGGERS, FakeTransport, write
from source_deploy.api.exceptions import ConflictError, TrackingInitError
from source_deploy.core.component_resolver import BuildOptions, ComponentSetBuilder
from source_deploy.tracking import (
    ChangeOrigin,
    ChangeState,
    filter_conflicts_by_component_set,
    find_conflicts,
    local_deletes_not_in_set,
    tracking_setup,
    update_tracking,
)

ALL_LOCAL = sorted([
    f"{CLASSES}/Foo.cls",
    f"{CLASSES}/Foo.cls-meta.xml",
    f"{CLASSES}/FooTest.cls",
    f"{CLASSES}/FooTest.cls-meta.xml",
    f"{TRIGGERS}/AccountTrigger.trigger",
    f"{TRIGGERS}/AccountTrigger.trigger-meta.xml",
])


@pytest.fixture
def tracking_path(project):
    return project.path_resolver.tracking_path


@pytest.fixture
def builder(project):
    return ComponentSetBuilder(project.root, project.package_dirs())


async def setup_store(project, transport):
    return await tracking_setup(project.path_resolver.tracking_path, project.root, project.package_dirs(), transport)


class TestLoad:

    @pytest.mark.asyncio
    async def test_fresh_project_sees_all_files_added(self, project, transport):
        store = await setup_store(project, transport)

        assert store.get_changes(ChangeOrigin.LOCAL) == ALL_LOCAL
        assert store.get_changes(ChangeOrigin.LOCAL, ChangeState.MODIFY) == []
        assert store.get_changes(ChangeOrigin.REMOTE) == []

    @pytest.mark.asyncio
    async def test_corrupt_file(self, project, transport, tracking_path):
        write(tracking_path.parent, tracking_path.name, "not json")
        with pytest.raises(TrackingInitError, match="unreadable"):
            await setup_store(project, transport)

    @pytest.mark.asyncio
    async def test_missing_files_mapping(self, project, transport, tracking_path):
        write(tracking_path.parent, tracking_path.name, json.dumps({"paths": []}))
        with pytest.raises(TrackingInitError, match="'files'"):
            await setup_store(project, transport)

    @pytest.mark.asyncio
    async def test_transport_without_tracking_support(self, project):
        with pytest.raises(TrackingInitError, match="not available"):
            await setup_store(project, FakeTransport())


class TestConflicts:

    @pytest.mark.asyncio
    async def test_diverging_content_conflicts(self, project, transport, org_dir, builder):
        write(org_dir, f"metadata/{CLASSES}/Foo.cls", "public class Foo { /* edited in org */ }\n")
        store = await setup_store(project, transport)
        component_set = builder.build(BuildOptions(metadata=["ApexClass"]))

        conflicts = find_conflicts(store, component_set)
        assert [(c.full_name, c.file_path) for c in conflicts] == [("Foo", f"{CLASSES}/Foo.cls")]

        with pytest.raises(ConflictError) as exc_info:
            filter_conflicts_by_component_set(store, component_set)
        assert exc_info.value.data == [{
            "state": "Conflict",
            "full_name": "Foo",
            "type": "ApexClass",
            "file_path": f"{CLASSES}/Foo.cls",
        }]

    @pytest.mark.asyncio
    async def test_identical_content_is_not_a_conflict(self, project, project_dir, transport, org_dir, builder):
        write(org_dir, f"metadata/{CLASSES}/Foo.cls", (project_dir / CLASSES / "Foo.cls").read_text())
        store = await setup_store(project, transport)

        filter_conflicts_by_component_set(store, builder.build(BuildOptions(metadata=["ApexClass"])))

    @pytest.mark.asyncio
    async def test_conflicts_outside_the_set_are_ignored(self, project, transport, org_dir, builder):
        write(org_dir, f"metadata/{TRIGGERS}/AccountTrigger.trigger", "trigger AccountTrigger on Account (after insert) {}\n")
        store = await setup_store(project, transport)

        filter_conflicts_by_component_set(store, builder.build(BuildOptions(metadata=["ApexClass"])))


class TestUpdateTracking:

    @pytest.mark.asyncio
    async def test_deploy_records_synced_files(self, project, transport, builder, tracking_path):
        component_set = builder.build(BuildOptions(metadata=["ApexClass"]))
        store = await setup_store(project, transport)

        handle = await transport.deploy(component_set, {"rollback_on_error": True})
        result = await handle.poll_status(10)
        updated = await update_tracking(store, result, component_set)

        assert sorted(updated) == ALL_LOCAL[:4]
        assert sorted(json.loads(tracking_path.read_text())["files"]) == ALL_LOCAL[:4]

        reloaded = await setup_store(project, transport)
        assert reloaded.get_changes(ChangeOrigin.LOCAL) == ALL_LOCAL[4:]
        assert reloaded.get_changes(ChangeOrigin.REMOTE) == []

    @pytest.mark.asyncio
    async def test_local_delete_not_in_set(self, project, project_dir, transport, builder):
        component_set = builder.build(BuildOptions(metadata=["ApexClass"]))
        store = await setup_store(project, transport)
        result = await (await transport.deploy(component_set, {})).poll_status(10)
        await update_tracking(store, result, component_set)

        (project_dir / CLASSES / "Foo.cls").unlink()
        store = await setup_store(project, transport)

        assert store.get_changes(ChangeOrigin.LOCAL, ChangeState.DELETE) == [f"{CLASSES}/Foo.cls"]
        test_only = builder.build(BuildOptions(metadata=["ApexClass:FooTest"]))
        assert local_deletes_not_in_set(store, test_only) == [f"{CLASSES}/Foo.cls"]

    @pytest.mark.asyncio
    async def test_failed_components_are_not_tracked(self, project, project_dir, transport, builder):
        write(project_dir, f"{CLASSES}/Empty.cls", "")
        write(project_dir, f"{CLASSES}/Empty.cls-meta.xml", "<ApexClass/>")
        component_set = builder.build(BuildOptions(metadata=["ApexClass"]))
        store = await setup_store(project, transport)

        result = await (await transport.deploy(component_set, {"rollback_on_error": False})).poll_status(10)
        updated = await update_tracking(store, result, component_set)

        assert f"{CLASSES}/Empty.cls" not in updated
        assert f"{CLASSES}/Foo.cls" in updated


TRIGGER_MANIFEST = """<?xml version="1.0" encoding="UTF-8"?>
<Package xmlns="http://soap.sforce.com/2006/04/metadata">
    <types>
        <members>AccountTrigger</members>
        <name>ApexTrigger</name>
    </types>
    <version>57.0</version>
</Package>
"""

DESTROY_FOO = """<?xml version="1.0" encoding="UTF-8"?>
<Package xmlns="http://soap.sforce.com/2006/04/metadata">
    <types>
        <members>Foo</members>
        <name>ApexClass</name>
    </types>
    <version>57.0</version>
</Package>
"""


class TestDestructiveChanges:

    async def deploy_and_track(self, project, transport, component_set):
        store = await setup_store(project, transport)
        result = await (await transport.deploy(component_set, {})).poll_status(10)
        await update_tracking(store, result, component_set)
        return result

    @pytest.mark.asyncio
    async def test_deleted_component_is_forgotten(self, project, project_dir, transport, builder, tracking_path):
        await self.deploy_and_track(project, transport, builder.build(BuildOptions(metadata=["ApexClass"])))
        for name in ("Foo.cls", "Foo.cls-meta.xml"):
            (project_dir / CLASSES / name).unlink()
        write(project_dir, "manifest/trigger.xml", TRIGGER_MANIFEST)
        write(project_dir, "manifest/destructive.xml", DESTROY_FOO)

        fresh_builder = ComponentSetBuilder(project.root, project.package_dirs())
        component_set = fresh_builder.build(BuildOptions(
            manifest=str(project_dir / "manifest/trigger.xml"),
            post_destructive_changes=str(project_dir / "manifest/destructive.xml"),
        ))
        store = await setup_store(project, transport)
        assert store.get_changes(ChangeOrigin.LOCAL, ChangeState.DELETE) == ALL_LOCAL[:2]
        assert local_deletes_not_in_set(store, component_set) == []

        result = await self.deploy_and_track(project, transport, component_set)
        assert result.success

        tracked = json.loads(tracking_path.read_text())["files"]
        assert f"{CLASSES}/Foo.cls" not in tracked
        assert f"{CLASSES}/Foo.cls-meta.xml" not in tracked
        assert f"{CLASSES}/FooTest.cls" in tracked

        reloaded = await setup_store(project, transport)
        assert reloaded.get_changes(ChangeOrigin.LOCAL, ChangeState.DELETE) == []

    @pytest.mark.asyncio
    async def test_deletion_of_a_file_still_present_locally(self, project, project_dir, transport, builder):
        await self.deploy_and_track(project, transport, builder.build(BuildOptions(metadata=["ApexClass"])))
        (project_dir / CLASSES / "Foo.cls").unlink()
        write(project_dir, "manifest/trigger.xml", TRIGGER_MANIFEST)
        write(project_dir, "manifest/destructive.xml", DESTROY_FOO)

        component_set = ComponentSetBuilder(project.root, project.package_dirs()).build(BuildOptions(
            manifest=str(project_dir / "manifest/trigger.xml"),
            pre_destructive_changes=str(project_dir / "manifest/destructive.xml"),
        ))
        store = await setup_store(project, transport)

        assert component_set.get("ApexClass", "Foo").files == [f"{CLASSES}/Foo.cls-meta.xml"]
        assert local_deletes_not_in_set(store, component_set) == []
