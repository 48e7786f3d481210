"""Tracking steps used by the deploy orchestrator"""

import logging
from pathlib import Path
from typing import List

from ..api.exceptions import ConflictEntry, ConflictError
from ..models.component import ComponentSet
from ..models.result import DeployResult
from ..transport.base import DeployTransport
from .store import ChangeOrigin, ChangeState, LocalTrackingStore

logger = logging.getLogger(__name__)


async def tracking_setup(tracking_path: Path, project_root: Path, package_dirs: List[Path],
                         transport: DeployTransport) -> LocalTrackingStore:
    """Create and load the tracking store for a deploy

    Raises:
        TrackingInitError: If the store cannot be loaded
    """
    store = LocalTrackingStore(tracking_path, project_root, package_dirs, transport)
    await store.load()
    return store


def _component_files(component_set: ComponentSet) -> List[str]:
    files = []
    for component in component_set:
        files.extend(component.files)
    return files


def find_conflicts(store: LocalTrackingStore, component_set: ComponentSet) -> List[ConflictEntry]:
    """Paths of the component set changed locally and in the org with different content"""
    local = set(store.get_changes(ChangeOrigin.LOCAL))
    remote = set(store.get_changes(ChangeOrigin.REMOTE))

    conflicts = []
    for rel_path in _component_files(component_set):
        if rel_path not in local or rel_path not in remote:
            continue
        if store.checksum(ChangeOrigin.LOCAL, rel_path) == store.checksum(ChangeOrigin.REMOTE, rel_path):
            continue
        component = component_set.find_by_path(rel_path)
        conflicts.append(ConflictEntry(component.full_name, component.type, rel_path))
    return conflicts


def filter_conflicts_by_component_set(store: LocalTrackingStore, component_set: ComponentSet) -> None:
    """Abort when any file about to be deployed conflicts with the org

    Raises:
        ConflictError: Listing every conflicting path
    """
    conflicts = find_conflicts(store, component_set)
    if conflicts:
        logger.debug(f"Found {len(conflicts)} conflicts")
        raise ConflictError(conflicts)


def local_deletes_not_in_set(store: LocalTrackingStore, component_set: ComponentSet) -> List[str]:
    """Locally deleted tracked paths that this deploy will not delete in the org"""
    files = set(_component_files(component_set))
    for component in component_set:
        if component.is_deletion:
            files.update(store.tracked_paths_of(component))
    return [p for p in store.get_changes(ChangeOrigin.LOCAL, ChangeState.DELETE) if p not in files]


async def update_tracking(store: LocalTrackingStore, result: DeployResult, component_set: ComponentSet) -> List[str]:
    return await store.update_tracking_from_deploy(result, component_set)
