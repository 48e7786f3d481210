"""Local source tracking store"""

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

import aiofiles

from ..api.exceptions import TrackingInitError
from ..core.component_resolver import identify
from ..models.component import ComponentSet, MetadataComponent
from ..models.result import ComponentState, DeployResult
from ..transport.base import DeployTransport
from ..utils.hash_utils import calculate_sha256, checksum_files

logger = logging.getLogger(__name__)


class ChangeOrigin(Enum):
    LOCAL = "local"
    REMOTE = "remote"


class ChangeState(Enum):
    ADD = "add"
    MODIFY = "modify"
    DELETE = "delete"


class LocalTrackingStore:
    """Path to sha256 of the content last synced with the org

    Local changes are computed against the package directories, remote
    changes against the checksums the transport reports for the org.
    """

    def __init__(self, tracking_path: Path, project_root: Path, package_dirs: List[Path],
                 transport: DeployTransport):
        self.tracking_path = Path(tracking_path)
        self.project_root = Path(project_root).resolve()
        self.package_dirs = [Path(d).resolve() for d in package_dirs]
        self.transport = transport
        self._tracked: Optional[Dict[str, str]] = None
        self._local: Optional[Dict[str, str]] = None
        self._remote: Optional[Dict[str, str]] = None

    @property
    def tracked(self) -> Dict[str, str]:
        if self._tracked is None:
            raise TrackingInitError("Tracking store has not been loaded")
        return self._tracked

    async def load(self) -> None:
        """Read tracked state and both checksum views

        Raises:
            TrackingInitError: If the store is corrupt or the org cannot report checksums
        """
        self._tracked = await self._read()

        try:
            self._remote = await self.transport.remote_checksums()
        except NotImplementedError as e:
            raise TrackingInitError(f"Source tracking is not available for this org: {e}")

        self._local = self._local_checksums()
        logger.debug(
            f"Loaded tracking: {len(self._tracked)} tracked, "
            f"{len(self._local)} local, {len(self._remote)} remote files"
        )

    async def _read(self) -> Dict[str, str]:
        if not self.tracking_path.exists():
            return {}
        try:
            async with aiofiles.open(self.tracking_path, 'r') as f:
                data = json.loads(await f.read())
        except (OSError, ValueError) as e:
            raise TrackingInitError(f"Tracking file {self.tracking_path} is unreadable: {e}")

        files = data.get("files") if isinstance(data, dict) else None
        if not isinstance(files, dict):
            raise TrackingInitError(f"Tracking file {self.tracking_path} has no 'files' mapping")
        return files

    async def save(self) -> None:
        self.tracking_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.tracking_path.with_suffix(".tmp")
        async with aiofiles.open(tmp_path, 'w') as f:
            await f.write(json.dumps({"files": self.tracked}, indent=2, sort_keys=True))
        tmp_path.replace(self.tracking_path)

    def _local_checksums(self) -> Dict[str, str]:
        checksums = {}
        for package_dir in self.package_dirs:
            if package_dir.is_dir():
                checksums.update(checksum_files(self.project_root, sorted(package_dir.rglob("*"))))
        return checksums

    def _checksums(self, origin: ChangeOrigin) -> Dict[str, str]:
        checksums = self._local if origin == ChangeOrigin.LOCAL else self._remote
        if checksums is None:
            raise TrackingInitError("Tracking store has not been loaded")
        return checksums

    def get_changes(self, origin: ChangeOrigin, state: Optional[ChangeState] = None) -> List[str]:
        """Paths changed since the last sync on one side

        Args:
            origin: Compare the tracked state with local files or the org
            state: Restrict to additions, modifications or deletions
        """
        current = self._checksums(origin)
        tracked = self.tracked
        changes = []

        if state in (None, ChangeState.ADD):
            changes.extend(p for p in current if p not in tracked)
        if state in (None, ChangeState.MODIFY):
            changes.extend(p for p in current if p in tracked and tracked[p] != current[p])
        if state in (None, ChangeState.DELETE):
            changes.extend(p for p in tracked if p not in current)

        return sorted(changes)

    def checksum(self, origin: ChangeOrigin, path: str) -> Optional[str]:
        return self._checksums(origin).get(path)

    def tracked_paths_of(self, component: MetadataComponent) -> List[str]:
        """Tracked paths of a component, including files already removed locally"""
        paths = set(component.files)
        paths.update(p for p in self.tracked if identify(p) == component.key)
        return sorted(paths)

    async def update_tracking_from_deploy(self, result: DeployResult, component_set: ComponentSet) -> List[str]:
        """Record deployed and deleted files as synced

        Returns:
            Paths whose tracked state changed
        """
        tracked = dict(self.tracked)
        updated = []

        for outcome in result.components:
            if not outcome.success:
                continue
            component = component_set.get(outcome.type, outcome.full_name)
            if component is None:
                continue

            if outcome.state == ComponentState.DELETED:
                for rel_path in self.tracked_paths_of(component):
                    if tracked.pop(rel_path, None) is not None:
                        updated.append(rel_path)
                continue

            for rel_path in component.files:
                full_path = self.project_root / rel_path
                if full_path.is_file():
                    tracked[rel_path] = calculate_sha256(full_path)
                    updated.append(rel_path)

        self._tracked = tracked
        await self.save()
        logger.debug(f"Tracking updated for {len(updated)} files")
        return updated
