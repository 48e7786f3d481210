"""Path resolution module for source-deploy"""

import json
import logging
from pathlib import Path
from typing import List, Optional, Union

from ..api.exceptions import ProjectNotFoundError
from ..constants import PROJECT_CONFIG_FILE, PROJECT_STATE_DIR, STASH_FILE, TRACKING_FILE

logger = logging.getLogger(__name__)


def find_project_root(start_path: Optional[Union[str, Path]] = None) -> Optional[Path]:
    """Find the project root directory by looking for the config file

    Args:
        start_path: Starting directory (defaults to current directory)

    Returns:
        Project root path or None if not found
    """
    current = Path(start_path).resolve() if start_path else Path.cwd().resolve()

    while True:
        if (current / PROJECT_CONFIG_FILE).is_file():
            return current
        if current == current.parent:
            return None
        current = current.parent


class PathResolver:
    """Resolves paths within a source-deploy project"""

    def __init__(self, project_root: Optional[Union[str, Path]] = None):
        """Initialize path resolver

        Args:
            project_root: Root directory of the project; discovered from the
                current directory when omitted

        Raises:
            ProjectNotFoundError: If no project root can be found
        """
        if project_root is None:
            project_root = find_project_root()
            if project_root is None:
                raise ProjectNotFoundError()
        self.project_root = Path(project_root).resolve()

    def resolve(self, path: Union[str, Path]) -> Path:
        """Resolve a path relative to project root

        Args:
            path: Path to resolve (can be relative or absolute)

        Returns:
            Resolved absolute path
        """
        path = Path(path)

        if path.is_absolute():
            return path

        return (self.project_root / path).resolve()

    def relative(self, path: Union[str, Path]) -> str:
        """Project-relative POSIX path, the key used by tracking and the org"""
        return self.resolve(path).relative_to(self.project_root).as_posix()

    def package_dirs(self, package_directories: List[str]) -> List[Path]:
        return [self.resolve(d) for d in package_directories]

    @property
    def config_path(self) -> Path:
        return self.project_root / PROJECT_CONFIG_FILE

    @property
    def state_dir(self) -> Path:
        return self.project_root / PROJECT_STATE_DIR

    @property
    def tracking_path(self) -> Path:
        return self.state_dir / TRACKING_FILE

    @property
    def stash_path(self) -> Path:
        return self.state_dir / STASH_FILE


def resolve_results_dir(wants_reports: bool,
                        results_dir: Optional[str],
                        deploy_id: Optional[str],
                        base_dir: Optional[Path] = None) -> Optional[Path]:
    """Directory that coverage and JUnit reports are written to

    Reports are always placed in a per-request subdirectory so repeated
    reports for different deploys never overwrite each other.

    Returns:
        None when no reports were requested or no request id is known
    """
    if not wants_reports or not deploy_id:
        return None
    base = Path(results_dir) if results_dir else (base_dir or Path.cwd())
    return base / deploy_id


class DeployIdStash:
    """Remembers the most recent deploy id for the report command"""

    def __init__(self, stash_path: Path):
        self.stash_path = stash_path

    def get(self) -> Optional[str]:
        if not self.stash_path.is_file():
            return None
        try:
            data = json.loads(self.stash_path.read_text())
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable deploy stash {self.stash_path}: {e}")
            return None
        return data.get("deploy", {}).get("job_id")

    def set(self, deploy_id: str) -> None:
        self.stash_path.parent.mkdir(parents=True, exist_ok=True)
        data = {}
        if self.stash_path.is_file():
            try:
                data = json.loads(self.stash_path.read_text())
            except ValueError:
                data = {}
        data["deploy"] = {"job_id": deploy_id}
        self.stash_path.write_text(json.dumps(data, indent=2))
        logger.debug(f"Stashed deploy id {deploy_id}")
