"""CLI context object"""

from pathlib import Path
from typing import Optional

from ..core.project import Project


class Context:
    """CLI context object with lazy project loading

    Only commands decorated with ``require_project`` load the project.
    """

    def __init__(self):
        self.verbose: bool = False
        self.debug: bool = False
        self.project_root: Optional[Path] = None
        self._project: Optional[Project] = None

    @property
    def project(self) -> Project:
        if self._project is None:
            self._project = Project.load(self.project_root)
        return self._project
