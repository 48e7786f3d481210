"""Exception definitions for source-deploy"""

from typing import Any, Dict, List, Optional

from ..constants import ErrorCode


class SourceDeployError(Exception):
    """Base exception for source-deploy"""

    def __init__(self, message: str, error_code: str = None):
        super().__init__(message)
        self.error_code = error_code

    @property
    def data(self) -> Optional[Any]:
        """Extra payload rendered in machine-readable error output"""
        return None


class ConfigurationError(SourceDeployError):
    """Invalid or contradictory flags or project configuration"""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR)


class ResolutionError(SourceDeployError):
    """Component inputs are unreadable or ambiguous"""

    def __init__(self, message: str, missing: Optional[List[str]] = None):
        super().__init__(message, ErrorCode.RESOLUTION_ERROR)
        self.missing = missing or []


class ConflictEntry:
    """One path changed both locally and in the org"""

    def __init__(self, full_name: str, type: str, file_path: str, state: str = "Conflict"):
        self.full_name = full_name
        self.type = type
        self.file_path = file_path
        self.state = state

    def to_dict(self) -> Dict[str, str]:
        return {
            "state": self.state,
            "full_name": self.full_name,
            "type": self.type,
            "file_path": self.file_path,
        }

    def __eq__(self, other):
        if not isinstance(other, ConflictEntry):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"ConflictEntry({self.type}:{self.full_name} {self.file_path})"


class ConflictError(SourceDeployError):
    """Tracked local and remote changes diverge"""

    def __init__(self, conflicts: List[ConflictEntry]):
        paths = ", ".join(c.file_path for c in conflicts)
        message = (
            f"There are changes in the org that conflict with the local changes you're trying to deploy: {paths}. "
            "Use --force-overwrite to overwrite the org."
        )
        super().__init__(message, ErrorCode.CONFLICT)
        self.conflicts = conflicts

    @property
    def data(self) -> List[Dict[str, str]]:
        return [c.to_dict() for c in self.conflicts]


class PollTimeout(SourceDeployError):
    """Polling stopped before the deploy reached a terminal status"""

    def __init__(self, deploy_id: str, timeout: float):
        super().__init__(
            f"Polling for deploy {deploy_id} timed out after {timeout:.0f}s",
            ErrorCode.POLL_TIMEOUT
        )
        self.deploy_id = deploy_id
        self.timeout = timeout


class TransportError(SourceDeployError):
    """Deploy transport failure"""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.TRANSPORT_ERROR)


class TrackingInitError(SourceDeployError):
    """Source tracking was requested but could not be initialized"""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.TRACKING_INIT_FAILED)


class HookError(SourceDeployError):
    """A deploy hook script failed"""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.HOOK_FAILED)


class ProjectNotFoundError(SourceDeployError):
    """Project root not found error"""

    def __init__(self, message: str = None):
        if message is None:
            message = (
                "No project root found. Please ensure:\n"
                "1. You are in a project directory\n"
                "2. The project root contains .source-deploy.yaml"
            )
        super().__init__(message, ErrorCode.PROJECT_NOT_FOUND)
