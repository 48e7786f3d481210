"""API layer for source-deploy"""

from .exceptions import (
    SourceDeployError,
    ConfigurationError,
    ResolutionError,
    ConflictEntry,
    ConflictError,
    PollTimeout,
    TransportError,
    TrackingInitError,
    HookError,
    ProjectNotFoundError,
)
from .deployer import Deployer

__all__ = [
    "Deployer",
    "SourceDeployError",
    "ConfigurationError",
    "ResolutionError",
    "ConflictEntry",
    "ConflictError",
    "PollTimeout",
    "TransportError",
    "TrackingInitError",
    "HookError",
    "ProjectNotFoundError",
]
