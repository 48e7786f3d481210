"""Source Deploy - deploy metadata source to an org and report on deploys.

This tool resolves local source into components, checks tracked changes for
conflicts, submits the deploy and polls it to completion.
"""

from .__version__ import __version__, __version_info__, __author__, __email__, __license__

# Core API
from .api.deployer import Deployer

# Data models
from .models.component import ComponentSet, MetadataComponent
from .models.request import DeployRequest, ReportRequest, TestLevel
from .models.result import AsyncDeployHandle, DeployResult, RequestStatus

# Exceptions
from .api.exceptions import (
    SourceDeployError,
    ConfigurationError,
    ResolutionError,
    ConflictError,
    PollTimeout,
    TransportError,
    TrackingInitError,
    HookError,
    ProjectNotFoundError,
)

__all__ = [
    # Version information
    "__version__",
    "__version_info__",
    "__author__",
    "__email__",
    "__license__",

    # Main classes
    "Deployer",

    # Data models
    "ComponentSet",
    "MetadataComponent",
    "DeployRequest",
    "ReportRequest",
    "TestLevel",
    "AsyncDeployHandle",
    "DeployResult",
    "RequestStatus",

    # Exceptions
    "SourceDeployError",
    "ConfigurationError",
    "ResolutionError",
    "ConflictError",
    "PollTimeout",
    "TransportError",
    "TrackingInitError",
    "HookError",
    "ProjectNotFoundError",
]
