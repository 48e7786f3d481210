"""Deploy transports for source-deploy"""

from .base import (
    EVENT_API_VERSION,
    EVENT_FINISH,
    EVENT_UPDATE,
    DeployHandle,
    DeployTransport,
    EventSource,
)
from .filesystem import FilesystemDeployHandle, FilesystemTransport
from .factory import TransportFactory

__all__ = [
    'EVENT_API_VERSION',
    'EVENT_FINISH',
    'EVENT_UPDATE',
    'DeployHandle',
    'DeployTransport',
    'EventSource',
    'FilesystemDeployHandle',
    'FilesystemTransport',
    'TransportFactory',
]
