"""Deploy transport factory"""

from pathlib import Path
from typing import Any, Dict, List, Type

from ..api.exceptions import ConfigurationError
from ..constants import TRANSPORT_FILESYSTEM
from ..models.config import OrgConfig
from .base import DeployTransport
from .filesystem import FilesystemTransport


class TransportFactory:
    """Factory for creating deploy transport instances"""

    # Registry of transports
    _transports: Dict[str, Type[DeployTransport]] = {
        TRANSPORT_FILESYSTEM: FilesystemTransport,
    }

    @classmethod
    def create_from_config(cls, org: OrgConfig, project_root: Path) -> DeployTransport:
        """Create a transport for the configured org

        Args:
            org: Org configuration
            project_root: Root that submitted source paths are relative to

        Returns:
            Transport instance

        Raises:
            ConfigurationError: If the transport is unknown or misconfigured
        """
        if org.transport not in cls._transports:
            raise ConfigurationError(f"Unsupported transport: {org.transport}")

        config: Dict[str, Any] = {
            "username": org.username,
            "poll_interval": org.poll_interval,
            "batch_size": org.batch_size,
            "project_root": str(project_root),
        }

        if org.transport == TRANSPORT_FILESYSTEM:
            if not org.path:
                raise ConfigurationError("org.path is required for the filesystem transport")
            path = Path(org.path).expanduser()
            config["path"] = str(path if path.is_absolute() else Path(project_root) / path)

        return cls.create_from_dict(org.transport, config)

    @classmethod
    def create_from_dict(cls, transport: str, config: Dict[str, Any]) -> DeployTransport:
        if transport not in cls._transports:
            raise ConfigurationError(f"Unsupported transport: {transport}")
        return cls._transports[transport](config)

    @classmethod
    def register_transport(cls, name: str, transport_class: Type[DeployTransport]):
        """Register a new transport type"""
        cls._transports[name] = transport_class

    @classmethod
    def get_supported_types(cls) -> List[str]:
        return list(cls._transports.keys())
