"""Configuration data models"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..constants import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_HOOK_TIMEOUT,
    DEFAULT_HOOKS_DIR,
    DEFAULT_PACKAGE_DIRECTORIES,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_WAIT_MINUTES,
    SUPPORTED_TRANSPORTS,
    TRANSPORT_FILESYSTEM,
)

CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "project": {
            "type": "object",
            "properties": {
                "name": {"type": "string"},
                "package_directories": {
                    "type": "array",
                    "items": {"type": "string"},
                    "minItems": 1,
                },
                "api_version": {"type": "string"},
                "source_api_version": {"type": "string"},
            },
        },
        "org": {
            "type": "object",
            "properties": {
                "username": {"type": "string"},
                "transport": {"enum": SUPPORTED_TRANSPORTS},
                "path": {"type": "string"},
                "poll_interval": {"type": "number", "minimum": 0},
                "batch_size": {"type": "integer", "minimum": 1},
            },
        },
        "deploy": {
            "type": "object",
            "properties": {
                "wait_minutes": {"type": "number", "minimum": 0},
                "rest": {"type": "boolean"},
            },
        },
        "hooks": {
            "type": "object",
            "properties": {
                "dir": {"type": "string"},
                "timeout": {"type": "number", "minimum": 0},
            },
        },
    },
}


@dataclass
class OrgConfig:
    """Target org connection settings"""

    username: Optional[str] = None
    transport: str = TRANSPORT_FILESYSTEM
    path: Optional[str] = None
    poll_interval: float = DEFAULT_POLL_INTERVAL
    batch_size: int = DEFAULT_BATCH_SIZE

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "transport": self.transport,
            "poll_interval": self.poll_interval,
            "batch_size": self.batch_size,
        }
        if self.username:
            data["username"] = self.username
        if self.path:
            data["path"] = self.path
        return data


@dataclass
class ProjectConfig:
    """Project configuration loaded from .source-deploy.yaml"""

    name: Optional[str] = None
    package_directories: List[str] = field(default_factory=lambda: list(DEFAULT_PACKAGE_DIRECTORIES))
    api_version: Optional[str] = None
    source_api_version: Optional[str] = None
    org: OrgConfig = field(default_factory=OrgConfig)
    wait_minutes: float = DEFAULT_WAIT_MINUTES
    rest: Optional[bool] = None
    hooks_dir: str = DEFAULT_HOOKS_DIR
    hook_timeout: float = DEFAULT_HOOK_TIMEOUT

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProjectConfig':
        """Create from a schema-validated dictionary"""
        data = data or {}
        project = data.get("project", {})
        org = data.get("org", {})
        deploy = data.get("deploy", {})
        hooks = data.get("hooks", {})

        return cls(
            name=project.get("name"),
            package_directories=project.get("package_directories", list(DEFAULT_PACKAGE_DIRECTORIES)),
            api_version=project.get("api_version"),
            source_api_version=project.get("source_api_version"),
            org=OrgConfig(
                username=org.get("username"),
                transport=org.get("transport", TRANSPORT_FILESYSTEM),
                path=org.get("path"),
                poll_interval=org.get("poll_interval", DEFAULT_POLL_INTERVAL),
                batch_size=org.get("batch_size", DEFAULT_BATCH_SIZE),
            ),
            wait_minutes=deploy.get("wait_minutes", DEFAULT_WAIT_MINUTES),
            rest=deploy.get("rest"),
            hooks_dir=hooks.get("dir", DEFAULT_HOOKS_DIR),
            hook_timeout=hooks.get("timeout", DEFAULT_HOOK_TIMEOUT),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        project = {"package_directories": list(self.package_directories)}
        if self.name:
            project["name"] = self.name
        if self.api_version:
            project["api_version"] = self.api_version
        if self.source_api_version:
            project["source_api_version"] = self.source_api_version

        deploy = {"wait_minutes": self.wait_minutes}
        if self.rest is not None:
            deploy["rest"] = self.rest

        return {
            "project": project,
            "org": self.org.to_dict(),
            "deploy": deploy,
            "hooks": {"dir": self.hooks_dir, "timeout": self.hook_timeout},
        }
