"""Project configuration loading"""

import logging
import os
from pathlib import Path
from typing import List, Optional, Union

import jsonschema
import yaml
from packaging.version import Version

from ..api.exceptions import ConfigurationError
from ..constants import ENV_CONFIG_PATH
from ..models.config import CONFIG_SCHEMA, ProjectConfig
from .input_mode import validate_api_version
from .path_resolver import PathResolver

logger = logging.getLogger(__name__)


def load_config(config_path: Path) -> ProjectConfig:
    """Load and validate a project configuration file

    Environment variables in the file are expanded before parsing.

    Raises:
        ConfigurationError: If the file is missing, malformed or invalid
    """
    if not config_path.is_file():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r') as f:
        content = f.read()

    content = os.path.expandvars(content)

    try:
        data = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}")

    try:
        jsonschema.validate(data, CONFIG_SCHEMA)
    except jsonschema.ValidationError as e:
        location = ".".join(str(p) for p in e.absolute_path) or "<root>"
        raise ConfigurationError(f"Invalid configuration at {location}: {e.message}")

    config = ProjectConfig.from_dict(data)
    validate_api_version(config.api_version, "project.api_version")
    validate_api_version(config.source_api_version, "project.source_api_version")
    return config


class Project:
    """A source-deploy project: root directory plus its configuration"""

    def __init__(self, path_resolver: PathResolver, config: ProjectConfig):
        self.path_resolver = path_resolver
        self.config = config

    @classmethod
    def load(cls, project_root: Optional[Union[str, Path]] = None) -> 'Project':
        """Discover and load a project

        Raises:
            ProjectNotFoundError: If no project root is found
            ConfigurationError: If the configuration is invalid
        """
        resolver = PathResolver(project_root)
        config_path = Path(os.environ[ENV_CONFIG_PATH]) if os.environ.get(ENV_CONFIG_PATH) else resolver.config_path
        config = load_config(config_path)
        logger.debug(f"Loaded project {config.name or resolver.project_root.name} from {config_path}")
        return cls(resolver, config)

    @property
    def root(self) -> Path:
        return self.path_resolver.project_root

    def package_dirs(self) -> List[Path]:
        return self.path_resolver.package_dirs(self.config.package_directories)

    def api_version_warnings(self, api_version: Optional[str] = None) -> List[str]:
        """Warn when source is newer than the API version it is sent with"""
        target = api_version or self.config.api_version
        source = self.config.source_api_version
        if target and source and Version(source) > Version(target):
            return [
                f"Source API version {source} is newer than the deploy API version {target}; "
                f"metadata introduced after {target} may be rejected."
            ]
        return []
