"""Component resolution: turn paths, metadata names or a manifest into a ComponentSet"""

import fnmatch
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from ..api.exceptions import ResolutionError
from ..models.component import ComponentSet, DestructiveType, MetadataComponent
from .manifest import WILDCARD, read_manifest

logger = logging.getLogger(__name__)

META_SUFFIX = "-meta.xml"


@dataclass(frozen=True)
class MetadataType:
    """Registry entry describing how a metadata type is laid out on disk"""

    name: str
    directory: str
    suffix: Optional[str] = None
    bundle: bool = False


METADATA_TYPES = [
    MetadataType("ApexClass", "classes", "cls"),
    MetadataType("ApexTrigger", "triggers", "trigger"),
    MetadataType("ApexPage", "pages", "page"),
    MetadataType("ApexComponent", "components", "component"),
    MetadataType("StaticResource", "staticresources", "resource"),
    MetadataType("CustomObject", "objects", "object"),
    MetadataType("Layout", "layouts", "layout"),
    MetadataType("Profile", "profiles", "profile"),
    MetadataType("PermissionSet", "permissionsets", "permissionset"),
    MetadataType("Flow", "flows", "flow"),
    MetadataType("CustomLabels", "labels", "labels"),
    MetadataType("LightningComponentBundle", "lwc", bundle=True),
    MetadataType("AuraDefinitionBundle", "aura", bundle=True),
]

_BY_NAME = {t.name: t for t in METADATA_TYPES}
_BY_SUFFIX = {t.suffix: t for t in METADATA_TYPES if t.suffix}
_BUNDLE_DIRS = {t.directory: t for t in METADATA_TYPES if t.bundle}


def get_metadata_type(name: str) -> MetadataType:
    try:
        return _BY_NAME[name]
    except KeyError:
        raise ResolutionError(f"Unknown metadata type: {name}")


def identify(rel_path: str) -> Optional[Tuple[str, str]]:
    """Map a project-relative file path to (type, full name)

    Returns:
        None for files that are not metadata source
    """
    parts = rel_path.split("/")

    # bundles: <dir>/<bundle name>/<any file>
    for index, part in enumerate(parts[:-2]):
        if part in _BUNDLE_DIRS:
            return _BUNDLE_DIRS[part].name, parts[index + 1]

    filename = parts[-1]
    if filename.endswith(META_SUFFIX):
        filename = filename[:-len(META_SUFFIX)]
    if "." not in filename:
        return None

    full_name, suffix = filename.rsplit(".", 1)
    metadata_type = _BY_SUFFIX.get(suffix)
    if metadata_type is None or not full_name:
        return None
    return metadata_type.name, full_name


@dataclass
class BuildOptions:
    """Inputs to :meth:`ComponentSetBuilder.build`; exactly one source is set"""

    api_version: Optional[str] = None
    source_api_version: Optional[str] = None
    source_paths: Sequence[str] = ()
    manifest: Optional[str] = None
    pre_destructive_changes: Optional[str] = None
    post_destructive_changes: Optional[str] = None
    metadata: Sequence[str] = ()


class ComponentSetBuilder:
    """Resolve local source in the project's package directories"""

    def __init__(self, project_root: Path, package_dirs: List[Path]):
        self.project_root = Path(project_root).resolve()
        self.package_dirs = [Path(d).resolve() for d in package_dirs]
        self._index: Optional[Dict[Tuple[str, str], MetadataComponent]] = None

    def _relative(self, path: Path) -> str:
        return path.resolve().relative_to(self.project_root).as_posix()

    def _scan(self) -> Dict[Tuple[str, str], MetadataComponent]:
        if self._index is not None:
            return self._index

        index: Dict[Tuple[str, str], MetadataComponent] = {}
        for package_dir in self.package_dirs:
            if not package_dir.is_dir():
                logger.warning(f"Package directory does not exist: {package_dir}")
                continue
            for file_path in sorted(package_dir.rglob("*")):
                if not file_path.is_file():
                    continue
                rel_path = self._relative(file_path)
                identity = identify(rel_path)
                if identity is None:
                    logger.debug(f"Skipping non-metadata file {rel_path}")
                    continue
                component = index.setdefault(identity, MetadataComponent(*identity))
                component.files.append(rel_path)

        logger.debug(f"Indexed {len(index)} local components")
        self._index = index
        return index

    def local_components(self) -> List[MetadataComponent]:
        """Every component found in the package directories"""
        return list(self._scan().values())

    def build(self, options: BuildOptions) -> ComponentSet:
        """Build the component set for one deploy

        Raises:
            ResolutionError: If inputs are unreadable, unknown or match nothing
        """
        component_set = ComponentSet(
            api_version=options.api_version,
            source_api_version=options.source_api_version,
        )

        if options.source_paths:
            self._add_source_paths(component_set, options.source_paths)
        elif options.manifest:
            manifest = read_manifest(Path(options.manifest))
            if component_set.api_version is None:
                component_set.api_version = manifest.version
            self._add_members(component_set, manifest.types, f"manifest {options.manifest}")
            for path, destructive in ((options.pre_destructive_changes, DestructiveType.PRE),
                                      (options.post_destructive_changes, DestructiveType.POST)):
                if path:
                    self._add_deletions(component_set, read_manifest(Path(path)).types, destructive)
        elif options.metadata:
            self._add_members(component_set, self._parse_metadata_entries(options.metadata), "--metadata")

        if component_set.is_empty():
            raise ResolutionError("No source-backed components present in the package.")

        logger.debug(f"Resolved {len(component_set)} components")
        return component_set

    def _add_source_paths(self, component_set: ComponentSet, source_paths: Sequence[str]) -> None:
        index = self._scan()
        for source_path in source_paths:
            path = Path(source_path)
            if not path.is_absolute():
                path = Path.cwd() / path
            if not path.exists():
                raise ResolutionError(f"Source path does not exist: {source_path}")
            try:
                rel_path = self._relative(path)
            except ValueError:
                raise ResolutionError(f"Source path is outside the project: {source_path}")

            prefix = "" if rel_path == "." else rel_path
            for component in index.values():
                if any(self._under(f, prefix, path.is_dir()) for f in component.files):
                    component_set.add(self._copy(component))

    @staticmethod
    def _under(file_path: str, prefix: str, is_dir: bool) -> bool:
        if not prefix:
            return True
        if is_dir:
            return file_path.startswith(prefix + "/")
        return file_path == prefix

    @staticmethod
    def _copy(component: MetadataComponent) -> MetadataComponent:
        return MetadataComponent(component.type, component.full_name, list(component.files))

    @staticmethod
    def _parse_metadata_entries(entries: Sequence[str]) -> Dict[str, List[str]]:
        types: Dict[str, List[str]] = {}
        for entry in entries:
            type_name, _, member = entry.partition(":")
            types.setdefault(type_name.strip(), []).append(member.strip() or WILDCARD)
        return types

    def _add_members(self, component_set: ComponentSet, types: Dict[str, List[str]], origin: str) -> None:
        index = self._scan()
        missing = []
        for type_name, members in types.items():
            get_metadata_type(type_name)
            local = [c for c in index.values() if c.type == type_name]
            for member in members:
                matches = [c for c in local if fnmatch.fnmatchcase(c.full_name, member)]
                if not matches and member != WILDCARD:
                    missing.append(f"{type_name}:{member}")
                for component in matches:
                    component_set.add(self._copy(component))

        if missing:
            raise ResolutionError(
                f"No local source found for {', '.join(missing)} listed in {origin}",
                missing=missing
            )

    def _add_deletions(self, component_set: ComponentSet, types: Dict[str, List[str]],
                       destructive: DestructiveType) -> None:
        index = self._scan()
        for type_name, members in types.items():
            get_metadata_type(type_name)
            for member in members:
                local = index.get((type_name, member))
                files = list(local.files) if local else []
                component_set.add(MetadataComponent(type_name, member, files, destructive=destructive))
