"""Component data models"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple


class DestructiveType(Enum):
    """When a deletion is applied relative to the rest of the deploy"""
    PRE = "pre"
    POST = "post"


@dataclass
class MetadataComponent:
    """A deployable unit identified by metadata type and full name"""

    type: str
    full_name: str
    files: List[str] = field(default_factory=list)
    destructive: Optional[DestructiveType] = None

    @property
    def key(self) -> Tuple[str, str]:
        return (self.type, self.full_name)

    @property
    def is_deletion(self) -> bool:
        return self.destructive is not None

    @property
    def content_file(self) -> Optional[str]:
        """Primary source file (the one that is not a -meta.xml sidecar)"""
        for path in self.files:
            if not path.endswith("-meta.xml"):
                return path
        return self.files[0] if self.files else None

    def __str__(self) -> str:
        return f"{self.type}:{self.full_name}"

    def to_dict(self) -> Dict:
        data = {
            "type": self.type,
            "full_name": self.full_name,
            "files": list(self.files),
        }
        if self.destructive:
            data["destructive"] = self.destructive.value
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> 'MetadataComponent':
        destructive = data.get("destructive")
        return cls(
            type=data["type"],
            full_name=data["full_name"],
            files=list(data.get("files", [])),
            destructive=DestructiveType(destructive) if destructive else None,
        )


class ComponentSet:
    """Ordered collection of components keyed by type and full name"""

    def __init__(self, components: Optional[List[MetadataComponent]] = None,
                 api_version: Optional[str] = None,
                 source_api_version: Optional[str] = None):
        self._components: Dict[Tuple[str, str], MetadataComponent] = {}
        self.api_version = api_version
        self.source_api_version = source_api_version
        for component in components or []:
            self.add(component)

    def add(self, component: MetadataComponent) -> None:
        """Add a component, merging files when the key is already present"""
        existing = self._components.get(component.key)
        if existing is None:
            self._components[component.key] = component
            return
        for path in component.files:
            if path not in existing.files:
                existing.files.append(path)
        if component.destructive:
            existing.destructive = component.destructive

    def get(self, type: str, full_name: str) -> Optional[MetadataComponent]:
        return self._components.get((type, full_name))

    def __iter__(self) -> Iterator[MetadataComponent]:
        return iter(self._components.values())

    def __len__(self) -> int:
        return len(self._components)

    def __contains__(self, item) -> bool:
        if isinstance(item, MetadataComponent):
            return item.key in self._components
        return item in self._components

    def is_empty(self) -> bool:
        return not self._components

    def to_list(self) -> List[MetadataComponent]:
        return list(self._components.values())

    def deployable(self) -> List[MetadataComponent]:
        """Components that are sent as source"""
        return [c for c in self if not c.is_deletion]

    def deletions(self, destructive: Optional[DestructiveType] = None) -> List[MetadataComponent]:
        return [
            c for c in self
            if c.is_deletion and (destructive is None or c.destructive == destructive)
        ]

    def source_paths(self) -> List[str]:
        """All files backing the deployable components"""
        paths = []
        for component in self.deployable():
            paths.extend(component.files)
        return paths

    def find_by_path(self, path: str) -> Optional[MetadataComponent]:
        for component in self:
            if path in component.files:
                return component
        return None

    def __repr__(self) -> str:
        return f"ComponentSet({len(self)} components)"
