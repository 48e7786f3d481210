"""Manifest (package.xml) reading"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from ..api.exceptions import ResolutionError

METADATA_NAMESPACE = "http://soap.sforce.com/2006/04/metadata"
WILDCARD = "*"


@dataclass
class PackageManifest:
    """Members listed per metadata type, in file order"""

    types: Dict[str, List[str]] = field(default_factory=dict)
    version: Optional[str] = None

    def members(self, type_name: str) -> List[str]:
        return self.types.get(type_name, [])

    def is_wildcard(self, type_name: str) -> bool:
        return WILDCARD in self.members(type_name)


def _tag(element: ET.Element) -> str:
    """Local tag name without namespace"""
    return element.tag.rsplit("}", 1)[-1]


def read_manifest(path: Path) -> PackageManifest:
    """Parse a manifest file

    The default metadata namespace is optional.

    Raises:
        ResolutionError: If the file is missing or not a valid manifest
    """
    if not path.is_file():
        raise ResolutionError(f"Manifest not found: {path}")

    try:
        root = ET.parse(path).getroot()
    except ET.ParseError as e:
        raise ResolutionError(f"Manifest {path} is not valid XML: {e}")

    if _tag(root) != "Package":
        raise ResolutionError(f"Manifest {path} must have a <Package> root element")

    manifest = PackageManifest()
    for child in root:
        tag = _tag(child)
        if tag == "version":
            manifest.version = (child.text or "").strip() or None
        elif tag == "types":
            name = None
            members = []
            for item in child:
                item_tag = _tag(item)
                text = (item.text or "").strip()
                if item_tag == "name":
                    name = text
                elif item_tag == "members" and text:
                    members.append(text)
            if not name:
                raise ResolutionError(f"Manifest {path} has a <types> entry without <name>")
            manifest.types.setdefault(name, []).extend(members)

    return manifest
