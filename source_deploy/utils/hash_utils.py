"""Content hashing for change tracking"""

import hashlib
from pathlib import Path
from typing import Dict, Iterable

_CHUNK_SIZE = 65536


def calculate_sha256(file_path: Path) -> str:
    """Hex sha256 digest of a file's content"""
    digest = hashlib.sha256()
    with open(file_path, 'rb') as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def checksum_files(root: Path, files: Iterable[Path]) -> Dict[str, str]:
    """Map each file's POSIX path relative to ``root`` to its digest"""
    return {
        path.relative_to(root).as_posix(): calculate_sha256(path)
        for path in files
        if path.is_file()
    }
