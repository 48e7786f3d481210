"""CLI decorators"""

from .project import require_project

__all__ = [
    'require_project',
]
