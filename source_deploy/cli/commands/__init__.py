"""CLI commands"""

from . import deploy
from . import report

__all__ = [
    "deploy",
    "report",
]
