"""Utility functions for source-deploy"""

from .async_utils import call_handler, maybe_await, run_async
from .env_utils import env_bool
from .formatting import format_percentage
from .hash_utils import calculate_sha256, checksum_files

__all__ = [
    "run_async",
    "maybe_await",
    "call_handler",
    "env_bool",
    "format_percentage",
    "calculate_sha256",
    "checksum_files",
]
