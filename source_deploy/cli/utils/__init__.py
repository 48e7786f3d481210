"""CLI utilities"""

from .output import console, err_console, error_json, print_conflicts, print_error, print_json

__all__ = [
    'console',
    'err_console',
    'error_json',
    'print_conflicts',
    'print_error',
    'print_json',
]
