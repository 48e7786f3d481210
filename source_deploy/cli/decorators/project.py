"""Project context decorator for CLI commands"""

import sys
from functools import wraps
from typing import Callable

import click

from ..context import Context
from ..utils.output import console, print_error
from ...api.exceptions import SourceDeployError


def require_project(func: Callable) -> Callable:
    """Decorator that loads the project before the command runs

    Load errors are reported in the command's output mode and exit with
    status 1.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        ctx = click.get_current_context()
        context = ctx.ensure_object(Context)

        try:
            project = context.project
        except SourceDeployError as e:
            print_error(e, kwargs.get('json_output', False))
            sys.exit(1)

        if context.debug:
            console.print(f"[dim]Project root: {project.root}[/dim]")

        return func(*args, **kwargs)

    return wrapper
