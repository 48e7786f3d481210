"""Output formatters for source-deploy"""

from .progress import (
    DeployProgressBarFormatter,
    DeployProgressStatusFormatter,
    create_progress_formatter,
)
from .reports import COVERAGE_RENDERERS, write_reports
from .result import (
    DeployAsyncResultFormatter,
    DeployReportResultFormatter,
    DeployResultFormatter,
)

__all__ = [
    'DeployProgressBarFormatter',
    'DeployProgressStatusFormatter',
    'create_progress_formatter',
    'COVERAGE_RENDERERS',
    'write_reports',
    'DeployAsyncResultFormatter',
    'DeployReportResultFormatter',
    'DeployResultFormatter',
]
