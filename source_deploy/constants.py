"""Global constants for source-deploy"""

import re

APP_NAME = "source-deploy"
LOG_FORMAT = "%(message)s"

# Project identification
PROJECT_CONFIG_FILE = ".source-deploy.yaml"
PROJECT_STATE_DIR = ".source-deploy"
TRACKING_FILE = "tracking.json"
STASH_FILE = "stash.json"
DEFAULT_PACKAGE_DIRECTORIES = ["force-app"]
DEFAULT_HOOKS_DIR = ".source-deploy/hooks"
DEFAULT_HOOK_TIMEOUT = 300  # seconds

# Deploy defaults
DEFAULT_WAIT_MINUTES = 33
DEFAULT_REPORT_MIN_WAIT = 1
DEFAULT_API_VERSION = "57.0"
DEFAULT_POLL_INTERVAL = 1.0  # seconds
DEFAULT_BATCH_SIZE = 5

# Deploy ids issued by the org: key prefix 0Af, 15 or 18 characters
DEPLOY_ID_PATTERN = re.compile(r"^0Af[a-zA-Z0-9]{12}([a-zA-Z0-9]{3})?$")

TEST_LEVELS = ["NoTestRun", "RunSpecifiedTests", "RunLocalTests", "RunAllTestsInOrg"]
COVERAGE_FORMATTERS = [
    "clover",
    "cobertura",
    "json",
    "json-summary",
    "lcovonly",
    "none",
    "text-summary",
]

# Transport types
TRANSPORT_FILESYSTEM = "filesystem"
SUPPORTED_TRANSPORTS = [TRANSPORT_FILESYSTEM]

# Filesystem org layout
ORG_METADATA_DIR = "metadata"
ORG_REQUESTS_DIR = "requests"

# Environment variables
ENV_CONFIG_PATH = "SOURCE_DEPLOY_CONFIG"
ENV_LOG_LEVEL = "SOURCE_DEPLOY_LOG_LEVEL"
ENV_USE_PROGRESS_BAR = "SOURCE_DEPLOY_USE_PROGRESS_BAR"
ENV_REST_DEPLOY = "SOURCE_DEPLOY_REST_DEPLOY"


# Error codes
class ErrorCode:
    CONFIGURATION_ERROR = "SD001"
    RESOLUTION_ERROR = "SD002"
    CONFLICT = "SD003"
    POLL_TIMEOUT = "SD004"
    TRANSPORT_ERROR = "SD005"
    TRACKING_INIT_FAILED = "SD006"
    HOOK_FAILED = "SD007"
    PROJECT_NOT_FOUND = "SD008"


# Exit codes by terminal request status
class ExitCode:
    SUCCESS = 0
    FAILURE = 1
    PARTIAL_SUCCESS = 68


# Display constants
EMOJI_SUCCESS = "✓"
EMOJI_ERROR = "✗"
EMOJI_WARNING = "⚠"

# Message templates
MSG_ASYNC_DEPLOY = (
    "Deploy ID: {id}\n"
    "Deploy has been queued. Run \"source-deploy report -i {id}\" to check the status of the deploy."
)
MSG_ASYNC_COVERAGE_JUNIT = (
    "--coverage-formatters and --junit are ignored for asynchronous deploys; "
    "run \"source-deploy report\" with those flags once the deploy has completed."
)
MSG_DEPLOY_WONT_DELETE = (
    "Local deletions were detected that are not part of this deploy. "
    "Deploy never deletes metadata from the org; use a destructive changes manifest instead."
)
MSG_API_VERSION = "Deploying v{manifest_version} metadata to {username} using the v{api_version} {web_service} API"
MSG_POLL_TIMEOUT = (
    "The deploy has not completed within the wait time. "
    "Run \"source-deploy report -i {id}\" to check its status."
)
MSG_REPORT_IN_PROGRESS = "Deploy is still in progress. Run \"source-deploy report -i {id}\" again later."
