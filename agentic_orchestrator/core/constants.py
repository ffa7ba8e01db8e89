"""Constants used throughout the orchestrator."""


# Project file layout (relative to the project root)
AI_DIR_NAME = ".ai"
STATE_FILE = ".ai/STATE.json"
HANDOFF_FILE = ".ai/HANDOFF.md"
HISTORY_FILE = ".ai/history.md"
STEP_RULES_FILE = ".ai/step-rules.yaml"
CONFIG_FILE = ".ai/orchestrator.json"
RUNS_DIR = ".ai/runs"
MEMORY_FILE = "PROJECT_MEMORY.md"
CONTEXT_FILE = "PROJECT_CONTEXT.md"
CONSTITUTION_FILE = "docs/constitution.md"
SDD_FILE = "docs/sdd.md"
OPENAPI_FILE = "docs/api/openapi.yaml"
EXECUTOR_GUIDE_FILE = "CLAUDE.md"

# Files whose presence decides the adoption level
CORE_FRAMEWORK_FILES = [
    STATE_FILE,
    MEMORY_FILE,
    CONTEXT_FILE,
    CONSTITUTION_FILE,
    SDD_FILE,
]

# Any of these marks a directory as a project when scanning a workspace
PROJECT_MARKERS = [
    STATE_FILE,
    "package.json",
    "go.mod",
    "Cargo.toml",
    "pyproject.toml",
    "setup.py",
    ".git",
]

# Placeholder substituted with the unit id in rule path templates
UNIT_PLACEHOLDER = "{story}"

# Unit id used in instructions before any story has been started
BOOTSTRAP_UNIT_ID = "BOOTSTRAP"
CUSTOM_UNIT_PREFIX = "CUSTOM"

# Report front matter delimiter
REPORT_DELIMITER = "---"

# Excerpt sizes for status queries
MEMORY_SUMMARY_CHARS = 500
QUERY_ATTACHMENT_CHARS = 2000

# Timeout values
VERIFICATION_TIMEOUT = 60  # seconds
NOTIFY_TIMEOUT = 30  # seconds
DEFAULT_COOLDOWN_SECONDS = 10

# Environment overrides
ENV_NOTIFY_COMMAND = "ORCHESTRATOR_NOTIFY_COMMAND"
ENV_COOLDOWN_SECONDS = "ORCHESTRATOR_COOLDOWN_SECONDS"

# Logging
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
