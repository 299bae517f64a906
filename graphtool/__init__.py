"""GraphTool - Mail and Calendar Operations against Microsoft Graph

Philosophy:
    Every remote call can fail for reasons that have nothing to do with the
    request itself. Transient failures are retried with backoff, permanent
    ones fail fast, and every outcome lands in an append-only audit file.

Components:
    errors.py: Exception hierarchy and cause-chain helpers
    resilience/: Retry executor, error classifier, error enricher
    audit/: Buffered CSV audit sinks (one file per action per day)
    graph/: Microsoft Graph REST client and client-credential auth
    actions/: Business operations (events, mail, invites, inbox, schedule)
    config.py: Configuration model (YAML, MSGRAPH* env vars, flags)
    cli.py: `graphtool` command line entry point
"""

from pathlib import Path


__version__ = "1.0.0"

# Name used in audit file names and the User-Agent header
TOOL_NAME = "graphtool"

# Path constants
PROJECT_ROOT = Path(__file__).parent.parent
ARGS_DIR = PROJECT_ROOT / "args"
CONFIG_PATH = ARGS_DIR / "graphtool.yaml"

__all__ = [
    "ARGS_DIR",
    "CONFIG_PATH",
    "PROJECT_ROOT",
    "TOOL_NAME",
    "__version__",
]
