"""
Exit codes for docket commands.

0-2 follow the shell conventions; the 64-113 range carries docket's own
failure kinds so scripts can tell "unknown artifact" from "registry down".
"""

from typing import Dict, Type

from .errors import FetchError, ValidationError

SUCCESS = 0
GENERAL_ERROR = 1
USAGE_ERROR = 2          # conflicting or missing options

NOT_FOUND = 64           # artifact, release, plugin or document does not exist
API_ERROR = 65           # registry, raw source or GitHub API answered badly
CONFIG_ERROR = 66
NETWORK_ERROR = 68
DATA_ERROR = 70          # malformed canonical name or payload
PARTIAL_SUCCESS = 71     # a scan where some repositories failed
INTERRUPTED = 130        # SIGINT

# Checked in order; the first class the exception is an instance of wins.
EXCEPTION_EXIT_CODES: Dict[Type[BaseException], int] = {
    FetchError: API_ERROR,
    ValidationError: DATA_ERROR,
    ConnectionError: NETWORK_ERROR,
    TimeoutError: NETWORK_ERROR,
    ValueError: DATA_ERROR,
    KeyError: DATA_ERROR,
    KeyboardInterrupt: INTERRUPTED,
}


def get_exit_code_for_exception(exc: BaseException) -> int:
    """Exit code for `exc`: its own code for CommandError, else by type."""
    if isinstance(exc, CommandError):
        return exc.exit_code
    for exc_type, code in EXCEPTION_EXIT_CODES.items():
        if isinstance(exc, exc_type):
            return code
    return GENERAL_ERROR


class CommandError(Exception):
    """Raised by a command to end with a specific exit code."""

    def __init__(self, message: str, exit_code: int = GENERAL_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


class NotFoundError(CommandError):
    """The requested artifact, release or plugin does not exist."""

    def __init__(self, message: str = "Not found"):
        super().__init__(message, NOT_FOUND)


class PartialSuccessError(CommandError):
    """Some repositories were processed, others failed."""

    def __init__(self, message: str, succeeded: int = 0, failed: int = 0):
        super().__init__(message, PARTIAL_SUCCESS)
        self.succeeded = succeeded
        self.failed = failed
