"""Error codes for CLI exit status.

Each pipeline stage that can fail owns one exit code, so a CI log shows which
stage stopped the run without reading the output.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    These values are used as process exit codes and should remain stable:
    - 0: Success (including "no release warranted")
    - 1: User error (bad input, invalid arguments, bad config)
    - 2: Environment error (missing tools, not a project root)
    - 3: Validation failure (format, lint or tests)
    - 4: Build failure (one or more matrix cells)
    - 5: Aggregation failure (expected artifact missing or empty)
    - 6: Publish failure (tag exists, release creation failed)
    - 7: Propagation failure (downstream clone, rewrite or push)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    VALIDATION_ERROR = 3
    BUILD_ERROR = 4
    AGGREGATION_ERROR = 5
    PUBLISH_ERROR = 6
    PROPAGATION_ERROR = 7

    def __str__(self) -> str:
        """Return human-readable name."""
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK

    @property
    def is_error(self) -> bool:
        return self != ErrorCode.OK
