import logging
import os
from enum import StrEnum

from sqsbuffer.exceptions import SQSBufferCLIException

REGION_ENVIRONMENT_VARIABLES = ("AWS_REGION", "AWS_DEFAULT_REGION")


class LogLevels(StrEnum):
    """A class to represent log levels."""

    CRITICAL = "CRITICAL"
    FATAL = "FATAL"
    ERROR = "ERROR"
    WARNING = "WARNING"
    WARN = "WARN"
    INFO = "INFO"
    DEBUG = "DEBUG"


LOGGING_LEVEL_MAP: dict[str, int] = {
    LogLevels.CRITICAL: logging.CRITICAL,
    LogLevels.FATAL: logging.FATAL,
    LogLevels.ERROR: logging.ERROR,
    LogLevels.WARNING: logging.WARNING,
    LogLevels.WARN: logging.WARNING,
    LogLevels.INFO: logging.INFO,
    LogLevels.DEBUG: logging.DEBUG,
}


def get_log_level(level: LogLevels | str | int) -> int:
    """Get the log level.

    Args:
        level: The log level to get. Can be an integer, a LogLevels enum value, or a string.

    Returns:
        The log level as an integer.

    """
    if isinstance(level, int):
        return level

    if isinstance(level, str) and level.upper() in LOGGING_LEVEL_MAP:
        return LOGGING_LEVEL_MAP[level.upper()]

    possible_values = [member.value for member in LogLevels]
    raise SQSBufferCLIException(
        f"Invalid value for '--log-level', it should be one of {possible_values}"
    )


def resolve_region(region: str | None) -> str:
    """Returns the given region or the one set on the environment."""
    if region:
        return region

    for variable in REGION_ENVIRONMENT_VARIABLES:
        value = os.getenv(variable)
        if value:
            return value

    raise SQSBufferCLIException(
        "You should set the AWS region with '--region' or with either of the "
        f"environment variables {REGION_ENVIRONMENT_VARIABLES}."
    )
