"""Logging configuration for the knowledge base entry points."""

import os
import sys

from loguru import logger

from knowledge_base.config import LOG_LEVEL_ENV_VAR

_PLAIN_FORMAT = "{level.icon} {message}"
_DEBUG_FORMAT = "{time:HH:mm:ss.SSS} {level.icon} {name}:{function} {message}"


def resolve_log_level(*, verbose: bool = False, quiet: bool = False) -> str:
    """KB_LOG_LEVEL wins; otherwise DEBUG when verbose, WARNING when quiet, else INFO."""
    env_level = os.environ.get(LOG_LEVEL_ENV_VAR)
    if env_level:
        return env_level.upper()
    if verbose:
        return "DEBUG"
    return "WARNING" if quiet else "INFO"


def configure_logging(*, verbose: bool = False, quiet: bool = False) -> None:
    """Send loguru output to stderr at the resolved level.

    ``quiet`` is used by the stdio MCP server, where routine info lines would
    only clutter the client's log pane.
    """
    logger.remove()
    level = resolve_log_level(verbose=verbose, quiet=quiet)
    fmt = _DEBUG_FORMAT if level == "DEBUG" else _PLAIN_FORMAT
    logger.add(sys.stderr, level=level, format=fmt)
