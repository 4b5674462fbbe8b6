"""Logging middleware for command tracing."""

import logging
from typing import Any

from ...context import get_context
from ...domain import Command
from ...routing import intercepts
from .base import Handler, Middleware

LOGGER = logging.getLogger(__name__)


class LoggingMiddleware(Middleware):
    """Middleware that logs command execution with correlation.

    Logs each command received at the specified logging level with the
    command name and correlation/causation IDs. Command data is NOT logged
    to avoid exposing PII such as grantee emails.

    Attributes:
        level: The numeric logging level (e.g., logging.INFO).

    Note:
        For correlation ids to appear, ContextPropagationMiddleware should
        be registered before LoggingMiddleware.
    """

    def __init__(self, level: str = "INFO"):
        """Initialize the logging middleware.

        Args:
            level: Name of the log level (e.g., "INFO", "DEBUG").
                Case-insensitive.
        """
        self.level = getattr(logging, level.upper())

    @intercepts
    async def log_command(self, command: Command, next: Handler) -> Any:
        extra = {
            "command_type": command.command_name(),
        }

        ctx = get_context()
        if ctx.correlation_id is not None:
            extra["correlation_id"] = str(ctx.correlation_id)
        if ctx.causation_id is not None:
            extra["causation_id"] = str(ctx.causation_id)
        if ctx.command_id is not None:
            extra["command_id"] = str(ctx.command_id)

        LOGGER.log(self.level, "Received Command", extra=extra)
        return await next(command)
