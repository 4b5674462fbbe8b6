"""Concurrency retry middleware for handling optimistic locking conflicts."""

import asyncio
import logging
from typing import Any

from ...domain import Command
from ...domain.exceptions import ConcurrencyError
from ...routing import intercepts
from .base import Handler, Middleware

LOGGER = logging.getLogger(__name__)


class ConcurrencyRetryMiddleware(Middleware):
    """Middleware that re-runs commands that lost a concurrency race.

    Command handlers load the aggregate on every run, so retrying the whole
    command means reloading the latest stream and re-validating against it.
    The event store itself never retries.

    Attributes:
        max_attempts: The maximum number of attempts (initial + retries).
            max_attempts=1 disables retrying.
        retry_delay: The delay in seconds between attempts.

    Examples:
        >>> middleware = ConcurrencyRetryMiddleware(max_attempts=3, retry_delay=0.1)
    """

    __slots__ = ("max_attempts", "retry_delay")

    def __init__(self, max_attempts: int, retry_delay: float):
        """Initialize the concurrency retry middleware.

        Raises:
            ValueError: If max_attempts <= 0 or retry_delay < 0.
        """
        if max_attempts <= 0:
            raise ValueError("max_attempts must be positive")
        if retry_delay < 0:
            raise ValueError("retry_delay must be non-negative")
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay

    @intercepts
    async def retry_on_concurrency(self, command: Command, next: Handler) -> Any:
        """Retry the rest of the chain on ConcurrencyError.

        Raises:
            ConcurrencyError: The last conflict, once all attempts failed.
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await next(command)
            except ConcurrencyError as e:
                if attempt == self.max_attempts:
                    raise
                LOGGER.warning(
                    f"Concurrency error on attempt {attempt}/{self.max_attempts}: {e}",
                    extra={
                        "command_type": command.command_name(),
                        "aggregate_id": e.aggregate_id,
                    },
                )
                await asyncio.sleep(self.retry_delay)
