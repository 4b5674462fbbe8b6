"""Engine settings read from the environment."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class ChronicleSettings(BaseSettings):
    """Settings for command handling.

    Every field can be set through a ``CHRONICLE_`` prefixed environment
    variable, e.g. ``CHRONICLE_CONCURRENCY_RETRY_ATTEMPTS=3``.

    Attributes:
        command_log_level: Level at which received commands are logged.
        concurrency_retry_attempts: Attempts per command on ConcurrencyError.
            1 means conflicts are reported to the caller immediately.
        concurrency_retry_delay: Seconds to wait between attempts.
        correlation_tracking: Whether commands run under a propagated
            execution context.
    """

    model_config = {"env_prefix": "CHRONICLE_"}

    command_log_level: LogLevel = "INFO"
    concurrency_retry_attempts: int = Field(default=1, ge=1)
    concurrency_retry_delay: float = Field(default=0.05, ge=0)
    correlation_tracking: bool = True
