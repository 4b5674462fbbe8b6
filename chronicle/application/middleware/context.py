"""Context propagation middleware for correlation and causation tracking."""

from typing import Any

from ulid import ULID

from ...context import ExecutionContext, get_context, use_context
from ...domain import Command
from ...routing import intercepts
from .base import Handler, Middleware


class ContextPropagationMiddleware(Middleware):
    """Middleware that sets up the execution context for each command.

    Events raised while the command runs take their correlation_id from this
    context and use the command_id as their causation_id.

    **Context Setup**:
    - correlation_id: the command's, else the surrounding context's (a
      projector re-dispatching a command), else a new one (entry point)
    - causation_id: the command's, else the surrounding context's causation,
      else the correlation_id
    - command_id: always the command's
    - actor and tenant: inherited from the surrounding context

    The previous context is restored after the command, even if it fails.

    Examples:
        >>> app = (ApplicationBuilder()
        ...     .register_middleware(ContextPropagationMiddleware())
        ...     .register_middleware(LoggingMiddleware("INFO"))
        ...     .build())
    """

    @intercepts
    async def propagate_context(self, command: Command, next: Handler) -> Any:
        outer = get_context()

        correlation_id = command.correlation_id or outer.correlation_id or ULID()
        causation_id = command.causation_id or outer.causation_id or correlation_id

        ctx = ExecutionContext(
            correlation_id=correlation_id,
            causation_id=causation_id,
            command_id=command.command_id,
            actor_id=outer.actor_id,
            actor_email=outer.actor_email,
            tenant_id=outer.tenant_id,
        )
        with use_context(ctx):
            return await next(command)
