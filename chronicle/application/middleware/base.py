"""Base middleware class for commands.

Middleware components wrap the command handler to provide cross-cutting
concerns like logging, context propagation or retries.
"""

import inspect
from collections.abc import Callable, Coroutine
from typing import TYPE_CHECKING, Any, ClassVar

from ...domain import Command, CommandResult

if TYPE_CHECKING:
    from ...routing import MessageRouter

Handler = Callable[[Command], Coroutine[Any, Any, CommandResult]]


class Middleware:
    """Base class for middleware with annotation-based routing.

    Middleware follows the chain of responsibility pattern. Decorate methods
    with @intercepts; the type annotation of the first parameter decides
    which commands reach the method. Use the Command base type to intercept
    every command. If no interceptor matches, the command is forwarded to
    the next handler unchanged.

    Examples:
        Intercept all commands:

        >>> class AuditMiddleware(Middleware):
        ...     @intercepts
        ...     async def audit(self, cmd: Command, next: Handler) -> CommandResult:
        ...         LOGGER.info("dispatching %s", cmd.command_name())
        ...         return await next(cmd)

        Intercept one command type:

        >>> class FreezeRevocations(Middleware):
        ...     @intercepts
        ...     async def block(self, cmd: RevokeEditGrant, next: Handler) -> CommandResult:
        ...         raise InvalidCommandError("revocations are frozen")
    """

    _command_router: ClassVar["MessageRouter"]

    def __init_subclass__(cls, **kwargs: object) -> None:
        super().__init_subclass__(**kwargs)
        from ...routing import setup_middleware_routing

        cls._command_router = setup_middleware_routing(cls)

    async def intercept(self, message: Command, next: Handler) -> Any:
        """Route a command to an interceptor method or forward it to next.

        Args:
            message: The command to intercept.
            next: The next handler in the middleware chain.

        Returns:
            The result from the interceptor or next handler.
        """
        result = self._command_router.route(self, message, next)

        # IgnoreHandler returns None when nothing intercepts this type
        if result is None:
            return await next(message)
        elif inspect.isawaitable(result):
            return await result
        else:
            return result
