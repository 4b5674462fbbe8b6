"""Command bus and routing infrastructure."""

from collections.abc import Callable, Coroutine, Iterable
from functools import reduce
from typing import Any

from ...domain import Command, CommandResult
from ...domain.exceptions import UnknownCommandError
from ..middleware import Middleware
from .handler import CommandHandler

Dispatch = Callable[[Command], Coroutine[Any, Any, CommandResult]]


class DuplicateHandlerError(ValueError):
    """Raised when a second handler is registered for a command name."""

    def __init__(self, command_name: str):
        self.command_name = command_name
        super().__init__(f"A handler is already registered for command {command_name}")


class CommandBus:
    """Command bus for dispatching commands through middleware.

    The CommandBus keeps the name-to-handler table and the middleware chain.
    Middleware is applied in registration order, with each middleware
    deciding via annotation-based routing whether to intercept a command.
    Unknown commands are rejected before the chain runs, so nothing is read
    from or written to storage for them.

    Args:
        middleware: Middleware to apply (in order).
    """

    def __init__(self, middleware: Iterable[Middleware] = ()):
        self.handlers: dict[str, CommandHandler[Any]] = {}
        self.middleware = list(middleware)
        # Build the middleware chain by reducing from right to left
        self.chain: Dispatch = reduce(
            lambda next, mw: lambda cmd, n=next, m=mw: m.intercept(cmd, n),
            reversed(self.middleware),
            self._deliver,
        )

    def register(self, name: str, handler: CommandHandler[Any]) -> None:
        """Register the handler for a command name.

        Raises:
            DuplicateHandlerError: If the name already has a handler.
        """
        if name in self.handlers:
            raise DuplicateHandlerError(name)
        self.handlers[name] = handler

    def has_handler(self, name: str) -> bool:
        return name in self.handlers

    async def dispatch(self, command: Command) -> CommandResult:
        """Dispatch command through the middleware chain to its handler.

        Raises:
            UnknownCommandError: If no handler is registered for the
                command's name.
        """
        name = command.command_name()
        if name not in self.handlers:
            raise UnknownCommandError(name)
        return await self.chain(command)

    async def _deliver(self, command: Command) -> CommandResult:
        return await self.handlers[command.command_name()].handle(command)
