from abc import ABC, abstractmethod
from typing import ClassVar, Generic, TypeVar

from ...domain import Command, CommandResult
from ...domain.exceptions import InvalidCommandError

T = TypeVar("T", bound=Command)


class CommandHandler(ABC, Generic[T]):
    """Handles exactly one command type.

    Subclasses set ``command_type`` and implement ``process``. ``handle``
    rejects commands of any other type with InvalidCommandError before
    ``process`` runs.

    Examples:
        >>> class RevokeEditGrantHandler(CommandHandler[RevokeEditGrant]):
        ...     command_type = RevokeEditGrant
        ...
        ...     def __init__(self, repository):
        ...         self.repository = repository
        ...
        ...     async def process(self, command: RevokeEditGrant) -> CommandResult:
        ...         async with self.repository.acquire(command.id) as grant:
        ...             grant.revoke(command.revoked_by)
        ...         return CommandResult.empty()
    """

    command_type: ClassVar[type[Command]]

    async def handle(self, command: Command) -> CommandResult:
        if not isinstance(command, self.command_type):
            raise InvalidCommandError(
                f"{type(self).__name__} expects {self.command_type.command_name()}, "
                f"got {command.command_name()}"
            )
        return await self.process(command)

    @abstractmethod
    async def process(self, command: T) -> CommandResult: ...
