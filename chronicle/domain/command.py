"""Command base class for the write side of CQRS.

Commands represent intentions to change state and are routed by name to
exactly one handler.
"""

from typing import Any, ClassVar

from pydantic import BaseModel, Field
from ulid import ULID


class Command(BaseModel):
    """Base class for all commands in the system.

    Commands are routed by ``command_name()``, which defaults to the class
    name. Set the ``name`` class variable to route under a different name.

    Attributes:
        command_id: Unique identifier for this command instance.
        correlation_id: Optional correlation ID for tracing. Falls back to
            the current execution context when omitted.
        causation_id: Optional ID of what caused this command.

    Examples:
        >>> class RevokeEditGrant(Command):
        ...     id: str
        ...     revoked_by: str
        >>>
        >>> RevokeEditGrant(id="g1", revoked_by="u1").command_name()
        'RevokeEditGrant'
    """

    name: ClassVar[str] = "Command"

    command_id: ULID = Field(default_factory=ULID)
    correlation_id: ULID | None = None
    causation_id: ULID | None = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if "name" not in cls.__dict__:
            cls.name = cls.__name__

    @classmethod
    def command_name(cls) -> str:
        return cls.name


class CommandResult(BaseModel):
    """Outcome of a successfully handled command.

    Attributes:
        created_id: Identifier of the aggregate a creation command produced,
            None for every other command.
    """

    created_id: str | None = None

    @classmethod
    def empty(cls) -> "CommandResult":
        return cls()
