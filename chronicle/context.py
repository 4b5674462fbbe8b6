import contextvars
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, replace

from ulid import ULID

SYSTEM_ACTOR_ID = "system"
SYSTEM_ACTOR_EMAIL = "system@localhost"
DEFAULT_TENANT_ID = "default"


@dataclass(frozen=True)
class ExecutionContext:
    """Immutable context for tracking request flow through the system.

    ExecutionContext captures the causal relationship between commands and
    events, and who is acting, as they flow through the engine.

    Attributes:
        correlation_id: Traces an entire logical operation. Remains constant
            across the commands and events it spawns, including commands
            re-dispatched by projectors.
        causation_id: ID of what directly caused this operation. For events,
            this is the command_id that triggered them.
        command_id: Identifier of the command currently being executed. Events
            raised while it runs use it as their causation_id.
        actor_id: Identifier of the user performing the operation. Recorded
            on every stored event.
        actor_email: Email of the acting user.
        tenant_id: Tenant the operation runs for. Event streams are scoped
            by tenant; without one the default tenant is used.

    Examples:
        >>> ctx = ExecutionContext.create(actor_id="user-1", actor_email="a@b.c")
        >>> cmd_ctx = ctx.for_command(ULID())
    """

    correlation_id: ULID | None = None
    causation_id: ULID | None = None
    command_id: ULID | None = None
    actor_id: str | None = None
    actor_email: str | None = None
    tenant_id: str | None = None

    @classmethod
    def create(
        cls,
        correlation_id: ULID | None = None,
        actor_id: str | None = None,
        actor_email: str | None = None,
        tenant_id: str | None = None,
    ) -> "ExecutionContext":
        """Create a new context at a system entry point.

        Args:
            correlation_id: Optional correlation ID. Generated if omitted. At
                entry points causation_id is set to correlation_id.
            actor_id: Optional acting user id.
            actor_email: Optional acting user email.
            tenant_id: Optional tenant id.
        """
        if correlation_id is None:
            correlation_id = ULID()

        return cls(
            correlation_id=correlation_id,
            causation_id=correlation_id,
            command_id=None,
            actor_id=actor_id,
            actor_email=actor_email,
            tenant_id=tenant_id,
        )

    def for_command(self, command_id: ULID) -> "ExecutionContext":
        """Create a child context for executing a command."""
        return replace(self, command_id=command_id)

    def for_event(self, event_id: ULID) -> "ExecutionContext":
        """Create a child context for processing an event.

        The correlation_id is inherited, the causation_id becomes the event
        id and the command_id is cleared.
        """
        return replace(self, causation_id=event_id, command_id=None)

    def with_actor(self, actor_id: str, actor_email: str) -> "ExecutionContext":
        return replace(self, actor_id=actor_id, actor_email=actor_email)

    def with_tenant(self, tenant_id: str) -> "ExecutionContext":
        return replace(self, tenant_id=tenant_id)

    @property
    def actor(self) -> tuple[str, str]:
        """The acting user as (id, email), falling back to the system actor."""
        if self.actor_id is None:
            return SYSTEM_ACTOR_ID, SYSTEM_ACTOR_EMAIL
        return self.actor_id, self.actor_email or ""

    @property
    def tenant(self) -> str:
        return self.tenant_id or DEFAULT_TENANT_ID


_context: contextvars.ContextVar[ExecutionContext | None] = contextvars.ContextVar(
    "execution_context", default=None
)


def get_context() -> ExecutionContext:
    """Get the current execution context.

    If no context has been set, returns an empty ExecutionContext with all
    fields None.
    """
    ctx = _context.get()
    if ctx is None:
        return ExecutionContext()
    return ctx


def set_context(context: ExecutionContext) -> None:
    _context.set(context)


def clear_context() -> None:
    _context.set(None)


def get_or_create_context() -> ExecutionContext:
    """Get the current context, or create and set a new one if not set."""
    ctx = _context.get()
    if ctx is None:
        ctx = ExecutionContext.create()
        set_context(ctx)
    return ctx


@contextmanager
def use_context(context: ExecutionContext) -> Iterator[ExecutionContext]:
    """Run a block under ``context`` and restore the previous one afterwards."""
    token = _context.set(context)
    try:
        yield context
    finally:
        _context.reset(token)
