from collections.abc import Callable
from types import TracebackType
from typing import Any, Protocol, TypeVar, runtime_checkable

from ..config import ChronicleSettings
from ..context import get_context, use_context
from ..domain import AggregateRoot, Command, CommandResult, EventPayload
from ..domain.exceptions import AggregateNotFoundError
from .aggregates import EventSourcedRepository
from .commands import CommandBus, CommandHandler
from .errors import ErrorCategory, ErrorRegistry
from .events import EventBus, EventRegistry, EventStore, InMemoryEventStore, Projector
from .middleware import (
    ConcurrencyRetryMiddleware,
    ContextPropagationMiddleware,
    LoggingMiddleware,
    Middleware,
)

A = TypeVar("A", bound=AggregateRoot)

ProjectorFactory = Callable[["Application"], Projector]


@runtime_checkable
class HasLifecycle(Protocol):
    async def on_startup(self) -> None:
        """Called when the application is started."""
        ...

    async def on_shutdown(self) -> None:
        """Called when the application is shutdown."""
        ...


class Application:
    """A wired set of buses, store and registries.

    Built by ApplicationBuilder. Use it as an async context manager to run
    the lifecycle hooks of registered components (database clients and the
    like) around its use.
    """

    def __init__(
        self,
        command_bus: CommandBus,
        event_bus: EventBus,
        event_store: EventStore,
        event_registry: EventRegistry,
        error_registry: ErrorRegistry,
        lifecycle: list[HasLifecycle],
    ):
        self.command_bus = command_bus
        self.event_bus = event_bus
        self.event_store = event_store
        self.event_registry = event_registry
        self.error_registry = error_registry
        self.lifecycle = lifecycle

    async def dispatch(
        self,
        command: Command,
        actor_id: str | None = None,
        actor_email: str | None = None,
        tenant_id: str | None = None,
    ) -> CommandResult:
        """Dispatch a command to its handler through the middleware chain.

        Args:
            command: The command to dispatch.
            actor_id: The acting user, recorded on every event the command
                stores. Events fall back to the system actor without one.
            actor_email: The acting user's email.
            tenant_id: The tenant whose streams the command reads and
                writes. Defaults to the current context's tenant.
        """
        if actor_id is None and tenant_id is None:
            return await self.command_bus.dispatch(command)

        ctx = get_context()
        if actor_id is not None:
            ctx = ctx.with_actor(actor_id, actor_email or "")
        if tenant_id is not None:
            ctx = ctx.with_tenant(tenant_id)
        with use_context(ctx):
            return await self.command_bus.dispatch(command)

    async def startup(self) -> None:
        """Call on_startup on lifecycle components in registration order."""
        for component in self.lifecycle:
            await component.on_startup()

    async def shutdown(self) -> None:
        """Call on_shutdown on lifecycle components in reverse order."""
        for component in reversed(self.lifecycle):
            await component.on_shutdown()

    async def __aenter__(self) -> "Application":
        await self.startup()
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_value: BaseException | None,
        _traceback: TracebackType | None,
    ) -> None:
        await self.shutdown()


# The builder wires plain objects together; there is no container. The only
# ordering constraint is that the event store is chosen before repositories
# are created, since each repository holds on to the store it was built
# with. Projectors that need the built application (to dispatch commands)
# are registered as factories and created in build().


class ApplicationBuilder:
    """Fluent builder for Application instances.

    Examples:
        >>> builder = ApplicationBuilder().use_settings(ChronicleSettings())
        >>> builder.register_events(EditGrantActivated, EditGrantRevoked)
        >>> grants = builder.repository_for(EditGrant, not_found=EditGrantNotFoundError)
        >>> builder.register_command_handler(RevokeEditGrantHandler(grants))
        >>> app = builder.build()
    """

    def __init__(self) -> None:
        self.event_store: EventStore = InMemoryEventStore()
        self.event_registry = EventRegistry()
        self.error_registry = ErrorRegistry.with_defaults()
        self.settings: ChronicleSettings | None = None
        self.middleware: list[Middleware] = []
        self.handlers: list[tuple[str, CommandHandler[Any]]] = []
        self.projectors: list[Projector | ProjectorFactory] = []
        self.subscriptions: list[tuple[str | None, Projector | ProjectorFactory]] = []
        self.lifecycle: list[HasLifecycle] = []
        self._repositories_created = False

    def use_event_store(self, store: EventStore) -> "ApplicationBuilder":
        """Replace the default in-memory event store.

        Raises:
            RuntimeError: If a repository was already created against the
                previous store.
        """
        if self._repositories_created:
            raise RuntimeError("use_event_store must be called before repository_for")
        self.event_store = store
        if isinstance(store, HasLifecycle):
            self.lifecycle.append(store)
        return self

    def use_settings(self, settings: ChronicleSettings) -> "ApplicationBuilder":
        """Derive the standard middleware from settings.

        The derived middleware runs before any registered middleware:
        context propagation (if enabled), command logging, then concurrency
        retries (if more than one attempt is configured).
        """
        self.settings = settings
        return self

    def register_events(self, *payload_types: type[EventPayload]) -> "ApplicationBuilder":
        self.event_registry.register(*payload_types)
        return self

    def repository_for(
        self,
        aggregate_type: type[A],
        not_found: Callable[[str], Exception] = AggregateNotFoundError,
    ) -> EventSourcedRepository[A]:
        """Create a repository for an aggregate type on the configured store."""
        self._repositories_created = True
        return EventSourcedRepository.for_aggregate(
            aggregate_type, self.event_store, self.event_registry, not_found=not_found
        )

    def register_command_handler(
        self,
        handler: CommandHandler[Any],
        name: str | None = None,
    ) -> "ApplicationBuilder":
        """Register a handler under its command's name (or ``name``)."""
        self.handlers.append((name or handler.command_type.command_name(), handler))
        return self

    def register_projector(self, projector: Projector | ProjectorFactory) -> "ApplicationBuilder":
        """Subscribe a projector to every payload type it handles.

        Pass a callable taking the Application to build projectors that
        dispatch commands.
        """
        self.projectors.append(projector)
        return self

    def subscribe(
        self,
        event_type: str | type[EventPayload] | None,
        projector: Projector | ProjectorFactory,
    ) -> "ApplicationBuilder":
        """Subscribe a projector to one discriminant, or to all with None."""
        if isinstance(event_type, type):
            event_type = event_type.event_type
        self.subscriptions.append((event_type, projector))
        return self

    def register_middleware(self, middleware: Middleware) -> "ApplicationBuilder":
        """Append middleware to the chain (runs in registration order)."""
        self.middleware.append(middleware)
        return self

    def register_error(
        self,
        exc_type: type[BaseException],
        category: ErrorCategory | str,
        status_code: int,
    ) -> "ApplicationBuilder":
        self.error_registry.register(exc_type, category, status_code)
        return self

    def register_lifecycle(self, component: HasLifecycle) -> "ApplicationBuilder":
        self.lifecycle.append(component)
        return self

    def build(self) -> Application:
        """Wire everything registered so far into an Application.

        Raises:
            DuplicateHandlerError: If two handlers share a command name.
        """
        event_bus = EventBus()
        self.event_store.attach_publisher(event_bus)

        command_bus = CommandBus([*self._settings_middleware(), *self.middleware])
        for name, handler in self.handlers:
            command_bus.register(name, handler)

        app = Application(
            command_bus=command_bus,
            event_bus=event_bus,
            event_store=self.event_store,
            event_registry=self.event_registry,
            error_registry=self.error_registry,
            lifecycle=list(self.lifecycle),
        )

        built: dict[int, Projector] = {}

        def resolve(projector: Projector | ProjectorFactory) -> Projector:
            if isinstance(projector, Projector):
                return projector
            # Factories registered more than once yield a single projector
            if id(projector) not in built:
                built[id(projector)] = projector(app)
            return built[id(projector)]

        for projector in self.projectors:
            event_bus.register(resolve(projector))
        for event_type, projector in self.subscriptions:
            if event_type is None:
                event_bus.subscribe_all(resolve(projector))
            else:
                event_bus.subscribe(event_type, resolve(projector))

        return app

    def _settings_middleware(self) -> list[Middleware]:
        if self.settings is None:
            return []

        middleware: list[Middleware] = []
        if self.settings.correlation_tracking:
            middleware.append(ContextPropagationMiddleware())
        middleware.append(LoggingMiddleware(self.settings.command_log_level))
        if self.settings.concurrency_retry_attempts > 1:
            middleware.append(
                ConcurrencyRetryMiddleware(
                    max_attempts=self.settings.concurrency_retry_attempts,
                    retry_delay=self.settings.concurrency_retry_delay,
                )
            )
        return middleware
