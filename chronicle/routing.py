import inspect
from abc import ABC, abstractmethod
from collections.abc import Callable
from functools import singledispatch
from typing import Any, TypeVar, get_args, get_origin

from pydantic import BaseModel

T = TypeVar("T")

# Marker for handlers that want the DomainEvent wrapper, not just payload
_WANTS_EVENT_WRAPPER_ATTR = "_wants_event_wrapper"


class DefaultHandler(ABC):
    """Base handler for unregistered message types."""

    __slots__ = ("base_type", "operation_name")

    def __init__(self, base_type: type, operation_name: str):
        """Initialize the default handler.

        Args:
            base_type: The base type for messages (e.g., EventPayload).
            operation_name: Name of the operation for error messages.
        """
        self.base_type = base_type
        self.operation_name = operation_name

    @abstractmethod
    def __call__(self, message: Any, instance: Any, *args: Any, **kwargs: Any) -> Any: ...


class IgnoreHandler(DefaultHandler):
    """Silently ignore unregistered message types."""

    __slots__ = ()

    def __call__(self, message: Any, instance: Any, *args: Any, **kwargs: Any) -> Any:
        pass


def _extract_handler_type(func: Callable[..., Any], param_index: int = 1) -> tuple[type, bool]:
    """Extract the type annotation from a handler method.

    For event handlers, this also detects if the handler wants the
    DomainEvent wrapper (annotated as `DomainEvent[T]`) or just the payload
    (annotated as `T`).

    Args:
        func: The handler method to inspect.
        param_index: Index of the parameter to extract
            (0=self, 1=first arg, etc.)

    Returns:
        A tuple of (payload_type, wants_wrapper).

    Raises:
        ValueError: If the parameter lacks a type annotation.
    """
    func_name = getattr(func, "__name__", repr(func))
    sig = inspect.signature(func, eval_str=True)
    params = list(sig.parameters.values())

    if len(params) <= param_index:
        raise ValueError(f"Handler {func_name} must have at least {param_index + 1} parameters")

    param = params[param_index]
    if param.annotation is inspect.Parameter.empty:
        raise ValueError(
            f"Handler {func_name} parameter '{param.name}' must have a type annotation"
        )
    annotation = param.annotation

    from .domain import DomainEvent  # Import here to avoid circular dependency

    origin = get_origin(annotation)
    if origin is DomainEvent:
        args = get_args(annotation)
        if args:
            return (args[0], True)
        raise ValueError(
            f"Handler {func_name}: DomainEvent must have a type"
            " argument, e.g., DomainEvent[EditGrantRevoked]"
        )

    # For pydantic models, DomainEvent[T] creates a new class at runtime
    if isinstance(annotation, type) and issubclass(annotation, DomainEvent):
        metadata = getattr(annotation, "__pydantic_generic_metadata__", None)
        if metadata:
            pydantic_origin = metadata.get("origin")
            pydantic_args = metadata.get("args", ())
            if pydantic_origin is DomainEvent and pydantic_args:
                return (pydantic_args[0], True)

    return (annotation, False)


class MessageRouter:
    """Generic router for dispatching messages to type-specific handlers.

    Uses singledispatch to route messages (event payloads, commands) to
    registered handler methods based on their type annotations. This is the
    exhaustive match over event variants: each registered payload type has
    exactly one handler, and everything else falls through to the default.
    """

    __slots__ = ("_dispatch", "_registered")

    def __init__(self, default_handler: DefaultHandler):
        @singledispatch
        def dispatch(message: object, instance: object, *args: Any, **kwargs: Any) -> object:
            return default_handler(message, instance, *args, **kwargs)

        self._dispatch = dispatch
        self._registered: list[type] = []

    @property
    def registered_types(self) -> tuple[type, ...]:
        """Message types with an explicit handler, in registration order."""
        return tuple(self._registered)

    def register(
        self,
        message_type: type,
        handler: Callable[..., object],
        wants_wrapper: bool = False,
    ) -> None:
        """Register a handler for a specific message type.

        Args:
            message_type: The message class this handler processes.
            handler: The method to call when handling this message type.
            wants_wrapper: If True, handler receives the DomainEvent wrapper
                passed via the 'event_wrapper' kwarg. If False, it receives
                just the payload.
        """
        if wants_wrapper:

            def wrapper(
                msg: object, inst: object, *args: Any, h: Any = handler, **kwargs: Any
            ) -> object:
                event_wrapper = kwargs.pop("event_wrapper", None)
                if event_wrapper is not None:
                    return h(inst, event_wrapper, *args, **kwargs)
                return h(inst, msg, *args, **kwargs)

            self._dispatch.register(message_type)(wrapper)
        else:

            def payload_wrapper(
                msg: object, inst: object, *args: Any, h: Any = handler, **kwargs: Any
            ) -> object:
                kwargs.pop("event_wrapper", None)
                return h(inst, msg, *args, **kwargs)

            self._dispatch.register(message_type)(payload_wrapper)

        if message_type not in self._registered:
            self._registered.append(message_type)

    def route(self, instance: Any, message: Any, *args: Any, **kwargs: Any) -> object:
        """Route a message to its registered handler.

        Args:
            instance: The instance to call the handler on (self).
            message: The message to route (the payload for events).
            *args: Additional positional arguments to pass to handler.
            **kwargs: Additional keyword arguments. For events, pass
                event_wrapper=<DomainEvent> to provide the full wrapper to
                handlers that want it.
        """
        return self._dispatch(message, instance, *args, **kwargs)


class HandlerDecorator:
    """Marks methods as handlers for the message type in their annotation."""

    def __init__(self, marker_attr: str, type_attr: str):
        self.marker_attr = marker_attr
        self.type_attr = type_attr

    def __call__(self, func: Callable[..., T]) -> Callable[..., T]:
        message_type, wants_wrapper = _extract_handler_type(func, param_index=1)
        setattr(func, self.type_attr, message_type)
        setattr(func, self.marker_attr, True)
        setattr(func, _WANTS_EVENT_WRAPPER_ATTR, wants_wrapper)
        return func


applies_event = HandlerDecorator("_is_event_applier", "_applies_event_type")
handles_event = HandlerDecorator("_is_event_handler", "_handles_event_type")
intercepts = HandlerDecorator("_is_command_interceptor", "_intercepts_command_type")

applies_event.__doc__ = """Decorator marking a method as an event applier.

The event type is automatically extracted from the method's type annotation.

Example:
    >>> class EditGrant(AggregateRoot):
    ...     @applies_event
    ...     def apply_revoked(self, evt: EditGrantRevoked) -> None:
    ...         self.status = GrantStatus.REVOKED
"""

handles_event.__doc__ = """Decorator marking a method as an event \
handler on a projector.

Annotate the parameter as `DomainEvent[T]` to receive the envelope
(aggregate id, timestamps) instead of only the payload.

Example:
    >>> class EditGrantProjector(Projector):
    ...     @handles_event
    ...     async def on_activated(self, event: DomainEvent[EditGrantActivated]) -> None:
    ...         await self.read_model.insert(...)
"""

intercepts.__doc__ = """Decorator marking a method as a \
command interceptor (for middleware).

Use the Command base type to intercept every command, or a concrete
command class for targeted interception.

Example:
    >>> class AuditMiddleware(Middleware):
    ...     @intercepts
    ...     async def audit(self, cmd: RevokeEditGrant, next: Handler):
    ...         LOGGER.info("revoking %s", cmd.id)
    ...         return await next(cmd)
"""


def setup_routing(
    cls: type,
    marker_attr: str,
    type_attr: str,
    default_handler: DefaultHandler,
) -> MessageRouter:
    """Scan a class hierarchy for decorated methods and build a router."""
    router = MessageRouter(default_handler)

    # Walk base classes first so subclasses override inherited handlers
    for klass in reversed(cls.__mro__):
        for value in klass.__dict__.values():
            if getattr(value, marker_attr, None) is True:
                message_type = getattr(value, type_attr)
                wants_wrapper = getattr(value, _WANTS_EVENT_WRAPPER_ATTR, False)
                router.register(message_type, value, wants_wrapper=wants_wrapper)

    return router


def setup_event_applying(cls: type) -> MessageRouter:
    """Set up event applying for an aggregate class.

    Unknown payload types are ignored so that replay never fails on an
    event variant the aggregate does not know about.
    """
    return setup_routing(
        cls,
        marker_attr="_is_event_applier",
        type_attr="_applies_event_type",
        default_handler=IgnoreHandler(BaseModel, "applier"),
    )


def setup_event_handling(cls: type) -> MessageRouter:
    """Set up event handling for a projector class."""
    return setup_routing(
        cls,
        marker_attr="_is_event_handler",
        type_attr="_handles_event_type",
        default_handler=IgnoreHandler(BaseModel, "handler"),
    )


def setup_middleware_routing(cls: type) -> MessageRouter:
    """Set up command interception routing for middleware."""
    return setup_routing(
        cls,
        marker_attr="_is_command_interceptor",
        type_attr="_intercepts_command_type",
        default_handler=IgnoreHandler(BaseModel, "interceptor"),
    )
