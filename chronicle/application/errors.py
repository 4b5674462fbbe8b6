"""Mapping from exception types to error categories and status codes.

The registry is an explicit object built while wiring the application and
handed to whatever outer surface turns errors into responses. Bounded
contexts register their own domain errors next to their command handlers.
"""

from enum import Enum
from typing import NamedTuple

from ..domain.exceptions import (
    AggregateNotFoundError,
    ConcurrencyError,
    DomainError,
    DomainValidationError,
    EventDeserializationError,
    InvalidCommandError,
)


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INVALID_COMMAND = "invalid_command"
    BUSINESS_RULE = "business_rule"
    INTERNAL = "internal"


class ErrorMapping(NamedTuple):
    category: ErrorCategory
    status_code: int


INTERNAL_ERROR = ErrorMapping(ErrorCategory.INTERNAL, 500)


class ErrorRegistry:
    """Classifies exceptions by the most specific registered type.

    ``classify`` walks the exception's MRO, so registering a base class
    covers all of its subclasses unless a subclass has its own entry.
    Unregistered exceptions classify as internal errors.

    Examples:
        >>> errors = ErrorRegistry.with_defaults()
        >>> errors.register(GrantAlreadyRevokedError, ErrorCategory.CONFLICT, 409)
        >>> errors.classify(EditGrantNotFoundError("g1"))
        ErrorMapping(category=<ErrorCategory.NOT_FOUND: 'not_found'>, status_code=404)
    """

    def __init__(self) -> None:
        self._mappings: dict[type[BaseException], ErrorMapping] = {}

    @classmethod
    def with_defaults(cls) -> "ErrorRegistry":
        """A registry with the core exception taxonomy already mapped."""
        registry = cls()
        registry.register(DomainValidationError, ErrorCategory.VALIDATION, 400)
        registry.register(AggregateNotFoundError, ErrorCategory.NOT_FOUND, 404)
        registry.register(ConcurrencyError, ErrorCategory.CONFLICT, 409)
        registry.register(InvalidCommandError, ErrorCategory.INVALID_COMMAND, 400)
        registry.register(DomainError, ErrorCategory.BUSINESS_RULE, 422)
        registry.register(EventDeserializationError, ErrorCategory.INTERNAL, 500)
        return registry

    def register(
        self,
        exc_type: type[BaseException],
        category: ErrorCategory | str,
        status_code: int,
    ) -> None:
        """Map an exception type (and its subclasses) to a category.

        Registering a type again replaces its mapping.
        """
        self._mappings[exc_type] = ErrorMapping(ErrorCategory(category), status_code)

    def classify(self, exc: BaseException) -> ErrorMapping:
        for klass in type(exc).__mro__:
            if (mapping := self._mappings.get(klass)) is not None:
                return mapping
        return INTERNAL_ERROR

    def __contains__(self, exc_type: object) -> bool:
        return exc_type in self._mappings
