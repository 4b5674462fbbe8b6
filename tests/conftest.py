"""Central test fixtures - imports from the edit grant test_app."""

from uuid import uuid4

import pytest

from chronicle.application import (
    Application,
    ApplicationBuilder,
    EventRegistry,
    EventSourcedRepository,
    InMemoryEventStore,
)
from chronicle.context import clear_context
from tests.fixtures.test_app import (
    EditGrant,
    EditGrantActivated,
    EditGrantExpired,
    EditGrantNotFoundError,
    EditGrantRevoked,
    ExecutionTracker,
    InMemoryEditGrantReadModel,
    register_access_delegation,
)


@pytest.fixture
def artifact_id() -> str:
    """Generate a unique artifact ID."""
    return str(uuid4())


@pytest.fixture
def event_store() -> InMemoryEventStore:
    """Create an in-memory event store."""
    return InMemoryEventStore()


@pytest.fixture
def event_registry() -> EventRegistry:
    """Create a registry of the edit grant events."""
    return EventRegistry([EditGrantActivated, EditGrantRevoked, EditGrantExpired])


@pytest.fixture
def grant_repository(
    event_store: InMemoryEventStore, event_registry: EventRegistry
) -> EventSourcedRepository[EditGrant]:
    """Create a repository for EditGrant aggregates."""
    return EventSourcedRepository.for_aggregate(
        EditGrant, event_store, event_registry, not_found=EditGrantNotFoundError
    )


@pytest.fixture
def read_model() -> InMemoryEditGrantReadModel:
    """Create an empty edit grant read model."""
    return InMemoryEditGrantReadModel()


@pytest.fixture
def execution_tracker() -> ExecutionTracker:
    """Create an execution tracker middleware."""
    return ExecutionTracker()


@pytest.fixture
def base_app_builder(event_store: InMemoryEventStore) -> ApplicationBuilder:
    """Create a base application builder on the in-memory store."""
    return ApplicationBuilder().use_event_store(event_store)


@pytest.fixture
def app(
    base_app_builder: ApplicationBuilder, read_model: InMemoryEditGrantReadModel
) -> Application:
    """Create an application with the edit grant context registered."""
    return register_access_delegation(base_app_builder, read_model).build()


@pytest.fixture(autouse=True)
def clear_execution_context():
    """Automatically clear execution context after each test."""
    yield
    clear_context()
