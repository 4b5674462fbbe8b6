import asyncio
import time

import pytest

from chronicle.application import (
    Application,
    ApplicationBuilder,
    ConcurrencyRetryMiddleware,
    ContextPropagationMiddleware,
    DuplicateHandlerError,
    InMemoryEventStore,
    LoggingMiddleware,
)
from chronicle.config import ChronicleSettings
from tests.fixtures.test_app import (
    CreateEditGrant,
    EditGrant,
    EditGrantProjector,
    ExecutionTracker,
    InMemoryEditGrantReadModel,
    register_access_delegation,
)
from tests.fixtures.test_app.commands import RevokeEditGrantHandler


class ComponentA:
    def __init__(self):
        self.started_at = None
        self.stopped_at = None

    async def on_startup(self):
        self.started_at = time.monotonic()
        await asyncio.sleep(0.01)

    async def on_shutdown(self):
        self.stopped_at = time.monotonic()
        await asyncio.sleep(0.01)


class ComponentB(ComponentA):
    pass


class LifecycleStore(InMemoryEventStore):
    def __init__(self):
        super().__init__()
        self.started = False

    async def on_startup(self):
        self.started = True

    async def on_shutdown(self):
        pass


@pytest.fixture
def components() -> tuple[ComponentA, ComponentB]:
    return ComponentA(), ComponentB()


@pytest.fixture
def base_application_with_lifecycle_components(
    base_app_builder: ApplicationBuilder, components
) -> Application:
    component_a, component_b = components
    return base_app_builder.register_lifecycle(component_a).register_lifecycle(component_b).build()


@pytest.mark.asyncio
async def test_boots_components_in_order(
    base_application_with_lifecycle_components: Application, components
):
    async with base_application_with_lifecycle_components:
        pass

    component_a, component_b = components
    assert component_a.started_at < component_b.started_at


@pytest.mark.asyncio
async def test_shuts_down_components_in_reverse_order(
    base_application_with_lifecycle_components: Application, components
):
    async with base_application_with_lifecycle_components:
        pass

    component_a, component_b = components
    assert component_a.stopped_at > component_b.stopped_at


@pytest.mark.asyncio
async def test_event_store_with_lifecycle_is_started():
    store = LifecycleStore()
    app = ApplicationBuilder().use_event_store(store).build()

    async with app:
        assert store.started


def test_event_store_must_be_chosen_before_repositories(base_app_builder: ApplicationBuilder):
    base_app_builder.repository_for(EditGrant)

    with pytest.raises(RuntimeError, match="before repository_for"):
        base_app_builder.use_event_store(InMemoryEventStore())


def test_build_wires_store_to_event_bus(app: Application, event_store: InMemoryEventStore):
    assert event_store.publisher is app.event_bus
    assert app.command_bus.has_handler("CreateEditGrant")
    assert app.command_bus.has_handler("RevokeEditGrant")
    assert app.command_bus.has_handler("ExpireEditGrant")


def test_build_rejects_duplicate_handlers(base_app_builder: ApplicationBuilder, read_model):
    register_access_delegation(base_app_builder, read_model)
    grants = base_app_builder.repository_for(EditGrant)
    base_app_builder.register_command_handler(RevokeEditGrantHandler(grants))

    with pytest.raises(DuplicateHandlerError):
        base_app_builder.build()


def test_settings_derive_middleware():
    settings = ChronicleSettings(command_log_level="DEBUG", concurrency_retry_attempts=3)
    tracker = ExecutionTracker()

    app = ApplicationBuilder().use_settings(settings).register_middleware(tracker).build()

    kinds = [type(m) for m in app.command_bus.middleware]
    assert kinds == [
        ContextPropagationMiddleware,
        LoggingMiddleware,
        ConcurrencyRetryMiddleware,
        ExecutionTracker,
    ]
    assert app.command_bus.middleware[2].max_attempts == 3


def test_settings_without_retry_or_tracking():
    settings = ChronicleSettings(correlation_tracking=False)

    app = ApplicationBuilder().use_settings(settings).build()

    assert [type(m) for m in app.command_bus.middleware] == [LoggingMiddleware]


def test_projector_factory_is_built_once():
    calls: list[Application] = []
    read_model = InMemoryEditGrantReadModel()

    def factory(app: Application) -> EditGrantProjector:
        calls.append(app)
        return EditGrantProjector(read_model)

    app = (
        ApplicationBuilder()
        .subscribe("EditGrantActivated", factory)
        .subscribe("EditGrantRevoked", factory)
        .build()
    )

    assert calls == [app]
    assert (
        app.event_bus.subscribers_for("EditGrantActivated")
        == app.event_bus.subscribers_for("EditGrantRevoked")
    )


@pytest.mark.asyncio
async def test_dispatch_records_actor(app: Application, event_store: InMemoryEventStore, artifact_id):
    result = await app.dispatch(
        CreateEditGrant(
            grantor_id="user-1",
            grantor_email="alice@example.com",
            grantee_email="bob@example.com",
            artifact_type="capability",
            artifact_id=artifact_id,
            scope="write",
        ),
        actor_id="user-1",
        actor_email="alice@example.com",
    )

    [stored] = await event_store.read(result.created_id)
    assert (stored.actor_id, stored.actor_email) == ("user-1", "alice@example.com")
