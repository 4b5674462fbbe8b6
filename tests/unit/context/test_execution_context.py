"""Tests for ExecutionContext class and context storage."""

import asyncio

import pytest
from ulid import ULID

from chronicle.context import (
    DEFAULT_TENANT_ID,
    SYSTEM_ACTOR_EMAIL,
    SYSTEM_ACTOR_ID,
    ExecutionContext,
    clear_context,
    get_context,
    get_or_create_context,
    set_context,
    use_context,
)


def test_create_context_with_defaults():
    """Context.create() should generate a new correlation_id."""
    ctx = ExecutionContext.create()

    assert ctx.correlation_id is not None
    assert isinstance(ctx.correlation_id, ULID)
    assert ctx.causation_id == ctx.correlation_id  # Self-referencing at entry
    assert ctx.command_id is None


def test_create_context_with_specific_correlation_id():
    """Context.create() should use provided correlation_id."""
    correlation_id = ULID()
    ctx = ExecutionContext.create(correlation_id=correlation_id)

    assert ctx.correlation_id == correlation_id
    assert ctx.causation_id == correlation_id


def test_for_command():
    """Context.for_command() should set command_id."""
    ctx = ExecutionContext.create()
    command_id = ULID()
    cmd_ctx = ctx.for_command(command_id)

    assert cmd_ctx.correlation_id == ctx.correlation_id
    assert cmd_ctx.command_id == command_id
    assert cmd_ctx.causation_id == ctx.causation_id


def test_for_event():
    """Context.for_event() should set causation to event_id and clear command_id."""
    ctx = ExecutionContext.create().for_command(ULID())
    event_id = ULID()
    evt_ctx = ctx.for_event(event_id)

    assert evt_ctx.correlation_id == ctx.correlation_id
    assert evt_ctx.causation_id == event_id
    assert evt_ctx.command_id is None


def test_context_immutability():
    """ExecutionContext should be immutable."""
    ctx = ExecutionContext.create()
    original_correlation = ctx.correlation_id

    command_id = ULID()
    new_ctx = ctx.for_command(command_id)

    assert ctx.correlation_id == original_correlation
    assert ctx.command_id is None
    assert new_ctx.command_id == command_id


def test_actor_falls_back_to_system():
    """An anonymous context acts as the system actor."""
    assert ExecutionContext().actor == (SYSTEM_ACTOR_ID, SYSTEM_ACTOR_EMAIL)


def test_with_actor():
    """Context.with_actor() should keep ids and set the acting user."""
    ctx = ExecutionContext.create()
    acting = ctx.with_actor("user-1", "alice@example.com")

    assert acting.actor == ("user-1", "alice@example.com")
    assert acting.correlation_id == ctx.correlation_id


def test_tenant_falls_back_to_default():
    assert ExecutionContext().tenant == DEFAULT_TENANT_ID


def test_tenant_survives_child_contexts():
    """Command and event child contexts keep the tenant."""
    ctx = ExecutionContext.create(tenant_id="acme")

    assert ctx.for_command(ULID()).for_event(ULID()).tenant == "acme"
    assert ExecutionContext.create().with_tenant("globex").tenant == "globex"


def test_get_context_when_not_set():
    """get_context() should return empty context when not set."""
    ctx = get_context()

    assert ctx.correlation_id is None
    assert ctx.causation_id is None
    assert ctx.command_id is None


def test_set_and_get_context():
    """set_context() and get_context() should store and retrieve context."""
    expected_ctx = ExecutionContext.create()
    set_context(expected_ctx)

    assert get_context() == expected_ctx


def test_clear_context():
    """clear_context() should reset context to empty."""
    set_context(ExecutionContext.create())
    clear_context()

    assert get_context() == ExecutionContext()


def test_get_or_create_context_when_not_set():
    """get_or_create_context() should create and store a new context."""
    ctx = get_or_create_context()

    assert isinstance(ctx.correlation_id, ULID)
    assert get_context() == ctx


def test_get_or_create_context_when_already_set():
    """get_or_create_context() should return existing context."""
    original_ctx = ExecutionContext.create()
    set_context(original_ctx)

    assert get_or_create_context() == original_ctx


def test_use_context_restores_previous_context():
    """use_context() should restore the outer context, even on error."""
    outer = ExecutionContext.create()
    inner = ExecutionContext.create()
    set_context(outer)

    with pytest.raises(RuntimeError):
        with use_context(inner):
            assert get_context() == inner
            raise RuntimeError("boom")

    assert get_context() == outer


@pytest.mark.asyncio
async def test_context_is_isolated_between_tasks():
    """Concurrent tasks should not see each other's context."""
    seen: dict[str, ULID | None] = {}

    async def run(name: str) -> None:
        ctx = ExecutionContext.create()
        with use_context(ctx):
            await asyncio.sleep(0)
            seen[name] = get_context().correlation_id
            assert seen[name] == ctx.correlation_id

    await asyncio.gather(run("a"), run("b"))

    assert seen["a"] != seen["b"]
