"""Tests for PersistenceGateway — load, persist and clear callbacks."""

from __future__ import annotations

import pytest

from onboard.engine.events import EngineEvent
from onboard.engine.exceptions import ClearError, LoadError, PersistenceError
from onboard.engine.persistence import PersistenceGateway


@pytest.fixture
def gateway(services):
    return PersistenceGateway(services.hub, services.errors)


# ---------------------------------------------------------------------------
# load
# ---------------------------------------------------------------------------

class TestLoad:
    @pytest.mark.asyncio
    async def test_no_handler(self, gateway):
        result = await gateway.load()
        assert result.data is None
        assert result.error is None

    @pytest.mark.asyncio
    async def test_sync_handler(self, gateway):
        gateway.load_data = lambda: {"current_step_id": "B", "flow_data": {"x": 1}}
        result = await gateway.load()
        assert result.data["current_step_id"] == "B"

    @pytest.mark.asyncio
    async def test_async_handler_returning_none(self, gateway):
        async def load():
            return None

        gateway.load_data = load
        assert (await gateway.load()).data is None

    @pytest.mark.asyncio
    async def test_failure_returned_not_raised(self, gateway, services):
        def load():
            raise OSError("corrupt storage")

        gateway.load_data = load
        result = await gateway.load()
        assert isinstance(result.error, LoadError)
        assert result.error.message == "Failed to load onboarding state: corrupt storage"
        assert services.state.error is None


# ---------------------------------------------------------------------------
# persist_if_needed
# ---------------------------------------------------------------------------

class TestPersist:
    @pytest.mark.asyncio
    async def test_calls_handler(self, gateway, services, context):
        calls = []
        succeeded = []
        services.hub.subscribe(EngineEvent.PERSISTENCE_SUCCEEDED, succeeded.append)

        async def persist(ctx, step_id):
            calls.append((ctx, step_id))

        gateway.persist_data = persist
        assert await gateway.persist_if_needed(context, "B", is_hydrating=False)
        assert calls == [(context, "B")]
        assert succeeded[0].step_id == "B"
        assert succeeded[0].duration_ms >= 0

    @pytest.mark.asyncio
    async def test_skipped_while_hydrating(self, gateway, context):
        calls = []
        gateway.persist_data = lambda ctx, step_id: calls.append(step_id)
        assert not await gateway.persist_if_needed(context, "B", is_hydrating=True)
        assert calls == []

    @pytest.mark.asyncio
    async def test_no_handler(self, gateway, context):
        assert not await gateway.persist_if_needed(context, "B", is_hydrating=False)

    @pytest.mark.asyncio
    async def test_failure_reported(self, gateway, services, context):
        failed, errors = [], []
        services.hub.subscribe(EngineEvent.PERSISTENCE_FAILED, failed.append)
        services.hub.subscribe(EngineEvent.ERROR, errors.append)

        def persist(ctx, step_id):
            raise OSError("quota exceeded")

        gateway.persist_data = persist
        assert not await gateway.persist_if_needed(context, "B", is_hydrating=False)
        assert isinstance(failed[0].error, PersistenceError)
        assert errors[0].operation == "persist_data"
        assert isinstance(services.state.error, PersistenceError)
        assert services.errors.errors_by_step("B")


# ---------------------------------------------------------------------------
# clear
# ---------------------------------------------------------------------------

class TestClear:
    @pytest.mark.asyncio
    async def test_no_handler(self, gateway):
        await gateway.clear()

    @pytest.mark.asyncio
    async def test_calls_handler(self, gateway):
        calls = []

        async def clear():
            calls.append(1)

        gateway.clear_persisted_data = clear
        await gateway.clear()
        assert calls == [1]

    @pytest.mark.asyncio
    async def test_failure_raises(self, gateway):
        def clear():
            raise OSError("locked")

        gateway.clear_persisted_data = clear
        with pytest.raises(ClearError) as exc_info:
            await gateway.clear()
        assert isinstance(exc_info.value.cause, OSError)
