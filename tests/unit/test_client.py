"""Unit tests for the high-level client."""

from unittest.mock import Mock

import httpx
import pytest

from resilient_api_sdk.api.client import ResilientApiClient
from resilient_api_sdk.api.session import NullSessionHandler
from resilient_api_sdk.models.errors import EnhancedError, ErrorKind
from resilient_api_sdk.models.policy import RetryPolicy
from resilient_api_sdk.models.requests import CacheControl, HttpMethod
from resilient_api_sdk.reliability.retry import RetryState
from tests.helpers.mock_transport import ScriptedHandler, mock_client, respond

pytestmark = pytest.mark.unit


def make_client(handler, settings, **kwargs):
    return ResilientApiClient(settings, client=mock_client(handler), **kwargs)


class TestRequest:

    @pytest.mark.asyncio
    async def test_request_retries_with_one_operation_id(self, settings, seeded_rng):
        handler = ScriptedHandler(respond(502), respond(200, json={"id": 1}))
        client = make_client(handler, settings, rng=seeded_rng)

        result = await client.get("/api/offers")

        assert result == {"id": 1}
        request_ids = {r.headers["x-request-id"] for r in handler.requests}
        assert len(handler.requests) == 2
        assert len(request_ids) == 1

    @pytest.mark.asyncio
    async def test_descriptor_policy_overrides_default(self, settings):
        handler = ScriptedHandler(respond(500))
        client = make_client(handler, settings)
        descriptor = client.descriptor(
            HttpMethod.GET, "/api/offers",
            retry_policy=RetryPolicy(max_retries=0, initial_delay_ms=0, max_delay_ms=0),
        )

        with pytest.raises(EnhancedError):
            await client.request(descriptor)

        assert handler.call_count == 1

    @pytest.mark.asyncio
    async def test_caller_supplied_controller(self, settings):
        handler = ScriptedHandler(respond(404), respond(200, json={"found": True}))
        client = make_client(handler, settings)
        descriptor = client.descriptor(HttpMethod.GET, "/api/offers/1")
        controller = client.controller_for(descriptor)

        with pytest.raises(EnhancedError):
            await client.request(descriptor, controller=controller)
        assert controller.state == RetryState.EXHAUSTED

        assert await controller.retry() == {"found": True}
        assert controller.state == RetryState.SUCCEEDED

    @pytest.mark.asyncio
    async def test_default_timeout_from_settings(self, settings):
        client = make_client(ScriptedHandler(respond(200)), settings)
        assert client.descriptor(HttpMethod.GET, "/x").timeout_ms == settings.timeout_ms
        assert client.descriptor(HttpMethod.GET, "/x", timeout_ms=5000).timeout_ms == 5000

    @pytest.mark.asyncio
    async def test_authentication_notifies_session(self, settings, session_handler):
        handler = ScriptedHandler(respond(401))
        client = make_client(handler, settings, session=session_handler)

        with pytest.raises(EnhancedError) as exc_info:
            await client.post("/api/decisions", {"title": "x"})

        assert exc_info.value.kind == ErrorKind.AUTHENTICATION
        assert handler.call_count == 1
        session_handler.on_session_invalid.assert_called_once_with(return_to="/api/decisions")

    @pytest.mark.asyncio
    async def test_failing_session_handler_still_raises_original(self, settings):
        session = Mock()
        session.on_session_invalid.side_effect = RuntimeError("router gone")
        client = make_client(ScriptedHandler(respond(401)), settings, session=session)

        with pytest.raises(EnhancedError) as exc_info:
            await client.get("/api/user")

        assert exc_info.value.kind == ErrorKind.AUTHENTICATION

    @pytest.mark.asyncio
    async def test_other_errors_do_not_touch_session(self, settings, session_handler):
        client = make_client(ScriptedHandler(respond(403)), settings, session=session_handler)

        with pytest.raises(EnhancedError):
            await client.get("/api/offers")

        session_handler.on_session_invalid.assert_not_called()


class TestMutateAndQuery:

    @pytest.mark.asyncio
    async def test_failed_mutation_does_not_invalidate(self, settings, coordinator):
        subscriber = Mock()
        coordinator.subscribe("offers", subscriber)
        client = make_client(ScriptedHandler(respond(422, json={"message": "Bad"})), settings,
                             coordinator=coordinator)

        with pytest.raises(EnhancedError):
            await client.post("/api/offers", {"title": ""}, invalidate=["offers"])

        subscriber.assert_not_called()

    @pytest.mark.asyncio
    async def test_batch_mutation_invalidates_once(self, settings, coordinator):
        subscriber = Mock()
        coordinator.subscribe("offers", subscriber)
        handler = ScriptedHandler(respond(200, json={"ok": True}))
        client = make_client(handler, settings, coordinator=coordinator)
        descriptors = [
            client.descriptor(HttpMethod.PATCH, f"/api/offers/{n}", {"status": "sent"})
            for n in range(3)
        ]

        results = await client.mutate_many(descriptors, invalidate=["offers"])

        assert results == [{"ok": True}] * 3
        assert handler.call_count == 3
        assert len({r.headers["x-request-id"] for r in handler.requests}) == 3
        subscriber.assert_called_once()

    @pytest.mark.asyncio
    async def test_batch_mutation_with_one_failure(self, settings, coordinator):
        subscriber = Mock()
        coordinator.subscribe("offers", subscriber)
        seen = []

        async def handler(request):
            seen.append(request.url.path)
            if request.url.path == "/api/offers/1":
                return httpx.Response(422, json={"message": "Bad status"}, request=request)
            return httpx.Response(200, json={"path": request.url.path}, request=request)

        client = make_client(handler, settings, coordinator=coordinator)
        descriptors = [
            client.descriptor(HttpMethod.PATCH, f"/api/offers/{n}", {"status": "sent"})
            for n in range(3)
        ]

        with pytest.raises(EnhancedError) as exc_info:
            await client.mutate_many(descriptors, invalidate=["offers"])

        assert exc_info.value.kind == ErrorKind.VALIDATION
        assert exc_info.value.message == "Bad status"
        assert sorted(seen) == ["/api/offers/0", "/api/offers/1", "/api/offers/2"]
        subscriber.assert_called_once()

    @pytest.mark.asyncio
    async def test_helpers_use_matching_methods(self, settings):
        handler = ScriptedHandler(respond(200, json={}))
        client = make_client(handler, settings)

        await client.put("/api/offers/1", {"a": 1})
        await client.patch("/api/offers/1", {"a": 2})
        await client.delete("/api/offers/1")

        assert [r.method for r in handler.requests] == ["PUT", "PATCH", "DELETE"]

    @pytest.mark.asyncio
    async def test_query_reads_through_cache(self, settings):
        handler = ScriptedHandler(respond(200, json=[{"id": 1}]))
        client = make_client(handler, settings)
        descriptor = client.descriptor(HttpMethod.GET, "/api/offers")

        first = await client.query("/api/offers", descriptor)
        second = await client.query("/api/offers", descriptor)

        assert first == second == [{"id": 1}]
        assert handler.call_count == 1

    @pytest.mark.asyncio
    async def test_query_no_cache_bypasses(self, settings):
        handler = ScriptedHandler(respond(200, json=[]))
        client = make_client(handler, settings)
        descriptor = client.descriptor(HttpMethod.GET, "/api/offers", cache_control=CacheControl.NO_CACHE)

        await client.query("/api/offers", descriptor)
        await client.query("/api/offers", descriptor)

        assert handler.call_count == 2

    @pytest.mark.asyncio
    async def test_query_unauthorized_returns_none(self, settings, session_handler):
        client = make_client(ScriptedHandler(respond(401)), settings, session=session_handler)
        descriptor = client.descriptor(HttpMethod.GET, "/api/user")

        assert await client.query("/api/user", descriptor, on_unauthorized="return_none") is None
        session_handler.on_session_invalid.assert_not_called()

    @pytest.mark.asyncio
    async def test_query_unauthorized_throws_by_default(self, settings, session_handler):
        client = make_client(ScriptedHandler(respond(401)), settings, session=session_handler)
        descriptor = client.descriptor(HttpMethod.GET, "/api/user")

        with pytest.raises(EnhancedError):
            await client.query("/api/user", descriptor)
        session_handler.on_session_invalid.assert_called_once()

    @pytest.mark.asyncio
    async def test_query_rejects_unknown_behaviour(self, settings):
        client = make_client(ScriptedHandler(respond(200)), settings)

        with pytest.raises(ValueError):
            await client.query("/api/user", client.descriptor(HttpMethod.GET, "/api/user"),
                               on_unauthorized="redirect")


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_owned_telemetry_disposed_on_close(self, settings):
        async with make_client(ScriptedHandler(respond(200, json={})), settings) as client:
            await client.get("/api/offers")
            assert len(client.telemetry.get_metrics("apiRequest")) == 1

        assert client.telemetry.disposed

    @pytest.mark.asyncio
    async def test_injected_telemetry_left_alone(self, settings, telemetry):
        client = make_client(ScriptedHandler(respond(200, json={})), settings, telemetry=telemetry)

        await client.get("/api/offers")
        await client.aclose()

        assert not telemetry.disposed
        assert len(telemetry.get_metrics("apiRequest")) == 1

    def test_settings_from_environment(self, monkeypatch):
        monkeypatch.setenv("RESILIENT_API_BASE_URL", "https://env.test")

        client = ResilientApiClient()

        assert client.settings.base_url == "https://env.test"
        assert isinstance(client.session, NullSessionHandler)
