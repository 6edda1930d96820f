"""
Example: Retries, Error Handling and Cache Invalidation

This example runs against an in-process fake server (httpx.MockTransport)
so it can be executed without network access. It shows:
- transient 503s being retried with backoff
- classified errors with user-facing titles and suggestions
- a mutation invalidating a cached read
- telemetry listeners reacting to slow calls
"""

import asyncio
import json
import logging

import httpx

from resilient_api_sdk import (
    ClientSettings,
    EnhancedError,
    ErrorClassifier,
    HttpMethod,
    OperationTelemetry,
    ResilientApiClient,
    ResourceKeys,
    TelemetryListener,
)


def fake_server():
    """Flaky collection endpoint: two 503s, then normal service."""
    decisions = [{"id": 1, "title": "Take the offer?"}]
    state = {"failures_left": 2}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/decisions" and request.method == "GET":
            if state["failures_left"]:
                state["failures_left"] -= 1
                return httpx.Response(503)
            return httpx.Response(200, json=decisions)
        if request.url.path == "/api/decisions" and request.method == "POST":
            body = json.loads(request.content)
            if not body.get("title"):
                return httpx.Response(422, json={"validationErrors": {"title": ["is required"]}})
            decisions.append({"id": len(decisions) + 1, **body})
            return httpx.Response(201, json=decisions[-1])
        return httpx.Response(404, json={"message": "No such route"})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


async def main():
    logging.basicConfig(level=logging.INFO)

    settings = ClientSettings(base_url="https://example.test", initial_delay_ms=100, max_delay_ms=1000)
    telemetry = OperationTelemetry()
    telemetry.add_listener(TelemetryListener(
        on_warning=lambda metric: print(f"Slow call: {metric.metadata['url']} ({metric.value:.0f}ms)")
    ))

    async with ResilientApiClient(settings, client=fake_server(), telemetry=telemetry) as client:
        read = client.descriptor(HttpMethod.GET, "/api/decisions")

        print("=== Read with retries ===\n")
        decisions = await client.query(ResourceKeys.DECISIONS, read)
        print(f"Decisions: {decisions}\n")

        print("=== Failed mutation ===\n")
        try:
            await client.post("/api/decisions", {"title": ""}, invalidate=[ResourceKeys.DECISIONS])
        except EnhancedError as e:
            print(f"{ErrorClassifier.title_for(e.kind)}: {e.message}")
            print(f"Suggestion: {e.user_message}")
            print(f"Offer retry: {e.offers_retry}\n")

        print("=== Successful mutation invalidates the read ===\n")
        await client.post("/api/decisions", {"title": "Move cities?"}, invalidate=[ResourceKeys.DECISIONS])
        print(f"Cached read stale: {client.cache.is_stale(ResourceKeys.DECISIONS)}")
        decisions = await client.query(ResourceKeys.DECISIONS, read)
        print(f"Decisions: {decisions}\n")

        print("=== Telemetry ===\n")
        print(f"Average request time: {telemetry.get_average('apiRequest'):.1f}ms")
        print(f"Requests recorded: {len(telemetry.get_metrics('apiRequest'))}")

    telemetry.dispose()


if __name__ == "__main__":
    asyncio.run(main())
