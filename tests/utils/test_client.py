import asyncio
import json

import httpx
import pytest

from serpstat_mcp.utils.serpstat.client import (
    ClientConfig,
    SerpstatApiClient,
    estimate_credits,
)
from serpstat_mcp.utils.serpstat.errors import API_REQUEST_FAILED


class RecordingSleep:
    """Async sleep replacement that only records the requested delays"""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


class ScriptedHandler:
    """MockTransport handler replaying a fixed list of outcomes"""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def bodies(self):
        return [json.loads(request.content) for request in self.requests]


def make_client(handler, **config):
    sleep = RecordingSleep()
    client = SerpstatApiClient(
        ClientConfig(api_key="secret", **config),
        transport=httpx.MockTransport(handler),
        sleep=sleep,
    )
    return client, sleep


def ok(payload, status_code=200):
    return httpx.Response(status_code, json=payload)


@pytest.mark.asyncio
async def test_success_returns_payload_and_metadata():
    payload = {"id": "abc", "result": {"data": []}, "credits_used": 3}
    handler = ScriptedHandler(ok(payload))
    client, sleep = make_client(handler)

    async with client:
        result = await client.invoke("ProjectProcedure.getProjects", {"page": 2})

    assert result.success
    assert result.data == payload
    assert result.credits_used == 3
    assert result.request_id == "abc"
    assert result.attempts == 1
    assert sleep.delays == []

    body = handler.bodies()[0]
    assert body["method"] == "ProjectProcedure.getProjects"
    assert body["params"] == {"page": 2}
    assert body["id"]


@pytest.mark.asyncio
async def test_request_url_carries_token_and_method():
    handler = ScriptedHandler(ok({"result": {}}))
    client, _ = make_client(handler, base_url="https://example.test/v4/")

    async with client:
        await client.invoke("AuditSite.getList", {})

    url = handler.requests[0].url
    assert url.host == "example.test"
    assert url.path == "/v4/"
    assert url.params["token"] == "secret"
    assert url.fragment == "AuditSite.getList"
    assert handler.requests[0].headers["Accept"] == "application/json"


@pytest.mark.asyncio
async def test_transport_errors_are_retried_with_linear_backoff():
    handler = ScriptedHandler(
        httpx.ConnectError("connection refused"),
        httpx.ConnectError("connection refused"),
        ok({"id": "abc", "result": {"total": 1}}),
    )
    client, sleep = make_client(handler, max_retries=3, retry_delay_ms=1000)

    async with client:
        result = await client.invoke("ProjectProcedure.getProjects", {})

    assert result.success
    assert result.attempts == 3
    assert sleep.delays == [1.0, 2.0]

    # Every attempt reuses the same request id
    ids = {body["id"] for body in handler.bodies()}
    assert len(ids) == 1


@pytest.mark.asyncio
async def test_retries_exhausted():
    handler = ScriptedHandler(
        *[httpx.ReadTimeout("timed out") for _ in range(3)],
    )
    client, sleep = make_client(handler, max_retries=2, retry_delay_ms=500)

    async with client:
        result = await client.invoke("ProjectProcedure.getProjects", {})

    assert not result.success
    assert result.error_code == API_REQUEST_FAILED
    assert result.error_message == "timed out"
    assert result.attempts == 3
    assert len(handler.requests) == 3
    assert sleep.delays == [0.5, 1.0]


@pytest.mark.asyncio
async def test_http_error_without_error_body_is_retried():
    handler = ScriptedHandler(
        httpx.Response(503, json={"message": "Service unavailable"}),
        ok({"result": {"ok": True}}),
    )
    client, sleep = make_client(handler)

    async with client:
        result = await client.invoke("SerpstatDomainProcedure.getDomainsInfo", {})

    assert result.success
    assert result.attempts == 2
    assert sleep.delays == [1.0]


@pytest.mark.asyncio
async def test_http_error_exhaustion_reports_status():
    handler = ScriptedHandler(httpx.Response(502, text=""), httpx.Response(502))
    client, _ = make_client(handler, max_retries=1)

    async with client:
        result = await client.invoke("AuditSite.getList", {})

    assert not result.success
    assert result.error_code == API_REQUEST_FAILED
    assert result.error_message == "HTTP 502"
    assert result.attempts == 2


@pytest.mark.asyncio
async def test_upstream_error_is_not_retried():
    handler = ScriptedHandler(
        ok({"id": "abc", "error": {"code": 32001, "message": "Invalid token"}}),
    )
    client, sleep = make_client(handler)

    async with client:
        result = await client.invoke("ProjectProcedure.getProjects", {})

    assert not result.success
    assert result.error_code == "32001"
    assert result.error_message == "Invalid token"
    assert result.request_id == "abc"
    assert result.attempts == 1
    assert len(handler.requests) == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_upstream_error_with_http_error_status_is_not_retried():
    handler = ScriptedHandler(
        ok({"error": {"code": "BAD_TOKEN", "message": "Bad token"}}, status_code=401),
    )
    client, _ = make_client(handler)

    async with client:
        result = await client.invoke("ProjectProcedure.getProjects", {})

    assert result.error_code == "BAD_TOKEN"
    assert len(handler.requests) == 1


@pytest.mark.asyncio
async def test_string_error_payload():
    handler = ScriptedHandler(ok({"error": "Not enough credits"}))
    client, _ = make_client(handler)

    async with client:
        result = await client.invoke("SerpstatKeywordProcedure.getKeywords", {})

    assert result.error_code == "API_ERROR"
    assert result.error_message == "Not enough credits"


@pytest.mark.asyncio
async def test_text_method_returns_raw_body():
    csv = "keyword;position\nseo;1\n"
    handler = ScriptedHandler(httpx.Response(200, text=csv))
    client, _ = make_client(handler)

    async with client:
        result = await client.invoke("SerpstatDomainProcedure.exportPositions", {})

    assert result.success
    assert result.data == csv
    assert handler.requests[0].headers["Accept"] == "text/plain"


@pytest.mark.asyncio
async def test_text_method_still_decodes_json_errors():
    handler = ScriptedHandler(ok({"error": {"code": 400, "message": "Bad domain"}}))
    client, _ = make_client(handler)

    async with client:
        result = await client.invoke("SerpstatDomainProcedure.exportPositions", {})

    assert not result.success
    assert result.error_message == "Bad domain"


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("SERPSTAT_API_URL", "https://proxy.test/v4")
    monkeypatch.setenv("SERPSTAT_MAX_RETRIES", "5")
    monkeypatch.delenv("SERPSTAT_TIMEOUT_MS", raising=False)

    config = ClientConfig.from_env("key")

    assert config.base_url == "https://proxy.test/v4"
    assert config.max_retries == 5
    assert config.timeout_ms == 120000
    assert ClientConfig.from_env("key", base_url="https://rt.test").base_url == (
        "https://rt.test"
    )


def test_config_from_env_rejects_non_integer(monkeypatch):
    monkeypatch.setenv("SERPSTAT_RETRY_DELAY_MS", "soon")

    with pytest.raises(ValueError, match="SERPSTAT_RETRY_DELAY_MS"):
        ClientConfig.from_env("key")


def test_estimate_credits():
    assert estimate_credits("SerpstatDomainProcedure.getDomainsInfo", {}) == 5
    assert estimate_credits("TeamManagement.getList", {"size": 500}) == 1
    assert estimate_credits("SerpstatKeywordProcedure.getKeywords", {"size": 20}) == 20
    assert estimate_credits("AuditSite.getList", {}) == 100


@pytest.mark.asyncio
async def test_slow_response_times_out_each_attempt():
    async def stalled(request):
        await asyncio.sleep(5)
        return ok({"result": {}})

    client, sleep = make_client(
        stalled, timeout_ms=50, max_retries=1, retry_delay_ms=100
    )

    async with client:
        result = await client.invoke("ProjectProcedure.getProjects", {})

    assert not result.success
    assert result.error_code == API_REQUEST_FAILED
    assert result.error_message == "Request timed out after 50ms"
    assert result.attempts == 2
    assert sleep.delays == [0.1]


@pytest.mark.asyncio
async def test_concurrent_invokes_keep_separate_retry_state():
    seen = {}

    async def handler(request):
        body = json.loads(request.content)
        attempt = seen.setdefault(body["method"], [])
        attempt.append(body["id"])
        await asyncio.sleep(0)

        if body["method"] == "AuditSite.getList":
            raise httpx.ConnectError("connection refused")
        if body["method"] == "ProjectProcedure.getProjects" and len(attempt) == 1:
            raise httpx.ConnectError("connection reset")
        return ok({"id": body["id"], "result": {"method": body["method"]}})

    client, sleep = make_client(handler, max_retries=2, retry_delay_ms=100)

    async with client:
        failing, flaky, steady = await asyncio.gather(
            client.invoke("AuditSite.getList", {}),
            client.invoke("ProjectProcedure.getProjects", {}),
            client.invoke("SerpstatDomainProcedure.getDomainsInfo", {}),
        )

    assert not failing.success
    assert failing.attempts == 3
    assert failing.error_message == "connection refused"

    assert flaky.success
    assert flaky.attempts == 2
    assert flaky.data["result"] == {"method": "ProjectProcedure.getProjects"}

    assert steady.success
    assert steady.attempts == 1

    # Each call reuses its own id and never another call's
    ids = {method: set(attempts) for method, attempts in seen.items()}
    assert all(len(request_ids) == 1 for request_ids in ids.values())
    assert len(set.union(*ids.values())) == 3
    assert flaky.request_id in ids["ProjectProcedure.getProjects"]
    assert sorted(sleep.delays) == [0.1, 0.1, 0.2]
