import os
import json
import uuid
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

import httpx

from .constants import (
    SERPSTAT_API_URL,
    DEFAULT_TIMEOUT_MS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY_MS,
    TEXT_METHOD_MARKERS,
)
from .errors import API_REQUEST_FAILED

logger = logging.getLogger("serpstat-api")


@dataclass(frozen=True)
class ClientConfig:
    api_key: str
    base_url: str = SERPSTAT_API_URL
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS
    text_methods: Tuple[str, ...] = TEXT_METHOD_MARKERS

    @classmethod
    def from_env(cls, api_key: str, base_url: Optional[str] = None) -> "ClientConfig":
        """Build a config, letting SERPSTAT_* environment variables override defaults"""
        return cls(
            api_key=api_key,
            base_url=base_url or os.environ.get("SERPSTAT_API_URL", SERPSTAT_API_URL),
            timeout_ms=_env_int("SERPSTAT_TIMEOUT_MS", DEFAULT_TIMEOUT_MS),
            max_retries=_env_int("SERPSTAT_MAX_RETRIES", DEFAULT_MAX_RETRIES),
            retry_delay_ms=_env_int("SERPSTAT_RETRY_DELAY_MS", DEFAULT_RETRY_DELAY_MS),
        )


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


@dataclass
class RpcResult:
    success: bool
    data: Any = None
    credits_used: Optional[Any] = None
    request_id: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    error_details: Any = None
    attempts: int = 0


@dataclass
class RetryState:
    """Retry bookkeeping owned by a single invoke call"""

    attempt: int = 0
    last_error: Optional[str] = None
    last_body: Any = field(default=None, repr=False)


class _Retryable(Exception):
    """Internal signal that an attempt failed in a way worth retrying"""

    def __init__(self, message: str, body: Any = None):
        super().__init__(message)
        self.body = body


def estimate_credits(method: str, params: Dict[str, Any]) -> int:
    """Rough credit cost of an upstream call, used for logging only"""
    if method.endswith("getDomainsInfo"):
        credits = 5
    elif method.startswith("TeamManagement."):
        credits = 1
    else:
        credits = params.get("size") or 100
    return max(1, credits)


def _error_fields(error: Any) -> Tuple[str, str, Any]:
    if isinstance(error, dict):
        code = error.get("code")
        message = error.get("message")
        details = error.get("data", error)
        return (
            str(code) if code is not None else "API_ERROR",
            str(message) if message is not None else json.dumps(error),
            details,
        )
    return "API_ERROR", str(error), error


class SerpstatApiClient:
    """JSON-RPC client for the Serpstat API.

    One instance is shared by every tool call of a server. Transport
    failures, timeouts and non-2xx responses without an error payload are
    retried with linear backoff. A response carrying an ``error`` field is
    an upstream rejection and is returned immediately.
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.config = config
        self._sleep = sleep
        self._http = httpx.AsyncClient(
            timeout=config.timeout_ms / 1000,
            transport=transport,
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )

    async def __aenter__(self) -> "SerpstatApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def is_text_method(self, method: str) -> bool:
        return any(marker in method for marker in self.config.text_methods)

    def _url(self, method: str) -> str:
        base_url = self.config.base_url.rstrip("/")
        return f"{base_url}/?token={self.config.api_key}#{method}"

    async def invoke(self, method: str, params: Optional[Dict[str, Any]] = None):
        """Call an upstream RPC method.

        Args:
            method: Upstream procedure name, e.g. "ProjectProcedure.getProjects"
            params: RPC params, sent as-is

        Returns:
            RpcResult describing the success payload or the failure
        """
        params = params or {}
        request_id = uuid.uuid4().hex
        body = {"id": request_id, "method": method, "params": params}
        text_method = self.is_text_method(method)
        headers = {"Accept": "text/plain"} if text_method else None

        logger.info(
            f"Calling {method} (request {request_id}, "
            f"estimated credits: {estimate_credits(method, params)})"
        )

        state = RetryState()
        while True:
            try:
                result = await self._attempt(method, body, headers, text_method)
                result.attempts = state.attempt + 1
                return result
            except _Retryable as e:
                state.last_error = str(e)
                state.last_body = e.body

            if state.attempt >= self.config.max_retries:
                break

            delay_ms = self.config.retry_delay_ms * (state.attempt + 1)
            logger.warning(
                f"Request {request_id} to {method} failed: {state.last_error}. "
                f"Retrying ({state.attempt + 1}/{self.config.max_retries}) "
                f"in {delay_ms}ms"
            )
            await self._sleep(delay_ms / 1000)
            state.attempt += 1

        return self._exhausted(method, state)

    async def _attempt(
        self,
        method: str,
        body: Dict[str, Any],
        headers: Optional[Dict[str, str]],
        text_method: bool,
    ) -> RpcResult:
        # httpx timeouts apply per network step; this bounds the whole attempt
        try:
            response = await asyncio.wait_for(
                self._http.post(self._url(method), json=body, headers=headers),
                self.config.timeout_ms / 1000,
            )
        except asyncio.TimeoutError:
            raise _Retryable(f"Request timed out after {self.config.timeout_ms}ms")
        except httpx.TransportError as e:
            raise _Retryable(str(e) or type(e).__name__)

        payload = self._decode(response)

        if isinstance(payload, dict) and "error" in payload:
            code, message, details = _error_fields(payload["error"])
            logger.error(f"Serpstat API error for {method}: {code} - {message}")
            return RpcResult(
                success=False,
                error_code=code,
                error_message=message,
                error_details=details,
                credits_used=payload.get("credits_used"),
                request_id=payload.get("id"),
            )

        if response.is_error:
            logger.error(
                f"HTTP error occurred: {response.status_code} - {response.text[:500]}"
            )
            message = None
            if isinstance(payload, dict):
                message = payload.get("message")
            raise _Retryable(message or f"HTTP {response.status_code}", body=payload)

        if text_method and not isinstance(payload, dict):
            return RpcResult(success=True, data=response.text)

        credits_used = request_id = None
        if isinstance(payload, dict):
            credits_used = payload.get("credits_used")
            request_id = payload.get("id")
        return RpcResult(
            success=True,
            data=payload,
            credits_used=credits_used,
            request_id=request_id,
        )

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        text = response.text
        if not text:
            return None
        try:
            return json.loads(text)
        except ValueError:
            return text

    def _exhausted(self, method: str, state: RetryState) -> RpcResult:
        message = state.last_error or "Unknown API error"
        logger.error(
            f"Request to {method} failed after {state.attempt + 1} attempts: {message}"
        )
        return RpcResult(
            success=False,
            error_code=API_REQUEST_FAILED,
            error_message=message,
            error_details=state.last_body,
            attempts=state.attempt + 1,
        )
