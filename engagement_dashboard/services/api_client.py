"""
Async client for the engagement dashboard API.

Every call goes through APIService.send(), which:
- tags the request with a monotonically increasing correlation id (X-Request-ID),
- retries transport failures and 5xx responses with exponential backoff + jitter,
- never retries 4xx responses,
- normalizes every failure into APIServiceError and returns a RequestOutcome.

cancel_all() invalidates everything in flight by bumping the client generation;
callers compare an outcome's generation with is_current() before using it.
"""

import asyncio
import itertools
import logging
import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

import httpx

from engagement_dashboard.core.config import settings

logger = logging.getLogger(__name__)

JITTER_MAX_MS = 1000.0


class ErrorKind(str, Enum):
    NETWORK = "network"
    SERVER = "server"
    CLIENT = "client"
    PARSE = "parse"
    CONFIG = "config"
    CANCELLED = "cancelled"


class APIServiceError(Exception):
    """The single failure shape callers depend on."""

    def __init__(
        self,
        message: str,
        code: str,
        status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        *,
        kind: ErrorKind = ErrorKind.SERVER,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status
        self.details = details
        self.kind = kind

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "status": self.status,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"APIServiceError(code={self.code!r}, status={self.status!r}, message={self.message!r})"


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int
    base_delay_ms: float

    def delay_seconds(self, attempt: int, jitter_ms: float) -> float:
        return (self.base_delay_ms * (2 ** attempt) + jitter_ms) / 1000.0


RETRY_CONFIG: Dict[str, RetryPolicy] = {
    "GET": RetryPolicy(max_retries=3, base_delay_ms=1000),
    "POST": RetryPolicy(max_retries=2, base_delay_ms=1500),
    "PUT": RetryPolicy(max_retries=2, base_delay_ms=1500),
    "DELETE": RetryPolicy(max_retries=1, base_delay_ms=2000),
}


@dataclass(frozen=True)
class RequestOutcome:
    """Success with payload, or failure with a normalized error. Never both."""

    ok: bool
    request_id: int
    generation: int
    attempts: int
    payload: Any = None
    error: Optional[APIServiceError] = None
    status: Optional[int] = None

    def unwrap(self) -> Any:
        if not self.ok:
            raise self.error
        return self.payload


def is_api_error(error: object) -> bool:
    return isinstance(error, APIServiceError)


def get_error_message(error: object) -> str:
    if isinstance(error, APIServiceError):
        return error.message
    if isinstance(error, Exception) and str(error):
        return str(error)
    return "An unknown error occurred"


def should_retry(error: object) -> bool:
    """Client errors (4xx) and cancellations are terminal; everything else may be retried."""
    if isinstance(error, APIServiceError):
        if error.kind == ErrorKind.CANCELLED:
            return False
        return not (error.status is not None and 400 <= error.status < 500)
    return True


def _clean_params(params: Optional[Mapping[str, Any]]) -> Optional[Dict[str, str]]:
    if not params:
        return None
    cleaned = {}
    for key, value in params.items():
        if value is None or value == "":
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        elif isinstance(value, (list, tuple)):
            value = ",".join(str(v) for v in value)
        cleaned[key] = str(value)
    return cleaned or None


def _default_jitter() -> float:
    return random.uniform(0, JITTER_MAX_MS)


class APIService:
    """API client with retry, correlation ids and generation-based cancellation."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        client_version: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        jitter: Callable[[], float] = _default_jitter,
    ):
        self.base_url = base_url or settings.API_BASE_URL
        self.timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT_SECONDS
        self.client_version = client_version or settings.CLIENT_VERSION
        self._transport = transport
        self._sleep = sleep
        self._jitter = jitter
        self._request_ids = itertools.count(1)
        self._generation = 0
        self._client = self._build_client()

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"X-Client-Version": self.client_version},
            transport=self._transport,
        )

    @property
    def generation(self) -> int:
        return self._generation

    def is_current(self, outcome: RequestOutcome) -> bool:
        """False when the outcome was issued before the last cancel_all()."""
        return outcome.generation == self._generation

    async def cancel_all(self) -> None:
        """Invalidate every in-flight request and start a fresh session."""
        old_client = self._client
        self._generation += 1
        self._client = self._build_client()
        logger.info("client.cancel_all", extra={"generation": self._generation})
        await old_client.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def send(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
        files: Optional[Mapping[str, Any]] = None,
        response_type: str = "json",
        max_retries: Optional[int] = None,
    ) -> RequestOutcome:
        """
        Issue one logical request, retrying per RETRY_CONFIG.

        Args:
            method: HTTP method
            path: Path relative to base_url
            params: Query parameters; None/empty values are dropped
            json: JSON body
            files: Multipart files (httpx format)
            response_type: "json" | "text" | "bytes"
            max_retries: Override the per-method retry count

        Returns:
            RequestOutcome; on exhausted retries it carries the last failure
        """
        method = method.upper()
        policy = RETRY_CONFIG.get(method, RETRY_CONFIG["GET"])
        if max_retries is not None:
            policy = RetryPolicy(max_retries=max_retries, base_delay_ms=policy.base_delay_ms)
        request_id = next(self._request_ids)
        generation = self._generation
        client = self._client

        last_error: Optional[APIServiceError] = None
        attempts = 0
        for attempt in range(policy.max_retries + 1):
            if generation != self._generation:
                last_error = self._cancelled_error(request_id)
                break

            attempts += 1
            try:
                response = await self._attempt(
                    client, method, path, request_id, attempt,
                    params=params, json=json, files=files,
                )
                payload = self._decode(response, response_type)
                return RequestOutcome(
                    ok=True,
                    request_id=request_id,
                    generation=generation,
                    attempts=attempts,
                    payload=payload,
                    status=response.status_code,
                )
            except APIServiceError as exc:
                last_error = exc

            if generation != self._generation:
                last_error = self._cancelled_error(request_id)
                break
            if not should_retry(last_error) or attempt == policy.max_retries:
                break

            delay = policy.delay_seconds(attempt, self._jitter())
            logger.warning(
                "client.retry",
                extra={
                    "request_id": str(request_id),
                    "attempt": attempt + 1,
                    "delay_s": round(delay, 3),
                    "error_code": last_error.code,
                    "status": last_error.status,
                },
            )
            await self._sleep(delay)

        return RequestOutcome(
            ok=False,
            request_id=request_id,
            generation=generation,
            attempts=attempts,
            error=last_error,
            status=last_error.status if last_error else None,
        )

    async def _attempt(
        self,
        client: httpx.AsyncClient,
        method: str,
        path: str,
        request_id: int,
        attempt: int,
        *,
        params: Optional[Mapping[str, Any]],
        json: Any,
        files: Optional[Mapping[str, Any]],
    ) -> httpx.Response:
        try:
            request = client.build_request(
                method,
                path,
                params=_clean_params(params),
                json=json,
                files=files,
                headers={"X-Request-ID": str(request_id)},
            )
        except (httpx.InvalidURL, TypeError, ValueError) as exc:
            raise APIServiceError(
                "Request configuration error",
                "CONFIG_ERROR",
                details={"originalError": str(exc)},
                kind=ErrorKind.CONFIG,
            )

        logger.info(
            "client.request",
            extra={"request_id": str(request_id), "method": method, "path": path, "attempt": attempt + 1},
        )
        start = time.perf_counter()
        try:
            response = await asyncio.wait_for(client.send(request), timeout=self.timeout)
        except httpx.UnsupportedProtocol as exc:
            raise APIServiceError(
                "Request configuration error",
                "CONFIG_ERROR",
                details={"originalError": str(exc)},
                kind=ErrorKind.CONFIG,
            )
        except RuntimeError as exc:
            # cancel_all() closed the session underneath us; anything else is a bug
            if not client.is_closed:
                raise
            raise self._network_error(request_id, str(exc))
        except (httpx.RequestError, asyncio.TimeoutError) as exc:
            reason = "timeout" if isinstance(exc, (asyncio.TimeoutError, httpx.TimeoutException)) else str(exc)
            raise self._network_error(request_id, reason or type(exc).__name__)

        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "client.response",
            extra={
                "request_id": str(request_id),
                "status": response.status_code,
                "duration_ms": round(duration_ms, 1),
            },
        )
        if response.is_error:
            raise self._error_from_response(response)
        return response

    def _decode(self, response: httpx.Response, response_type: str) -> Any:
        if response_type == "bytes":
            return response.content
        if response_type == "text":
            return response.text
        try:
            return response.json()
        except ValueError as exc:
            raise APIServiceError(
                "Response was not valid JSON",
                "PARSE_ERROR",
                status=response.status_code,
                details={"originalError": str(exc)},
                kind=ErrorKind.PARSE,
            )

    @staticmethod
    def _error_from_response(response: httpx.Response) -> APIServiceError:
        status = response.status_code
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        error = body.get("error") if isinstance(body.get("error"), dict) else {}

        message = error.get("message") or body.get("message") or f"Request failed with status {status}"
        code = error.get("code") or body.get("code") or "API_ERROR"
        details = body.get("details")
        if details is None and error.get("request_id"):
            details = {"request_id": error["request_id"]}

        return APIServiceError(
            message,
            code,
            status,
            details,
            kind=ErrorKind.CLIENT if status < 500 else ErrorKind.SERVER,
        )

    @staticmethod
    def _network_error(request_id: int, reason: str) -> APIServiceError:
        logger.error(
            "client.network_error",
            extra={"request_id": str(request_id), "error_code": "NETWORK_ERROR"},
        )
        return APIServiceError(
            "Network error - please check your connection",
            "NETWORK_ERROR",
            details={"originalError": reason},
            kind=ErrorKind.NETWORK,
        )

    @staticmethod
    def _cancelled_error(request_id: int) -> APIServiceError:
        return APIServiceError(
            "Request was cancelled",
            "REQUEST_CANCELLED",
            details={"request_id": request_id},
            kind=ErrorKind.CANCELLED,
        )

    # Endpoint helpers

    async def get_engagements(self, filters: Optional[Mapping[str, Any]] = None) -> RequestOutcome:
        """GET /api/engagement with wire-named filters (type, source, startDate, ...)."""
        return await self.send("GET", "/api/engagement", params=filters or {})

    async def get_analytics_summary(self) -> RequestOutcome:
        return await self.send("GET", "/api/analytics/summary")

    async def upload_csv(self, filename: str, content: bytes) -> RequestOutcome:
        files = {"csvFile": (filename, content, "text/csv")}
        return await self.send("POST", "/api/engagement/upload", files=files)

    async def clear_uploaded(self) -> RequestOutcome:
        return await self.send("POST", "/api/engagement/clear-uploaded")

    async def get_segment_analytics(
        self,
        segment: Optional[str] = None,
        compare_segments: Optional[list] = None,
    ) -> RequestOutcome:
        params = {"segment": segment, "compareSegments": compare_segments or None}
        return await self.send("GET", "/api/analytics/segments", params=params)

    async def export_csv(self, filters: Optional[Mapping[str, Any]] = None) -> RequestOutcome:
        """GET /api/export/csv; payload is the raw CSV bytes."""
        return await self.send("GET", "/api/export/csv", params=filters or {}, response_type="bytes")

    async def health_check(self) -> Dict[str, Any]:
        """Never raises; reports 'unhealthy' when the backend is unreachable."""
        outcome = await self.send("GET", "/api/health", max_retries=0)
        if outcome.ok:
            return outcome.payload
        return {
            "status": "unhealthy",
            "message": outcome.error.message if outcome.error else "unknown",
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        }


_service_instance: Optional[APIService] = None


def get_api_service() -> APIService:
    """Lazily created shared client."""
    global _service_instance
    if _service_instance is None:
        _service_instance = APIService()
    return _service_instance
