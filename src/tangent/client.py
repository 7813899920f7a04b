"""
HTTP client for the tangent trail API.

Implements the search, tangent and trail-persistence collaborator
interfaces against a running tangent web service (see tangent.web).

Provides:
- Per-request timeouts
- Retry with exponential backoff on connection errors and timeouts
- None as the not-found signal for trail lookups
"""

import logging
from typing import Any

import httpx
from pydantic import TypeAdapter
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .trail.engine import import_from_dict
from .trail.models import SearchParams, SourceCard, TangentContext, Trail, TrailStep

logger = logging.getLogger(__name__)

_cards_adapter: TypeAdapter[list[SourceCard]] = TypeAdapter(list[SourceCard])


class TrailApiError(RuntimeError):
    """Raised when the trail API answers with an unexpected status."""

    def __init__(self, operation: str, status_code: int, detail: str = ""):
        self.operation = operation
        self.status_code = status_code
        super().__init__(f"{operation} failed: HTTP {status_code} {detail}".strip())


class TrailApiClient:
    """Async client for the trail API."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000/api",
        timeout_seconds: float = 10.0,
        max_retries: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize API client.

        Args:
            base_url: API root, e.g. http://localhost:8000/api
            timeout_seconds: Timeout applied to every request
            max_retries: Attempts per request for connection errors/timeouts
            transport: Optional httpx transport (tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self._transport = transport

    @property
    def name(self) -> str:
        return "api"

    async def _request(
        self,
        method: str,
        path: str,
        json_body: dict[str, Any] | None = None,
        retry_timeouts: bool = True,
    ) -> httpx.Response:
        """
        Send one request, retrying transient transport failures.

        Connection failures and connect timeouts are always retried. Read
        and write timeouts are retried only when ``retry_timeouts`` is set:
        a timed-out append may already be stored.
        """
        retryable = (
            (httpx.ConnectError, httpx.TimeoutException)
            if retry_timeouts
            else (httpx.ConnectError, httpx.ConnectTimeout)
        )

        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(retryable),
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
            reraise=True,
        ):
            with attempt:
                logger.debug(
                    f"{method} {path} (attempt {attempt.retry_state.attempt_number}/{self.max_retries})"
                )
                async with httpx.AsyncClient(
                    base_url=self.base_url,
                    timeout=self.timeout_seconds,
                    transport=self._transport,
                ) as client:
                    return await client.request(method, path, json=json_body)

        raise RuntimeError("Retry logic failed unexpectedly")

    @staticmethod
    def _check(response: httpx.Response, operation: str) -> None:
        if response.is_success:
            return
        try:
            detail = response.json().get("detail", "")
        except ValueError:
            detail = response.text
        raise TrailApiError(operation, response.status_code, str(detail))

    # --- Search collaborator ---

    async def search(self, query: str, params: SearchParams) -> list[SourceCard]:
        response = await self._request(
            "POST",
            "/search",
            {"query": query, "params": params.model_dump(mode="json", by_alias=True)},
        )
        self._check(response, "Search")
        return _cards_adapter.validate_python(response.json().get("cards", []))

    # --- Tangent collaborator ---

    async def generate(self, context: TangentContext) -> list[str]:
        response = await self._request("POST", "/tangents", context.model_dump(exclude_none=True))
        self._check(response, "Tangent generation")
        return list(response.json().get("queries", []))

    # --- Persistence collaborator ---

    async def save_trail(self, trail: Trail) -> None:
        response = await self._request(
            "POST", "/trail", {"trail": trail.model_dump(mode="json", by_alias=True)}
        )
        self._check(response, "Trail save")

    async def append_step(self, trail_id: str, step: TrailStep) -> None:
        response = await self._request(
            "POST",
            "/trail/append",
            {"trailId": trail_id, "step": step.model_dump(mode="json")},
            retry_timeouts=False,
        )
        self._check(response, "Trail append")

    async def get_trail(self, trail_id: str) -> Trail | None:
        response = await self._request("GET", f"/trail/{trail_id}")
        if response.status_code == 404:
            return None
        self._check(response, "Trail fetch")
        return import_from_dict(response.json())

    async def health_check(self) -> bool:
        try:
            response = await self._request("GET", "/health")
        except httpx.HTTPError as e:
            logger.warning(f"Health check failed: {e}")
            return False
        return response.is_success and bool(response.json().get("ok"))
