"""GitHub GraphQL API client for metrics data retrieval."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

import requests

from .errors import TransportError
from .models import QueryRequest, QueryResponse
from .queries import get_template, parse_page

logger = logging.getLogger(__name__)


class GithubClient:
    """Small, typed executor for named GitHub GraphQL queries."""

    _API_URL = "https://api.github.com/graphql"
    _MAX_RETRIES = 5
    _MAX_BACKOFF_SECONDS = 60

    def __init__(self, token: str, timeout_seconds: int = 30, api_url: str = _API_URL) -> None:
        """Initialize an authenticated GitHub GraphQL client.

        Args:
            token: GitHub token sent as a bearer credential.
            timeout_seconds: Per-request timeout in seconds.
            api_url: GraphQL endpoint, overridable for GitHub Enterprise.
        """
        self._timeout_seconds = timeout_seconds
        self._api_url = api_url

        self._session = requests.Session()
        self._session.headers.update(
            {
                "Accept": "application/json",
                "Authorization": f"Bearer {token}",
            }
        )

    def _backoff_seconds(self, attempt: int, response: Optional[requests.Response] = None) -> int:
        """Compute exponential backoff seconds, honoring Retry-After when available."""
        if response is not None:
            retry_after_header = response.headers.get("Retry-After")
            if retry_after_header:
                try:
                    retry_after_seconds = int(retry_after_header)
                    return min(self._MAX_BACKOFF_SECONDS, max(1, retry_after_seconds))
                except ValueError:
                    pass

        return min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1))

    def _is_rate_limited(self, response: requests.Response) -> bool:
        """Detect primary and secondary rate limiting reported with HTTP 403."""
        if response.status_code != 403:
            return False
        if response.headers.get("X-RateLimit-Remaining") == "0":
            return True
        return "rate limit" in (response.text or "").lower()

    def _graphql_errors(self, payload: Dict[str, Any]) -> List[Dict[str, Any]]:
        errors = payload.get("errors")
        if not errors:
            return []
        if not isinstance(errors, list):
            return [{"message": str(errors)}]
        return [error if isinstance(error, dict) else {"message": str(error)} for error in errors]

    def _post_json(self, request: QueryRequest) -> Dict[str, Any]:
        """Execute a GraphQL POST with retry logic for transient failures.

        Retries connection failures, HTTP 429/5xx, rate-limited 403 responses
        and ``RATE_LIMITED`` GraphQL errors with exponential backoff.

        Raises:
            TransportError: If the request repeatedly fails, returns a
                non-retryable HTTP error, invalid JSON, a GraphQL error list,
                or no ``data`` object.
        """
        body = {"query": get_template(request.template).text, "variables": request.variables()}
        target = request.describe()

        for attempt in range(1, self._MAX_RETRIES + 1):
            is_last_attempt = attempt == self._MAX_RETRIES
            try:
                response = self._session.post(self._api_url, json=body, timeout=self._timeout_seconds)
            except requests.RequestException as exc:
                if is_last_attempt:
                    raise TransportError(
                        f"GitHub GraphQL request failed after retries: {target}",
                        request=request,
                        transient=True,
                    ) from exc
                delay = self._backoff_seconds(attempt)
                logger.warning(
                    "GitHub request failed, retrying",
                    extra={"request": target, "attempt": attempt, "delay_seconds": delay, "error": str(exc)},
                )
                time.sleep(delay)
                continue

            status_code = response.status_code
            is_retryable = (
                status_code == 429 or 500 <= status_code <= 599 or self._is_rate_limited(response)
            )

            if is_retryable:
                if is_last_attempt:
                    raise TransportError(
                        f"GitHub GraphQL request failed after retries: {target} "
                        f"returned {status_code} - {response.text}",
                        request=request,
                        status=status_code,
                        transient=True,
                    )
                delay = self._backoff_seconds(attempt, response)
                logger.warning(
                    "GitHub request throttled or unavailable, retrying",
                    extra={"request": target, "status": status_code, "attempt": attempt, "delay_seconds": delay},
                )
                time.sleep(delay)
                continue

            if status_code == 401:
                raise TransportError(
                    f"GitHub rejected the token (401) for {target}.",
                    request=request,
                    status=status_code,
                )

            if status_code >= 400:
                raise TransportError(
                    f"GitHub GraphQL request failed: {target} returned {status_code} - {response.text}",
                    request=request,
                    status=status_code,
                )

            try:
                payload = response.json()
            except ValueError as exc:
                raise TransportError(
                    f"GitHub GraphQL API returned invalid JSON: {target}",
                    request=request,
                    status=status_code,
                ) from exc

            if not isinstance(payload, dict):
                raise TransportError(
                    f"GitHub GraphQL API returned unexpected payload shape: {target}",
                    request=request,
                    status=status_code,
                )

            errors = self._graphql_errors(payload)
            if errors:
                rate_limited = any(error.get("type") == "RATE_LIMITED" for error in errors)
                messages = "; ".join(str(error.get("message", error)) for error in errors)
                if rate_limited and not is_last_attempt:
                    delay = self._backoff_seconds(attempt, response)
                    logger.warning(
                        "GitHub GraphQL rate limit reached, retrying",
                        extra={"request": target, "attempt": attempt, "delay_seconds": delay},
                    )
                    time.sleep(delay)
                    continue
                raise TransportError(
                    f"GitHub GraphQL API reported errors for {target}: {messages}",
                    request=request,
                    status=status_code,
                    transient=rate_limited,
                )

            data = payload.get("data")
            if not isinstance(data, dict):
                raise TransportError(
                    f"GitHub GraphQL API returned no data: {target}",
                    request=request,
                    status=status_code,
                )

            return data

        raise TransportError(f"GitHub GraphQL request failed after retries: {target}", request=request)

    def execute(self, request: QueryRequest) -> QueryResponse:
        """Execute one page request and parse its pagination metadata.

        Raises:
            TransportError: If the request fails (see ``_post_json``).
            MalformedPageError: If the payload lacks pagination fields.
        """
        logger.debug("Executing GraphQL query", extra={"request": request.describe()})
        data = self._post_json(request)
        return parse_page(request.template, data)
