"""Tests for GitHub GraphQL client behavior with mocked HTTP."""

import sys
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
import requests

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ghmetrics.errors import MalformedPageError, TransportError
from ghmetrics.github_client import GithubClient
from ghmetrics.models import QueryRequest
from ghmetrics.queries import PRS_AND_PARTICIPANTS


def _build_client() -> GithubClient:
    return GithubClient(token="gh-token")


def _request(cursor: str | None = None) -> QueryRequest:
    return QueryRequest(
        template=PRS_AND_PARTICIPANTS,
        params={"queryString": "repo:org/repo is:pr"},
        cursor=cursor,
    )


def _response(status_code: int, payload: dict | None = None, text: str = "", headers: dict | None = None):
    response = Mock()
    response.status_code = status_code
    response.text = text
    response.headers = headers or {}
    response.json.return_value = payload if payload is not None else {}
    return response


def _search_payload(has_next_page: bool = False, end_cursor: str | None = None) -> dict:
    return {
        "data": {
            "search": {
                "issueCount": 0,
                "pageInfo": {"hasNextPage": has_next_page, "endCursor": end_cursor},
                "nodes": [],
            }
        }
    }


def test_execute_returns_page_with_pagination_metadata():
    """Verify a successful response is parsed into data plus pagination fields."""
    client = _build_client()
    client._session.post = Mock(return_value=_response(200, payload=_search_payload(True, "c1")))

    page = client.execute(_request(cursor="c0"))

    assert page.has_next_page is True
    assert page.end_cursor == "c1"
    assert "search" in page.data
    body = client._session.post.call_args.kwargs["json"]
    assert body["variables"] == {"queryString": "repo:org/repo is:pr", "afterCursor": "c0"}
    assert "query PrsAndParticipants" in body["query"]


def test_session_sends_bearer_token():
    """Verify the token is sent as a bearer authorization header."""
    client = _build_client()

    assert client._session.headers["Authorization"] == "Bearer gh-token"


def test_execute_retries_on_429_and_succeeds():
    """Verify HTTP 429 is retried honoring Retry-After before succeeding."""
    client = _build_client()
    first = _response(429, headers={"Retry-After": "1"})
    second = _response(200, payload=_search_payload())
    client._session.post = Mock(side_effect=[first, second])

    with patch("ghmetrics.github_client.time.sleep") as sleep_mock:
        page = client.execute(_request())

    assert page.has_next_page is False
    assert client._session.post.call_count == 2
    sleep_mock.assert_called_once_with(1)


def test_execute_retries_on_5xx_and_raises_transient_error_after_max_retries():
    """Verify server errors are retried and surface as a transient TransportError."""
    client = _build_client()
    server_error = _response(502, text="bad gateway")
    client._session.post = Mock(side_effect=[server_error] * client._MAX_RETRIES)

    with patch("ghmetrics.github_client.time.sleep") as sleep_mock:
        with pytest.raises(TransportError) as exc_info:
            client.execute(_request())

    assert exc_info.value.transient is True
    assert exc_info.value.status == 502
    assert client._session.post.call_count == client._MAX_RETRIES
    assert sleep_mock.call_count == client._MAX_RETRIES - 1


def test_execute_retries_connection_errors():
    """Verify connection failures are retried with exponential backoff."""
    client = _build_client()
    client._session.post = Mock(
        side_effect=[requests.ConnectionError("reset"), _response(200, payload=_search_payload())]
    )

    with patch("ghmetrics.github_client.time.sleep") as sleep_mock:
        client.execute(_request())

    sleep_mock.assert_called_once_with(1)


def test_execute_retries_secondary_rate_limit_403():
    """Verify a 403 secondary rate limit is treated as transient."""
    client = _build_client()
    limited = _response(403, text="You have exceeded a secondary rate limit", headers={"Retry-After": "3"})
    client._session.post = Mock(side_effect=[limited, _response(200, payload=_search_payload())])

    with patch("ghmetrics.github_client.time.sleep") as sleep_mock:
        client.execute(_request())

    sleep_mock.assert_called_once_with(3)


def test_execute_does_not_retry_401():
    """Verify authentication failures are permanent and not retried."""
    client = _build_client()
    client._session.post = Mock(return_value=_response(401, text="Bad credentials"))

    with patch("ghmetrics.github_client.time.sleep") as sleep_mock:
        with pytest.raises(TransportError) as exc_info:
            client.execute(_request())

    assert exc_info.value.transient is False
    assert exc_info.value.status == 401
    assert client._session.post.call_count == 1
    sleep_mock.assert_not_called()


def test_execute_raises_permanent_error_for_graphql_errors():
    """Verify a GraphQL error list fails the request without retrying."""
    client = _build_client()
    payload = {"data": None, "errors": [{"type": "NOT_FOUND", "message": "Could not resolve to a Repository"}]}
    client._session.post = Mock(return_value=_response(200, payload=payload))

    with pytest.raises(TransportError) as exc_info:
        client.execute(_request())

    assert exc_info.value.transient is False
    assert "Could not resolve" in str(exc_info.value)
    assert exc_info.value.request == _request()


def test_execute_retries_rate_limited_graphql_errors():
    """Verify RATE_LIMITED GraphQL errors are retried."""
    client = _build_client()
    limited = _response(200, payload={"errors": [{"type": "RATE_LIMITED", "message": "API rate limit exceeded"}]})
    client._session.post = Mock(side_effect=[limited, _response(200, payload=_search_payload())])

    with patch("ghmetrics.github_client.time.sleep"):
        page = client.execute(_request())

    assert page.has_next_page is False
    assert client._session.post.call_count == 2


def test_execute_raises_for_invalid_json():
    """Verify non-JSON bodies are reported as permanent transport errors."""
    client = _build_client()
    response = _response(200)
    response.json.side_effect = ValueError("no json")
    client._session.post = Mock(return_value=response)

    with pytest.raises(TransportError):
        client.execute(_request())


def test_execute_raises_malformed_page_without_page_info():
    """Verify a payload without pageInfo is rejected as malformed."""
    client = _build_client()
    payload = {"data": {"search": {"nodes": []}}}
    client._session.post = Mock(return_value=_response(200, payload=payload))

    with pytest.raises(MalformedPageError):
        client.execute(_request())
