from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import httpx
import pytest

from vdsearch.app.core.search_client import SearchApiClient, SearchApiError


class _StubResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: Optional[str] = None) -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)
        self.content = self.text.encode()

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("no json body")
        return self._payload


class _StubHttpClient:
    def __init__(self, response: Optional[_StubResponse] = None, error: Optional[Exception] = None) -> None:
        self.response = response
        self.error = error
        self.requests: List[tuple[str, Dict[str, Any]]] = []

    async def get(self, url: str, params: Optional[Dict[str, Any]] = None) -> _StubResponse:
        self.requests.append((url, dict(params or {})))
        if self.error is not None:
            raise self.error
        assert self.response is not None
        return self.response


def _client(http: _StubHttpClient, **overrides: Any) -> SearchApiClient:
    options: Dict[str, Any] = {
        "api_key": "key-123",
        "engine_id": "engine-1",
        "search_url": "https://search.example.com/v1",
        "suggest_url": "https://suggest.example.com/complete",
        "client": http,
    }
    options.update(overrides)
    return SearchApiClient(**options)


@pytest.mark.asyncio
async def test_fetch_results_builds_params_and_parses_payload() -> None:
    http = _StubHttpClient(
        _StubResponse(
            payload={
                "searchInformation": {"totalResults": "95"},
                "items": [
                    {"title": "Python", "link": "https://python.org", "snippet": "Official site"},
                    {"link": "https://docs.python.org"},
                ],
            }
        )
    )

    result = await _client(http).fetch_results("python", start=21, search_type="image", country_code="US")

    url, params = http.requests[0]
    assert url == "https://search.example.com/v1"
    assert params == {
        "key": "key-123",
        "cx": "engine-1",
        "q": "python",
        "start": 21,
        "searchType": "image",
        "gl": "us",
    }
    assert result.total_results == 95
    assert [item.link for item in result.items] == ["https://python.org", "https://docs.python.org"]
    assert result.items[1].title == ""


@pytest.mark.asyncio
async def test_fetch_results_omits_optional_params() -> None:
    http = _StubHttpClient(_StubResponse(payload={}))

    result = await _client(http).fetch_results("python", country_code="unknown")

    _, params = http.requests[0]
    assert "searchType" not in params
    assert "gl" not in params
    assert result.items == []
    assert result.total_results == 0


@pytest.mark.asyncio
async def test_fetch_results_surfaces_api_error_message() -> None:
    http = _StubHttpClient(
        _StubResponse(status_code=429, payload={"error": {"code": 429, "message": "Quota Exceeded for today"}})
    )

    with pytest.raises(SearchApiError, match="Quota Exceeded for today"):
        await _client(http).fetch_results("python")


@pytest.mark.asyncio
async def test_fetch_results_falls_back_to_status_message() -> None:
    http = _StubHttpClient(_StubResponse(status_code=503, payload=None, text="upstream down"))

    with pytest.raises(SearchApiError, match="HTTP error! status: 503"):
        await _client(http).fetch_results("python")


@pytest.mark.asyncio
async def test_fetch_results_error_in_successful_body() -> None:
    http = _StubHttpClient(_StubResponse(payload={"error": {"message": "API key not valid. Please pass a valid API key."}}))

    with pytest.raises(SearchApiError, match="API key not valid"):
        await _client(http).fetch_results("python")


@pytest.mark.asyncio
async def test_fetch_results_transport_error_is_wrapped() -> None:
    http = _StubHttpClient(error=httpx.ConnectError("connection refused"))

    with pytest.raises(SearchApiError):
        await _client(http).fetch_results("python")


@pytest.mark.asyncio
async def test_fetch_results_requires_credentials() -> None:
    http = _StubHttpClient(_StubResponse(payload={}))

    with pytest.raises(SearchApiError, match="API key not valid"):
        await _client(http, api_key="").fetch_results("python")
    assert http.requests == []


@pytest.mark.asyncio
async def test_fetch_suggestions_returns_second_element() -> None:
    http = _StubHttpClient(_StubResponse(payload=["pyth", ["python", "python tutorial", 3]]))

    suggestions = await _client(http).fetch_suggestions("pyth")

    assert suggestions == ["python", "python tutorial"]
    url, params = http.requests[0]
    assert url == "https://suggest.example.com/complete"
    assert params == {"client": "firefox", "q": "pyth"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "http",
    [
        _StubHttpClient(error=httpx.ReadTimeout("slow")),
        _StubHttpClient(_StubResponse(status_code=500, payload=None, text="boom")),
        _StubHttpClient(_StubResponse(payload=None, text="not json")),
        _StubHttpClient(_StubResponse(payload={"unexpected": True})),
    ],
)
async def test_fetch_suggestions_failures_yield_empty_list(http: _StubHttpClient) -> None:
    assert await _client(http).fetch_suggestions("pyth") == []


@pytest.mark.asyncio
async def test_fetch_suggestions_blank_query_skips_request() -> None:
    http = _StubHttpClient(_StubResponse(payload=["", ["x"]]))

    assert await _client(http).fetch_suggestions("   ") == []
    assert http.requests == []
