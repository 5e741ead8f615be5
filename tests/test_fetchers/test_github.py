import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from open_sen.models import NoData, NoDataReason, RepositoryStats

FIXTURE = json.loads(
    (Path(__file__).parent.parent / "fixtures" / "github_repo.json").read_text()
)


def _mock_response(data, status_code: int = 200):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = data
    return response


def _wire(mock_client_class, response=None, side_effect=None):
    mock_client = AsyncMock()
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    mock_client.get = AsyncMock(return_value=response, side_effect=side_effect)
    mock_client_class.return_value = mock_client
    return mock_client


def _make_fetcher():
    from open_sen.fetchers.github import GitHubFetcher
    return GitHubFetcher()


@pytest.mark.asyncio
async def test_fetch_maps_repository_fields():
    with patch("httpx.AsyncClient") as mock_client_class:
        _wire(mock_client_class, _mock_response(FIXTURE))
        result = await _make_fetcher().fetch("https://github.com/acme/widget")

    assert result == RepositoryStats(stars=42, forks=7, issues=3)


@pytest.mark.asyncio
async def test_fetch_queries_repos_endpoint_with_user_agent():
    with patch("httpx.AsyncClient") as mock_client_class:
        mock_client = _wire(mock_client_class, _mock_response(FIXTURE))
        await _make_fetcher().fetch("https://github.com/acme/widget/tree/main?tab=readme")

    mock_client.get.assert_awaited_once_with("https://api.github.com/repos/acme/widget")
    headers = mock_client_class.call_args.kwargs["headers"]
    assert headers["User-Agent"] == "open-sen"
    assert "Authorization" not in headers


@pytest.mark.asyncio
async def test_fetch_strips_git_suffix():
    with patch("httpx.AsyncClient") as mock_client_class:
        mock_client = _wire(mock_client_class, _mock_response(FIXTURE))
        await _make_fetcher().fetch("https://github.com/acme/widget.git")

    mock_client.get.assert_awaited_once_with("https://api.github.com/repos/acme/widget")


@pytest.mark.asyncio
async def test_missing_fields_default_to_zero():
    with patch("httpx.AsyncClient") as mock_client_class:
        _wire(mock_client_class, _mock_response({"stargazers_count": 5, "forks_count": None}))
        result = await _make_fetcher().fetch("https://github.com/acme/widget")

    assert result == RepositoryStats(stars=5, forks=0, issues=0)


@pytest.mark.asyncio
@pytest.mark.parametrize("url", ["https://github.com/acme", "https://gitlab.com/acme/widget", "", "not a url"])
async def test_malformed_url_returns_no_data_without_request(url):
    with patch("httpx.AsyncClient") as mock_client_class:
        result = await _make_fetcher().fetch(url)

    assert isinstance(result, NoData)
    assert result.reason is NoDataReason.MALFORMED_URL
    mock_client_class.assert_not_called()


@pytest.mark.asyncio
async def test_http_error_returns_no_data():
    with patch("httpx.AsyncClient") as mock_client_class:
        _wire(mock_client_class, _mock_response({"message": "Not Found"}, status_code=404))
        result = await _make_fetcher().fetch("https://github.com/acme/missing")

    assert result == NoData(reason=NoDataReason.HTTP_ERROR, detail="")


@pytest.mark.asyncio
async def test_unreachable_host_returns_no_data():
    with patch("httpx.AsyncClient") as mock_client_class:
        _wire(mock_client_class, side_effect=httpx.ConnectError("name resolution failed"))
        result = await _make_fetcher().fetch("https://github.com/acme/widget")

    assert isinstance(result, NoData)
    assert result.reason is NoDataReason.NETWORK_ERROR


@pytest.mark.asyncio
async def test_non_json_body_returns_no_data():
    response = _mock_response(None)
    response.json.side_effect = ValueError("Expecting value")

    with patch("httpx.AsyncClient") as mock_client_class:
        _wire(mock_client_class, response)
        result = await _make_fetcher().fetch("https://github.com/acme/widget")

    assert isinstance(result, NoData)
    assert result.reason is NoDataReason.BAD_PAYLOAD


def test_parse_repo():
    from open_sen.fetchers.github import parse_repo

    assert parse_repo("https://github.com/acme/widget") == ("acme", "widget")
    assert parse_repo("https://github.com/acme/widget/issues/1") == ("acme", "widget")
    assert parse_repo("https://github.com/acme/widget#readme") == ("acme", "widget")
    assert parse_repo("https://github.com/acme") is None
    assert parse_repo(None) is None


@pytest.mark.asyncio
@pytest.mark.parametrize("url", [
    "https://github.com/acme/wid\tget",
    "https://github.com/acme/wid\x01get",
])
async def test_control_characters_in_url_return_no_data(url):
    # real client: httpx rejects the URL before anything is sent
    result = await _make_fetcher().fetch(url)

    assert isinstance(result, NoData)
    assert result.reason is NoDataReason.MALFORMED_URL


@pytest.mark.asyncio
async def test_follows_redirect_for_renamed_repository():
    real_client = httpx.AsyncClient

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/repos/acme/old-widget":
            return httpx.Response(
                301, headers={"Location": "https://api.github.com/repositories/123456789"}
            )
        if request.url.path == "/repositories/123456789":
            return httpx.Response(200, json=FIXTURE)
        return httpx.Response(404)

    transport = httpx.MockTransport(handler)
    with patch("httpx.AsyncClient", side_effect=lambda **kw: real_client(transport=transport, **kw)):
        result = await _make_fetcher().fetch("https://github.com/acme/old-widget")

    assert result == RepositoryStats(stars=42, forks=7, issues=3)


@pytest.mark.asyncio
async def test_client_follows_redirects():
    with patch("httpx.AsyncClient") as mock_client_class:
        _wire(mock_client_class, _mock_response(FIXTURE))
        await _make_fetcher().fetch("https://github.com/acme/widget")

    assert mock_client_class.call_args.kwargs["follow_redirects"] is True


@pytest.mark.asyncio
@pytest.mark.parametrize("value", [float("inf"), float("-inf"), float("nan"), -3, "42", True, [1]])
async def test_unusable_counters_become_zero(value):
    with patch("httpx.AsyncClient") as mock_client_class:
        _wire(mock_client_class, _mock_response(
            {"stargazers_count": value, "forks_count": 7, "open_issues_count": 3}
        ))
        result = await _make_fetcher().fetch("https://github.com/acme/widget")

    assert result == RepositoryStats(stars=0, forks=7, issues=3)


def test_infinity_in_json_body_is_tolerated():
    from open_sen.fetchers.base import count

    body = httpx.Response(200, content=b'{"stargazers_count": Infinity}').json()
    assert count(body["stargazers_count"]) == 0
