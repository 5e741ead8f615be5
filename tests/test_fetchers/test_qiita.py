import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from open_sen.models import EngagementMetrics, NoData, NoDataReason

FIXTURE = json.loads(
    (Path(__file__).parent.parent / "fixtures" / "qiita_item.json").read_text()
)
_URL = "https://qiita.com/acme/items/c686397e4a0f4f11683d"


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
    from open_sen.fetchers.qiita import QiitaFetcher
    return QiitaFetcher()


@pytest.mark.asyncio
async def test_stocks_map_to_shares():
    with patch("httpx.AsyncClient") as mock_client_class:
        mock_client = _wire(mock_client_class, _mock_response(FIXTURE))
        result = await _make_fetcher().fetch(_URL)

    assert result == EngagementMetrics(likes=10, comments=2, shares=5)
    mock_client.get.assert_awaited_once_with(
        "https://qiita.com/api/v2/items/c686397e4a0f4f11683d"
    )


@pytest.mark.asyncio
async def test_query_string_is_not_part_of_item_id():
    with patch("httpx.AsyncClient") as mock_client_class:
        mock_client = _wire(mock_client_class, _mock_response(FIXTURE))
        await _make_fetcher().fetch(_URL + "?utm_source=x#comments")

    mock_client.get.assert_awaited_once_with(
        "https://qiita.com/api/v2/items/c686397e4a0f4f11683d"
    )


@pytest.mark.asyncio
async def test_rate_limited_returns_no_data():
    with patch("httpx.AsyncClient") as mock_client_class:
        _wire(mock_client_class, _mock_response({}, status_code=429))
        result = await _make_fetcher().fetch(_URL)

    assert isinstance(result, NoData)
    assert result.reason is NoDataReason.HTTP_ERROR


@pytest.mark.asyncio
async def test_timeout_returns_no_data():
    with patch("httpx.AsyncClient") as mock_client_class:
        _wire(mock_client_class, side_effect=httpx.ReadTimeout("timed out"))
        result = await _make_fetcher().fetch(_URL)

    assert isinstance(result, NoData)
    assert result.reason is NoDataReason.NETWORK_ERROR


@pytest.mark.asyncio
async def test_list_payload_is_bad_payload():
    with patch("httpx.AsyncClient") as mock_client_class:
        _wire(mock_client_class, _mock_response([1, 2, 3]))
        result = await _make_fetcher().fetch(_URL)

    assert isinstance(result, NoData)
    assert result.reason is NoDataReason.BAD_PAYLOAD


@pytest.mark.asyncio
async def test_malformed_url_returns_no_data():
    with patch("httpx.AsyncClient") as mock_client_class:
        result = await _make_fetcher().fetch("https://qiita.com/acme")

    assert isinstance(result, NoData)
    assert result.reason is NoDataReason.MALFORMED_URL
    mock_client_class.assert_not_called()
