import re

from open_sen.fetchers.base import BaseFetcher, count
from open_sen.models import EngagementMetrics, EngagementResult, NoData, NoDataReason

_BASE_URL = "https://qiita.com/api/v2/items"
# https://qiita.com/{user}/items/{item_id}
_ITEM_URL = re.compile(r"qiita\.com/[^/]+/items/([^/?#]+)")


class QiitaFetcher(BaseFetcher):
    """Qiita items via the public v2 API. Stocks are reported as shares."""

    name = "qiita"

    async def fetch(self, url: str) -> EngagementResult:
        match = _ITEM_URL.search(url or "")
        if not match:
            return self._no_data(NoDataReason.MALFORMED_URL, url=url)

        data = await self._get_json(f"{_BASE_URL}/{match.group(1)}")
        if isinstance(data, NoData):
            return data
        if not isinstance(data, dict):
            return self._no_data(NoDataReason.BAD_PAYLOAD, url=url)

        return EngagementMetrics(
            likes=count(data.get("likes_count")),
            comments=count(data.get("comments_count")),
            shares=count(data.get("stocks_count")),
        )
