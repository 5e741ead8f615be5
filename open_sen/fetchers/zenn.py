import re

from open_sen.fetchers.base import BaseFetcher, count
from open_sen.models import EngagementMetrics, EngagementResult, NoData, NoDataReason

_BASE_URL = "https://zenn.dev/api/articles"
# https://zenn.dev/{user}/articles/{slug}
_ARTICLE_URL = re.compile(r"zenn\.dev/[^/]+/articles/([^/?#]+)")


class ZennFetcher(BaseFetcher):
    """Zenn articles via the unofficial public article API."""

    name = "zenn"

    async def fetch(self, url: str) -> EngagementResult:
        match = _ARTICLE_URL.search(url or "")
        if not match:
            return self._no_data(NoDataReason.MALFORMED_URL, url=url)

        data = await self._get_json(f"{_BASE_URL}/{match.group(1)}")
        if isinstance(data, NoData):
            return data

        article = data.get("article") if isinstance(data, dict) else None
        if not isinstance(article, dict):
            return self._no_data(NoDataReason.BAD_PAYLOAD, url=url)

        return EngagementMetrics(
            likes=count(article.get("liked_count")),
            comments=count(article.get("comments_count")),
            shares=count(article.get("bookmarked_count")),
        )
