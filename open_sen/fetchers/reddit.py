import re
from urllib.parse import urlsplit

from open_sen.config import settings
from open_sen.fetchers.base import BaseFetcher, count
from open_sen.models import EngagementMetrics, EngagementResult, NoData, NoDataReason

_HOST = "https://www.reddit.com"
# /r/{subreddit}/comments/{post_id}[/{title}]
_POST_PATH = re.compile(r"^/r/[^/]+/comments/[^/]+(/[^/]*)?/?$")


def to_json_url(url: str) -> str | None:
    """
    Turn a post permalink into its public JSON listing URL.

    Query, fragment and trailing slash are dropped and ``.json`` appended.
    Any reddit.com subdomain (old., np., ...) is pinned to www.reddit.com.
    """
    try:
        parts = urlsplit(url or "")
    except ValueError:
        return None

    host = (parts.hostname or "").lower()
    if host != "reddit.com" and not host.endswith(".reddit.com"):
        return None
    if not _POST_PATH.match(parts.path):
        return None

    return f"{_HOST}{parts.path.rstrip('/')}.json"


class RedditFetcher(BaseFetcher):
    """Reddit posts via the public ``.json`` view of the permalink (no OAuth)."""

    name = "reddit"

    @property
    def user_agent(self) -> str:
        return settings.reddit_user_agent

    async def fetch(self, url: str) -> EngagementResult:
        json_url = to_json_url(url)
        if json_url is None:
            return self._no_data(NoDataReason.MALFORMED_URL, url=url)

        data = await self._get_json(json_url)
        if isinstance(data, NoData):
            return data

        # [post listing, comment listing]
        try:
            item = data[0]["data"]["children"][0]["data"]
        except (LookupError, TypeError):
            item = None
        if not isinstance(item, dict):
            return self._no_data(NoDataReason.BAD_PAYLOAD, url=url)

        return EngagementMetrics(
            likes=count(item.get("ups")),
            comments=count(item.get("num_comments")),
            shares=0,
        )
