"""
Platform tag → fetcher routing.

The registry is closed over the ``Platform`` enum: adding an engagement
platform without a fetcher fails at import time instead of silently
falling through to "no data".
"""

from open_sen.fetchers.base import BaseFetcher
from open_sen.fetchers.github import GitHubFetcher
from open_sen.fetchers.note import NoteFetcher
from open_sen.fetchers.qiita import QiitaFetcher
from open_sen.fetchers.reddit import RedditFetcher
from open_sen.fetchers.x import XFetcher
from open_sen.fetchers.zenn import ZennFetcher
from open_sen.models import (
    ENGAGEMENT_PLATFORMS,
    EngagementResult,
    NoData,
    NoDataReason,
    Platform,
    StatsResult,
)
from open_sen.utils.logging import get_logger

logger = get_logger(__name__)

REPOSITORY_FETCHER = GitHubFetcher()

ENGAGEMENT_FETCHERS: dict[Platform, BaseFetcher] = {
    Platform.ZENN: ZennFetcher(),
    Platform.QIITA: QiitaFetcher(),
    Platform.NOTE: NoteFetcher(),
    Platform.REDDIT: RedditFetcher(),
    Platform.X: XFetcher(),
}

_missing = ENGAGEMENT_PLATFORMS - set(ENGAGEMENT_FETCHERS)
if _missing:
    raise RuntimeError(
        f"no engagement fetcher registered for: {sorted(p.value for p in _missing)}"
    )


def resolve_platform(tag: str | Platform) -> Platform | None:
    """Map a stored tag to a Platform, case-insensitively. Unknown tags give None."""
    if isinstance(tag, Platform):
        return tag
    try:
        return Platform((tag or "").strip().lower())
    except ValueError:
        return None


def get_fetcher(tag: str | Platform) -> BaseFetcher | None:
    platform = resolve_platform(tag)
    if platform is None:
        return None
    return ENGAGEMENT_FETCHERS.get(platform)


async def fetch_engagement(tag: str | Platform, url: str) -> EngagementResult:
    """
    Fetch engagement for a post on any platform.

    Unknown tags (and the stats-only github tag) resolve to
    ``NoData(UNKNOWN_PLATFORM)``; x resolves to ``NoData(UNSUPPORTED_PLATFORM)``.
    Never raises for bad input.
    """
    fetcher = get_fetcher(tag)
    if fetcher is None:
        tag_text = str(getattr(tag, "value", tag))
        logger.info("engagement_platform_unknown", platform=tag_text)
        return NoData(reason=NoDataReason.UNKNOWN_PLATFORM, detail=tag_text)
    return await fetcher.fetch(url)


async def fetch_repository_stats(url: str) -> StatsResult:
    return await REPOSITORY_FETCHER.fetch(url)
