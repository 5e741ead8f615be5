from open_sen.fetchers.base import BaseFetcher
from open_sen.models import EngagementResult, NoData, NoDataReason


class XFetcher(BaseFetcher):
    """
    X (Twitter) is recognised but not fetched.

    Its API needs authentication and a paid plan, so every call resolves to
    ``NoData(UNSUPPORTED_PLATFORM)`` without touching the network.
    """

    name = "x"

    async def fetch(self, url: str) -> EngagementResult:
        return NoData(reason=NoDataReason.UNSUPPORTED_PLATFORM, detail="paid API required")
