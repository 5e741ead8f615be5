import math
from abc import ABC, abstractmethod
from typing import Any

import httpx

from open_sen.config import settings
from open_sen.models import EngagementResult, NoData, NoDataReason, StatsResult
from open_sen.utils.logging import get_logger

logger = get_logger(__name__)


def count(value: Any) -> int:
    """Coerce a reported counter to a non-negative int; anything unusable is 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    if isinstance(value, (int, float)) and value >= 0:
        return int(value)
    return 0


class BaseFetcher(ABC):
    """
    Abstract base for all platform fetchers.

    ``fetch`` never raises for malformed URLs, network failures, non-2xx
    responses or unusable payloads; those come back as ``NoData``.
    """

    name: str = "base"

    @property
    def user_agent(self) -> str:
        return settings.user_agent

    @abstractmethod
    async def fetch(self, url: str) -> StatsResult | EngagementResult:
        ...

    def _no_data(self, reason: NoDataReason, **context) -> NoData:
        logger.warning("fetch_no_data", fetcher=self.name, reason=reason.value, **context)
        return NoData(reason=reason, detail=str(context.get("error", "")))

    async def _get_json(self, url: str, headers: dict[str, str] | None = None) -> Any:
        """
        Issue a single GET and decode the body.

        Returns the decoded JSON, or NoData when the request fails, the
        status is not 2xx, or the body is not JSON.
        """
        request_headers = {"User-Agent": self.user_agent}
        if headers:
            request_headers.update(headers)

        try:
            async with httpx.AsyncClient(
                timeout=settings.http_timeout_seconds,
                headers=request_headers,
                follow_redirects=True,
            ) as client:
                response = await client.get(url)
        except httpx.InvalidURL as exc:
            # slug captured from user input may still hold characters httpx rejects
            return self._no_data(NoDataReason.MALFORMED_URL, url=url, error=str(exc))
        except httpx.HTTPError as exc:
            return self._no_data(NoDataReason.NETWORK_ERROR, url=url, error=str(exc))

        if not 200 <= response.status_code < 300:
            return self._no_data(
                NoDataReason.HTTP_ERROR, url=url, status_code=response.status_code
            )

        try:
            return response.json()
        except ValueError as exc:
            return self._no_data(NoDataReason.BAD_PAYLOAD, url=url, error=str(exc))
