import re

from open_sen.fetchers.base import BaseFetcher, count
from open_sen.models import EngagementMetrics, EngagementResult, NoData, NoDataReason

_BASE_URL = "https://note.com/api/v3/notes"
# https://note.com/{user}/n/{note_key}
_NOTE_URL = re.compile(r"note\.com/[^/]+/n/([^/?#]+)")


class NoteFetcher(BaseFetcher):
    """note articles via the unofficial v3 API. note has no share counter."""

    name = "note"

    async def fetch(self, url: str) -> EngagementResult:
        match = _NOTE_URL.search(url or "")
        if not match:
            return self._no_data(NoDataReason.MALFORMED_URL, url=url)

        data = await self._get_json(f"{_BASE_URL}/{match.group(1)}")
        if isinstance(data, NoData):
            return data

        note = data.get("data") if isinstance(data, dict) else None
        if not isinstance(note, dict):
            return self._no_data(NoDataReason.BAD_PAYLOAD, url=url)

        return EngagementMetrics(
            likes=count(note.get("likeCount")),
            comments=count(note.get("commentCount")),
            shares=0,
        )
