import re

from open_sen.fetchers.base import BaseFetcher, count
from open_sen.models import NoData, NoDataReason, RepositoryStats, StatsResult
from open_sen.utils.logging import get_logger

logger = get_logger(__name__)

_BASE_URL = "https://api.github.com/repos"
_REPO_URL = re.compile(r"github\.com/([^/?#]+)/([^/?#]+)")


def parse_repo(url: str) -> tuple[str, str] | None:
    """Return (owner, repo) from a github.com URL, or None if it has no such path."""
    match = _REPO_URL.search(url or "")
    if not match:
        return None
    owner, repo = match.groups()
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    if not repo:
        return None
    return owner, repo


class GitHubFetcher(BaseFetcher):
    """Repository stats via the public REST API (unauthenticated)."""

    name = "github"

    async def fetch(self, url: str) -> StatsResult:
        parsed = parse_repo(url)
        if parsed is None:
            return self._no_data(NoDataReason.MALFORMED_URL, url=url)

        owner, repo = parsed
        data = await self._get_json(
            f"{_BASE_URL}/{owner}/{repo}",
            headers={
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
        )
        if isinstance(data, NoData):
            return data
        if not isinstance(data, dict):
            return self._no_data(NoDataReason.BAD_PAYLOAD, url=url)

        stats = RepositoryStats(
            stars=count(data.get("stargazers_count")),
            forks=count(data.get("forks_count")),
            issues=count(data.get("open_issues_count")),
        )
        logger.info("github_stats_fetched", owner=owner, repo=repo, **stats.as_dict())
        return stats
