"""
Domain records shared by the fetchers, the store and the collection routine.

Fetchers return either a metrics record or a ``NoData`` value; they never
raise for expected failures, so callers branch on the type:

    result = await fetch_engagement(post.platform, post.url)
    if isinstance(result, NoData):
        ...
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum


class Platform(str, Enum):
    GITHUB = "github"
    ZENN = "zenn"
    QIITA = "qiita"
    NOTE = "note"
    REDDIT = "reddit"
    X = "x"


# github only ever yields repository stats
ENGAGEMENT_PLATFORMS: frozenset[Platform] = frozenset(
    p for p in Platform if p is not Platform.GITHUB
)


@dataclass(frozen=True)
class PlatformSupport:
    supported: bool
    auth_required: bool
    note: str


PLATFORM_SUPPORT: dict[Platform, PlatformSupport] = {
    Platform.GITHUB: PlatformSupport(True, False, "Public API"),
    Platform.ZENN: PlatformSupport(True, False, "Unofficial API"),
    Platform.QIITA: PlatformSupport(True, False, "Public API"),
    Platform.NOTE: PlatformSupport(True, False, "Unofficial API v3"),
    Platform.REDDIT: PlatformSupport(True, False, "Public JSON endpoint"),
    Platform.X: PlatformSupport(False, True, "Requires paid API plan"),
}


# --------------------------------------------------------------------------- #
# Fetch results
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class RepositoryStats:
    stars: int = 0
    forks: int = 0
    issues: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class EngagementMetrics:
    likes: int = 0
    comments: int = 0
    shares: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


class NoDataReason(str, Enum):
    MALFORMED_URL = "malformed_url"
    NETWORK_ERROR = "network_error"
    HTTP_ERROR = "http_error"
    BAD_PAYLOAD = "bad_payload"
    # Capability boundaries rather than failures
    UNSUPPORTED_PLATFORM = "unsupported_platform"
    UNKNOWN_PLATFORM = "unknown_platform"


@dataclass(frozen=True)
class NoData:
    """The designed "absent" result: distinct from zero metrics and from a raised fault."""

    reason: NoDataReason
    detail: str = ""

    @property
    def is_capability_gap(self) -> bool:
        return self.reason in (
            NoDataReason.UNSUPPORTED_PLATFORM,
            NoDataReason.UNKNOWN_PLATFORM,
        )


StatsResult = RepositoryStats | NoData
EngagementResult = EngagementMetrics | NoData


# --------------------------------------------------------------------------- #
# Tracked entities (owned by persistence; the collector only reads them)
# --------------------------------------------------------------------------- #


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Project:
    id: int
    owner_id: str
    name: str
    description: str | None = None
    url: str | None = None
    github_url: str | None = None
    is_public: bool = True
    created_at: datetime = field(default_factory=_utcnow)


@dataclass
class Post:
    id: int
    project_id: int
    platform: str        # a Platform value, stored as plain text
    url: str
    posted_at: datetime = field(default_factory=_utcnow)
    created_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class RepositoryStatsSnapshot:
    project_id: int
    date: str            # YYYY-MM-DD
    stats: RepositoryStats


@dataclass(frozen=True)
class EngagementSnapshot:
    post_id: int
    date: str            # YYYY-MM-DD
    metrics: EngagementMetrics
