"""
Snapshot persistence: Supabase when configured, in-memory otherwise.

Supabase schema (create once):

    CREATE TABLE projects (
      id BIGSERIAL PRIMARY KEY,
      owner_id TEXT NOT NULL,
      name TEXT NOT NULL,
      description TEXT,
      url TEXT,
      github_url TEXT,
      is_public BOOLEAN DEFAULT true,
      created_at TIMESTAMPTZ DEFAULT now()
    );

    CREATE TABLE posts (
      id BIGSERIAL PRIMARY KEY,
      project_id BIGINT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
      platform TEXT NOT NULL,
      url TEXT NOT NULL,
      posted_at TIMESTAMPTZ NOT NULL,
      created_at TIMESTAMPTZ DEFAULT now()
    );

    CREATE TABLE github_stats (
      id BIGSERIAL PRIMARY KEY,
      project_id BIGINT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
      date DATE NOT NULL,
      stars INTEGER NOT NULL DEFAULT 0,
      forks INTEGER NOT NULL DEFAULT 0,
      issues INTEGER NOT NULL DEFAULT 0,
      created_at TIMESTAMPTZ DEFAULT now(),
      UNIQUE(project_id, date)
    );

    CREATE TABLE engagements (
      id BIGSERIAL PRIMARY KEY,
      post_id BIGINT NOT NULL REFERENCES posts(id) ON DELETE CASCADE,
      date DATE NOT NULL,
      likes INTEGER NOT NULL DEFAULT 0,
      comments INTEGER NOT NULL DEFAULT 0,
      shares INTEGER NOT NULL DEFAULT 0,
      created_at TIMESTAMPTZ DEFAULT now(),
      UNIQUE(post_id, date)
    );

Snapshot writes are upserts on (entity, date): a second write on the same
day replaces the first.
"""

import dataclasses
import itertools
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from open_sen.config import settings
from open_sen.models import (
    EngagementMetrics,
    EngagementSnapshot,
    Post,
    Project,
    RepositoryStats,
    RepositoryStatsSnapshot,
)
from open_sen.utils.logging import get_logger

logger = get_logger(__name__)


class StoreError(Exception):
    """A persistence operation failed."""


PROJECT_UPDATABLE_FIELDS = frozenset({"name", "description", "url", "github_url", "is_public"})


def _updatable(changes: dict) -> dict:
    unknown = set(changes) - PROJECT_UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"not updatable: {sorted(unknown)}")
    return dict(changes)


class SnapshotStore(ABC):
    """What the collector and the API need from persistence."""

    # Snapshots

    @abstractmethod
    async def upsert_repository_stats(
        self, project_id: int, date: str, stats: RepositoryStats
    ) -> RepositoryStatsSnapshot: ...

    @abstractmethod
    async def upsert_engagement(
        self, post_id: int, date: str, metrics: EngagementMetrics
    ) -> EngagementSnapshot: ...

    @abstractmethod
    async def list_repository_stats(self, project_id: int) -> list[RepositoryStatsSnapshot]: ...

    @abstractmethod
    async def list_engagements(self, project_id: int) -> list[dict]:
        """Engagement series for every post of a project, oldest first."""

    # Tracked entities

    @abstractmethod
    async def list_projects(self) -> list[Project]: ...

    @abstractmethod
    async def get_project(self, project_id: int) -> Project | None: ...

    @abstractmethod
    async def create_project(
        self,
        owner_id: str,
        name: str,
        description: str | None = None,
        url: str | None = None,
        github_url: str | None = None,
        is_public: bool = True,
    ) -> Project: ...

    @abstractmethod
    async def update_project(self, project_id: int, changes: dict) -> Project | None:
        """
        Apply a partial update (keys from PROJECT_UPDATABLE_FIELDS only).

        Returns the updated project, or None if it does not exist. An empty
        ``changes`` leaves the project untouched.
        """

    @abstractmethod
    async def list_posts(self, project_id: int) -> list[Post]: ...

    @abstractmethod
    async def get_post(self, post_id: int) -> Post | None: ...

    @abstractmethod
    async def create_post(
        self, project_id: int, platform: str, url: str, posted_at: datetime
    ) -> Post: ...

    @abstractmethod
    async def delete_post(self, post_id: int) -> None:
        """Delete a post together with its engagement history."""


# --------------------------------------------------------------------------- #
# In-memory
# --------------------------------------------------------------------------- #


class InMemorySnapshotStore(SnapshotStore):
    """Process-local store used without Supabase credentials and in tests."""

    def __init__(self):
        self._project_ids = itertools.count(1)
        self._post_ids = itertools.count(1)
        self.projects: dict[int, Project] = {}
        self.posts: dict[int, Post] = {}
        self.github_stats: dict[tuple[int, str], RepositoryStatsSnapshot] = {}
        self.engagements: dict[tuple[int, str], EngagementSnapshot] = {}

    async def upsert_repository_stats(self, project_id, date, stats):
        snapshot = RepositoryStatsSnapshot(project_id=project_id, date=date, stats=stats)
        self.github_stats[(project_id, date)] = snapshot
        return snapshot

    async def upsert_engagement(self, post_id, date, metrics):
        snapshot = EngagementSnapshot(post_id=post_id, date=date, metrics=metrics)
        self.engagements[(post_id, date)] = snapshot
        return snapshot

    async def list_repository_stats(self, project_id):
        return sorted(
            (s for (pid, _), s in self.github_stats.items() if pid == project_id),
            key=lambda s: s.date,
        )

    async def list_engagements(self, project_id):
        rows = []
        for snapshot in self.engagements.values():
            post = self.posts.get(snapshot.post_id)
            if post is None or post.project_id != project_id:
                continue
            rows.append(
                {"platform": post.platform, "url": post.url, "date": snapshot.date,
                 **snapshot.metrics.as_dict()}
            )
        return sorted(rows, key=lambda r: r["date"])

    async def list_projects(self):
        return list(self.projects.values())

    async def get_project(self, project_id):
        return self.projects.get(project_id)

    async def create_project(self, owner_id, name, description=None, url=None,
                             github_url=None, is_public=True):
        project = Project(
            id=next(self._project_ids),
            owner_id=owner_id,
            name=name,
            description=description,
            url=url,
            github_url=github_url,
            is_public=is_public,
        )
        self.projects[project.id] = project
        return project

    async def update_project(self, project_id, changes):
        project = self.projects.get(project_id)
        if project is None:
            return None
        updated = dataclasses.replace(project, **_updatable(changes))
        self.projects[project_id] = updated
        return updated

    async def list_posts(self, project_id):
        return [p for p in self.posts.values() if p.project_id == project_id]

    async def get_post(self, post_id):
        return self.posts.get(post_id)

    async def create_post(self, project_id, platform, url, posted_at):
        post = Post(
            id=next(self._post_ids),
            project_id=project_id,
            platform=platform,
            url=url,
            posted_at=posted_at,
        )
        self.posts[post.id] = post
        return post

    async def delete_post(self, post_id):
        for key in [k for k in self.engagements if k[0] == post_id]:
            del self.engagements[key]
        self.posts.pop(post_id, None)


# --------------------------------------------------------------------------- #
# Supabase
# --------------------------------------------------------------------------- #


def _parse_ts(value) -> datetime:
    if isinstance(value, datetime):
        return value
    if not value:
        return datetime.now(timezone.utc)
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _project_from_row(row: dict) -> Project:
    return Project(
        id=row["id"],
        owner_id=row.get("owner_id") or "",
        name=row.get("name") or "",
        description=row.get("description"),
        url=row.get("url"),
        github_url=row.get("github_url"),
        is_public=bool(row.get("is_public", True)),
        created_at=_parse_ts(row.get("created_at")),
    )


def _post_from_row(row: dict) -> Post:
    return Post(
        id=row["id"],
        project_id=row["project_id"],
        platform=row.get("platform") or "",
        url=row.get("url") or "",
        posted_at=_parse_ts(row.get("posted_at")),
        created_at=_parse_ts(row.get("created_at")),
    )


class SupabaseSnapshotStore(SnapshotStore):
    """Postgres via Supabase. Any client error is re-raised as StoreError."""

    def __init__(self, client):
        self._client = client

    def _execute(self, operation: str, query):
        try:
            return query.execute()
        except Exception as exc:
            logger.warning("supabase_query_failed", operation=operation, error=str(exc))
            raise StoreError(f"{operation} failed: {exc}") from exc

    async def upsert_repository_stats(self, project_id, date, stats):
        row = {"project_id": project_id, "date": date, **stats.as_dict()}
        self._execute(
            "upsert_repository_stats",
            self._client.table("github_stats").upsert(row, on_conflict="project_id,date"),
        )
        return RepositoryStatsSnapshot(project_id=project_id, date=date, stats=stats)

    async def upsert_engagement(self, post_id, date, metrics):
        row = {"post_id": post_id, "date": date, **metrics.as_dict()}
        self._execute(
            "upsert_engagement",
            self._client.table("engagements").upsert(row, on_conflict="post_id,date"),
        )
        return EngagementSnapshot(post_id=post_id, date=date, metrics=metrics)

    async def list_repository_stats(self, project_id):
        result = self._execute(
            "list_repository_stats",
            self._client.table("github_stats")
            .select("project_id, date, stars, forks, issues")
            .eq("project_id", project_id)
            .order("date"),
        )
        return [
            RepositoryStatsSnapshot(
                project_id=row["project_id"],
                date=str(row["date"]),
                stats=RepositoryStats(row["stars"], row["forks"], row["issues"]),
            )
            for row in result.data or []
        ]

    async def list_engagements(self, project_id):
        posts = {p.id: p for p in await self.list_posts(project_id)}
        if not posts:
            return []
        result = self._execute(
            "list_engagements",
            self._client.table("engagements")
            .select("post_id, date, likes, comments, shares")
            .in_("post_id", list(posts))
            .order("date"),
        )
        return [
            {
                "platform": posts[row["post_id"]].platform,
                "url": posts[row["post_id"]].url,
                "date": str(row["date"]),
                "likes": row["likes"],
                "comments": row["comments"],
                "shares": row["shares"],
            }
            for row in result.data or []
            if row["post_id"] in posts
        ]

    async def list_projects(self):
        result = self._execute(
            "list_projects",
            self._client.table("projects").select("*").order("created_at", desc=True),
        )
        return [_project_from_row(row) for row in result.data or []]

    async def get_project(self, project_id):
        result = self._execute(
            "get_project",
            self._client.table("projects").select("*").eq("id", project_id).limit(1),
        )
        return _project_from_row(result.data[0]) if result.data else None

    async def create_project(self, owner_id, name, description=None, url=None,
                             github_url=None, is_public=True):
        row = {
            "owner_id": owner_id,
            "name": name,
            "description": description,
            "url": url,
            "github_url": github_url,
            "is_public": is_public,
        }
        result = self._execute("create_project", self._client.table("projects").insert(row))
        if not result.data:
            raise StoreError("create_project returned no row")
        return _project_from_row(result.data[0])

    async def update_project(self, project_id, changes):
        changes = _updatable(changes)
        if not changes:
            return await self.get_project(project_id)
        result = self._execute(
            "update_project",
            self._client.table("projects").update(changes).eq("id", project_id),
        )
        return _project_from_row(result.data[0]) if result.data else None

    async def list_posts(self, project_id):
        result = self._execute(
            "list_posts",
            self._client.table("posts")
            .select("*")
            .eq("project_id", project_id)
            .order("posted_at", desc=True),
        )
        return [_post_from_row(row) for row in result.data or []]

    async def get_post(self, post_id):
        result = self._execute(
            "get_post",
            self._client.table("posts").select("*").eq("id", post_id).limit(1),
        )
        return _post_from_row(result.data[0]) if result.data else None

    async def create_post(self, project_id, platform, url, posted_at):
        row = {
            "project_id": project_id,
            "platform": platform,
            "url": url,
            "posted_at": posted_at.isoformat(),
        }
        result = self._execute("create_post", self._client.table("posts").insert(row))
        if not result.data:
            raise StoreError("create_post returned no row")
        return _post_from_row(result.data[0])

    async def delete_post(self, post_id):
        self._execute(
            "delete_engagements",
            self._client.table("engagements").delete().eq("post_id", post_id),
        )
        self._execute("delete_post", self._client.table("posts").delete().eq("id", post_id))


# --------------------------------------------------------------------------- #
# Process-wide store
# --------------------------------------------------------------------------- #

_store: SnapshotStore | None = None


def _create_supabase_store() -> SupabaseSnapshotStore | None:
    """Return a Supabase-backed store or None if the client cannot be created."""
    try:
        from supabase import create_client
        return SupabaseSnapshotStore(create_client(settings.supabase_url, settings.supabase_key))
    except Exception as exc:
        logger.warning("supabase_client_init_failed", error=str(exc))
        return None


def get_store() -> SnapshotStore:
    global _store
    if _store is None:
        store = _create_supabase_store() if settings.has_supabase else None
        if store is None:
            logger.warning("snapshot_store_in_memory", reason="supabase not configured")
            store = InMemorySnapshotStore()
        _store = store
    return _store


def set_store(store: SnapshotStore | None) -> None:
    """Replace (or reset, with None) the process-wide store."""
    global _store
    _store = store
