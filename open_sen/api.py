"""
HTTP routes for projects, posts and their metric histories.

Creating a project (with a repository URL) or a post also fetches its first
snapshot right away. That fetch is best effort: the entity is created even
when it fails, and the response then carries ``null`` metrics.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from open_sen.collection import collect_post, collect_project, run_collection, today
from open_sen.models import PLATFORM_SUPPORT, EngagementMetrics, Post, Project, RepositoryStats
from open_sen.store import SnapshotStore, StoreError, get_store
from open_sen.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api")


class CreateProjectRequest(BaseModel):
    name: str = Field(min_length=1)
    owner_id: str = Field(default="anonymous")
    description: str | None = None
    url: str | None = None
    github_url: str | None = None
    is_public: bool = True


class UpdateProjectRequest(BaseModel):
    """Partial update: only fields present in the body are changed."""

    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    url: str | None = None
    github_url: str | None = None
    is_public: bool | None = None


class CreatePostRequest(BaseModel):
    project_id: int
    platform: str = Field(min_length=1)
    url: str = Field(min_length=1)
    posted_at: datetime | None = None


# --------------------------------------------------------------------------- #
# Immediate collection
# --------------------------------------------------------------------------- #


async def collect_now_for_project(project: Project, store: SnapshotStore) -> RepositoryStats | None:
    """First stats snapshot for a new project. Never raises."""
    try:
        return await collect_project(project, today(), store)
    except Exception as exc:
        logger.warning("collect_now_project_failed", project_id=project.id, error=str(exc))
        return None


async def collect_now_for_post(post: Post, store: SnapshotStore) -> EngagementMetrics | None:
    """First engagement snapshot for a new post. Never raises."""
    try:
        return await collect_post(post, today(), store)
    except Exception as exc:
        logger.warning("collect_now_post_failed", post_id=post.id, error=str(exc))
        return None


# --------------------------------------------------------------------------- #
# Routes
# --------------------------------------------------------------------------- #


def _project_json(project: Project) -> dict:
    return {
        "id": project.id,
        "owner_id": project.owner_id,
        "name": project.name,
        "description": project.description,
        "url": project.url,
        "github_url": project.github_url,
        "is_public": project.is_public,
        "created_at": project.created_at.isoformat(),
    }


def _post_json(post: Post) -> dict:
    return {
        "id": post.id,
        "project_id": post.project_id,
        "platform": post.platform,
        "url": post.url,
        "posted_at": post.posted_at.isoformat(),
        "created_at": post.created_at.isoformat(),
    }


def _as_utc(value: datetime | None) -> datetime:
    if value is None:
        return datetime.now(timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _unavailable(exc: StoreError) -> HTTPException:
    logger.error("store_unavailable", error=str(exc))
    return HTTPException(status_code=503, detail="Storage unavailable")


@router.get("/platforms")
async def list_platforms():
    return {
        platform.value: {
            "supported": support.supported,
            "auth_required": support.auth_required,
            "note": support.note,
        }
        for platform, support in PLATFORM_SUPPORT.items()
    }


@router.get("/projects")
async def list_projects(store: SnapshotStore = Depends(get_store)):
    try:
        projects = await store.list_projects()
    except StoreError as exc:
        raise _unavailable(exc)
    return [_project_json(p) for p in sorted(projects, key=lambda p: p.created_at, reverse=True)]


@router.get("/projects/{project_id}")
async def get_project(project_id: int, store: SnapshotStore = Depends(get_store)):
    try:
        project = await store.get_project(project_id)
        if project is None:
            raise HTTPException(status_code=404, detail="Not found")
        posts = await store.list_posts(project_id)
    except StoreError as exc:
        raise _unavailable(exc)
    posts.sort(key=lambda p: p.posted_at, reverse=True)
    return {**_project_json(project), "posts": [_post_json(p) for p in posts]}


@router.get("/projects/{project_id}/engagements")
async def get_project_engagements(project_id: int, store: SnapshotStore = Depends(get_store)):
    try:
        github = await store.list_repository_stats(project_id)
        posts = await store.list_engagements(project_id)
    except StoreError as exc:
        raise _unavailable(exc)
    return {
        "github": [{"date": s.date, **s.stats.as_dict()} for s in github],
        "posts": posts,
    }


@router.post("/projects", status_code=201)
async def create_project(body: CreateProjectRequest, store: SnapshotStore = Depends(get_store)):
    try:
        project = await store.create_project(
            owner_id=body.owner_id,
            name=body.name,
            description=body.description,
            url=body.url,
            github_url=body.github_url,
            is_public=body.is_public,
        )
    except StoreError as exc:
        raise _unavailable(exc)

    stats = await collect_now_for_project(project, store)
    logger.info("project_created", project_id=project.id, stats_fetched=stats is not None)
    return {**_project_json(project), "github_stats": stats.as_dict() if stats else None}


@router.put("/projects/{project_id}")
async def update_project(
    project_id: int, body: UpdateProjectRequest, store: SnapshotStore = Depends(get_store)
):
    changes = body.model_dump(exclude_unset=True)
    for required in ("name", "is_public"):
        if required in changes and changes[required] is None:
            raise HTTPException(status_code=422, detail=f"{required} cannot be null")

    try:
        previous = await store.get_project(project_id)
        if previous is None:
            raise HTTPException(status_code=404, detail="Not found")
        project = await store.update_project(project_id, changes)
        if project is None:
            raise HTTPException(status_code=404, detail="Not found")
    except StoreError as exc:
        raise _unavailable(exc)

    # a new repository gets its first snapshot now rather than at the next daily run
    stats = None
    if project.github_url and project.github_url != previous.github_url:
        stats = await collect_now_for_project(project, store)

    logger.info("project_updated", project_id=project.id, fields=sorted(changes),
                stats_fetched=stats is not None)
    return {**_project_json(project), "github_stats": stats.as_dict() if stats else None}


@router.post("/posts", status_code=201)
async def create_post(body: CreatePostRequest, store: SnapshotStore = Depends(get_store)):
    try:
        project = await store.get_project(body.project_id)
        if project is None:
            raise HTTPException(status_code=404, detail="Project not found")
        post = await store.create_post(
            project_id=body.project_id,
            platform=body.platform.strip().lower(),
            url=body.url,
            posted_at=_as_utc(body.posted_at),
        )
    except StoreError as exc:
        raise _unavailable(exc)

    engagement = await collect_now_for_post(post, store)
    logger.info("post_created", post_id=post.id, engagement_fetched=engagement is not None)
    return {**_post_json(post), "engagement": engagement.as_dict() if engagement else None}


@router.delete("/posts/{post_id}")
async def delete_post(post_id: int, store: SnapshotStore = Depends(get_store)):
    try:
        if await store.get_post(post_id) is None:
            raise HTTPException(status_code=404, detail="Not found")
        await store.delete_post(post_id)
    except StoreError as exc:
        raise _unavailable(exc)
    return {"success": True}


@router.post("/collect")
async def trigger_collection(store: SnapshotStore = Depends(get_store)):
    """Run a full collection now (same routine as the daily job)."""
    return await run_collection(store)
