"""
Fetch → upsert for every tracked project and post.

One run uses one date for every snapshot it writes. Each project and each
post is processed on its own: a failure for one entity is logged and
counted, never allowed to stop the others.
"""

from datetime import datetime, timezone

from open_sen.dispatcher import fetch_engagement, fetch_repository_stats
from open_sen.models import EngagementMetrics, NoData, Post, Project, RepositoryStats
from open_sen.store import SnapshotStore, StoreError, get_store
from open_sen.utils.logging import get_logger

logger = get_logger(__name__)


def today() -> str:
    """Current UTC calendar date as YYYY-MM-DD."""
    return datetime.now(timezone.utc).date().isoformat()


async def collect_project(
    project: Project, date: str, store: SnapshotStore
) -> RepositoryStats | None:
    """
    Fetch repository stats for one project and upsert them under ``date``.

    Returns the stats written, or None when the project has no repository
    URL or the fetch produced no data. Store failures raise StoreError.
    """
    if not project.github_url:
        return None

    result = await fetch_repository_stats(project.github_url)
    if isinstance(result, NoData):
        logger.info("project_stats_no_data", project_id=project.id, reason=result.reason.value)
        return None

    await store.upsert_repository_stats(project.id, date, result)
    return result


async def collect_post(post: Post, date: str, store: SnapshotStore) -> EngagementMetrics | None:
    """Fetch engagement for one post and upsert it under ``date``. Same contract as collect_project."""
    result = await fetch_engagement(post.platform, post.url)
    if isinstance(result, NoData):
        logger.info(
            "post_engagement_no_data",
            post_id=post.id,
            platform=post.platform,
            reason=result.reason.value,
        )
        return None

    await store.upsert_engagement(post.id, date, result)
    return result


async def run_collection(store: SnapshotStore | None = None, date: str | None = None) -> dict:
    """
    Refresh snapshots for every project and post.

    Returns a summary dict with counts for logging/monitoring.
    """
    store = store or get_store()
    date = date or today()
    summary = {
        "date": date,
        "projects": 0,
        "posts": 0,
        "stats_written": 0,
        "engagements_written": 0,
        "no_data": 0,
        "failed": 0,
    }

    logger.info("collection_run_started", date=date)

    try:
        projects = await store.list_projects()
    except StoreError as exc:
        logger.error("collection_list_projects_failed", error=str(exc))
        summary["failed"] += 1
        return summary

    for project in projects:
        summary["projects"] += 1
        await _collect_project_safely(project, date, store, summary)

        try:
            posts = await store.list_posts(project.id)
        except StoreError as exc:
            logger.error("collection_list_posts_failed", project_id=project.id, error=str(exc))
            summary["failed"] += 1
            continue

        for post in posts:
            summary["posts"] += 1
            await _collect_post_safely(post, date, store, summary)

    logger.info("collection_run_complete", **summary)
    return summary


async def _collect_project_safely(
    project: Project, date: str, store: SnapshotStore, summary: dict
) -> None:
    if not project.github_url:
        return
    try:
        stats = await collect_project(project, date, store)
    except Exception as exc:
        logger.error(
            "collection_project_failed", project_id=project.id, error=str(exc), exc_info=True
        )
        summary["failed"] += 1
        return

    if stats is None:
        summary["no_data"] += 1
    else:
        summary["stats_written"] += 1


async def _collect_post_safely(post: Post, date: str, store: SnapshotStore, summary: dict) -> None:
    try:
        metrics = await collect_post(post, date, store)
    except Exception as exc:
        logger.error("collection_post_failed", post_id=post.id, error=str(exc), exc_info=True)
        summary["failed"] += 1
        return

    if metrics is None:
        summary["no_data"] += 1
    else:
        summary["engagements_written"] += 1
