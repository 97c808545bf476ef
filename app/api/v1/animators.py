"""Animator endpoints: directory, profiles, timeline, influence network and spotlights."""

import logging
from typing import Literal

from fastapi import APIRouter, Depends, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.core.auth import get_current_user, require_user
from app.core.errors import NotFoundError
from app.core.pagination import Page, success
from app.db import schemas
from app.db.database import get_db
from app.db.models import User
from app.services import animator_service, relations_service

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter()
featured_router = APIRouter()
limiter = Limiter(key_func=get_remote_address)


async def _animator_id_or_404(db: AsyncSession, slug: str) -> str:
    animator_id = await animator_service.get_animator_id_by_slug(db, slug)
    if animator_id is None:
        raise NotFoundError("Animator", details={"slug": slug})
    return animator_id


@router.get("")
async def list_animators(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    q: str | None = Query(default=None, max_length=200),
    has_photo: bool | None = Query(default=None, alias="hasPhoto"),
    sort_by: Literal["name", "createdAt"] = Query(default="name", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query(default="asc", alias="sortOrder"),
    db: AsyncSession = Depends(get_db),
):
    items, total, params = await animator_service.list_animators(
        db,
        q=q,
        has_photo=has_photo,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    return Page(items, total, params).to_response()


@router.get("/rising")
async def get_rising_animators(
    limit: int = Query(default=4, ge=1, le=10),
    db: AsyncSession = Depends(get_db),
):
    """Animators with the most approved clips added in the last 30 days."""
    return success(await animator_service.get_rising_animators(db, limit=limit))


@router.get("/featured")
async def get_featured(db: AsyncSession = Depends(get_db)):
    return success(await animator_service.get_featured_animator(db))


@featured_router.get("")
async def get_featured_animator(db: AsyncSession = Depends(get_db)):
    """Featured animator of the week. Rotates weekly; cached for an hour."""
    return success(await animator_service.get_featured_animator(db))


@router.get("/{slug}")
async def get_animator(slug: str, db: AsyncSession = Depends(get_db)):
    animator = await animator_service.get_animator_by_slug(db, slug)
    if animator is None:
        raise NotFoundError("Animator", details={"slug": slug})
    return success(animator)


@router.get("/{slug}/clips")
async def get_animator_clips(
    slug: str,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    animator_id = await _animator_id_or_404(db, slug)
    items, total, params = await animator_service.get_animator_clips(
        db, animator_id, page=page, limit=limit
    )
    return Page(items, total, params).to_response()


@router.get("/{slug}/timeline")
async def get_animator_timeline(slug: str, db: AsyncSession = Depends(get_db)):
    """Career timeline: credited works grouped by anime year."""
    animator_id = await _animator_id_or_404(db, slug)
    return success(await animator_service.get_animator_timeline(db, animator_id))


@router.get("/{slug}/signature-clips")
async def get_signature_clips(
    slug: str,
    limit: int = Query(default=5, ge=1, le=10),
    db: AsyncSession = Depends(get_db),
):
    animator_id = await _animator_id_or_404(db, slug)
    return success(await animator_service.get_signature_clips(db, animator_id, limit=limit))


@router.get("/{slug}/relations")
async def get_relations(
    slug: str,
    view: Literal["graph", "list", "stats"] = Query(default="graph"),
    depth: int = Query(default=relations_service.DEFAULT_DEPTH, ge=1, le=3),
    max_nodes: int = Query(default=relations_service.DEFAULT_MAX_NODES, ge=5, le=50, alias="maxNodes"),
    db: AsyncSession = Depends(get_db),
):
    """
    Influence network around an animator.

    - graph: bounded BFS (nodes + links) for the force-directed view
    - list: direct mentors, students and colleagues with shared-work counts
    - stats: relation counts
    """
    animator_id = await _animator_id_or_404(db, slug)

    if view == "list":
        return success(await relations_service.get_relations_grouped(db, animator_id))
    if view == "stats":
        return success(await relations_service.get_relation_stats(db, animator_id))
    return success(await relations_service.get_influence_graph(
        db, animator_id, depth=depth, max_nodes=max_nodes
    ))


@router.get("/{slug}/favorite")
async def get_favorite_state(
    slug: str,
    user: User | None = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    animator_id = await _animator_id_or_404(db, slug)
    if user is None:
        return success(schemas.FavoriteState(favorited=False))
    favorited = await animator_service.is_animator_favorited(db, user.id, animator_id)
    return success(schemas.FavoriteState(favorited=favorited))


@router.post("/{slug}/favorite")
@limiter.limit(settings.engagement_rate_limit)
async def toggle_favorite(
    request: Request,
    slug: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    animator_id = await _animator_id_or_404(db, slug)
    return success(await animator_service.toggle_animator_favorite(db, user.id, animator_id))
