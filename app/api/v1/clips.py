"""Clip endpoints: browse, trending, detail, submission and favorites."""

import logging
from typing import Literal

from fastapi import APIRouter, Depends, Query, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.core.auth import get_current_user, require_user
from app.core.errors import NotFoundError, parse_json_body
from app.core.pagination import Page, offset_meta, success
from app.db import schemas
from app.db.database import get_db
from app.db.models import User
from app.services import clip_service, trending

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter()
limiter = Limiter(key_func=get_remote_address)


def _parse_id_list(value: str | None, max_items: int = 20) -> list[str]:
    """Split a comma-separated id list, dropping blanks."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()][:max_items]


@router.get("")
async def list_clips(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    q: str | None = Query(default=None, max_length=200),
    animator_id: str | None = Query(default=None, alias="animatorId"),
    anime_id: str | None = Query(default=None, alias="animeId"),
    studio_id: str | None = Query(default=None, alias="studioId"),
    tag_ids: str | None = Query(default=None, alias="tagIds", description="Comma-separated tag ids"),
    verification_status: schemas.VerificationStatusLiteral | None = Query(
        default=None, alias="verificationStatus"
    ),
    year_start: int | None = Query(default=None, alias="yearStart", ge=1900, le=2100),
    year_end: int | None = Query(default=None, alias="yearEnd", ge=1900, le=2100),
    sort_by: Literal["createdAt", "viewCount", "favoriteCount", "title"] = Query(
        default="createdAt", alias="sortBy"
    ),
    sort_order: Literal["asc", "desc"] = Query(default="desc", alias="sortOrder"),
    db: AsyncSession = Depends(get_db),
):
    """Browse approved clips with filters and page-based pagination."""
    filters = clip_service.ClipFilters(
        q=q,
        animator_id=animator_id,
        anime_id=anime_id,
        studio_id=studio_id,
        tag_ids=_parse_id_list(tag_ids),
        verification_status=verification_status,
        year_start=year_start,
        year_end=year_end,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    items, total, params = await clip_service.list_clips(db, filters, page=page, limit=limit)
    return Page(items, total, params).to_response()


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.submission_rate_limit)
async def submit_clip(
    request: Request,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """Submit a clip for moderation."""
    body = await parse_json_body(request, schemas.ClipCreateRequest)
    result = await clip_service.create_clip(db, body, user)
    return success(result)


@router.get("/trending")
async def get_trending(
    limit: int = Query(default=12, ge=1, le=50),
    offset: int = Query(default=0, ge=0),
    window_days: int = Query(default=30, ge=1, le=90, alias="windowDays"),
    db: AsyncSession = Depends(get_db),
):
    """
    Trending clips within the recency window.

    Scores are recomputed on every request from views, favorites, comments
    and age.
    """
    items, total = await trending.get_trending_clips(
        db, limit=limit, offset=offset, window_days=window_days
    )
    return success(items, pagination=offset_meta(total, limit, offset))


@router.get("/recent")
async def get_recent(
    limit: int = Query(default=6, ge=1, le=12),
    db: AsyncSession = Depends(get_db),
):
    return success(await clip_service.get_recent_clips(db, limit=limit))


@router.get("/{slug}")
async def get_clip(slug: str, db: AsyncSession = Depends(get_db)):
    """Clip detail. Counts a view without waiting for the write."""
    clip = await clip_service.get_clip_by_slug(db, slug)
    if clip is None:
        raise NotFoundError("Clip", details={"slug": slug})

    clip_service.schedule_view_increment(clip.id)
    return success(clip_service.clip_detail(clip))


@router.get("/{slug}/related")
async def get_related(
    slug: str,
    limit: int = Query(default=6, ge=1, le=12),
    db: AsyncSession = Depends(get_db),
):
    clip = await clip_service.get_clip_by_slug(db, slug)
    if clip is None:
        raise NotFoundError("Clip", details={"slug": slug})
    return success(await clip_service.get_related_clips(db, clip, limit=limit))


@router.get("/{slug}/favorite")
async def get_favorite_state(
    slug: str,
    user: User | None = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Whether the signed-in user has favorited the clip (false when anonymous)."""
    clip_id = await clip_service.get_clip_id_by_slug(db, slug)
    if clip_id is None:
        raise NotFoundError("Clip", details={"slug": slug})
    if user is None:
        return success(schemas.FavoriteState(favorited=False))
    favorited = await clip_service.is_clip_favorited(db, user.id, clip_id)
    return success(schemas.FavoriteState(favorited=favorited))


@router.post("/{slug}/favorite")
@limiter.limit(settings.engagement_rate_limit)
async def toggle_favorite(
    request: Request,
    slug: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """Toggle the signed-in user's favorite on a clip."""
    clip_id = await clip_service.get_clip_id_by_slug(db, slug)
    if clip_id is None:
        raise NotFoundError("Clip", details={"slug": slug})
    return success(await clip_service.toggle_favorite(db, user.id, clip_id))
