"""Ranking list endpoints and community voting."""

import logging
from typing import Literal

from fastapi import APIRouter, Depends, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.core.auth import get_current_user, require_user
from app.core.errors import NotFoundError, parse_json_body
from app.core.pagination import offset_meta, success
from app.db import schemas
from app.db.database import get_db
from app.db.models import User
from app.services import ranking_service

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter()
limiter = Limiter(key_func=get_remote_address)


@router.get("")
async def list_rankings(
    type: Literal["EDITORIAL", "COMMUNITY"] | None = Query(default=None),
    category: Literal["ANIMATOR", "CLIP", "STUDIO", "ANIME"] | None = Query(default=None),
    featured: bool = Query(default=False),
    limit: int = Query(default=20, ge=1, le=50),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """Active ranking lists. ``featured=true`` returns the homepage selection."""
    if featured:
        return success(await ranking_service.get_featured_ranking_lists(db, limit=limit))

    lists, total = await ranking_service.get_ranking_lists(
        db, type=type, category=category, limit=limit, offset=offset
    )
    return success(lists, pagination=offset_meta(total, limit, offset))


@router.get("/{slug}")
async def get_ranking(
    slug: str,
    user: User | None = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Ranking list with items; includes the viewer's votes when signed in."""
    ranking = await ranking_service.get_ranking_list_by_slug(
        db, slug, user_id=user.id if user else None
    )
    if ranking is None:
        raise NotFoundError("Ranking list", details={"slug": slug})
    return success(ranking)


@router.post("/{slug}/vote")
@limiter.limit(settings.engagement_rate_limit)
async def vote(
    request: Request,
    slug: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """Toggle the signed-in user's vote on an item of this list."""
    body = await parse_json_body(request, schemas.VoteRequest)
    list_id = await ranking_service.get_ranking_list_id(db, slug)
    if list_id is None:
        raise NotFoundError("Ranking list", details={"slug": slug})
    return success(await ranking_service.toggle_vote(db, user.id, body.itemId, list_id=list_id))
