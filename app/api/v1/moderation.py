"""Moderation endpoints. Every route requires the MODERATOR or ADMIN role."""

import logging
from typing import Literal

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import require_moderator
from app.core.errors import parse_json_body
from app.core.pagination import Page, success
from app.db import schemas
from app.db.database import get_db
from app.db.models import User
from app.services import moderation_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/clips")
async def get_moderation_queue(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    sort_by: Literal["date", "trust"] = Query(default="date", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query(default="asc", alias="sortOrder"),
    moderator: User = Depends(require_moderator),
    db: AsyncSession = Depends(get_db),
):
    """Pending clips, oldest first by default."""
    items, total, params = await moderation_service.get_pending_clips(
        db, page=page, limit=limit, sort_by=sort_by, sort_order=sort_order
    )
    return Page(items, total, params).to_response()


@router.post("/clips/{clip_id}")
async def moderate_clip(
    request: Request,
    clip_id: str,
    moderator: User = Depends(require_moderator),
    db: AsyncSession = Depends(get_db),
):
    """Approve or reject a pending clip."""
    body = await parse_json_body(request, schemas.ModerateClipRequest)
    result = await moderation_service.moderate_clip(
        db, clip_id, moderator, body.action, reason=body.reason
    )
    return success(result)


@router.get("/stats")
async def get_moderation_stats(
    mine: bool = Query(default=False, description="Only count decisions made by the caller"),
    moderator: User = Depends(require_moderator),
    db: AsyncSession = Depends(get_db),
):
    stats = await moderation_service.get_moderation_stats(
        db, moderator_id=moderator.id if mine else None
    )
    return success(stats)
