"""Signed-in user endpoints: favorites and collections."""

import logging

from fastapi import APIRouter, Depends, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.core.auth import require_user
from app.core.errors import parse_json_body
from app.core.pagination import success
from app.db import schemas
from app.db.database import get_db
from app.db.models import User
from app.services import collection_service, favorites_service

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter()
limiter = Limiter(key_func=get_remote_address)


# ==================== Favorites ====================

@router.get("/favorites/clips")
async def get_favorite_clips(
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    return success(await favorites_service.get_user_favorite_clips(db, user.id))


@router.get("/favorites/animators")
async def get_favorite_animators(
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    return success(await favorites_service.get_user_favorite_animators(db, user.id))


# ==================== Collections ====================

@router.get("/collections")
async def list_collections(
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    return success(await collection_service.get_user_collections(db, user.id))


@router.post("/collections", status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.engagement_rate_limit)
async def create_collection(
    request: Request,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    body = await parse_json_body(request, schemas.CollectionCreateRequest)
    return success(await collection_service.create_collection(db, user.id, body))


@router.get("/collections/for-clip/{clip_id}")
async def get_collections_for_clip(
    clip_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """Ids of the user's collections that already contain the clip."""
    return success(await collection_service.get_clip_collection_ids(db, clip_id, user.id))


@router.get("/collections/{collection_id}")
async def get_collection(
    collection_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    return success(await collection_service.get_collection(db, collection_id, user.id))


@router.patch("/collections/{collection_id}")
async def update_collection(
    request: Request,
    collection_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    body = await parse_json_body(request, schemas.CollectionUpdateRequest)
    return success(await collection_service.update_collection(db, collection_id, user.id, body))


@router.delete("/collections/{collection_id}")
async def delete_collection(
    collection_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    await collection_service.delete_collection(db, collection_id, user.id)
    return success({"deleted": True})


@router.post("/collections/{collection_id}/clips", status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.engagement_rate_limit)
async def add_clip(
    request: Request,
    collection_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    body = await parse_json_body(request, schemas.CollectionAddClipRequest)
    return success(
        await collection_service.add_clip_to_collection(db, collection_id, body.clipId, user.id)
    )


@router.put("/collections/{collection_id}/clips")
async def reorder_clips(
    request: Request,
    collection_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """Replace the clip order. The body must list every clip exactly once."""
    body = await parse_json_body(request, schemas.CollectionReorderRequest)
    return success(
        await collection_service.reorder_collection_clips(db, collection_id, body.clipIds, user.id)
    )


@router.delete("/collections/{collection_id}/clips/{clip_id}")
async def remove_clip(
    collection_id: str,
    clip_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    return success(
        await collection_service.remove_clip_from_collection(db, collection_id, clip_id, user.id)
    )
