"""Public collection pages."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user
from app.core.pagination import success
from app.db.database import get_db
from app.db.models import User
from app.services import collection_service

router = APIRouter()


@router.get("/{slug}")
async def get_collection(
    slug: str,
    user: User | None = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """A public collection, or a private one viewed by its owner."""
    collection = await collection_service.get_collection_by_slug(
        db, slug, viewer_id=user.id if user else None
    )
    return success(collection)
