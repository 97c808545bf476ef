"""Search endpoint."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.pagination import success
from app.db import schemas
from app.db.database import get_db
from app.services import search_service

router = APIRouter()


@router.get("")
async def search(
    q: str = Query(min_length=1, max_length=200),
    index: schemas.SearchIndex = Query(default="ANIMATORS"),
    limit: int = Query(default=10, ge=1, le=50),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """Search one index (animators, clips, anime or tags) by substring."""
    return success(await search_service.search(db, q, index=index, limit=limit, offset=offset))
