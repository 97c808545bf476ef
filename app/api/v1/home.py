"""Homepage feed: the sections shown on the landing page in one request."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.pagination import success
from app.db.database import get_db
from app.services import animator_service, clip_service, ranking_service, trending

router = APIRouter()


@router.get("")
async def get_home(db: AsyncSession = Depends(get_db)):
    return success({
        "featuredAnimator": await animator_service.get_featured_animator(db),
        "trending": await trending.get_homepage_trending(db),
        "recent": await clip_service.get_recent_clips(db),
        "rising": await animator_service.get_rising_animators(db),
        "rankings": await ranking_service.get_featured_ranking_lists(db),
    })
