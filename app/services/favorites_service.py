"""A signed-in user's favorite clips and animators."""

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from app.db import schemas
from app.db.models import Animator, AnimatorFavorite, Attribution, Clip, ClipFavorite
from app.services.animator_service import active_years
from app.services.clip_service import clip_card


async def get_user_favorite_clips(db: AsyncSession, user_id: str) -> list[schemas.FavoriteClip]:
    """Favorited clips, most recently favorited first."""
    result = await db.execute(
        select(ClipFavorite)
        .options(
            joinedload(ClipFavorite.clip).joinedload(Clip.anime),
            joinedload(ClipFavorite.clip)
            .selectinload(Clip.attributions)
            .joinedload(Attribution.animator),
        )
        .where(ClipFavorite.user_id == user_id)
        .order_by(ClipFavorite.created_at.desc())
    )
    return [
        clip_card(fav.clip, schema=schemas.FavoriteClip, favoritedAt=fav.created_at)
        for fav in result.scalars().unique().all()
        if fav.clip is not None
    ]


async def get_user_favorite_animators(
    db: AsyncSession, user_id: str
) -> list[schemas.FavoriteAnimator]:
    """Favorited animators with clip counts and active years."""
    clip_count = (
        select(func.count(Attribution.id))
        .where(Attribution.animator_id == Animator.id)
        .correlate(Animator)
        .scalar_subquery()
        .label("clip_count")
    )
    result = await db.execute(
        select(AnimatorFavorite, Animator, clip_count)
        .join(Animator, AnimatorFavorite.animator_id == Animator.id)
        .where(AnimatorFavorite.user_id == user_id)
        .order_by(AnimatorFavorite.created_at.desc())
    )
    return [
        schemas.FavoriteAnimator(
            id=animator.id,
            slug=animator.slug,
            name=animator.name,
            nativeName=animator.native_name,
            photoUrl=animator.photo_url,
            clipCount=count or 0,
            activeYears=active_years(animator.birth_date, animator.death_date),
            favoritedAt=fav.created_at,
        )
        for fav, animator, count in result.all()
    ]
