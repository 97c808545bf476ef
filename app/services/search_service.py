"""Database-backed search over animators, clips, anime and tags."""

import logging
import time

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from app.core.errors import ValidationFailedError
from app.db import schemas
from app.db.filters import contains_pattern
from app.db.models import Anime, Animator, Clip, Tag, SubmissionStatus

logger = logging.getLogger(__name__)


def _animator_hit(animator: Animator) -> dict:
    return {
        "id": animator.id,
        "name": animator.name,
        "nativeName": animator.native_name,
        "slug": animator.slug,
        "photoUrl": animator.photo_url,
    }


def _clip_hit(clip: Clip) -> dict:
    return {
        "id": clip.id,
        "title": clip.title,
        "slug": clip.slug,
        "thumbnailUrl": clip.thumbnail_url,
        "animeName": clip.anime.title if clip.anime else None,
    }


def _anime_hit(anime: Anime) -> dict:
    return {
        "id": anime.id,
        "title": anime.title,
        "nativeTitle": anime.native_title,
        "slug": anime.slug,
        "year": anime.year,
        "coverUrl": anime.cover_url,
    }


def _tag_hit(tag: Tag) -> dict:
    return {"id": tag.id, "name": tag.name, "slug": tag.slug, "category": tag.category}


def _index_query(index: str, q: str):
    """(base select, match conditions, order column, hit builder) for an index."""
    pattern = contains_pattern(q)
    if index == "CLIPS":
        return (
            select(Clip).options(joinedload(Clip.anime)),
            [
                Clip.submission_status == SubmissionStatus.APPROVED.value,
                or_(
                    Clip.title.ilike(pattern),
                    Clip.technique_description.ilike(pattern),
                    Clip.anime.has(Anime.title.ilike(pattern)),
                ),
            ],
            Clip.favorite_count.desc(),
            _clip_hit,
        )
    if index == "ANIME":
        return (
            select(Anime),
            [or_(Anime.title.ilike(pattern), Anime.native_title.ilike(pattern))],
            Anime.title,
            _anime_hit,
        )
    if index == "TAGS":
        return select(Tag), [Tag.name.ilike(pattern)], Tag.name, _tag_hit
    return (
        select(Animator),
        [or_(Animator.name.ilike(pattern), Animator.native_name.ilike(pattern))],
        Animator.name,
        _animator_hit,
    )


async def search(
    db: AsyncSession,
    q: str,
    index: str = "ANIMATORS",
    limit: int = 10,
    offset: int = 0,
) -> schemas.SearchResponse:
    """Case-insensitive substring search; wildcards in ``q`` match literally."""
    started = time.perf_counter()
    query = q.strip()
    if not query:
        raise ValidationFailedError(
            details={"formErrors": [], "fieldErrors": {"q": ["Search query cannot be blank"]}}
        )

    base, conditions, order, to_hit = _index_query(index, query)
    model = base.column_descriptions[0]["entity"]

    result = await db.execute(
        base.where(*conditions).order_by(order, model.id).offset(offset).limit(limit)
    )
    hits = [to_hit(row) for row in result.scalars().unique().all()]
    total = (await db.execute(
        select(func.count(model.id)).where(*conditions)
    )).scalar() or 0

    elapsed_ms = int((time.perf_counter() - started) * 1000)
    logger.debug(f"Search {index} q={query!r}: {total} hits in {elapsed_ms}ms")

    return schemas.SearchResponse(
        hits=hits,
        query=query,
        processingTimeMs=elapsed_ms,
        estimatedTotalHits=total,
    )
