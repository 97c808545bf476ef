"""Trending clip ranking.

Hacker News style decay over engagement:

    points = log10(max(views, 1)) * view_weight
           + favorites * favorite_weight
           + comments * comment_weight
    score  = points / (age_hours + age_offset) ** gravity

The logarithm keeps one viral clip from dominating on views alone, the age
offset keeps brand-new clips from dividing by ~0, and gravity controls how
fast older clips fall out of contention. The weights and gravity are
configuration (see Settings.trending_*).

Scores are computed per request and never persisted.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.db import schemas
from app.db.models import Clip, Comment, SubmissionStatus
from app.services.clip_service import CLIP_CARD_OPTIONS, clip_card

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrendingWeights:
    """Tunable constants of the trending formula."""

    gravity: float = 1.8
    age_offset_hours: float = 2.0
    view_weight: float = 1.0
    favorite_weight: float = 2.0
    comment_weight: float = 1.5

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "TrendingWeights":
        settings = settings or get_settings()
        return cls(
            gravity=settings.trending_gravity,
            age_offset_hours=settings.trending_age_offset_hours,
            view_weight=settings.trending_view_weight,
            favorite_weight=settings.trending_favorite_weight,
            comment_weight=settings.trending_comment_weight,
        )


DEFAULT_WEIGHTS = TrendingWeights()


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps are stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def age_in_hours(created_at: datetime, now: datetime) -> float:
    """Hours elapsed since creation; never negative."""
    seconds = (_as_utc(now) - _as_utc(created_at)).total_seconds()
    return max(seconds, 0.0) / 3600


def calculate_trending_score(
    view_count: int,
    favorite_count: int,
    comment_count: int,
    created_at: datetime,
    now: datetime | None = None,
    weights: TrendingWeights | None = None,
) -> float:
    """Score a clip; higher is more trending. Pure function."""
    weights = weights or DEFAULT_WEIGHTS
    now = now or datetime.now(timezone.utc)

    # log10(1) = 0, so a clip with no views contributes nothing rather than -inf
    points = (
        math.log10(max(view_count, 1)) * weights.view_weight
        + favorite_count * weights.favorite_weight
        + comment_count * weights.comment_weight
    )
    hours = age_in_hours(created_at, now)
    return points / math.pow(hours + weights.age_offset_hours, weights.gravity)


@dataclass
class ScoredClip:
    clip: Any
    comment_count: int
    score: float


def rank_trending(
    candidates: Iterable[tuple[Any, int]],
    now: datetime,
    weights: TrendingWeights | None = None,
) -> list[ScoredClip]:
    """
    Score (clip, comment_count) pairs and sort them, best first.

    Clips need view_count, favorite_count, created_at and id. Ties go to the
    newer clip, then to the id, so the order is stable across requests.
    """
    scored = [
        ScoredClip(
            clip=clip,
            comment_count=comment_count,
            score=calculate_trending_score(
                clip.view_count or 0,
                clip.favorite_count or 0,
                comment_count,
                clip.created_at,
                now=now,
                weights=weights,
            ),
        )
        for clip, comment_count in candidates
    ]
    scored.sort(key=lambda s: s.clip.id)
    scored.sort(key=lambda s: (s.score, _as_utc(s.clip.created_at)), reverse=True)
    return scored


async def _comment_counts(db: AsyncSession, clip_ids: list[str]) -> dict[str, int]:
    if not clip_ids:
        return {}
    result = await db.execute(
        select(Comment.clip_id, func.count())
        .where(Comment.clip_id.in_(clip_ids))
        .group_by(Comment.clip_id)
    )
    return {clip_id: count for clip_id, count in result.all()}


async def get_trending_clips(
    db: AsyncSession,
    limit: int = 12,
    offset: int = 0,
    window_days: int | None = None,
    now: datetime | None = None,
) -> tuple[list[schemas.TrendingClip], int]:
    """
    Rank approved clips created within the window and return one page.

    Returns (page items, total candidates in the window).
    """
    settings = get_settings()
    now = now or datetime.now(timezone.utc)
    window_days = window_days or settings.trending_default_window_days
    cutoff = now - timedelta(days=window_days)

    result = await db.execute(
        select(Clip)
        .options(*CLIP_CARD_OPTIONS)
        .where(
            Clip.submission_status == SubmissionStatus.APPROVED.value,
            Clip.created_at >= cutoff,
        )
    )
    clips = result.scalars().unique().all()
    counts = await _comment_counts(db, [c.id for c in clips])

    ranked = rank_trending(
        ((clip, counts.get(clip.id, 0)) for clip in clips),
        now=now,
        weights=TrendingWeights.from_settings(settings),
    )
    page = ranked[offset:offset + limit]

    logger.debug(f"Trending: {len(ranked)} candidates in {window_days}d window, returning {len(page)}")

    items = [
        clip_card(
            s.clip,
            schema=schemas.TrendingClip,
            commentCount=s.comment_count,
            trendingScore=s.score,
        )
        for s in page
    ]
    return items, len(ranked)


async def get_homepage_trending(db: AsyncSession, limit: int = 6) -> list[schemas.TrendingClip]:
    """Shorter-window trending strip for the homepage."""
    items, _ = await get_trending_clips(
        db, limit=limit, window_days=get_settings().homepage_trending_window_days
    )
    return items
