"""Animator profiles, career timeline, spotlights and animator favorites."""

import logging
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import select, func, and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from app.config import get_settings
from app.core.cache import CacheService, get_cache
from app.core.errors import NotFoundError
from app.core.pagination import PageParams, get_pagination_params
from app.db import schemas
from app.db.filters import contains_pattern
from app.db.models import (
    Anime, Animator, AnimatorFavorite, AnimatorRelation, Attribution, Clip,
    StudioHistory, SubmissionStatus, VerificationStatus,
)
from app.services.clip_service import CLIP_CARD_OPTIONS, anime_ref, clip_card

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {
    "name": Animator.name,
    "createdAt": Animator.created_at,
}

# Featured animator rotation
FEATURED_CANDIDATES = 20
FEATURED_ROTATION_SIZE = 10

RISING_WINDOW_DAYS = 30


def _clip_count_column():
    """Correlated count of an animator's attributions."""
    return (
        select(func.count(Attribution.id))
        .where(Attribution.animator_id == Animator.id)
        .correlate(Animator)
        .scalar_subquery()
    )


def _favorite_count_column():
    return (
        select(func.count())
        .select_from(AnimatorFavorite)
        .where(AnimatorFavorite.animator_id == Animator.id)
        .correlate(Animator)
        .scalar_subquery()
    )


def _summary_fields(animator: Animator) -> dict:
    return {
        "id": animator.id,
        "slug": animator.slug,
        "name": animator.name,
        "nativeName": animator.native_name,
        "photoUrl": animator.photo_url,
    }


def active_years(birth_date: date | None, death_date: date | None) -> str:
    """Human-readable lifespan, e.g. "1961-present" or "?-1999"."""
    if death_date:
        return f"{birth_date.year if birth_date else '?'}-{death_date.year}"
    if birth_date:
        return f"{birth_date.year}-present"
    return "Unknown"


# ============ Listing / profile ============

async def list_animators(
    db: AsyncSession,
    q: str | None = None,
    has_photo: bool | None = None,
    sort_by: str = "name",
    sort_order: str = "asc",
    page: int | None = None,
    limit: int | None = None,
) -> tuple[list[schemas.AnimatorListItem], int, PageParams]:
    params = get_pagination_params(page, limit)

    conditions = []
    if q:
        pattern = contains_pattern(q.strip())
        conditions.append(or_(Animator.name.ilike(pattern), Animator.native_name.ilike(pattern)))
    if has_photo is True:
        conditions.append(Animator.photo_url.isnot(None))
    elif has_photo is False:
        conditions.append(Animator.photo_url.is_(None))

    column = SORTABLE_FIELDS.get(sort_by, Animator.name)
    order = column.desc() if sort_order == "desc" else column.asc()

    clip_count = _clip_count_column().label("clip_count")
    result = await db.execute(
        select(Animator, clip_count)
        .where(*conditions)
        .order_by(order, Animator.id)
        .offset(params.skip)
        .limit(params.limit)
    )
    items = [
        schemas.AnimatorListItem(**_summary_fields(animator), clipCount=count or 0)
        for animator, count in result.all()
    ]
    total = (await db.execute(select(func.count(Animator.id)).where(*conditions))).scalar() or 0
    return items, total, params


async def get_animator_id_by_slug(db: AsyncSession, slug: str) -> str | None:
    result = await db.execute(select(Animator.id).where(Animator.slug == slug))
    return result.scalar_one_or_none()


async def get_animator_by_slug(db: AsyncSession, slug: str) -> schemas.AnimatorDetail | None:
    """Profile with studio history, direct relations and engagement counts."""
    result = await db.execute(
        select(Animator, _clip_count_column().label("clip_count"), _favorite_count_column().label("fav_count"))
        .options(
            selectinload(Animator.studio_history).joinedload(StudioHistory.studio),
            selectinload(Animator.outgoing_relations).joinedload(AnimatorRelation.student),
            selectinload(Animator.incoming_relations).joinedload(AnimatorRelation.mentor),
        )
        .where(Animator.slug == slug)
    )
    row = result.first()
    if row is None:
        return None
    animator, clip_count, fav_count = row

    return schemas.AnimatorDetail(
        **_summary_fields(animator),
        bio=animator.bio,
        birthDate=animator.birth_date.isoformat() if animator.birth_date else None,
        deathDate=animator.death_date.isoformat() if animator.death_date else None,
        clipCount=clip_count or 0,
        favoriteCount=fav_count or 0,
        studioHistory=[
            schemas.StudioHistoryItem(
                studio=schemas.StudioRef(
                    id=h.studio.id,
                    slug=h.studio.slug,
                    name=h.studio.name,
                    nativeName=h.studio.native_name,
                    logoUrl=h.studio.logo_url,
                ),
                startYear=h.start_year,
                endYear=h.end_year,
                position=h.position,
            )
            for h in animator.studio_history
        ],
        mentors=[
            schemas.RelatedAnimator(**_summary_fields(rel.mentor), relationType=rel.relation_type)
            for rel in animator.incoming_relations
        ],
        students=[
            schemas.RelatedAnimator(**_summary_fields(rel.student), relationType=rel.relation_type)
            for rel in animator.outgoing_relations
        ],
    )


async def get_animator_clips(
    db: AsyncSession,
    animator_id: str,
    page: int | None = None,
    limit: int | None = None,
) -> tuple[list[schemas.ClipCard], int, PageParams]:
    params = get_pagination_params(page, limit)
    conditions = (
        Clip.attributions.any(Attribution.animator_id == animator_id),
        Clip.submission_status == SubmissionStatus.APPROVED.value,
    )

    result = await db.execute(
        select(Clip)
        .options(*CLIP_CARD_OPTIONS)
        .where(*conditions)
        .order_by(Clip.created_at.desc(), Clip.id)
        .offset(params.skip)
        .limit(params.limit)
    )
    clips = result.scalars().unique().all()
    total = (await db.execute(select(func.count(Clip.id)).where(*conditions))).scalar() or 0
    return [clip_card(c) for c in clips], total, params


# ============ Timeline ============

def build_timeline(rows) -> list[schemas.TimelineYear]:
    """
    Group (year, anime title, anime slug, role) rows into a yearly timeline.

    One work per anime per year; the first role seen is kept and every row
    counts as one clip. Years ascend.
    """
    years: dict[int, dict[str, schemas.TimelineWork]] = {}
    for year, title, slug, role in rows:
        works = years.setdefault(year, {})
        work = works.get(slug)
        if work is None:
            works[slug] = schemas.TimelineWork(animeTitle=title, animeSlug=slug, role=role, clipCount=1)
        else:
            work.clipCount += 1

    return [
        schemas.TimelineYear(year=year, works=list(works.values()))
        for year, works in sorted(years.items())
    ]


async def get_animator_timeline(db: AsyncSession, animator_id: str) -> list[schemas.TimelineYear]:
    result = await db.execute(
        select(Anime.year, Anime.title, Anime.slug, Attribution.role)
        .join(Clip, Attribution.clip_id == Clip.id)
        .join(Anime, Clip.anime_id == Anime.id)
        .where(
            Attribution.animator_id == animator_id,
            Clip.submission_status == SubmissionStatus.APPROVED.value,
        )
        .order_by(Anime.year, Clip.created_at)
    )
    return build_timeline(result.all())


# ============ Spotlights ============

def _signature_clip(clip: Clip) -> schemas.SignatureClip:
    return schemas.SignatureClip(
        id=clip.id,
        slug=clip.slug,
        title=clip.title,
        videoUrl=clip.video_url,
        thumbnailUrl=clip.thumbnail_url,
        anime=anime_ref(clip.anime),
    )


async def get_signature_clips(
    db: AsyncSession, animator_id: str, limit: int = 5
) -> list[schemas.SignatureClip]:
    """The animator's most favorited clips among VERIFIED attributions."""
    result = await db.execute(
        select(Clip)
        .options(joinedload(Clip.anime))
        .where(
            Clip.attributions.any(and_(
                Attribution.animator_id == animator_id,
                Attribution.verification_status == VerificationStatus.VERIFIED.value,
            )),
            Clip.submission_status == SubmissionStatus.APPROVED.value,
            Clip.video_url != "",
        )
        .order_by(Clip.favorite_count.desc(), Clip.id)
        .limit(limit)
    )
    return [_signature_clip(c) for c in result.scalars().unique().all()]


async def get_rising_animators(db: AsyncSession, limit: int = 4) -> list[schemas.RisingAnimator]:
    """Animators with the most approved clips added in the last 30 days."""
    cutoff = datetime.now(timezone.utc) - timedelta(days=RISING_WINDOW_DAYS)
    recent_clip = and_(
        Clip.submission_status == SubmissionStatus.APPROVED.value,
        Clip.created_at >= cutoff,
    )
    recent_count = (
        select(func.count(Attribution.id))
        .join(Clip, Attribution.clip_id == Clip.id)
        .where(Attribution.animator_id == Animator.id, recent_clip)
        .correlate(Animator)
        .scalar_subquery()
        .label("recent_count")
    )

    result = await db.execute(
        select(Animator, recent_count)
        .where(
            Animator.photo_url.isnot(None),
            Animator.attributions.any(Attribution.clip.has(recent_clip)),
        )
        .order_by(recent_count.desc(), Animator.id)
        .limit(limit)
    )

    rising = []
    for animator, count in result.all():
        latest = (await db.execute(
            select(Clip)
            .options(joinedload(Clip.anime))
            .where(
                Clip.attributions.any(Attribution.animator_id == animator.id),
                Clip.submission_status == SubmissionStatus.APPROVED.value,
            )
            .order_by(Clip.created_at.desc())
            .limit(1)
        )).scalars().first()

        rising.append(schemas.RisingAnimator(
            **_summary_fields(animator),
            recentClipCount=count or 0,
            latestClip=schemas.LatestClip(
                id=latest.id,
                slug=latest.slug,
                title=latest.title,
                thumbnailUrl=latest.thumbnail_url,
                viewCount=latest.view_count or 0,
                favoriteCount=latest.favorite_count or 0,
                anime=anime_ref(latest.anime),
            ) if latest else None,
        ))
    return rising


def pick_featured(candidates: list[tuple[Animator, int, int]], week: int):
    """
    Choose this week's featured animator.

    Candidates are (animator, clip count, favorite count). They are scored
    clips * 2 + favorites and the week number rotates through the top ten.
    Returns the chosen tuple, or None when there are no candidates.
    """
    if not candidates:
        return None
    scored = sorted(candidates, key=lambda c: c[0].id)
    scored.sort(key=lambda c: c[1] * 2 + c[2], reverse=True)
    return scored[week % min(len(scored), FEATURED_ROTATION_SIZE)]


async def get_featured_animator(db: AsyncSession) -> dict | None:
    """Featured animator of the week, cached in Redis per ISO week."""
    year, week, _ = datetime.now(timezone.utc).isocalendar()
    cache = get_cache()
    cache_key = CacheService.featured_animator_key(year, week)

    cached = await cache.get(cache_key)
    if cached:
        return cached

    clip_count = _clip_count_column().label("clip_count")
    favorite_count = _favorite_count_column().label("fav_count")
    result = await db.execute(
        select(Animator, clip_count, favorite_count)
        .where(
            Animator.photo_url.isnot(None),
            Animator.attributions.any(and_(
                Attribution.verification_status == VerificationStatus.VERIFIED.value,
                Attribution.clip.has(and_(
                    Clip.submission_status == SubmissionStatus.APPROVED.value,
                    Clip.video_url != "",
                )),
            )),
        )
        .order_by(clip_count.desc(), Animator.id)
        .limit(FEATURED_CANDIDATES)
    )
    chosen = pick_featured([tuple(row) for row in result.all()], week)
    if chosen is None:
        logger.info("No featured animator candidates")
        return None

    animator, clips, favorites = chosen
    signature = await get_signature_clips(db, animator.id, limit=1)

    featured = schemas.FeaturedAnimator(
        **_summary_fields(animator),
        bio=animator.bio,
        clipCount=clips or 0,
        favoriteCount=favorites or 0,
        signatureClip=signature[0] if signature else None,
    ).model_dump(mode="json")

    await cache.set(cache_key, featured, ttl=get_settings().featured_animator_ttl_seconds)
    return featured


# ============ Favorites ============

async def is_animator_favorited(db: AsyncSession, user_id: str, animator_id: str) -> bool:
    return await db.get(AnimatorFavorite, (user_id, animator_id)) is not None


async def toggle_animator_favorite(
    db: AsyncSession, user_id: str, animator_id: str
) -> schemas.FavoriteState:
    animator = await db.get(Animator, animator_id)
    if animator is None:
        raise NotFoundError("Animator")

    existing = await db.get(AnimatorFavorite, (user_id, animator_id))
    try:
        if existing is not None:
            await db.delete(existing)
            favorited = False
        else:
            db.add(AnimatorFavorite(user_id=user_id, animator_id=animator_id))
            favorited = True
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info(f"Concurrent favorite toggle on animator {animator_id} by user {user_id}")
        return schemas.FavoriteState(
            favorited=await is_animator_favorited(db, user_id, animator_id)
        )

    return schemas.FavoriteState(favorited=favorited)
