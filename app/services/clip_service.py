"""Clip browsing, submission, view counting and favorites."""

import logging
from dataclasses import dataclass, field

from sqlalchemy import Select, select, func, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from app.config import get_settings
from app.core.errors import NotFoundError, ValidationFailedError
from app.core.pagination import PageParams, get_pagination_params
from app.core.tasks import TaskManager
from app.db import schemas
from app.db.database import async_session_maker
from app.db.filters import contains_pattern, unique_slug
from app.db.models import (
    Anime, Animator, Attribution, Clip, ClipFavorite, ClipTag, Tag, User,
    SubmissionStatus, VerificationStatus, VERIFICATION_RANK,
)

logger = logging.getLogger(__name__)

# Relationships needed to render a clip card
CLIP_CARD_OPTIONS = (
    joinedload(Clip.anime),
    selectinload(Clip.attributions).joinedload(Attribution.animator),
)

# Public sort keys -> columns. Anything else falls back to newest first.
SORTABLE_FIELDS = {
    "createdAt": Clip.created_at,
    "viewCount": Clip.view_count,
    "favoriteCount": Clip.favorite_count,
    "title": Clip.title,
}


def best_attribution(attributions) -> Attribution | None:
    """The strongest attribution: VERIFIED beats SPECULATIVE beats DISPUTED."""
    if not attributions:
        return None
    return min(
        attributions,
        key=lambda a: VERIFICATION_RANK.get(a.verification_status, len(VERIFICATION_RANK)),
    )


def verification_status(clip) -> str:
    best = best_attribution(clip.attributions)
    if best is None:
        return VerificationStatus.SPECULATIVE.value
    return best.verification_status


def anime_ref(anime) -> schemas.AnimeRef | None:
    if anime is None:
        return None
    return schemas.AnimeRef(title=anime.title, slug=anime.slug)


def animator_summary(animator) -> schemas.AnimatorSummary:
    return schemas.AnimatorSummary(
        id=animator.id,
        slug=animator.slug,
        name=animator.name,
        nativeName=animator.native_name,
        photoUrl=animator.photo_url,
    )


def clip_card(clip, schema=schemas.ClipCard, **extra):
    """Build a clip card (or a subclass given by ``schema``) from an ORM clip."""
    best = best_attribution(clip.attributions)
    primary = None
    if best is not None and best.animator is not None:
        primary = schemas.AnimatorRef(name=best.animator.name, slug=best.animator.slug)

    return schema(
        id=clip.id,
        slug=clip.slug,
        title=clip.title,
        thumbnailUrl=clip.thumbnail_url,
        duration=clip.duration,
        viewCount=clip.view_count or 0,
        favoriteCount=clip.favorite_count or 0,
        createdAt=clip.created_at,
        anime=anime_ref(clip.anime),
        primaryAnimator=primary,
        verificationStatus=best.verification_status if best else VerificationStatus.SPECULATIVE.value,
        **extra,
    )


def clip_detail(clip: Clip) -> schemas.ClipDetail:
    anime = clip.anime
    studio = clip.studio
    return schemas.ClipDetail(
        id=clip.id,
        slug=clip.slug,
        title=clip.title,
        videoUrl=clip.video_url,
        thumbnailUrl=clip.thumbnail_url,
        duration=clip.duration,
        episodeNumber=clip.episode_number,
        timestampStart=clip.timestamp_start,
        techniqueDescription=clip.technique_description,
        viewCount=clip.view_count or 0,
        favoriteCount=clip.favorite_count or 0,
        submissionStatus=clip.submission_status,
        verificationStatus=verification_status(clip),
        createdAt=clip.created_at,
        anime=schemas.AnimeDetail(
            id=anime.id,
            slug=anime.slug,
            title=anime.title,
            nativeTitle=anime.native_title,
            year=anime.year,
            season=anime.season,
            coverUrl=anime.cover_url,
        ) if anime else None,
        studio=schemas.StudioRef(
            id=studio.id,
            slug=studio.slug,
            name=studio.name,
            nativeName=studio.native_name,
            logoUrl=studio.logo_url,
        ) if studio else None,
        attributions=[
            schemas.AttributionDetail(
                id=a.id,
                role=a.role,
                verificationStatus=a.verification_status,
                sourceUrl=a.source_url,
                sourceNote=a.source_note,
                animator=animator_summary(a.animator),
            )
            for a in sorted(
                clip.attributions,
                key=lambda a: VERIFICATION_RANK.get(a.verification_status, len(VERIFICATION_RANK)),
            )
        ],
        tags=[
            schemas.TagItem(id=ct.tag.id, slug=ct.tag.slug, name=ct.tag.name, category=ct.tag.category)
            for ct in clip.tags
            if ct.tag is not None
        ],
    )


# ============ Listing ============

@dataclass
class ClipFilters:
    """Browse filters for the clip grid."""

    q: str | None = None
    animator_id: str | None = None
    anime_id: str | None = None
    studio_id: str | None = None
    tag_ids: list[str] = field(default_factory=list)
    verification_status: str | None = None
    year_start: int | None = None
    year_end: int | None = None
    sort_by: str = "createdAt"
    sort_order: str = "desc"


def _filter_conditions(filters: ClipFilters) -> list:
    conditions = [Clip.submission_status == SubmissionStatus.APPROVED.value]

    if filters.q:
        pattern = contains_pattern(filters.q.strip())
        conditions.append(or_(
            Clip.title.ilike(pattern),
            Clip.anime.has(Anime.title.ilike(pattern)),
        ))
    if filters.animator_id:
        conditions.append(Clip.attributions.any(Attribution.animator_id == filters.animator_id))
    if filters.verification_status:
        conditions.append(
            Clip.attributions.any(Attribution.verification_status == filters.verification_status)
        )
    if filters.anime_id:
        conditions.append(Clip.anime_id == filters.anime_id)
    if filters.studio_id:
        conditions.append(Clip.studio_id == filters.studio_id)
    if filters.tag_ids:
        conditions.append(Clip.tags.any(ClipTag.tag_id.in_(filters.tag_ids)))
    if filters.year_start is not None:
        conditions.append(Clip.anime.has(Anime.year >= filters.year_start))
    if filters.year_end is not None:
        conditions.append(Clip.anime.has(Anime.year <= filters.year_end))

    return conditions


def build_clip_list_query(filters: ClipFilters, params: PageParams) -> Select:
    """SELECT for one page of the clip grid."""
    column = SORTABLE_FIELDS.get(filters.sort_by, Clip.created_at)
    order = column.asc() if filters.sort_order == "asc" else column.desc()

    return (
        select(Clip)
        .options(*CLIP_CARD_OPTIONS)
        .where(*_filter_conditions(filters))
        .order_by(order, Clip.id)
        .offset(params.skip)
        .limit(params.limit)
    )


def build_clip_count_query(filters: ClipFilters) -> Select:
    return select(func.count(Clip.id)).where(*_filter_conditions(filters))


async def list_clips(
    db: AsyncSession,
    filters: ClipFilters,
    page: int | None = None,
    limit: int | None = None,
) -> tuple[list[schemas.ClipCard], int, PageParams]:
    """Approved clips matching the filters. Returns (cards, total, page params)."""
    params = get_pagination_params(page, limit)

    result = await db.execute(build_clip_list_query(filters, params))
    clips = result.scalars().unique().all()
    total = (await db.execute(build_clip_count_query(filters))).scalar() or 0

    return [clip_card(c) for c in clips], total, params


# ============ Single clip ============

async def get_clip_by_slug(db: AsyncSession, slug: str) -> Clip | None:
    """Approved clip with anime, studio, attributions and tags loaded."""
    result = await db.execute(
        select(Clip)
        .options(
            joinedload(Clip.anime),
            joinedload(Clip.studio),
            selectinload(Clip.attributions).joinedload(Attribution.animator),
            selectinload(Clip.tags).joinedload(ClipTag.tag),
        )
        .where(
            Clip.slug == slug,
            Clip.submission_status == SubmissionStatus.APPROVED.value,
        )
    )
    return result.unique().scalar_one_or_none()


async def get_clip_id_by_slug(db: AsyncSession, slug: str) -> str | None:
    result = await db.execute(
        select(Clip.id).where(
            Clip.slug == slug,
            Clip.submission_status == SubmissionStatus.APPROVED.value,
        )
    )
    return result.scalar_one_or_none()


async def get_clip_by_id(db: AsyncSession, clip_id: str) -> Clip | None:
    result = await db.execute(
        select(Clip).options(*CLIP_CARD_OPTIONS).where(Clip.id == clip_id)
    )
    return result.unique().scalar_one_or_none()


async def get_related_clips(db: AsyncSession, clip: Clip, limit: int = 6) -> list[schemas.ClipCard]:
    """Other approved clips from the same anime or by the same animators."""
    animator_ids = [a.animator_id for a in clip.attributions]
    related = [Clip.anime_id == clip.anime_id]
    if animator_ids:
        related.append(Clip.attributions.any(Attribution.animator_id.in_(animator_ids)))

    result = await db.execute(
        select(Clip)
        .options(*CLIP_CARD_OPTIONS)
        .where(
            Clip.id != clip.id,
            Clip.submission_status == SubmissionStatus.APPROVED.value,
            or_(*related),
        )
        .order_by(Clip.favorite_count.desc(), Clip.created_at.desc())
        .limit(limit)
    )
    return [clip_card(c) for c in result.scalars().unique().all()]


async def get_recent_clips(db: AsyncSession, limit: int = 6) -> list[schemas.ClipCard]:
    result = await db.execute(
        select(Clip)
        .options(*CLIP_CARD_OPTIONS)
        .where(Clip.submission_status == SubmissionStatus.APPROVED.value)
        .order_by(Clip.created_at.desc())
        .limit(limit)
    )
    return [clip_card(c) for c in result.scalars().unique().all()]


# ============ Submission ============

async def create_clip(
    db: AsyncSession,
    data: schemas.ClipCreateRequest,
    user: User,
) -> schemas.ClipSubmissionResult:
    """
    Submit a clip for moderation.

    The clip starts PENDING with every attribution SPECULATIVE; a moderator
    decides whether it is published.
    """
    settings = get_settings()
    field_errors: dict[str, list[str]] = {}

    if data.duration > settings.clip_max_duration_seconds:
        field_errors["duration"] = [
            f"Clips must be {settings.clip_max_duration_seconds} seconds or shorter"
        ]
    if len(data.techniqueDescription.strip()) < settings.clip_min_technique_description:
        field_errors["techniqueDescription"] = [
            f"Describe the technique in at least {settings.clip_min_technique_description} characters"
        ]
    if field_errors:
        raise ValidationFailedError(details={"formErrors": [], "fieldErrors": field_errors})

    anime = await db.get(Anime, data.animeId)
    if anime is None:
        raise NotFoundError("Anime")

    animator_ids = {a.animatorId for a in data.attributions}
    found = await db.execute(select(Animator.id).where(Animator.id.in_(animator_ids)))
    missing = animator_ids - set(found.scalars().all())
    if missing:
        raise ValidationFailedError(
            "Unknown animator in attributions",
            details={"formErrors": [], "fieldErrors": {"attributions": sorted(missing)}},
        )

    tag_ids = set(data.tagIds)
    if tag_ids:
        found = await db.execute(select(Tag.id).where(Tag.id.in_(tag_ids)))
        tag_ids &= set(found.scalars().all())

    clip = Clip(
        slug=unique_slug(data.title),
        title=data.title,
        video_url=data.videoUrl,
        thumbnail_url=data.thumbnailUrl,
        duration=data.duration,
        anime_id=anime.id,
        studio_id=anime.studio_id,
        episode_number=data.episodeNumber,
        timestamp_start=data.timestampStart,
        technique_description=data.techniqueDescription,
        submission_status=SubmissionStatus.PENDING.value,
        submitted_by=user.id,
    )
    # Attribution rows are unique per (clip, animator, role)
    seen = set()
    for a in data.attributions:
        if (a.animatorId, a.role) in seen:
            continue
        seen.add((a.animatorId, a.role))
        clip.attributions.append(Attribution(
            animator_id=a.animatorId,
            role=a.role,
            verification_status=VerificationStatus.SPECULATIVE.value,
            source_url=a.sourceUrl,
            source_note=a.sourceNote,
        ))
    for tag_id in sorted(tag_ids):
        clip.tags.append(ClipTag(tag_id=tag_id))

    db.add(clip)
    await db.commit()

    logger.info(f"Clip {clip.id} submitted by user {user.id} (pending moderation)")
    return schemas.ClipSubmissionResult(
        id=clip.id, slug=clip.slug, submissionStatus=clip.submission_status
    )


# ============ Views ============

async def increment_clip_views(clip_id: str) -> None:
    """Bump view_count by one in a session of its own."""
    async with async_session_maker() as db:
        await db.execute(
            update(Clip)
            .where(Clip.id == clip_id)
            .values(view_count=Clip.view_count + 1)
        )
        await db.commit()


def schedule_view_increment(clip_id: str) -> None:
    """
    Count a view without delaying the response.

    The increment runs as a detached task; a failure is logged by the
    TaskManager and never reaches the request.
    """
    TaskManager.get_instance().fire_and_forget(
        increment_clip_views(clip_id), name=f"clip_view:{clip_id}"
    )


# ============ Favorites ============

async def is_clip_favorited(db: AsyncSession, user_id: str, clip_id: str) -> bool:
    return await db.get(ClipFavorite, (user_id, clip_id)) is not None


async def toggle_favorite(db: AsyncSession, user_id: str, clip_id: str) -> schemas.FavoriteState:
    """
    Add or remove a clip favorite.

    The favorite row and Clip.favorite_count change in one transaction with
    the clip row locked, so the counter always equals the number of rows.
    """
    clip = await db.get(Clip, clip_id, with_for_update=True)
    if clip is None:
        raise NotFoundError("Clip")

    existing = await db.get(ClipFavorite, (user_id, clip_id))
    try:
        if existing is not None:
            await db.delete(existing)
            clip.favorite_count = max((clip.favorite_count or 0) - 1, 0)
            favorited = False
        else:
            db.add(ClipFavorite(user_id=user_id, clip_id=clip_id))
            clip.favorite_count = (clip.favorite_count or 0) + 1
            favorited = True
        await db.commit()
    except IntegrityError:
        # A concurrent request already inserted the row; report what is stored
        await db.rollback()
        logger.info(f"Concurrent favorite toggle on clip {clip_id} by user {user_id}")
        return schemas.FavoriteState(favorited=await is_clip_favorited(db, user_id, clip_id))

    return schemas.FavoriteState(favorited=favorited)
