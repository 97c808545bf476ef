"""
Clip moderation: the review queue and the PENDING -> APPROVED/REJECTED transition.

The status change and the submitter's trust score adjustment are written in
one transaction. Trust deltas come from settings (trust_points_*).
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from app.config import get_settings
from app.core.auth import can_moderate, get_trust_level
from app.core.errors import ForbiddenError, NotFoundError, ValidationFailedError
from app.core.pagination import PageParams, get_pagination_params
from app.db import schemas
from app.db.models import Attribution, Clip, User, SubmissionStatus

logger = logging.getLogger(__name__)

ACTION_STATUS = {
    "approve": SubmissionStatus.APPROVED.value,
    "reject": SubmissionStatus.REJECTED.value,
}

__all__ = [
    "moderate_clip", "get_pending_clips", "get_moderation_stats", "get_trust_level",
]


def trust_delta(action: str) -> int:
    settings = get_settings()
    if action == "approve":
        return settings.trust_points_clip_approved
    return settings.trust_points_submission_rejected


async def moderate_clip(
    db: AsyncSession,
    clip_id: str,
    moderator: User,
    action: str,
    reason: str | None = None,
) -> schemas.ModerationResult:
    """
    Approve or reject a pending clip and adjust the submitter's trust score.

    Raises:
        ForbiddenError: moderator lacks MODERATOR/ADMIN (checked before any query)
        NotFoundError: no clip with that id
        ValidationFailedError: unknown action, or the clip is no longer PENDING
    """
    if not can_moderate(moderator.role):
        raise ForbiddenError("You do not have permission to moderate clips")
    if action not in ACTION_STATUS:
        raise ValidationFailedError(f"Unknown moderation action: {action}")

    clip = await db.get(Clip, clip_id, with_for_update=True)
    if clip is None:
        raise NotFoundError("Clip")
    if clip.submission_status != SubmissionStatus.PENDING.value:
        raise ValidationFailedError(
            f"Clip has already been moderated ({clip.submission_status})"
        )

    now = datetime.now(timezone.utc)
    submitter_score = None

    try:
        clip.submission_status = ACTION_STATUS[action]
        clip.moderated_by = moderator.id
        clip.moderated_at = now
        if action == "reject":
            clip.rejection_reason = reason

        if clip.submitted_by:
            submitter = await db.get(User, clip.submitted_by, with_for_update=True)
            if submitter is not None:
                submitter.trust_score = (submitter.trust_score or 0) + trust_delta(action)
                submitter_score = submitter.trust_score

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        f"Clip {clip_id} {clip.submission_status.lower()} by {moderator.id}"
        + (f" (submitter trust now {submitter_score})" if submitter_score is not None else "")
    )

    return schemas.ModerationResult(
        id=clip.id,
        slug=clip.slug,
        submissionStatus=clip.submission_status,
        moderatedBy=moderator.id,
        moderatedAt=now,
        submitterTrustScore=submitter_score,
    )


def _queue_item(clip: Clip, submitter: User | None) -> schemas.ModerationQueueItem:
    return schemas.ModerationQueueItem(
        id=clip.id,
        slug=clip.slug,
        title=clip.title,
        thumbnailUrl=clip.thumbnail_url,
        duration=clip.duration,
        techniqueDescription=clip.technique_description,
        submittedAt=clip.created_at,
        anime=schemas.AnimeRef(title=clip.anime.title, slug=clip.anime.slug) if clip.anime else None,
        submittedBy=schemas.Submitter(
            id=submitter.id,
            name=submitter.name,
            image=submitter.image,
            trustScore=submitter.trust_score or 0,
            trustLevel=get_trust_level(submitter.trust_score or 0),
        ) if submitter else None,
        attributions=[
            schemas.QueueAttribution(
                animator=schemas.AnimatorRef(name=a.animator.name, slug=a.animator.slug),
                role=a.role,
            )
            for a in clip.attributions
            if a.animator is not None
        ],
    )


async def get_pending_clips(
    db: AsyncSession,
    page: int | None = None,
    limit: int | None = None,
    sort_by: str = "date",
    sort_order: str = "asc",
) -> tuple[list[schemas.ModerationQueueItem], int, PageParams]:
    """Moderation queue, oldest submissions first unless asked otherwise."""
    params = get_pagination_params(page, limit)

    if sort_by == "trust":
        column = User.trust_score
    else:
        column = Clip.created_at
    order = column.desc() if sort_order == "desc" else column.asc()

    result = await db.execute(
        select(Clip, User)
        .outerjoin(User, Clip.submitted_by == User.id)
        .options(
            joinedload(Clip.anime),
            selectinload(Clip.attributions).joinedload(Attribution.animator),
        )
        .where(Clip.submission_status == SubmissionStatus.PENDING.value)
        .order_by(order, Clip.id)
        .offset(params.skip)
        .limit(params.limit)
    )
    rows = result.unique().all()

    total = (await db.execute(
        select(func.count(Clip.id))
        .where(Clip.submission_status == SubmissionStatus.PENDING.value)
    )).scalar() or 0

    return [_queue_item(clip, submitter) for clip, submitter in rows], total, params


async def get_moderation_stats(
    db: AsyncSession, moderator_id: str | None = None
) -> schemas.ModerationStats:
    """Queue size plus today's decisions, optionally scoped to one moderator."""
    start_of_day = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)

    async def count(*conditions) -> int:
        if moderator_id:
            conditions = conditions + (Clip.moderated_by == moderator_id,)
        return (await db.execute(select(func.count(Clip.id)).where(*conditions))).scalar() or 0

    pending = (await db.execute(
        select(func.count(Clip.id))
        .where(Clip.submission_status == SubmissionStatus.PENDING.value)
    )).scalar() or 0

    return schemas.ModerationStats(
        pending=pending,
        approvedToday=await count(
            Clip.submission_status == SubmissionStatus.APPROVED.value,
            Clip.moderated_at >= start_of_day,
        ),
        rejectedToday=await count(
            Clip.submission_status == SubmissionStatus.REJECTED.value,
            Clip.moderated_at >= start_of_day,
        ),
        totalReviewed=await count(
            Clip.submission_status.in_([
                SubmissionStatus.APPROVED.value, SubmissionStatus.REJECTED.value,
            ]),
        ),
    )
