"""Ranking lists and community votes."""

import logging

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from app.core.errors import NotFoundError
from app.db import schemas
from app.db.models import Clip, RankingItem, RankingList, RankingType, Vote
from app.services.clip_service import anime_ref, animator_summary

logger = logging.getLogger(__name__)


def _item_count_column():
    return (
        select(func.count(RankingItem.id))
        .where(RankingItem.list_id == RankingList.id)
        .correlate(RankingList)
        .scalar_subquery()
        .label("item_count")
    )


def _summary(ranking_list: RankingList, item_count: int) -> schemas.RankingListSummary:
    return schemas.RankingListSummary(
        id=ranking_list.id,
        slug=ranking_list.slug,
        title=ranking_list.title,
        description=ranking_list.description,
        type=ranking_list.type,
        category=ranking_list.category,
        coverUrl=ranking_list.cover_url,
        itemCount=item_count or 0,
        createdAt=ranking_list.created_at,
    )


def _item_detail(item: RankingItem) -> schemas.RankingItemDetail:
    clip, studio, anime = item.clip, item.studio, item.anime
    return schemas.RankingItemDetail(
        id=item.id,
        rank=item.rank,
        voteCount=item.vote_count or 0,
        animator=animator_summary(item.animator) if item.animator else None,
        clip=schemas.RankingClipRef(
            id=clip.id,
            slug=clip.slug,
            title=clip.title,
            thumbnailUrl=clip.thumbnail_url,
            anime=anime_ref(clip.anime),
        ) if clip else None,
        studio=schemas.StudioRef(
            id=studio.id,
            slug=studio.slug,
            name=studio.name,
            nativeName=studio.native_name,
            logoUrl=studio.logo_url,
        ) if studio else None,
        anime=schemas.AnimeDetail(
            id=anime.id,
            slug=anime.slug,
            title=anime.title,
            nativeTitle=anime.native_title,
            year=anime.year,
            season=anime.season,
            coverUrl=anime.cover_url,
        ) if anime else None,
    )


async def get_ranking_lists(
    db: AsyncSession,
    type: str | None = None,
    category: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[schemas.RankingListSummary], int]:
    """Active lists, newest first. Returns (lists, total)."""
    conditions = [RankingList.is_active.is_(True)]
    if type:
        conditions.append(RankingList.type == type)
    if category:
        conditions.append(RankingList.category == category)

    result = await db.execute(
        select(RankingList, _item_count_column())
        .where(*conditions)
        .order_by(RankingList.created_at.desc(), RankingList.id)
        .offset(offset)
        .limit(limit)
    )
    lists = [_summary(rl, count) for rl, count in result.all()]
    total = (await db.execute(select(func.count(RankingList.id)).where(*conditions))).scalar() or 0
    return lists, total


async def get_featured_ranking_lists(db: AsyncSession, limit: int = 4) -> list[schemas.RankingListSummary]:
    """Homepage lists: editorial before community, then newest."""
    editorial_first = (RankingList.type != RankingType.EDITORIAL.value)
    result = await db.execute(
        select(RankingList, _item_count_column())
        .where(RankingList.is_active.is_(True))
        .order_by(editorial_first, RankingList.created_at.desc())
        .limit(limit)
    )
    return [_summary(rl, count) for rl, count in result.all()]


async def get_ranking_list_id(db: AsyncSession, slug: str) -> str | None:
    result = await db.execute(
        select(RankingList.id).where(RankingList.slug == slug, RankingList.is_active.is_(True))
    )
    return result.scalar_one_or_none()


async def get_user_votes_for_list(db: AsyncSession, user_id: str, list_id: str) -> list[str]:
    result = await db.execute(
        select(Vote.item_id)
        .join(RankingItem, Vote.item_id == RankingItem.id)
        .where(Vote.user_id == user_id, RankingItem.list_id == list_id)
    )
    return list(result.scalars().all())


async def get_ranking_list_by_slug(
    db: AsyncSession, slug: str, user_id: str | None = None
) -> schemas.RankingListDetail | None:
    """Active list with its items in rank order, plus the viewer's votes."""
    result = await db.execute(
        select(RankingList)
        .options(
            selectinload(RankingList.items).joinedload(RankingItem.animator),
            selectinload(RankingList.items).joinedload(RankingItem.clip).joinedload(Clip.anime),
            selectinload(RankingList.items).joinedload(RankingItem.studio),
            selectinload(RankingList.items).joinedload(RankingItem.anime),
        )
        .where(RankingList.slug == slug, RankingList.is_active.is_(True))
    )
    ranking_list = result.unique().scalar_one_or_none()
    if ranking_list is None:
        return None

    items = sorted(ranking_list.items, key=lambda i: i.rank)
    summary = _summary(ranking_list, len(items))
    user_votes = await get_user_votes_for_list(db, user_id, ranking_list.id) if user_id else []

    return schemas.RankingListDetail(
        **summary.model_dump(),
        items=[_item_detail(i) for i in items],
        userVotes=user_votes,
    )


async def toggle_vote(
    db: AsyncSession, user_id: str, item_id: str, list_id: str | None = None
) -> schemas.VoteResult:
    """
    Add or remove the user's vote on a ranking item.

    The vote row and RankingItem.vote_count change in one transaction with
    the item row locked. When ``list_id`` is given the item must belong to
    that list.
    """
    item = await db.get(RankingItem, item_id, with_for_update=True)
    if item is None or (list_id is not None and item.list_id != list_id):
        raise NotFoundError("Ranking item")

    existing = await db.get(Vote, (user_id, item_id))
    try:
        if existing is not None:
            await db.delete(existing)
            item.vote_count = max((item.vote_count or 0) - 1, 0)
            voted = False
        else:
            db.add(Vote(user_id=user_id, item_id=item_id))
            item.vote_count = (item.vote_count or 0) + 1
            voted = True
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info(f"Concurrent vote toggle on item {item_id} by user {user_id}")
        item = await db.get(RankingItem, item_id)
        voted = await db.get(Vote, (user_id, item_id)) is not None
        return schemas.VoteResult(voted=voted, newVoteCount=item.vote_count if item else 0)

    return schemas.VoteResult(voted=voted, newVoteCount=item.vote_count)
