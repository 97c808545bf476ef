"""User collections: ordered, optionally public lists of clips.

A collection owned by someone else is reported as not found, so private
collections do not leak their existence. Clip positions are kept contiguous
from 0.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from app.core.errors import DuplicateError, NotFoundError, ValidationFailedError
from app.db import schemas
from app.db.filters import unique_slug
from app.db.models import Attribution, Clip, Collection, CollectionClip
from app.services.clip_service import clip_card

logger = logging.getLogger(__name__)

THUMBNAIL_COUNT = 4

# Members with everything a clip card needs
_DETAIL_OPTIONS = (
    joinedload(Collection.user),
    selectinload(Collection.clips).joinedload(CollectionClip.clip).joinedload(Clip.anime),
    selectinload(Collection.clips)
    .joinedload(CollectionClip.clip)
    .selectinload(Clip.attributions)
    .joinedload(Attribution.animator),
)


def _ordered(members) -> list[CollectionClip]:
    return sorted(members, key=lambda cc: cc.position)


def _summary(collection: Collection) -> schemas.CollectionSummary:
    members = _ordered(collection.clips)
    return schemas.CollectionSummary(
        id=collection.id,
        slug=collection.slug,
        name=collection.name,
        description=collection.description,
        isPublic=bool(collection.is_public),
        clipCount=len(members),
        thumbnails=[cc.clip.thumbnail_url for cc in members[:THUMBNAIL_COUNT] if cc.clip is not None],
        createdAt=collection.created_at,
    )


def _detail(collection: Collection) -> schemas.CollectionDetail:
    summary = _summary(collection)
    user = collection.user
    return schemas.CollectionDetail(
        **summary.model_dump(),
        user=schemas.UserRef(id=user.id, name=user.name, image=user.image) if user else None,
        clips=[
            clip_card(cc.clip, schema=schemas.CollectionClipItem, position=cc.position)
            for cc in _ordered(collection.clips)
            if cc.clip is not None
        ],
    )


def renumber(members) -> None:
    """Rewrite positions as 0..n-1 keeping the current order."""
    for position, member in enumerate(_ordered(members)):
        member.position = position


async def _owned_collection(
    db: AsyncSession, collection_id: str, user_id: str, *, with_clips: bool = False
) -> Collection:
    members = selectinload(Collection.clips)
    if with_clips:
        members = members.joinedload(CollectionClip.clip)
    collection = await db.get(Collection, collection_id, options=[members])
    if collection is None or collection.user_id != user_id:
        raise NotFoundError("Collection")
    return collection


async def get_user_collections(db: AsyncSession, user_id: str) -> list[schemas.CollectionSummary]:
    result = await db.execute(
        select(Collection)
        .options(selectinload(Collection.clips).joinedload(CollectionClip.clip))
        .where(Collection.user_id == user_id)
        .order_by(Collection.updated_at.desc())
    )
    return [_summary(c) for c in result.scalars().unique().all()]


async def get_collection(
    db: AsyncSession, collection_id: str, user_id: str
) -> schemas.CollectionDetail:
    """Owner view of a collection by id."""
    result = await db.execute(
        select(Collection).options(*_DETAIL_OPTIONS).where(Collection.id == collection_id)
    )
    collection = result.unique().scalar_one_or_none()
    if collection is None or collection.user_id != user_id:
        raise NotFoundError("Collection")
    return _detail(collection)


async def get_collection_by_slug(
    db: AsyncSession, slug: str, viewer_id: str | None = None
) -> schemas.CollectionDetail:
    """Public collections, or private ones viewed by their owner."""
    result = await db.execute(
        select(Collection).options(*_DETAIL_OPTIONS).where(Collection.slug == slug)
    )
    collection = result.unique().scalar_one_or_none()
    if collection is None:
        raise NotFoundError("Collection")
    if not collection.is_public and collection.user_id != viewer_id:
        raise NotFoundError("Collection")
    return _detail(collection)


async def create_collection(
    db: AsyncSession, user_id: str, data: schemas.CollectionCreateRequest
) -> schemas.CollectionSummary:
    collection = Collection(
        slug=unique_slug(data.name),
        name=data.name,
        description=data.description,
        is_public=data.isPublic,
        user_id=user_id,
    )
    db.add(collection)
    await db.commit()
    logger.info(f"User {user_id} created collection {collection.slug}")
    return schemas.CollectionSummary(
        id=collection.id,
        slug=collection.slug,
        name=collection.name,
        description=collection.description,
        isPublic=bool(collection.is_public),
        clipCount=0,
        thumbnails=[],
        createdAt=collection.created_at,
    )


async def update_collection(
    db: AsyncSession,
    collection_id: str,
    user_id: str,
    data: schemas.CollectionUpdateRequest,
) -> schemas.CollectionSummary:
    collection = await _owned_collection(db, collection_id, user_id, with_clips=True)

    changes = data.model_dump(exclude_unset=True)
    if "name" in changes and changes["name"] is not None:
        collection.name = changes["name"]
    if "description" in changes:
        collection.description = changes["description"]
    if "isPublic" in changes and changes["isPublic"] is not None:
        collection.is_public = changes["isPublic"]

    await db.commit()
    return _summary(collection)


async def delete_collection(db: AsyncSession, collection_id: str, user_id: str) -> None:
    collection = await _owned_collection(db, collection_id, user_id)
    await db.delete(collection)
    await db.commit()
    logger.info(f"User {user_id} deleted collection {collection_id}")


async def add_clip_to_collection(
    db: AsyncSession, collection_id: str, clip_id: str, user_id: str
) -> schemas.CollectionOrder:
    """Append a clip at the end of the collection."""
    collection = await _owned_collection(db, collection_id, user_id)

    if await db.get(Clip, clip_id) is None:
        raise NotFoundError("Clip")
    if any(cc.clip_id == clip_id for cc in collection.clips):
        raise DuplicateError("Clip in collection")

    collection.clips.append(
        CollectionClip(clip_id=clip_id, position=len(collection.clips))
    )
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise DuplicateError("Clip in collection")

    return schemas.CollectionOrder(clipIds=[cc.clip_id for cc in _ordered(collection.clips)])


async def remove_clip_from_collection(
    db: AsyncSession, collection_id: str, clip_id: str, user_id: str
) -> schemas.CollectionOrder:
    collection = await _owned_collection(db, collection_id, user_id)

    member = next((cc for cc in collection.clips if cc.clip_id == clip_id), None)
    if member is None:
        raise NotFoundError("Clip")

    collection.clips.remove(member)
    await db.delete(member)
    renumber(collection.clips)
    await db.commit()

    return schemas.CollectionOrder(clipIds=[cc.clip_id for cc in _ordered(collection.clips)])


async def reorder_collection_clips(
    db: AsyncSession, collection_id: str, clip_ids: list[str], user_id: str
) -> schemas.CollectionOrder:
    """
    Set the display order. ``clip_ids`` must list every member exactly once;
    positions become 0..n-1 in that order.
    """
    collection = await _owned_collection(db, collection_id, user_id)

    members = {cc.clip_id: cc for cc in collection.clips}
    if len(clip_ids) != len(set(clip_ids)) or set(clip_ids) != set(members):
        raise ValidationFailedError(
            "clipIds must list every clip in the collection exactly once",
            details={"formErrors": [], "fieldErrors": {"clipIds": ["Does not match collection"]}},
        )

    for position, clip_id in enumerate(clip_ids):
        members[clip_id].position = position
    await db.commit()

    return schemas.CollectionOrder(clipIds=list(clip_ids))


async def get_clip_collection_ids(db: AsyncSession, clip_id: str, user_id: str) -> list[str]:
    """Ids of the user's collections that contain the clip."""
    result = await db.execute(
        select(CollectionClip.collection_id)
        .join(Collection, CollectionClip.collection_id == Collection.id)
        .where(CollectionClip.clip_id == clip_id, Collection.user_id == user_id)
    )
    return list(result.scalars().all())
