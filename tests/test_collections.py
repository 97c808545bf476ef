import asyncio

import pytest

from app.core.errors import DuplicateError, NotFoundError, ValidationFailedError
from app.db import schemas
from app.db.models import Clip, Collection, CollectionClip
from app.services.collection_service import (
    add_clip_to_collection, remove_clip_from_collection, renumber, reorder_collection_clips,
    update_collection,
)


def _clip(clip_id):
    return Clip(id=clip_id, slug=clip_id, title=clip_id.upper(), duration=20)


def _collection(*clip_ids, owner="owner"):
    collection = Collection(id="col-1", slug="favourite-cuts", name="Favourite cuts", user_id=owner)
    for position, clip_id in enumerate(clip_ids):
        collection.clips.append(CollectionClip(clip_id=clip_id, position=position))
    return collection


def _positions(collection):
    return sorted((cc.position, cc.clip_id) for cc in collection.clips)


def test_add_appends_at_end(fake_db):
    collection = _collection("a", "b")
    db = fake_db(collection, _clip("c"))

    order = asyncio.run(add_clip_to_collection(db, "col-1", "c", "owner"))

    assert order.clipIds == ["a", "b", "c"]
    assert _positions(collection) == [(0, "a"), (1, "b"), (2, "c")]


def test_add_duplicate_clip(fake_db):
    db = fake_db(_collection("a"), _clip("a"))

    with pytest.raises(DuplicateError):
        asyncio.run(add_clip_to_collection(db, "col-1", "a", "owner"))


def test_add_missing_clip(fake_db):
    db = fake_db(_collection())

    with pytest.raises(NotFoundError):
        asyncio.run(add_clip_to_collection(db, "col-1", "nope", "owner"))


def test_other_users_collection_is_not_found(fake_db):
    db = fake_db(_collection("a"), _clip("b"))

    with pytest.raises(NotFoundError) as exc:
        asyncio.run(add_clip_to_collection(db, "col-1", "b", "intruder"))

    assert exc.value.message == "Collection not found"


def test_reorder_sets_contiguous_positions(fake_db):
    collection = _collection("a", "b", "c")
    db = fake_db(collection)

    order = asyncio.run(reorder_collection_clips(db, "col-1", ["c", "a", "b"], "owner"))

    assert order.clipIds == ["c", "a", "b"]
    assert _positions(collection) == [(0, "c"), (1, "a"), (2, "b")]


@pytest.mark.parametrize("clip_ids", [["a", "b"], ["a", "b", "b"], ["a", "b", "z"]])
def test_reorder_requires_every_member_once(fake_db, clip_ids):
    collection = _collection("a", "b", "c")
    db = fake_db(collection)

    with pytest.raises(ValidationFailedError):
        asyncio.run(reorder_collection_clips(db, "col-1", clip_ids, "owner"))

    assert _positions(collection) == [(0, "a"), (1, "b"), (2, "c")]


def test_remove_renumbers_positions(fake_db):
    collection = _collection("a", "b", "c")
    db = fake_db(collection)

    order = asyncio.run(remove_clip_from_collection(db, "col-1", "b", "owner"))

    assert order.clipIds == ["a", "c"]
    assert _positions(collection) == [(0, "a"), (1, "c")]


def test_renumber_closes_gaps():
    members = [CollectionClip(clip_id="x", position=7), CollectionClip(clip_id="y", position=2)]

    renumber(members)

    assert sorted((m.position, m.clip_id) for m in members) == [(0, "y"), (1, "x")]


def test_update_keeps_member_thumbnails(fake_db):
    collection = _collection()
    for position, clip_id in enumerate(["b", "a", "c", "d", "e"]):
        clip = _clip(clip_id)
        clip.thumbnail_url = f"https://img.example/{clip_id}.jpg"
        collection.clips.append(CollectionClip(clip_id=clip_id, clip=clip, position=position))
    db = fake_db(collection)

    summary = asyncio.run(
        update_collection(db, "col-1", "owner", schemas.CollectionUpdateRequest(name="Best cuts"))
    )

    assert summary.name == "Best cuts"
    assert summary.clipCount == 5
    assert summary.thumbnails == [
        "https://img.example/b.jpg",
        "https://img.example/a.jpg",
        "https://img.example/c.jpg",
        "https://img.example/d.jpg",
    ]
    assert db.commits == 1
