import asyncio

import pytest
from sqlalchemy.exc import IntegrityError

from app.core.errors import NotFoundError
from app.db.models import Animator, AnimatorFavorite, Clip, ClipFavorite
from app.services.animator_service import toggle_animator_favorite
from app.services.clip_service import is_clip_favorited, toggle_favorite


def _clip(favorites=3):
    return Clip(id="clip-1", slug="opm-boros", title="Boros", duration=40, favorite_count=favorites)


def test_toggle_adds_then_removes(fake_db):
    clip = _clip()
    db = fake_db(clip)

    first = asyncio.run(toggle_favorite(db, "user-1", "clip-1"))
    assert first.favorited is True
    assert clip.favorite_count == 4
    assert asyncio.run(is_clip_favorited(db, "user-1", "clip-1"))

    second = asyncio.run(toggle_favorite(db, "user-1", "clip-1"))
    assert second.favorited is False
    assert clip.favorite_count == 3
    assert not asyncio.run(is_clip_favorited(db, "user-1", "clip-1"))


def test_favorites_are_per_user(fake_db):
    clip = _clip(favorites=0)
    db = fake_db(clip)

    asyncio.run(toggle_favorite(db, "user-1", "clip-1"))
    asyncio.run(toggle_favorite(db, "user-2", "clip-1"))

    assert clip.favorite_count == 2
    assert asyncio.run(is_clip_favorited(db, "user-2", "clip-1"))


def test_count_never_goes_negative(fake_db):
    clip = _clip(favorites=0)
    db = fake_db(clip, ClipFavorite(user_id="user-1", clip_id="clip-1"))

    result = asyncio.run(toggle_favorite(db, "user-1", "clip-1"))

    assert result.favorited is False
    assert clip.favorite_count == 0


def test_missing_clip(fake_db):
    with pytest.raises(NotFoundError):
        asyncio.run(toggle_favorite(fake_db(), "user-1", "nope"))


def test_concurrent_insert_reports_stored_state(fake_db):
    error = IntegrityError("INSERT INTO clip_favorites", {}, Exception("duplicate key"))
    db = fake_db(_clip(), commit_error=error)

    result = asyncio.run(toggle_favorite(db, "user-1", "clip-1"))

    assert db.rollbacks == 1
    assert result.favorited is True


def test_animator_favorite_toggle(fake_db):
    animator = Animator(id="anim-1", slug="yutaka-nakamura", name="Yutaka Nakamura")
    db = fake_db(animator)

    assert asyncio.run(toggle_animator_favorite(db, "user-1", "anim-1")).favorited is True
    assert (AnimatorFavorite, ("user-1", "anim-1")) in db.rows
    assert asyncio.run(toggle_animator_favorite(db, "user-1", "anim-1")).favorited is False
    assert (AnimatorFavorite, ("user-1", "anim-1")) not in db.rows
