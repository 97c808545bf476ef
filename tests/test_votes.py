import asyncio

import pytest

from app.core.errors import NotFoundError
from app.db.models import RankingItem
from app.services.ranking_service import toggle_vote


def _item(votes=10):
    return RankingItem(id="item-1", list_id="list-1", rank=1, vote_count=votes)


def test_vote_then_unvote(fake_db):
    item = _item()
    db = fake_db(item)

    voted = asyncio.run(toggle_vote(db, "user-1", "item-1", list_id="list-1"))
    assert voted.voted is True
    assert voted.newVoteCount == 11

    unvoted = asyncio.run(toggle_vote(db, "user-1", "item-1", list_id="list-1"))
    assert unvoted.voted is False
    assert unvoted.newVoteCount == 10
    assert db.commits == 2


def test_item_from_another_list_is_not_found(fake_db):
    item = _item()
    db = fake_db(item)

    with pytest.raises(NotFoundError):
        asyncio.run(toggle_vote(db, "user-1", "item-1", list_id="other-list"))

    assert item.vote_count == 10


def test_missing_item(fake_db):
    with pytest.raises(NotFoundError):
        asyncio.run(toggle_vote(fake_db(), "user-1", "item-1"))
