from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from app.services.trending import (
    TrendingWeights, age_in_hours, calculate_trending_score, rank_trending,
)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _clip(clip_id, views=0, favorites=0, hours_old=0):
    return SimpleNamespace(
        id=clip_id,
        view_count=views,
        favorite_count=favorites,
        created_at=NOW - timedelta(hours=hours_old),
    )


def test_no_engagement_scores_zero():
    assert calculate_trending_score(0, 0, 0, NOW, now=NOW) == 0


def test_single_view_contributes_nothing():
    # log10(1) == 0
    assert calculate_trending_score(1, 0, 0, NOW, now=NOW) == 0


def test_fresh_clip_uses_age_offset():
    # 100 views, brand new: log10(100) / 2 ** 1.8
    expected = 2.0 / (2.0 ** 1.8)
    assert abs(calculate_trending_score(100, 0, 0, NOW, now=NOW) - expected) < 1e-9


def test_newer_clip_outranks_identical_older_clip():
    newer = calculate_trending_score(1000, 10, 5, NOW - timedelta(hours=1), now=NOW)
    older = calculate_trending_score(1000, 10, 5, NOW - timedelta(days=3), now=NOW)
    assert newer > older


def test_score_decays_monotonically_with_age():
    scores = [
        calculate_trending_score(500, 20, 3, NOW - timedelta(hours=h), now=NOW)
        for h in (0, 1, 6, 24, 72, 240)
    ]
    assert scores == sorted(scores, reverse=True)


def test_favorites_weigh_more_than_comments():
    by_favorite = calculate_trending_score(0, 1, 0, NOW, now=NOW)
    by_comment = calculate_trending_score(0, 0, 1, NOW, now=NOW)
    assert by_favorite > by_comment > 0


def test_future_created_at_is_treated_as_brand_new():
    assert age_in_hours(NOW + timedelta(hours=5), NOW) == 0
    future = calculate_trending_score(100, 1, 0, NOW + timedelta(hours=5), now=NOW)
    fresh = calculate_trending_score(100, 1, 0, NOW, now=NOW)
    assert future == fresh


def test_naive_timestamps_are_read_as_utc():
    naive = (NOW - timedelta(hours=3)).replace(tzinfo=None)
    assert age_in_hours(naive, NOW) == 3


def test_custom_weights_change_decay():
    slow = TrendingWeights(gravity=1.0)
    fast = TrendingWeights(gravity=2.5)
    created = NOW - timedelta(hours=10)
    assert (
        calculate_trending_score(100, 5, 0, created, now=NOW, weights=slow)
        > calculate_trending_score(100, 5, 0, created, now=NOW, weights=fast)
    )


def test_rank_trending_orders_by_score():
    hot = _clip("a", views=1000, favorites=50, hours_old=2)
    stale = _clip("b", views=1000, favorites=50, hours_old=200)
    quiet = _clip("c", views=10, hours_old=2)

    ranked = rank_trending([(stale, 0), (quiet, 0), (hot, 0)], now=NOW)

    assert [s.clip.id for s in ranked] == ["a", "c", "b"]
    assert ranked[0].score > ranked[1].score > ranked[2].score


def test_rank_trending_counts_comments():
    plain = _clip("a", views=100, hours_old=5)
    discussed = _clip("b", views=100, hours_old=5)

    ranked = rank_trending([(plain, 0), (discussed, 4)], now=NOW)

    assert ranked[0].clip.id == "b"
    assert ranked[0].comment_count == 4


def test_rank_trending_ties_prefer_newer_then_id():
    # Zero-engagement clips all score 0
    old = _clip("a", hours_old=48)
    new_b = _clip("b", hours_old=1)
    new_c = _clip("c", hours_old=1)

    ranked = rank_trending([(old, 0), (new_c, 0), (new_b, 0)], now=NOW)

    assert [s.clip.id for s in ranked] == ["b", "c", "a"]
