from datetime import date
from types import SimpleNamespace

from app.services.animator_service import active_years, build_timeline, pick_featured


def test_active_years():
    assert active_years(date(1952, 2, 5), date(2009, 7, 21)) == "1952-2009"
    assert active_years(date(1969, 1, 1), None) == "1969-present"
    assert active_years(None, date(1999, 1, 1)) == "?-1999"
    assert active_years(None, None) == "Unknown"


def test_timeline_groups_by_year_and_anime():
    rows = [
        (2016, "Mob Psycho 100", "mob-psycho-100", "KEY_ANIMATION"),
        (2009, "Fullmetal Alchemist: Brotherhood", "fmab", "KEY_ANIMATION"),
        (2016, "Mob Psycho 100", "mob-psycho-100", "ACTION_ANIMATION_DIRECTOR"),
        (2015, "One Punch Man", "one-punch-man", "KEY_ANIMATION"),
    ]

    timeline = build_timeline(rows)

    assert [y.year for y in timeline] == [2009, 2015, 2016]
    mob = timeline[-1].works
    assert len(mob) == 1
    assert mob[0].clipCount == 2
    assert mob[0].role == "KEY_ANIMATION"


def test_empty_timeline():
    assert build_timeline([]) == []


def _animator(animator_id):
    return SimpleNamespace(id=animator_id)


def test_pick_featured_rotates_by_week():
    candidates = [
        (_animator("a"), 10, 0),  # 20
        (_animator("b"), 1, 30),  # 32
        (_animator("c"), 0, 5),   # 5
    ]

    assert pick_featured(candidates, week=0)[0].id == "b"
    assert pick_featured(candidates, week=1)[0].id == "a"
    assert pick_featured(candidates, week=2)[0].id == "c"
    assert pick_featured(candidates, week=3)[0].id == "b"


def test_pick_featured_only_rotates_through_top_ten():
    candidates = [(_animator(f"a{i:02d}"), 0, 100 - i) for i in range(15)]

    picked = {pick_featured(candidates, week)[0].id for week in range(1, 53)}

    assert picked == {f"a{i:02d}" for i in range(10)}


def test_pick_featured_without_candidates():
    assert pick_featured([], week=12) is None
