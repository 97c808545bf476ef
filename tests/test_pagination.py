from sqlalchemy.dialects.postgresql.asyncpg import dialect as asyncpg_dialect

from app.core.pagination import Page, get_pagination_params, offset_meta, page_meta, success
from app.services.clip_service import ClipFilters, build_clip_list_query


def _compile(query) -> str:
    return str(query.compile(dialect=asyncpg_dialect(), compile_kwargs={"literal_binds": True}))


def test_page_three_skips_two_pages():
    params = get_pagination_params(3, 20)
    assert params.page == 3
    assert params.limit == 20
    assert params.skip == 40


def test_defaults_and_clamping():
    assert get_pagination_params() == (1, 20, 0)
    assert get_pagination_params(0, 0) == (1, 1, 0)
    assert get_pagination_params(-4, 500).limit == 100
    assert get_pagination_params(2, 80, max_limit=50).skip == 50


def test_clip_query_applies_limit_and_offset():
    sql = _compile(build_clip_list_query(ClipFilters(), get_pagination_params(3, 20)))
    assert "LIMIT 20 OFFSET 40" in sql


def test_clip_query_only_lists_approved_clips():
    sql = _compile(build_clip_list_query(ClipFilters(), get_pagination_params(1, 20)))
    assert "clips.submission_status = 'APPROVED'" in sql


def test_clip_query_unknown_sort_falls_back_to_newest():
    sql = _compile(build_clip_list_query(
        ClipFilters(sort_by="DROP TABLE", sort_order="asc"), get_pagination_params(1, 20)
    ))
    assert "ORDER BY clips.created_at ASC" in sql


def test_page_meta():
    meta = page_meta(total=45, page=3, limit=20)
    assert meta == {
        "page": 3,
        "limit": 20,
        "total": 45,
        "totalPages": 3,
        "hasNext": False,
        "hasPrev": True,
    }
    assert page_meta(total=0, page=1, limit=20)["totalPages"] == 0
    assert page_meta(total=41, page=1, limit=20)["hasNext"] is True


def test_offset_meta():
    assert offset_meta(total=30, limit=12, offset=12)["hasMore"] is True
    assert offset_meta(total=24, limit=12, offset=12)["hasMore"] is False


def test_success_envelope_always_has_data():
    assert success() == {"success": True, "data": None}
    assert success([1, 2], pagination={"page": 1}) == {
        "success": True,
        "data": [1, 2],
        "pagination": {"page": 1},
    }


def test_page_to_response():
    body = Page(["x"], total=1, params=get_pagination_params(1, 20)).to_response()
    assert body["data"] == ["x"]
    assert body["pagination"]["totalPages"] == 1
