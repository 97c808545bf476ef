import asyncio

import pytest

from app.core.errors import ValidationFailedError
from app.services.search_service import search


class _UnusedSession:
    async def execute(self, statement):
        raise AssertionError("blank queries must not reach the database")


@pytest.mark.parametrize("q", ["   ", "\t\n"])
def test_blank_query_is_rejected(q):
    with pytest.raises(ValidationFailedError) as exc:
        asyncio.run(search(_UnusedSession(), q, index="CLIPS"))

    assert exc.value.details["fieldErrors"] == {"q": ["Search query cannot be blank"]}
