import pytest
from sqlalchemy import inspect


class FakeSession:
    """
    In-memory stand-in for AsyncSession covering the calls the toggle,
    moderation and collection services make: get/add/delete/commit/rollback.

    Rows are keyed by (model, primary key); composite keys are tuples in
    column order, matching AsyncSession.get.
    """

    def __init__(self, *objects, commit_error=None):
        self.rows = {}
        self.commits = 0
        self.rollbacks = 0
        self.commit_error = commit_error
        for obj in objects:
            self.add(obj)

    @staticmethod
    def _key(obj):
        values = inspect(obj).mapper.primary_key_from_instance(obj)
        return type(obj), values[0] if len(values) == 1 else tuple(values)

    async def get(self, model, key, **kwargs):
        return self.rows.get((model, key))

    def add(self, obj):
        self.rows[self._key(obj)] = obj

    async def delete(self, obj):
        self.rows.pop(self._key(obj), None)

    async def flush(self):
        pass

    async def commit(self):
        if self.commit_error is not None:
            error, self.commit_error = self.commit_error, None
            raise error
        self.commits += 1

    async def rollback(self):
        self.rollbacks += 1


@pytest.fixture
def fake_db():
    return FakeSession
