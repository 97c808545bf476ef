import asyncio

from sqlalchemy.dialects.postgresql.asyncpg import dialect as asyncpg_dialect

from app.db.models import Animator, AnimatorRelation
from app.services.relations_service import get_relation_stats, get_relations_grouped


class _Result:
    def __init__(self, value):
        self.value = value

    def scalars(self):
        return self

    def all(self):
        return list(self.value)

    def scalar(self):
        return self.value


class _QueuedSession:
    """Answers each execute() with the next queued value and keeps the SQL it was sent."""

    def __init__(self, *values):
        self.values = list(values)
        self.statements = []

    async def execute(self, statement):
        self.statements.append(
            str(statement.compile(dialect=asyncpg_dialect(), compile_kwargs={"literal_binds": True}))
        )
        return _Result(self.values.pop(0))


def _animator(animator_id):
    return Animator(id=animator_id, slug=f"slug-{animator_id}", name=f"Animator {animator_id}")


def _relation(mentor, student, relation_type):
    return AnimatorRelation(
        mentor_id=mentor.id, student_id=student.id, mentor=mentor, student=student,
        relation_type=relation_type,
    )


def test_grouped_relations_resolve_colleagues_to_the_other_end():
    root, teacher, pupil = _animator("root"), _animator("teacher"), _animator("pupil")
    left, right = _animator("left"), _animator("right")
    db = _QueuedSession(
        [_relation(teacher, root, "mentor")],
        [_relation(root, pupil, "influenced_by")],
        # Colleague edges stored in either direction
        [_relation(left, root, "colleague"), _relation(root, right, "colleague")],
        # Shared works, one count per listed animator
        4, 0, 2, 7,
    )

    grouped = asyncio.run(get_relations_grouped(db, "root"))

    assert [(m.id, m.relationType, m.sharedWorksCount) for m in grouped.mentors] == [
        ("teacher", "mentor", 4)
    ]
    assert [(s.id, s.relationType, s.sharedWorksCount) for s in grouped.students] == [
        ("pupil", "influenced_by", 0)
    ]
    assert [(c.id, c.relationType, c.sharedWorksCount) for c in grouped.colleagues] == [
        ("left", "colleague", 2),
        ("right", "colleague", 7),
    ]


def test_grouped_relations_keep_lineage_and_colleagues_apart():
    db = _QueuedSession([], [], [])

    grouped = asyncio.run(get_relations_grouped(db, "root"))

    assert grouped.mentors == grouped.students == grouped.colleagues == []
    mentor_sql, student_sql, colleague_sql = db.statements
    assert "relation_type IN ('mentor', 'influenced_by')" in mentor_sql
    assert "student_id = 'root'" in mentor_sql
    assert "relation_type IN ('mentor', 'influenced_by')" in student_sql
    assert "mentor_id = 'root'" in student_sql
    assert "relation_type = 'colleague'" in colleague_sql


def test_relation_stats_total_is_sum_of_counts():
    db = _QueuedSession(2, 3, 1)

    stats = asyncio.run(get_relation_stats(db, "root"))

    assert stats.model_dump() == {
        "mentorCount": 2,
        "studentCount": 3,
        "colleagueCount": 1,
        "totalConnections": 6,
    }
    mentor_sql, student_sql, _ = db.statements
    assert "relation_type IN ('mentor', 'influenced_by')" in mentor_sql
    assert "relation_type IN ('mentor', 'influenced_by')" in student_sql


def test_relation_stats_treat_missing_counts_as_zero():
    stats = asyncio.run(get_relation_stats(_QueuedSession(None, None, None), "root"))

    assert stats.totalConnections == 0
