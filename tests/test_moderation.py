import asyncio

import pytest

from app.core.errors import ForbiddenError, NotFoundError, ValidationFailedError
from app.db.models import Clip, User
from app.services.moderation_service import moderate_clip


def _users():
    moderator = User(id="mod", role="MODERATOR", trust_score=0)
    submitter = User(id="sub", role="USER", trust_score=20)
    return moderator, submitter


def _pending_clip():
    return Clip(
        id="clip-1",
        slug="mob-100-percent",
        title="Mob 100%",
        duration=30,
        submission_status="PENDING",
        submitted_by="sub",
    )


def test_approve_adds_trust(fake_db):
    moderator, submitter = _users()
    clip = _pending_clip()
    db = fake_db(moderator, submitter, clip)

    result = asyncio.run(moderate_clip(db, "clip-1", moderator, "approve"))

    assert result.submissionStatus == "APPROVED"
    assert result.submitterTrustScore == 25
    assert submitter.trust_score == 25
    assert clip.moderated_by == "mod"
    assert clip.moderated_at is not None
    assert db.commits == 1


def test_reject_subtracts_trust_and_keeps_reason(fake_db):
    moderator, submitter = _users()
    clip = _pending_clip()
    db = fake_db(moderator, submitter, clip)

    result = asyncio.run(moderate_clip(db, "clip-1", moderator, "reject", reason="Over 45 seconds"))

    assert result.submissionStatus == "REJECTED"
    assert submitter.trust_score == 18
    assert clip.rejection_reason == "Over 45 seconds"


def test_missing_clip_changes_nothing(fake_db):
    moderator, submitter = _users()
    db = fake_db(moderator, submitter)

    with pytest.raises(NotFoundError):
        asyncio.run(moderate_clip(db, "missing", moderator, "approve"))

    assert submitter.trust_score == 20
    assert db.commits == 0


def test_regular_user_cannot_moderate(fake_db):
    _, submitter = _users()
    clip = _pending_clip()
    db = fake_db(submitter, clip)

    with pytest.raises(ForbiddenError):
        asyncio.run(moderate_clip(db, "clip-1", submitter, "approve"))

    assert clip.submission_status == "PENDING"


def test_admin_can_moderate(fake_db):
    admin = User(id="admin", role="ADMIN", trust_score=0)
    _, submitter = _users()
    db = fake_db(admin, submitter, _pending_clip())

    result = asyncio.run(moderate_clip(db, "clip-1", admin, "approve"))

    assert result.moderatedBy == "admin"


def test_already_moderated_clip_is_rejected(fake_db):
    moderator, submitter = _users()
    clip = _pending_clip()
    clip.submission_status = "APPROVED"
    db = fake_db(moderator, submitter, clip)

    with pytest.raises(ValidationFailedError):
        asyncio.run(moderate_clip(db, "clip-1", moderator, "reject"))

    assert submitter.trust_score == 20


def test_unknown_action(fake_db):
    moderator, submitter = _users()
    db = fake_db(moderator, submitter, _pending_clip())

    with pytest.raises(ValidationFailedError):
        asyncio.run(moderate_clip(db, "clip-1", moderator, "escalate"))


def test_clip_without_submitter(fake_db):
    moderator, _ = _users()
    clip = _pending_clip()
    clip.submitted_by = None
    db = fake_db(moderator, clip)

    result = asyncio.run(moderate_clip(db, "clip-1", moderator, "approve"))

    assert result.submitterTrustScore is None
    assert clip.submission_status == "APPROVED"


def test_failed_commit_rolls_back(fake_db):
    moderator, submitter = _users()
    db = fake_db(moderator, submitter, _pending_clip(), commit_error=RuntimeError("db down"))

    with pytest.raises(RuntimeError):
        asyncio.run(moderate_clip(db, "clip-1", moderator, "approve"))

    assert db.rollbacks == 1
