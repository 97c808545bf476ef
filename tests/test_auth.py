import asyncio
import logging

import pytest

from app.core.auth import can_moderate, get_trust_level, hash_token, require_moderator, require_user
from app.core.errors import ForbiddenError, UnauthorizedError
from app.db.models import User


def test_trust_level_boundaries():
    assert get_trust_level(0) == "New User"
    assert get_trust_level(10) == "New User"
    assert get_trust_level(11) == "Contributor"
    assert get_trust_level(50) == "Contributor"
    assert get_trust_level(51) == "Trusted"
    assert get_trust_level(200) == "Trusted"
    assert get_trust_level(201) == "Expert"


def test_negative_trust_is_new_user():
    assert get_trust_level(-6) == "New User"


def test_moderator_roles():
    assert can_moderate("MODERATOR")
    assert can_moderate("ADMIN")
    assert not can_moderate("USER")
    assert not can_moderate(None)


def test_tokens_are_stored_hashed():
    digest = hash_token("secret-token")
    assert digest != "secret-token"
    assert len(digest) == 64
    assert hash_token("secret-token") == digest


def test_require_user_rejects_anonymous():
    with pytest.raises(UnauthorizedError):
        asyncio.run(require_user(None))


def test_require_moderator_checks_role():
    user = User(id="u", role="USER")
    with pytest.raises(ForbiddenError):
        asyncio.run(require_moderator(user))

    moderator = User(id="m", role="MODERATOR")
    assert asyncio.run(require_moderator(moderator)) is moderator


def test_moderator_denial_is_logged_with_user_and_role(caplog):
    user = User(id="user-42", role="USER")

    with caplog.at_level(logging.WARNING, logger="app.core.auth"):
        with pytest.raises(ForbiddenError):
            asyncio.run(require_moderator(user))

    assert "User user-42 (role=USER) denied moderator access" in caplog.text
