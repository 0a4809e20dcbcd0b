"""
Unit tests for share_service: token lifecycle and token resolution.

DB-free. Resources are SimpleNamespace rows; the session is a MagicMock.
"""

from __future__ import annotations

import string
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from noteworthy.app.errors import AppError, ErrorCode
from noteworthy.app.services import share_service
from noteworthy.app.services.session_service import Identity

OWNER = Identity(user_id="owner", email="owner@example.com")


def _resource(is_public=False, token=None):
    return SimpleNamespace(id="n1", owner_id="owner", is_public=is_public, public_share_token=token)


def test_new_share_token_is_64_hex_chars():
    token = share_service.new_share_token()
    assert len(token) == 64
    assert set(token) <= set(string.hexdigits.lower())


def test_new_share_tokens_differ():
    assert share_service.new_share_token() != share_service.new_share_token()


# ═══════════════════════════════════════════════════════════════════════════
# apply_public_flag
# ═══════════════════════════════════════════════════════════════════════════

class TestApplyPublicFlag:

    def test_making_public_mints_a_token(self):
        resource = share_service.apply_public_flag(_resource(), True, lambda: "tok-1")
        assert resource.is_public is True
        assert resource.public_share_token == "tok-1"

    def test_making_public_again_keeps_the_token(self):
        factory = MagicMock(return_value="tok-2")
        resource = share_service.apply_public_flag(_resource(True, "tok-1"), True, factory)

        assert resource.public_share_token == "tok-1"
        factory.assert_not_called()

    def test_making_private_clears_the_token(self):
        resource = share_service.apply_public_flag(_resource(True, "tok-1"), False)
        assert resource.is_public is False
        assert resource.public_share_token is None

    def test_private_then_public_yields_a_new_link(self):
        resource = _resource(True, "tok-1")
        share_service.apply_public_flag(resource, False)
        share_service.apply_public_flag(resource, True, lambda: "tok-2")
        assert resource.public_share_token == "tok-2"


# ═══════════════════════════════════════════════════════════════════════════
# set_public
# ═══════════════════════════════════════════════════════════════════════════

def test_set_public_requires_manage_and_flushes():
    session = MagicMock()
    resource = _resource()

    with patch.object(share_service.access_service, "require_access", return_value=resource) as require:
        result = share_service.set_public("note", "n1", True, OWNER, session)

    require.assert_called_once_with(OWNER, share_service.Action.MANAGE, "note", "n1", session)
    session.flush.assert_called_once()
    assert result["id"] == "n1"
    assert result["is_public"] is True
    assert len(result["public_share_token"]) == 64


def test_set_public_propagates_denial():
    session = MagicMock()
    denial = AppError(ErrorCode.FORBIDDEN, "nope", 403)

    with patch.object(share_service.access_service, "require_access", side_effect=denial):
        with pytest.raises(AppError) as exc_info:
            share_service.set_public("folder", "f1", True, OWNER, session)

    assert exc_info.value.http_status == 403
    session.flush.assert_not_called()


# ═══════════════════════════════════════════════════════════════════════════
# resolve_by_token
# ═══════════════════════════════════════════════════════════════════════════

def test_resolve_by_token_returns_public_resource():
    session = MagicMock()
    resource = _resource(True, "tok-1")
    session.execute.return_value.scalar_one_or_none.return_value = resource

    assert share_service.resolve_by_token("note", "tok-1", session) is resource


def test_resolve_by_token_unknown_token_is_404():
    session = MagicMock()
    session.execute.return_value.scalar_one_or_none.return_value = None

    with pytest.raises(AppError) as exc_info:
        share_service.resolve_by_token("folder", "nope", session)

    err = exc_info.value
    assert err.code == ErrorCode.RESOURCE_NOT_FOUND
    assert err.http_status == 404


def test_resolve_by_token_empty_token_skips_query():
    session = MagicMock()

    with pytest.raises(AppError):
        share_service.resolve_by_token("note", "", session)

    session.execute.assert_not_called()
