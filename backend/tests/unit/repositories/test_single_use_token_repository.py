"""Unit tests for SingleUseTokenRepository."""

from datetime import UTC, datetime, timedelta

import pytest

from authapi.models.single_use_token import TokenType
from authapi.repositories.single_use_token import SingleUseTokenRepository
from tests.factories.single_use_token import SingleUseTokenFactory
from tests.factories.user import UserFactory

EMAIL = TokenType.EMAIL_VERIFICATION.value
TV = TokenType.TV_LOGIN.value


def _now() -> datetime:
    return datetime.now(UTC)


class TestSingleUseTokenRepository:
    @pytest.fixture()
    def repo(self):
        return SingleUseTokenRepository()

    def test_get_live_matches_code_and_type(self, repo, session):
        token = SingleUseTokenFactory(code="abc", token_type=TV)
        session.commit()

        assert repo.get_live("abc", TV, _now()).id == token.id
        assert repo.get_live("abc", EMAIL, _now()) is None
        assert repo.get_live("nope", TV, _now()) is None

    def test_expired_rows_are_not_live(self, repo, session):
        SingleUseTokenFactory(code="old", expires_at=_now() - timedelta(seconds=1))
        session.commit()

        assert repo.get_live("old", EMAIL, _now()) is None
        assert repo.code_is_live("old", _now()) is False

    def test_code_is_live_ignores_type(self, repo, session):
        SingleUseTokenFactory(code="shared", token_type=TV)
        session.commit()
        assert repo.code_is_live("shared", _now()) is True

    def test_delete_by_id_reports_rowcount(self, repo, session):
        token = SingleUseTokenFactory()
        session.commit()

        assert repo.delete_by_id(token.id) == 1
        assert repo.delete_by_id(token.id) == 0

    def test_delete_expired(self, repo, session):
        SingleUseTokenFactory(expires_at=_now() - timedelta(minutes=5))
        SingleUseTokenFactory(expires_at=_now() - timedelta(minutes=1))
        live = SingleUseTokenFactory()
        session.commit()

        assert repo.delete_expired(_now()) == 2
        assert repo.code_is_live(live.code, _now())

    def test_delete_for_user_optionally_by_type(self, repo, session):
        user = UserFactory()
        SingleUseTokenFactory(user=user, token_type=EMAIL)
        tv = SingleUseTokenFactory(user=user, token_type=TV)
        other = SingleUseTokenFactory()
        session.commit()

        assert repo.delete_for_user(user.id, EMAIL) == 1
        assert repo.code_is_live(tv.code, _now())
        assert repo.delete_for_user(user.id) == 1
        assert repo.code_is_live(other.code, _now())
