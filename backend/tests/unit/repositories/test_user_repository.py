"""Unit tests for UserRepository."""

import pytest

from authapi.repositories.user import UserRepository
from tests.factories.user import OAuthIdentityFactory, UserFactory


class TestUserRepository:
    """Ensure ``UserRepository`` performs core persistence operations."""

    @pytest.fixture()
    def repo(self):
        return UserRepository()

    def test_get_by_email_is_exact_and_normalised(self, repo, session):
        u = UserFactory(email="alice@example.com")
        session.commit()

        assert repo.get_by_email("  ALICE@example.com ").id == u.id
        assert repo.get_by_email("alice@example") is None
        assert repo.get_by_email("alice") is None

    def test_exists_by_email_with_exclusion(self, repo, session):
        u = UserFactory(email="bob@example.com")
        session.commit()

        assert repo.exists_by_email("bob@example.com")
        assert not repo.exists_by_email("bob@example.com", exclude_id=u.id)
        assert not repo.exists_by_email("nonexistent@example.com")

    def test_get_by_oauth_profile(self, repo, session):
        identity = OAuthIdentityFactory(provider="twitch", profile_id="t-9")
        session.commit()

        owner = repo.get_by_oauth_profile("twitch", "t-9")
        assert owner is not None and owner.id == identity.user_id
        assert repo.get_by_oauth_profile("discord", "t-9") is None

    def test_link_identity_appends(self, repo, session):
        u = UserFactory()
        repo.link_identity(u, "discord", "d-1")
        repo.link_identity(u, "twitch", "t-1")
        session.commit()
        session.expire_all()

        assert [(i.provider, i.profile_id) for i in repo.get(u.id).oauth_identities] == [
            ("discord", "d-1"),
            ("twitch", "t-1"),
        ]

    def test_assign_updates_hashes_password(self, repo, session):
        u = UserFactory()
        session.commit()
        old_hash = u.password_hash

        repo.assign_updates(u, {"password": "N3wPassword"})
        session.commit()

        refreshed = repo.get(u.id)
        assert refreshed.password_hash != old_hash
        assert refreshed.verify_password("N3wPassword")

    def test_assign_updates_rejects_unknown_fields(self, repo, session):
        u = UserFactory()
        with pytest.raises(ValueError):
            repo.assign_updates(u, {"password_hash": "x"})
