"""Unit tests for the password policy and email format checks."""

import pytest

from authapi.services.credentials.policy import PasswordPolicy, email_errors


class TestPasswordPolicy:
    @pytest.fixture()
    def policy(self):
        return PasswordPolicy()

    def test_accepts_strong_password(self, policy):
        assert policy.violations("SomePassword1") == []

    @pytest.mark.parametrize(
        "password, fragment",
        [
            ("Sh0rt", "at least 8"),
            ("alllowercase1", "uppercase"),
            ("ALLUPPERCASE1", "lowercase"),
            ("NoDigitsHere", "digit"),
            ("A1" + "a" * 200, "at most 128"),
        ],
    )
    def test_reports_each_rule(self, policy, password, fragment):
        problems = policy.violations(password)
        assert any(fragment in p for p in problems)

    @pytest.mark.parametrize("password", ["", None, 12345678])
    def test_missing_password(self, policy, password):
        assert policy.violations(password) == ["Password is required."]

    def test_from_config_relaxes_rules(self):
        policy = PasswordPolicy.from_config(
            {"PASSWORD_MIN_LENGTH": 4, "PASSWORD_REQUIRE_UPPER": False, "PASSWORD_REQUIRE_DIGIT": False}
        )
        assert policy.violations("abcd") == []


@pytest.mark.parametrize("email", ["jo@example.com", "  jo.doe+tag@example.co.uk "])
def test_email_errors_accepts_valid(email):
    assert email_errors(email) == []


@pytest.mark.parametrize("email", ["", "   ", None, "jo", "jo@", "@example.com", "jo@@example.com"])
def test_email_errors_rejects_invalid(email):
    assert email_errors(email)


def test_email_errors_rejects_overlong():
    assert email_errors("a" * 250 + "@example.com") == ["Email must be at most 254 characters."]
