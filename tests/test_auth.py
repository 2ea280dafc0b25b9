"""Tests for the user directory."""

import json

import pytest

from font_evaluator.core.errors import AuthenticationError
from font_evaluator.services.auth import UserDirectory


@pytest.fixture
def users(tmp_path):
    path = tmp_path / "user.json"
    path.write_text(
        json.dumps(
            {
                "users": [
                    {"username": "alice", "password": "secret", "email": "alice@example.com"},
                    {"username": "bob", "password": "hunter2"},
                ]
            }
        )
    )
    return UserDirectory(path)


class TestUserDirectory:
    """Tests for UserDirectory.authenticate."""

    def test_valid_credentials(self, users):
        user = users.authenticate("alice", "secret")

        assert user == {"username": "alice", "email": "alice@example.com"}

    def test_wrong_password(self, users):
        with pytest.raises(AuthenticationError):
            users.authenticate("alice", "hunter2")

    def test_unknown_user(self, users):
        with pytest.raises(AuthenticationError, match="Invalid username or password"):
            users.authenticate("carol", "secret")

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            UserDirectory(tmp_path / "missing.json").authenticate("alice", "secret")
