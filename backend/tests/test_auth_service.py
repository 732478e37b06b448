# Overview: Pytest coverage for back-office users and password hashing.

import pytest

from storeledger.errors import NotFoundError, ValidationError
from storeledger.models import User
from storeledger.services import auth_service

# Low bcrypt cost keeps the suite fast
ROUNDS = 4


class TestPasswords:

    def test_hash_and_verify(self):
        hashed = auth_service.hash_password("correct horse", rounds=ROUNDS)
        assert hashed != "correct horse"
        assert auth_service.verify_password("correct horse", hashed)
        assert not auth_service.verify_password("wrong horse", hashed)

    def test_short_password_rejected(self):
        with pytest.raises(ValidationError):
            auth_service.hash_password("short", rounds=ROUNDS)

    def test_malformed_hash_does_not_verify(self):
        assert auth_service.verify_password("whatever1", "not-a-bcrypt-hash") is False


class TestUsers:

    def test_create_and_authenticate(self, db_session):
        user = auth_service.create_user("maria", "s3cret-pass", role="admin", rounds=ROUNDS)

        assert user.to_dict()["role"] == "admin"
        assert "password_hash" not in user.to_dict()
        assert auth_service.authenticate("maria", "s3cret-pass").id == user.id

    def test_wrong_password(self, db_session):
        auth_service.create_user("maria", "s3cret-pass", rounds=ROUNDS)
        with pytest.raises(ValidationError):
            auth_service.authenticate("maria", "nope-nope-nope")

    def test_unknown_user(self, db_session):
        with pytest.raises(NotFoundError):
            auth_service.authenticate("ghost", "whatever123")

    def test_duplicate_username(self, db_session):
        auth_service.create_user("maria", "s3cret-pass", rounds=ROUNDS)
        with pytest.raises(ValidationError):
            auth_service.create_user("maria", "another-pass", rounds=ROUNDS)
        assert db_session.query(User).count() == 1

    def test_invalid_role(self, db_session):
        with pytest.raises(ValidationError):
            auth_service.create_user("pablo", "s3cret-pass", role="owner", rounds=ROUNDS)

    def test_seed_default_users_is_idempotent(self, db_session):
        created = auth_service.seed_default_users(rounds=ROUNDS)
        assert sorted(u.username for u in created) == ["admin", "employee"]

        assert auth_service.seed_default_users(rounds=ROUNDS) == []
        assert db_session.query(User).count() == 2
        assert auth_service.authenticate("admin", "admin123").role == "admin"
