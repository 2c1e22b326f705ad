"""DatabaseIdentityGateway tests."""
from datetime import datetime, timedelta, timezone

import pytest

from business.identity import (
    DatabaseIdentityGateway, hash_password, verify_password,
)
from database.errors import UnauthorizedError, ValidationError


@pytest.fixture
def identity(temp_db):
    return DatabaseIdentityGateway(temp_db)


@pytest.fixture
def registered(identity):
    return identity.register("Maria@Email.com", "segredo123", "Maria Santos")


class TestPasswordHashing:
    """passlib CryptContext helpers."""

    def test_hash_round_trip(self):
        hashed = hash_password("segredo123")
        assert hashed.startswith("$pbkdf2-sha256$")
        assert verify_password("segredo123", hashed)
        assert not verify_password("errada", hashed)

    def test_same_password_different_salt(self):
        assert hash_password("abc123") != hash_password("abc123")

    def test_malformed_hash(self):
        assert not verify_password("x", "not-a-hash")


class TestRegister:
    """User registration."""

    def test_register_normalises_email(self, registered):
        assert registered.email == "maria@email.com"
        assert registered.full_name == "Maria Santos"
        assert registered.to_dict() == {
            "id": registered.id, "email": "maria@email.com", "nome_completo": "Maria Santos",
        }

    def test_duplicate_email(self, identity, registered):
        with pytest.raises(ValidationError, match="已注册"):
            identity.register("maria@email.com", "outrasenha", "Outra Maria")

    def test_short_password(self, identity):
        with pytest.raises(ValidationError, match="密码"):
            identity.register("a@email.com", "123", "Ana")

    def test_missing_fields(self, identity):
        with pytest.raises(ValidationError, match="必填"):
            identity.register("", "segredo123", "Ana")
        with pytest.raises(ValidationError, match="必填"):
            identity.register("ana@email.com", "segredo123", None)
        with pytest.raises(ValidationError, match="必填"):
            identity.register("ana@email.com", "segredo123", "")


class TestLoginAndTokens:
    """Login, verify, refresh and logout."""

    def test_login_and_verify(self, identity, registered):
        session = identity.login("maria@email.com", "segredo123")
        assert session.user.id == registered.id
        assert len(session.access_token) == 64

        user = identity.verify(session.access_token)
        assert user.email == "maria@email.com"

    def test_wrong_password(self, identity, registered):
        with pytest.raises(UnauthorizedError):
            identity.login("maria@email.com", "errada")

    def test_unknown_user(self, identity):
        with pytest.raises(UnauthorizedError):
            identity.login("ninguem@email.com", "segredo123")

    def test_verify_unknown_token(self, identity):
        with pytest.raises(UnauthorizedError):
            identity.verify("deadbeef")

    def test_verify_expired_token(self, temp_db, registered):
        expired = DatabaseIdentityGateway(temp_db, access_ttl=timedelta(seconds=-1))
        session = expired.login("maria@email.com", "segredo123")
        with pytest.raises(UnauthorizedError, match="过期"):
            expired.verify(session.access_token)

    def test_expiry_is_naive_utc(self, identity, registered):
        session = identity.login("maria@email.com", "segredo123")
        assert session.expires_at.tzinfo is None
        expected = datetime.now(timezone.utc).replace(tzinfo=None) + identity.access_ttl
        assert abs(session.expires_at - expected) < timedelta(minutes=1)

    def test_refresh_rotates_tokens(self, identity, registered):
        session = identity.login("maria@email.com", "segredo123")
        renewed = identity.refresh(session.refresh_token)

        assert renewed.access_token != session.access_token
        assert identity.verify(renewed.access_token).id == registered.id
        with pytest.raises(UnauthorizedError):
            identity.verify(session.access_token)
        with pytest.raises(UnauthorizedError):
            identity.refresh(session.refresh_token)

    def test_logout_revokes_token(self, identity, registered):
        session = identity.login("maria@email.com", "segredo123")
        identity.logout(session.access_token)
        with pytest.raises(UnauthorizedError):
            identity.verify(session.access_token)

    def test_tokens_shared_between_gateways(self, temp_db, identity, registered):
        """Tokens live in the database, so another gateway instance accepts them."""
        session = identity.login("maria@email.com", "segredo123")
        other = DatabaseIdentityGateway(temp_db)
        assert other.verify(session.access_token).id == registered.id
