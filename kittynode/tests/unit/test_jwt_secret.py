"""
Unit tests for the shared JWT secret.
"""

from kittynode.commands.jwt_secret import ensure_jwt_secret, is_valid_jwt_secret


class TestJwtSecret:
    def test_generates_64_hex_chars(self, home):
        secret = ensure_jwt_secret(home)
        assert len(secret) == 64
        assert is_valid_jwt_secret(secret)
        assert home.jwt_path.read_text() == secret

    def test_existing_secret_is_reused(self, home):
        first = ensure_jwt_secret(home)
        assert ensure_jwt_secret(home) == first

    def test_malformed_secret_is_regenerated(self, home):
        home.base.mkdir(parents=True)
        home.jwt_path.write_text("not-a-secret")
        secret = ensure_jwt_secret(home)
        assert secret != "not-a-secret"
        assert is_valid_jwt_secret(secret)

    def test_validation(self):
        assert is_valid_jwt_secret("a" * 64)
        assert not is_valid_jwt_secret("A" * 64)
        assert not is_valid_jwt_secret("a" * 63)
