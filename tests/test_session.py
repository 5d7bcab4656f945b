"""Tests for bearer token persistence."""

from core.session import TokenStore


class TestTokenStore:
    def test_save_load_clear(self, tmp_path, monkeypatch):
        monkeypatch.setattr("core.session.API_TOKEN", "")
        tokens = TokenStore(tmp_path / "session" / "token")
        assert tokens.load() is None

        tokens.save("abc123")
        assert tokens.load() == "abc123"

        tokens.clear()
        assert tokens.load() is None
        tokens.clear()

    def test_falls_back_to_environment_token(self, tmp_path, monkeypatch):
        monkeypatch.setattr("core.session.API_TOKEN", "from-env")
        assert TokenStore(tmp_path / "missing").load() == "from-env"
