import pytest
from pydantic import ValidationError

from connect4.logic.settings import MatchSettings
from connect4.server.settings import ArenaServerSettings


class TestArenaServerSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("CONNECT4_DATABASE_PATH", raising=False)
        settings = ArenaServerSettings()

        assert settings.max_queue_size == 25
        assert settings.inactivity_timeout_seconds == 60
        assert settings.points_per_win == 10
        assert settings.database_path == "backend/storage.db"
        assert settings.cors_origins == ["http://localhost:8712"]

    def test_ticket_secret_from_shared_variable(self, monkeypatch):
        monkeypatch.setenv("AUTH_TICKET_SECRET", "shared-secret")
        assert ArenaServerSettings().ticket_secret == "shared-secret"

    def test_missing_ticket_secret(self, monkeypatch):
        monkeypatch.delenv("AUTH_TICKET_SECRET", raising=False)
        with pytest.raises(ValidationError):
            ArenaServerSettings()

    def test_prefixed_environment(self, monkeypatch):
        monkeypatch.setenv("CONNECT4_MAX_QUEUE_SIZE", "4")
        monkeypatch.setenv("CONNECT4_INACTIVITY_TIMEOUT_SECONDS", "2.5")
        monkeypatch.setenv("CONNECT4_POINTS_PER_WIN", "3")

        settings = ArenaServerSettings()

        assert settings.max_queue_size == 4
        assert settings.inactivity_timeout_seconds == 2.5
        assert settings.points_per_win == 3

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("http://a.test,http://b.test", ["http://a.test", "http://b.test"]),
            ('["http://a.test"]', ["http://a.test"]),
            (" http://a.test , ", ["http://a.test"]),
        ],
    )
    def test_cors_origins_forms(self, monkeypatch, raw, expected):
        monkeypatch.setenv("CONNECT4_CORS_ORIGINS", raw)
        assert ArenaServerSettings().cors_origins == expected

    @pytest.mark.parametrize("raw", ["", "[1, 2]", "[not json"])
    def test_invalid_cors_origins(self, monkeypatch, raw):
        monkeypatch.setenv("CONNECT4_CORS_ORIGINS", raw)
        with pytest.raises(ValidationError):
            ArenaServerSettings()

    @pytest.mark.parametrize(
        ("name", "value"),
        [
            ("CONNECT4_MAX_QUEUE_SIZE", "0"),
            ("CONNECT4_INACTIVITY_TIMEOUT_SECONDS", "0"),
            ("CONNECT4_POINTS_PER_WIN", "-1"),
            ("CONNECT4_LEADERBOARD_SIZE", "500"),
        ],
    )
    def test_out_of_range_values_rejected(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)
        with pytest.raises(ValidationError):
            ArenaServerSettings()


class TestMatchSettings:
    def test_from_server_settings(self, monkeypatch):
        monkeypatch.setenv("CONNECT4_MAX_QUEUE_SIZE", "7")
        monkeypatch.setenv("CONNECT4_BOT_THINK_SECONDS", "0")
        monkeypatch.setenv("CONNECT4_HISTORY_SIZE", "5")

        settings = MatchSettings.from_server_settings(ArenaServerSettings())

        assert settings.max_queue_size == 7
        assert settings.bot_think_seconds == 0
        assert settings.history_size == 5
        assert settings.points_per_win == 10

    def test_frozen(self):
        settings = MatchSettings()
        with pytest.raises(ValidationError):
            settings.max_queue_size = 3

    def test_validation(self):
        with pytest.raises(ValidationError):
            MatchSettings(max_queue_size=0)
        with pytest.raises(ValidationError):
            MatchSettings(inactivity_timeout_seconds=-1)
