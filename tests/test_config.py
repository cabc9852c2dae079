from pathlib import Path

import pytest

from telepoll.config import (
    ENV_BOT_TOKEN,
    PollingSettings,
    load_settings,
    resolve_config_path,
)
from telepoll.errors import ConfigError


@pytest.fixture(autouse=True)
def _no_env_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(ENV_BOT_TOKEN, raising=False)


class TestLoadSettings:
    def test_load_from_explicit_path(self, tmp_path: Path) -> None:
        config_file = tmp_path / "telepoll.toml"
        config_file.write_text(
            'bot_token = "123:abc"\n'
            "webhook = false\n"
            "\n"
            "[polling]\n"
            "interval_s = 0.5\n"
            "limit = 20\n"
            'allowed_updates = ["message", "callback_query"]\n'
        )

        settings, path = load_settings(config_file)

        assert path == config_file
        assert settings.bot_token == "123:abc"
        assert settings.polling.interval_s == 0.5
        assert settings.polling.limit == 20
        assert settings.polling.timeout_s == 50
        assert settings.polling.allowed_updates == ["message", "callback_query"]

    def test_env_token_overrides_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        config_file = tmp_path / "telepoll.toml"
        config_file.write_text('bot_token = "from-file"')
        monkeypatch.setenv(ENV_BOT_TOKEN, " from-env ")

        settings, _ = load_settings(config_file)

        assert settings.bot_token == "from-env"

    def test_env_token_fills_missing_token(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        config_file = tmp_path / "telepoll.toml"
        config_file.write_text("[polling]\nlimit = 5\n")
        monkeypatch.setenv(ENV_BOT_TOKEN, "123:env")

        settings, _ = load_settings(config_file)

        assert settings.bot_token == "123:env"

    def test_missing_token_raises(self, tmp_path: Path) -> None:
        config_file = tmp_path / "telepoll.toml"
        config_file.write_text('api_base = "http://localhost"')

        with pytest.raises(ConfigError, match="Missing bot token"):
            load_settings(config_file)

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Missing config file"):
            load_settings(tmp_path / "nonexistent.toml")

    def test_malformed_toml_raises(self, tmp_path: Path) -> None:
        bad_file = tmp_path / "bad.toml"
        bad_file.write_text("invalid = [unclosed")

        with pytest.raises(ConfigError, match="Malformed TOML"):
            load_settings(bad_file)

    def test_path_exists_but_is_directory(self, tmp_path: Path) -> None:
        dir_path = tmp_path / "config_dir"
        dir_path.mkdir()

        with pytest.raises(ConfigError, match="Failed to read config file"):
            load_settings(dir_path)

    @pytest.mark.parametrize(
        "polling",
        ["limit = 0", "limit = 101", "interval_s = -1", "timeout_s = -5"],
    )
    def test_invalid_polling_values_raise(self, tmp_path: Path, polling: str) -> None:
        config_file = tmp_path / "telepoll.toml"
        config_file.write_text(f'bot_token = "123:abc"\n[polling]\n{polling}\n')

        with pytest.raises(ConfigError, match="Invalid config"):
            load_settings(config_file)

    def test_unknown_key_raises(self, tmp_path: Path) -> None:
        config_file = tmp_path / "telepoll.toml"
        config_file.write_text('bot_token = "123:abc"\npoling = 1\n')

        with pytest.raises(ConfigError, match="Invalid config"):
            load_settings(config_file)


class TestResolveConfigPath:
    def test_prefers_local_config(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        local = tmp_path / ".telepoll" / "telepoll.toml"
        local.parent.mkdir()
        local.write_text('bot_token = "123:abc"')
        monkeypatch.chdir(tmp_path)

        assert resolve_config_path() == local

    def test_missing_everywhere_raises(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr(
            "telepoll.config.HOME_CONFIG_PATH", tmp_path / "home" / "telepoll.toml"
        )

        with pytest.raises(ConfigError, match="Missing telepoll config"):
            resolve_config_path()


def test_polling_defaults() -> None:
    polling = PollingSettings()
    assert polling.interval_s == 0.0
    assert polling.limit == 100
    assert polling.timeout_s == 50
    assert polling.allowed_updates is None
    assert polling.drop_pending_updates is False
