import json
import logging
from pathlib import Path

import pytest
import structlog
from typer.testing import CliRunner

from telepoll import __version__, cli
from telepoll.config import ENV_BOT_TOKEN
from telepoll.telegram import decode_update
from tests.telegram_fakes import raw_inline, raw_message


@pytest.fixture(autouse=True)
def _reset_logging(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv(ENV_BOT_TOKEN, raising=False)
    yield
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()


def _write_config(tmp_path: Path, body: str = 'bot_token = "123:abc"\n') -> Path:
    config_file = tmp_path / "telepoll.toml"
    config_file.write_text(body)
    return config_file


def test_version_flag() -> None:
    result = CliRunner().invoke(cli.create_app(), ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_me_with_missing_config_exits(tmp_path: Path) -> None:
    result = CliRunner().invoke(
        cli.create_app(), ["me", "--config", str(tmp_path / "missing.toml")]
    )

    assert result.exit_code == 1


def test_me_prints_bot_identity(monkeypatch, tmp_path: Path) -> None:
    seen: list[str] = []

    async def _fake_get_me(settings):
        seen.append(settings.bot_token)
        return {"id": 1, "is_bot": True, "username": "telepoll_bot"}

    monkeypatch.setattr(cli, "_get_me", _fake_get_me)

    result = CliRunner().invoke(
        cli.create_app(), ["me", "--config", str(_write_config(tmp_path))]
    )

    assert result.exit_code == 0
    assert seen == ["123:abc"]
    assert '"username": "telepoll_bot"' in result.output


def test_listen_refuses_webhook_config(tmp_path: Path) -> None:
    config_file = _write_config(tmp_path, 'bot_token = "123:abc"\nwebhook = true\n')

    result = CliRunner().invoke(cli.create_app(), ["listen", "--config", str(config_file)])

    assert result.exit_code == 1


def test_format_update_message() -> None:
    update = decode_update(raw_message(7, 5, "hi there", sender_id=9))
    assert update is not None

    assert json.loads(cli.format_update(update)) == {
        "update_id": 7,
        "kind": "message",
        "chat_id": 5,
        "sender_id": 9,
        "text": "hi there",
    }


def test_format_update_without_chat() -> None:
    update = decode_update(raw_inline(3, "cats"))
    assert update is not None

    line = json.loads(cli.format_update(update))

    assert line["kind"] == "inline_query"
    assert line["chat_id"] is None
    assert line["text"] is None
