from __future__ import annotations

import os
import tomllib
from pathlib import Path

import msgspec

from .errors import ConfigError

ENV_BOT_TOKEN = "TELEPOLL_BOT_TOKEN"

LOCAL_CONFIG_NAME = Path(".telepoll") / "telepoll.toml"
HOME_CONFIG_PATH = Path.home() / ".telepoll" / "telepoll.toml"

DEFAULT_API_BASE = "https://api.telegram.org"


class PollingSettings(msgspec.Struct, forbid_unknown_fields=True, frozen=True):
    interval_s: float = 0.0
    limit: int = 100
    timeout_s: int = 50
    allowed_updates: list[str] | None = None
    drop_pending_updates: bool = False
    error_backoff_s: float = 2.0

    def __post_init__(self) -> None:
        if self.interval_s < 0:
            raise ValueError("interval_s must be >= 0")
        if not 1 <= self.limit <= 100:
            raise ValueError("limit must be between 1 and 100")
        if self.timeout_s < 0:
            raise ValueError("timeout_s must be >= 0")
        if self.error_backoff_s < 0:
            raise ValueError("error_backoff_s must be >= 0")


class TelepollSettings(msgspec.Struct, forbid_unknown_fields=True, frozen=True):
    bot_token: str = ""
    api_base: str = DEFAULT_API_BASE
    webhook: bool = False
    polling: PollingSettings = msgspec.field(default_factory=PollingSettings)


def _config_candidates() -> list[Path]:
    candidates = [Path.cwd() / LOCAL_CONFIG_NAME, HOME_CONFIG_PATH]
    if candidates[0] == candidates[1]:
        return [candidates[0]]
    return candidates


def _read_config(cfg_path: Path) -> dict:
    try:
        raw = cfg_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigError(f"Missing config file {cfg_path}.") from None
    except OSError as e:
        raise ConfigError(f"Failed to read config file {cfg_path}: {e}") from e
    try:
        return tomllib.loads(raw)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Malformed TOML in {cfg_path}: {e}") from None


def resolve_config_path(path: str | Path | None = None) -> Path:
    if path:
        return Path(path).expanduser()
    for candidate in _config_candidates():
        if candidate.is_file():
            return candidate
    raise ConfigError("Missing telepoll config.")


def validate_settings_data(data: dict, *, config_path: Path) -> TelepollSettings:
    try:
        settings = msgspec.convert(data, type=TelepollSettings)
    except (msgspec.ValidationError, ValueError) as e:
        raise ConfigError(f"Invalid config in {config_path}: {e}") from None

    env_token = os.environ.get(ENV_BOT_TOKEN)
    if env_token and env_token.strip():
        settings = msgspec.structs.replace(settings, bot_token=env_token.strip())
    if not settings.bot_token.strip():
        raise ConfigError(
            f"Missing bot token. Set {ENV_BOT_TOKEN} environment variable "
            f"or add `bot_token` to {config_path}."
        )
    return settings


def load_settings(path: str | Path | None = None) -> tuple[TelepollSettings, Path]:
    cfg_path = resolve_config_path(path)
    data = _read_config(cfg_path)
    return validate_settings_data(data, config_path=cfg_path), cfg_path
