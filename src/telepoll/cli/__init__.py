from __future__ import annotations

import json
from functools import partial
from pathlib import Path

import anyio
import typer

from .. import __version__
from ..bot import create_interface
from ..config import TelepollSettings, load_settings
from ..errors import ConfigError, RemoteRejection, TransportError
from ..logging import get_logger, setup_logging
from ..telegram.client import TelegramClient
from ..telegram.types import TelegramUpdate

logger = get_logger(__name__)

_CONFIG_PATH_OPTION = typer.Option(
    None, "--config", help="Path to telepoll.toml (defaults to ./.telepoll or ~/.telepoll)."
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


def _load_settings_or_exit(config_path: Path | None) -> TelepollSettings:
    try:
        settings, _ = load_settings(config_path)
    except ConfigError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    return settings


def format_update(update: TelegramUpdate) -> str:
    return json.dumps(
        {
            "update_id": update.update_id,
            "kind": update.kind.value,
            "chat_id": update.chat_id,
            "sender_id": update.sender_id,
            "text": update.text,
        },
        ensure_ascii=False,
    )


async def _get_me(settings: TelepollSettings) -> dict | None:
    client = TelegramClient(settings.bot_token, api_base=settings.api_base)
    try:
        return await client.get_me()
    finally:
        await client.close()


async def _listen(settings: TelepollSettings, limit: int | None) -> None:
    seen = 0
    async with create_interface(settings) as bot:
        updates = bot.global_updates()
        bot.start_polling()
        async for update in updates:
            typer.echo(format_update(update))
            seen += 1
            if limit is not None and seen >= limit:
                break
        bot.stop_polling()


def me(config: Path | None = _CONFIG_PATH_OPTION) -> None:
    """Print the bot's getMe result."""
    settings = _load_settings_or_exit(config)
    try:
        result = anyio.run(_get_me, settings)
    except (TransportError, RemoteRejection) as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(json.dumps(result, ensure_ascii=False, indent=2))


def listen(
    config: Path | None = _CONFIG_PATH_OPTION,
    limit: int | None = typer.Option(
        None, "--limit", min=1, help="Exit after printing this many updates."
    ),
) -> None:
    """Poll for updates and print one JSON line per update."""
    settings = _load_settings_or_exit(config)
    if settings.webhook:
        typer.echo("error: webhook delivery is configured; polling is disabled", err=True)
        raise typer.Exit(code=1)
    try:
        anyio.run(partial(_listen, settings, limit))
    except KeyboardInterrupt:
        logger.info("cli.listen.interrupted")


def app_main(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show the version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    debug: bool = typer.Option(
        False,
        "--debug/--no-debug",
        help="Log Telegram requests and routing decisions to the console.",
    ),
) -> None:
    """Telepoll CLI."""
    setup_logging(debug=debug)


def create_app() -> typer.Typer:
    app = typer.Typer(
        add_completion=False,
        no_args_is_help=True,
        help="Long-polling update router for Telegram bots.",
    )
    app.command(name="me")(me)
    app.command(name="listen")(listen)
    app.callback()(app_main)
    return app


def main() -> None:
    app = create_app()
    app()


if __name__ == "__main__":
    main()
