"""Predicates over :class:`TelegramUpdate` for handler chains and waiters."""

from __future__ import annotations

import re
from collections.abc import Callable

from .telegram.types import TelegramUpdate, UpdateKind

Predicate = Callable[[TelegramUpdate], bool]

__all__ = [
    "Predicate",
    "all_of",
    "any_of",
    "callback_data",
    "chat",
    "command",
    "is_callback_query",
    "is_message",
    "kind",
    "match_all",
    "negate",
    "text_equals",
    "text_matches",
]


def match_all(_update: TelegramUpdate) -> bool:
    return True


def kind(*kinds: UpdateKind) -> Predicate:
    wanted = frozenset(kinds)

    def predicate(update: TelegramUpdate) -> bool:
        return update.kind in wanted

    return predicate


is_message = kind(UpdateKind.MESSAGE)
is_callback_query = kind(UpdateKind.CALLBACK_QUERY)


def chat(*chat_ids: int) -> Predicate:
    wanted = frozenset(chat_ids)

    def predicate(update: TelegramUpdate) -> bool:
        return update.chat_id in wanted

    return predicate


def text_equals(value: str, *, ignore_case: bool = False) -> Predicate:
    expected = value.casefold() if ignore_case else value

    def predicate(update: TelegramUpdate) -> bool:
        text = update.text
        if text is None:
            return False
        return (text.casefold() if ignore_case else text) == expected

    return predicate


def text_matches(pattern: str | re.Pattern[str]) -> Predicate:
    regex = re.compile(pattern) if isinstance(pattern, str) else pattern

    def predicate(update: TelegramUpdate) -> bool:
        text = update.text
        return text is not None and regex.search(text) is not None

    return predicate


def command(name: str, *, bot_username: str | None = None) -> Predicate:
    """Match ``/name`` and ``/name@bot_username`` as the first token."""
    name = name.lstrip("/").lower()
    username = bot_username.lstrip("@").lower() if bot_username else None

    def predicate(update: TelegramUpdate) -> bool:
        text = update.text
        if not text:
            return False
        stripped = text.lstrip()
        if not stripped.startswith("/"):
            return False
        token = stripped.split(maxsplit=1)[0][1:]
        cmd, _, target = token.partition("@")
        if cmd.lower() != name:
            return False
        if target and username is not None and target.lower() != username:
            return False
        return True

    return predicate


def callback_data(value: str) -> Predicate:
    def predicate(update: TelegramUpdate) -> bool:
        query = update.callback_query
        return query is not None and query.data == value

    return predicate


def all_of(*predicates: Predicate) -> Predicate:
    items = tuple(predicates)

    def predicate(update: TelegramUpdate) -> bool:
        return all(p(update) for p in items)

    return predicate


def any_of(*predicates: Predicate) -> Predicate:
    items = tuple(predicates)

    def predicate(update: TelegramUpdate) -> bool:
        return any(p(update) for p in items)

    return predicate


def negate(inner: Predicate) -> Predicate:
    def predicate(update: TelegramUpdate) -> bool:
        return not inner(update)

    return predicate
