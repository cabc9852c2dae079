from __future__ import annotations


class Cursor:
    """One plus the highest update id observed so far; never decreases."""

    __slots__ = ("_value",)

    def __init__(self, value: int = 0) -> None:
        if value < 0:
            raise ValueError("cursor cannot be negative")
        self._value = value

    @property
    def value(self) -> int:
        return self._value

    @property
    def offset(self) -> int | None:
        return self._value or None

    def advance(self, update_id: int) -> int:
        if update_id + 1 > self._value:
            self._value = update_id + 1
        return self._value

    def __int__(self) -> int:
        return self._value

    def __repr__(self) -> str:
        return f"Cursor({self._value})"
