# src/crewtasks/ui/theme.py

"""ANSI style helpers for the console board.

Styles are plain SGR escape codes; a disabled Theme renders every helper as an
empty string so output stays readable when piped or under NO_COLOR.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass


def _code(part: str) -> str:
    return f"\033[{part}m"


@dataclass(frozen=True, slots=True)
class Theme:
    enabled: bool = True

    @classmethod
    def detect(cls, want_color: bool = True) -> Theme:
        return cls(enabled=want_color and sys.stdout.isatty())

    def _wrap(self, part: str, text: str) -> str:
        if not self.enabled or not text:
            return text
        return f"{_code(part)}{text}{_code('0')}"

    def bold(self, text: str) -> str:
        return self._wrap("1", text)

    def dim(self, text: str) -> str:
        return self._wrap("2", text)

    def strike(self, text: str) -> str:
        return self._wrap("9", text)

    def done(self, text: str) -> str:
        """Dimmed and struck through."""
        return self._wrap("2;9", text)

    def priority(self, text: str) -> str:
        return self._wrap("1;38;5;208", text)

    def review(self, text: str) -> str:
        return self._wrap("38;5;141", text)

    def accent(self, text: str) -> str:
        return self._wrap("38;5;68", text)

    def ok(self, text: str) -> str:
        return self._wrap("32", text)

    def warn(self, text: str) -> str:
        return self._wrap("33", text)

    def error(self, text: str) -> str:
        return self._wrap("31", text)

    def selected(self, text: str) -> str:
        return self._wrap("7", text)


PLAIN = Theme(enabled=False)
