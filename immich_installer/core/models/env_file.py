"""
Environment store — an ordered, line-preserving view of a .env file.

One ``KEY=value`` assignment per line.  Lines starting with ``#`` are
comments; a comment that looks like an assignment (``# TZ=Etc/UTC``)
is a *disabled* key and can be re-enabled in place.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field


class EnvFileError(Exception):
    """Raised when a .env file breaks the one-assignment-per-key rule."""


_ASSIGN_RE = re.compile(r"^(\s*(?:export\s+)?)([A-Za-z_][A-Za-z0-9_]*)\s*=(.*)$")
_DISABLED_RE = re.compile(r"^\s*#\s*(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*=(.*)$")


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        value = value[1:-1]
    return value


@dataclass
class EnvironmentStore:
    lines: list[str] = field(default_factory=list)
    trailing_newline: bool = True

    @classmethod
    def parse(cls, text: str) -> "EnvironmentStore":
        store = cls(trailing_newline=text.endswith("\n") or not text)
        store.lines = text.split("\n") if text else []
        if text.endswith("\n"):
            store.lines.pop()

        seen: set[str] = set()
        for line in store.lines:
            m = _ASSIGN_RE.match(line)
            if not m:
                continue
            key = m.group(2)
            if key in seen:
                raise EnvFileError(f"Duplicate key in env file: {key}")
            seen.add(key)
        return store

    def render(self) -> str:
        text = "\n".join(self.lines)
        if self.trailing_newline and self.lines:
            text += "\n"
        return text

    def _find(self, key: str) -> int | None:
        for i, line in enumerate(self.lines):
            m = _ASSIGN_RE.match(line)
            if m and m.group(2) == key:
                return i
        return None

    def _find_disabled(self, key: str) -> int | None:
        for i, line in enumerate(self.lines):
            m = _DISABLED_RE.match(line)
            if m and m.group(1) == key:
                return i
        return None

    def get(self, key: str) -> str | None:
        """Value of an active key, or None if unset or disabled."""
        idx = self._find(key)
        if idx is None:
            return None
        m = _ASSIGN_RE.match(self.lines[idx])
        assert m is not None
        return _unquote(m.group(3))

    def disabled_value(self, key: str) -> str | None:
        """Value of a commented-out ``# KEY=value`` line, if present."""
        idx = self._find_disabled(key)
        if idx is None:
            return None
        m = _DISABLED_RE.match(self.lines[idx])
        assert m is not None
        return _unquote(m.group(2))

    def as_dict(self) -> dict[str, str]:
        result: dict[str, str] = {}
        for line in self.lines:
            m = _ASSIGN_RE.match(line)
            if m:
                result[m.group(2)] = _unquote(m.group(3))
        return result

    def set(self, key: str, value: str) -> bool:
        """Assign *key*, in place when possible.

        An active line is rewritten; otherwise a disabled ``# KEY=`` line is
        re-enabled; otherwise the assignment is appended.  Returns False
        when the key already held *value*.
        """
        idx = self._find(key)
        if idx is not None:
            m = _ASSIGN_RE.match(self.lines[idx])
            assert m is not None
            if _unquote(m.group(3)) == value:
                return False
            self.lines[idx] = f"{m.group(1)}{key}={value}"
            return True

        idx = self._find_disabled(key)
        if idx is not None:
            self.lines[idx] = f"{key}={value}"
            return True

        self.lines.append(f"{key}={value}")
        return True
