"""Back-navigation history for followed links."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class NavEntry:
    """A document left by following a link, and where it was scrolled to."""

    path: str
    scroll_offset: float = 0


class NavigationHistory:
    """Stack of documents to return to."""

    def __init__(self) -> None:
        self._stack: list[NavEntry] = []

    def push(self, entry: NavEntry) -> None:
        self._stack.append(entry)

    def pop(self) -> Optional[NavEntry]:
        """Pop and return the most recent entry, or None if empty."""
        if self._stack:
            return self._stack.pop()
        return None

    def peek(self) -> Optional[NavEntry]:
        return self._stack[-1] if self._stack else None

    def clear(self) -> None:
        self._stack.clear()

    def __len__(self) -> int:
        return len(self._stack)

    def __bool__(self) -> bool:
        return bool(self._stack)
