"""
Reverse-video highlighting of the focused link inside ANSI-styled text.

The rendered document already carries color escapes, so labels are searched
in the printable text only and the match is mapped back to positions in the
styled string.
"""

from __future__ import annotations

from typing import Optional, Sequence

from links import FollowableLink

ESC = "\x1b"
REVERSE_ON = "\x1b[7m"
REVERSE_OFF = "\x1b[27m"


def printable_text_and_offsets(styled: str) -> tuple[str, list[int]]:
    """
    Strip ``ESC [ ... final`` sequences from ``styled``.

    Returns the printable text and, for each printable character, its index
    in ``styled``, followed by one sentinel entry equal to ``len(styled)``.
    """
    chars: list[str] = []
    offsets: list[int] = []
    in_escape = False
    i = 0
    n = len(styled)

    while i < n:
        ch = styled[i]
        if in_escape:
            # Final byte 0x40-0x7E closes the sequence
            if "\x40" <= ch <= "\x7e":
                in_escape = False
            i += 1
            continue

        if ch == ESC and i + 1 < n and styled[i + 1] == "[":
            in_escape = True
            i += 2
            continue

        chars.append(ch)
        offsets.append(i)
        i += 1

    offsets.append(n)
    return "".join(chars), offsets


def link_spans(styled: str, links: Sequence[FollowableLink]) -> list[Optional[tuple[int, int]]]:
    """
    Locate each link label in ``styled``, in order.

    Labels are matched left to right with a cursor that only moves forward,
    so repeated labels land on successive occurrences. Each entry is the
    ``(start, end)`` slice of ``styled`` covering the label, or None when the
    label could not be found.
    """
    printable, offsets = printable_text_and_offsets(styled)
    spans: list[Optional[tuple[int, int]]] = []
    cursor = 0

    for link in links:
        label = link.label.strip()
        if not label or cursor >= len(printable):
            spans.append(None)
            continue

        start = printable.find(label, cursor)
        if start < 0:
            spans.append(None)
            continue
        end = start + len(label)
        cursor = end

        spans.append((offsets[start], offsets[end]))

    return spans


def highlight_focused_link(styled: str, links: Sequence[FollowableLink], focused: int) -> str:
    """Wrap the focused link's label in reverse video; otherwise return ``styled``."""
    if focused < 0 or focused >= len(links):
        return styled

    span = link_spans(styled, links)[focused]
    if span is None:
        return styled

    start, end = span
    return "".join((styled[:start], REVERSE_ON, styled[start:end], REVERSE_OFF, styled[end:]))
