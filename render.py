"""
Markdown to ANSI rendering.

Clean rendering with no visible markdown syntax: markdown-it tokens are turned
into rich renderables and printed to an in-memory terminal console. Link text
is printed verbatim so the focused link can be found again in the output.
"""

from __future__ import annotations

import io
import re

from markdown_it import MarkdownIt
from markdown_it.token import Token
from rich.console import Console, RenderableType
from rich.rule import Rule
from rich.style import Style
from rich.syntax import Syntax
from rich.text import Text

DEFAULT_WIDTH = 100
DEFAULT_CODE_THEME = "monokai"

BODY = Style(color="#abb2bf")
LINK = Style(color="#61afef", underline=True)
CODE_INLINE = Style(bgcolor="#2c313a", color="#e06c75")

HEADING_STYLES = {
    1: Style(color="#ffffff", bgcolor="#0051a8", bold=True),
    2: Style(color="#c678dd", bold=True),
    3: Style(color="#56b6c2", bold=True, underline=True),
    4: Style(color="#e5c07b", bold=True),
    5: Style(color="#98c379", bold=True),
    6: Style(color="#abb2bf", bold=True),
}


def normalize_markdown(text: str) -> str:
    """
    Remove accidental leading spaces from Markdown lines,
    but preserve:
      - fenced code blocks
      - indented code blocks / nested lists
      - empty lines (paragraphs)
    """
    normalized = []
    in_fenced_code = False
    fence_char = "```"

    for line in text.splitlines():
        stripped = line.lstrip()

        # Toggle fenced code block
        if stripped.startswith(fence_char):
            in_fenced_code = not in_fenced_code
            normalized.append(line)
            continue

        if in_fenced_code or not stripped:
            normalized.append(line)
            continue

        # List markers keep their indentation
        if re.match(r'^(\s*)([-*+]|\d+\.)\s+', line):
            normalized.append(line)
            continue

        normalized.append(stripped)

    return "\n".join(normalized)


class MarkdownRenderer:
    """Render markdown source to a styled terminal string."""

    def __init__(self, width: int = DEFAULT_WIDTH, code_theme: str = DEFAULT_CODE_THEME):
        self.width = max(1, width)
        self.code_theme = code_theme
        self.parser = MarkdownIt("commonmark").enable(["table", "strikethrough"])

    def render(self, markdown: str) -> str:
        tokens = self.parser.parse(markdown)
        blocks = self._process_tokens(tokens)

        console = Console(
            file=io.StringIO(),
            force_terminal=True,
            color_system="truecolor",
            width=self.width,
            legacy_windows=False,
        )
        for i, block in enumerate(blocks):
            if i:
                console.print()
            console.print(block)
        return console.file.getvalue().rstrip("\n")

    def _process_tokens(self, tokens: list[Token], depth: int = 0) -> list[RenderableType]:
        """Process block tokens into renderables."""
        blocks: list[RenderableType] = []
        i = 0

        while i < len(tokens):
            token = tokens[i]

            if token.type == "heading_open":
                level = int(token.tag[1])
                i += 1
                heading = Text()
                if i < len(tokens) and tokens[i].type == "inline":
                    heading = self._process_inline(tokens[i], HEADING_STYLES[level])
                if level <= 2:
                    heading.justify = "center"
                blocks.append(heading)
                i += 2

            elif token.type == "table_open":
                end = i
                while end < len(tokens) and tokens[end].type != "table_close":
                    end += 1
                table = self._process_table(tokens[i:end + 1])
                if table is not None:
                    blocks.append(table)
                i = end + 1

            elif token.type == "paragraph_open":
                i += 1
                if i < len(tokens) and tokens[i].type == "inline":
                    blocks.append(self._process_inline(tokens[i]))
                i += 2

            elif token.type in ("fence", "code_block"):
                if token.content.strip():
                    blocks.append(self._code_block(token.content, token.info))
                i += 1

            elif token.type == "blockquote_open":
                i += 1
                quote = Text()
                while i < len(tokens) and tokens[i].type != "blockquote_close":
                    if tokens[i].type == "inline":
                        if quote:
                            quote.append("\n")
                        quote.append("│ ", Style(color="#98c379"))
                        quote.append(self._process_inline(tokens[i]))
                    i += 1
                blocks.append(quote)
                i += 1

            elif token.type in ("bullet_list_open", "ordered_list_open"):
                end = self._matching_list_close(tokens, i)
                blocks.append(self._process_list(tokens[i + 1:end], depth, token))
                i = end + 1

            elif token.type == "hr":
                blocks.append(Rule(style="#0051a8"))
                i += 1

            else:
                i += 1

        return blocks

    @staticmethod
    def _matching_list_close(tokens: list[Token], start: int) -> int:
        list_depth = 0
        for j in range(start, len(tokens)):
            if tokens[j].type in ("bullet_list_open", "ordered_list_open"):
                list_depth += 1
            elif tokens[j].type in ("bullet_list_close", "ordered_list_close"):
                list_depth -= 1
                if list_depth == 0:
                    return j
        return len(tokens) - 1

    def _process_list(self, tokens: list[Token], depth: int, opener: Token) -> Text:
        """Process list tokens recursively into indented lines."""
        numbered = opener.type == "ordered_list_open"
        start = int(opener.attrGet("start") or 1) if numbered else 1
        lines: list[Text] = []
        item_idx = 0
        first_inline = False
        i = 0

        while i < len(tokens):
            token = tokens[i]

            if token.type in ("bullet_list_open", "ordered_list_open"):
                end = self._matching_list_close(tokens, i)
                lines.append(self._process_list(tokens[i + 1:end], depth + 1, token))
                i = end + 1
                continue

            if token.type == "list_item_open":
                item_idx += 1
                first_inline = True
                i += 1
                continue

            if token.type == "inline":
                text = self._process_inline(token)
                if first_inline:
                    lines.append(self._list_item(text, depth, start + item_idx - 1, numbered))
                    first_inline = False
                else:
                    lines.append(Text("  " * (depth + 1)) + text)

            elif token.type in ("fence", "code_block"):
                lines.append(Text(token.content.rstrip(), style=CODE_INLINE))

            i += 1

        return Text("\n").join(lines)

    @staticmethod
    def _list_item(text: Text, depth: int, number: int, numbered: bool) -> Text:
        prefix = Text("  " * depth, Style(color="#5c6370"))
        plain = text.plain
        if plain.startswith(("[ ] ", "[x] ", "[X] ")):
            checked = plain[1] in "xX"
            text = text[4:]
            prefix.append("✓ " if checked else "☐ ", Style(color="#98c379" if checked else "#5c6370"))
        elif numbered:
            prefix.append(f"{number}. ", Style(color="#e5c07b"))
        else:
            prefix.append("• ", Style(color="#61afef"))
        return prefix + text

    def _code_block(self, code: str, language: str) -> Syntax:
        return Syntax(
            code.rstrip(),
            language or "text",
            theme=self.code_theme,
            line_numbers=False,
            word_wrap=False,
            background_color="#2c313a",
            padding=(0, 1),
        )

    def _process_inline(self, token: Token, base: Style = BODY) -> Text:
        """Process inline tokens into styled text."""
        text = Text()
        style_stack = [base]

        if not token.children:
            text.append(token.content, base)
            return text

        for child in token.children:
            if child.type == "text":
                text.append(child.content, style_stack[-1])

            elif child.type == "code_inline":
                text.append(child.content, CODE_INLINE)

            elif child.type == "strong_open":
                style_stack.append(style_stack[-1] + Style(bold=True, color="#e5c07b"))

            elif child.type == "em_open":
                style_stack.append(style_stack[-1] + Style(italic=True))

            elif child.type == "s_open":
                style_stack.append(style_stack[-1] + Style(strike=True))

            elif child.type == "link_open":
                style_stack.append(style_stack[-1] + LINK)

            elif child.type in ("strong_close", "em_close", "s_close", "link_close"):
                if len(style_stack) > 1:
                    style_stack.pop()

            elif child.type == "softbreak":
                text.append(" ")

            elif child.type == "hardbreak":
                text.append("\n")

        return text

    def _process_table(self, tokens: list[Token]) -> Text | None:
        """Render GFM tables as aligned plain text."""
        rows: list[list[str]] = []
        current_row: list[str] = []
        in_cell = False
        cell_text = ""

        for token in tokens:
            if token.type in ("th_open", "td_open"):
                in_cell = True
                cell_text = ""

            elif token.type == "inline" and in_cell and token.children:
                for child in token.children:
                    if child.type in ("text", "code_inline"):
                        cell_text += child.content

            elif token.type in ("th_close", "td_close"):
                current_row.append(cell_text.strip())
                in_cell = False
                cell_text = ""

            elif token.type == "tr_close":
                if current_row:
                    rows.append(current_row)
                    current_row = []

        if not rows:
            return None

        num_cols = max(len(r) for r in rows)
        EXTRA_PADDING = 2

        col_widths = [
            max(len(r[i]) if i < len(r) else 0 for r in rows) + EXTRA_PADDING
            for i in range(num_cols)
        ]

        def render_row(row: list[str]) -> str:
            return "  ".join(
                (row[i] if i < len(row) else "").ljust(col_widths[i])
                for i in range(num_cols)
            )

        lines = [render_row(rows[0]), " ".join("-" * w for w in col_widths)]
        lines.extend(render_row(row) for row in rows[1:])

        return Text("\n".join(lines), style=BODY, no_wrap=True, overflow="ellipsis")


def render_markdown(markdown: str, width: int = DEFAULT_WIDTH,
                    code_theme: str = DEFAULT_CODE_THEME) -> str:
    """Render markdown to an ANSI-styled string ``width`` columns wide."""
    return MarkdownRenderer(width, code_theme).render(markdown)
