from __future__ import annotations

import re
import unittest

from render import normalize_markdown, render_markdown

ANSI_RE = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]")

SAMPLE = """\
# Guide

Read [the intro](intro.md) and **bold [nested link](a.md)** text.

- first item
- second item
  - nested item

1. one
2. two

- [x] done
- [ ] todo

> quoted [here](b.md)

```python
hello_world()
```

| Name | Value |
| ---- | ----- |
| a    | 1     |
"""


def _plain(text: str) -> str:
    return ANSI_RE.sub("", text)


class RenderMarkdownTests(unittest.TestCase):
    def setUp(self) -> None:
        self.rendered = render_markdown(SAMPLE, width=80)
        self.plain = _plain(self.rendered)

    def test_output_is_styled(self) -> None:
        self.assertIn("\x1b[", self.rendered)

    def test_link_labels_are_verbatim(self) -> None:
        for label in ("the intro", "nested link", "here"):
            with self.subTest(label=label):
                self.assertIn(label, self.plain)

    def test_markdown_syntax_is_hidden(self) -> None:
        self.assertNotIn("](", self.plain)
        self.assertNotIn("**", self.plain)
        self.assertNotIn("```", self.plain)
        self.assertNotIn("# Guide", self.plain)

    def test_blocks(self) -> None:
        self.assertIn("Guide", self.plain)
        self.assertIn("• first item", self.plain)
        self.assertIn("  • nested item", self.plain)
        self.assertIn("2. two", self.plain)
        self.assertIn("✓ done", self.plain)
        self.assertIn("☐ todo", self.plain)
        self.assertIn("│ quoted here", self.plain)
        self.assertIn("hello_world", self.plain)
        self.assertIn("Name", self.plain)

    def test_width_is_respected(self) -> None:
        rendered = render_markdown("word " * 60, width=30)
        for line in _plain(rendered).splitlines():
            self.assertLessEqual(len(line.rstrip()), 30)

    def test_empty_document(self) -> None:
        self.assertEqual(_plain(render_markdown("")).strip(), "")


class NormalizeMarkdownTests(unittest.TestCase):
    def test_strips_accidental_indent_but_keeps_code_and_lists(self) -> None:
        text = "   Para\n  - item\n```\n   code\n```"
        self.assertEqual(normalize_markdown(text), "Para\n  - item\n```\n   code\n```")


if __name__ == "__main__":
    unittest.main()
