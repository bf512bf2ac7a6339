"""
Followable links: extraction, classification, sandboxed resolution.

A link is followable when it points at an existing local markdown file that
lives inside the root directory after symlinks are evaluated on both sides.
Everything else (web links, mailto, absolute paths, broken targets, escapes
out of the root) is dropped silently.
"""

from __future__ import annotations

import logging
import os
import re
import stat
from dataclasses import dataclass
from typing import Iterator, Optional, Sequence
from urllib.parse import unquote

from markdown_it import MarkdownIt
from markdown_it.tree import SyntaxTreeNode

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIXES = (".md", ".markdown")

_DRIVE_RE = re.compile(r"^[A-Za-z]:")
_BAD_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")


class LinkResolutionError(Exception):
    """The filesystem could not answer a path query for the document."""


@dataclass(frozen=True)
class RawLink:
    href: str
    label: str


@dataclass(frozen=True)
class FollowableLink:
    """A local markdown link that is safe to open."""
    href: str
    path: str
    fragment: str
    label: str
    resolved_path: str
    resolved_note: str


# ============================================================================
# Filesystem capability
# ============================================================================

class FileSystem:
    """The filesystem queries needed to resolve a link."""

    def abspath(self, path: str) -> str:
        raise NotImplementedError

    def realpath(self, path: str) -> str:
        """Evaluate symlinks; raise OSError when the path cannot be evaluated."""
        raise NotImplementedError

    def stat(self, path: str) -> os.stat_result:
        raise NotImplementedError


class OSFileSystem(FileSystem):
    """FileSystem backed by the os module."""

    def abspath(self, path: str) -> str:
        # os.path.abspath reads the cwd for relative paths and can raise
        # FileNotFoundError when it has been removed.
        return os.path.abspath(path)

    def realpath(self, path: str) -> str:
        return os.path.realpath(path, strict=True)

    def stat(self, path: str) -> os.stat_result:
        return os.stat(path)


DEFAULT_FS = OSFileSystem()


# ============================================================================
# Extraction
# ============================================================================

def _make_parser() -> MarkdownIt:
    parser = MarkdownIt("commonmark").enable(["table", "strikethrough"])
    # Keep destinations as written: no percent-encoding of backslashes,
    # spaces or non-ASCII characters before classification.
    parser.normalizeLink = lambda url: url
    return parser


def parse_markdown(markdown: str) -> SyntaxTreeNode:
    """Parse markdown source into a walkable syntax tree."""
    return SyntaxTreeNode(_make_parser().parse(markdown))


def _label_text(link: SyntaxTreeNode) -> str:
    parts = []
    for node in link.walk(include_self=False):
        if node.type in ("text", "code_inline"):
            parts.append(node.content)
        elif node.type == "softbreak":
            parts.append(" ")
        elif node.type == "hardbreak":
            parts.append("\n")
    return "".join(parts)


def _is_autolink(node: SyntaxTreeNode) -> bool:
    return node.markup in ("autolink", "linkify") or node.info == "auto"


def extract_raw_links(markdown: str) -> list[RawLink]:
    """Return every link in the document, in document order."""
    links: list[RawLink] = []
    for node in parse_markdown(markdown).walk():
        if node.type != "link" or _is_autolink(node):
            continue

        href = str(node.attrs.get("href") or "").strip()
        if not href:
            continue

        links.append(RawLink(href=href, label=_label_text(node).strip()))
    return links


# ============================================================================
# Classification
# ============================================================================

def split_fragment(href: str) -> tuple[str, str]:
    """Split at the first '#'; the fragment is empty when there is none."""
    path, sep, fragment = href.partition("#")
    if sep:
        return path, fragment
    return href, ""


def is_absolute_or_unc_path(path: str) -> bool:
    if path.startswith("/") or path.startswith("\\\\"):
        return True
    if _DRIVE_RE.match(path):
        return True
    return os.path.isabs(path)


def normalize_href(href: str) -> str:
    """Trim whitespace and one layer of <...> delimiters."""
    href = href.strip()
    if len(href) >= 2 and href.startswith("<") and href.endswith(">"):
        href = href[1:-1]
    return href


def is_followable_href(href: str) -> bool:
    """Is this destination a relative reference to a markdown file?"""
    href = normalize_href(href)

    if "://" in href or href.lower().startswith("mailto:"):
        return False

    path, _ = split_fragment(href)
    if is_absolute_or_unc_path(path):
        return False

    return path.lower().endswith(MARKDOWN_SUFFIXES)


def percent_decode(path: str) -> str:
    """Decode %XX escapes, falling back to the raw path when they are malformed."""
    if "%" not in path:
        return path
    if _BAD_ESCAPE_RE.search(path):
        return path
    try:
        return unquote(path, errors="strict")
    except UnicodeDecodeError:
        return path


# ============================================================================
# Resolution
# ============================================================================

def strip_absolute_path(path: str, root: str) -> str:
    """Display form of ``path`` relative to ``root`` when it lies inside it."""
    root = root.rstrip(os.sep)
    if root and path.startswith(root + os.sep):
        return path[len(root) + 1:]
    return path


def _evaluate(fs: FileSystem, path: str) -> str:
    # Missing targets cannot be evaluated; they are rejected later by stat.
    try:
        return fs.realpath(path)
    except OSError:
        return path


def is_within(path: str, root: str) -> bool:
    """Containment by relative path, so /root-extra is not inside /root."""
    try:
        rel = os.path.relpath(path, root)
    except ValueError:
        # Different drives on Windows
        return False
    return not (rel == os.pardir or rel.startswith(os.pardir + os.sep))


def resolve_followable_link(root_dir: str, current_path: str, href: str,
                            fs: Optional[FileSystem] = None) -> Optional[FollowableLink]:
    """
    Resolve ``href`` found in ``current_path`` to a file inside ``root_dir``.

    Returns None when the link is not followable. Raises LinkResolutionError
    when the root or the candidate cannot be made absolute.
    """
    fs = fs or DEFAULT_FS
    href = normalize_href(href)

    if not is_followable_href(href):
        return None

    path, fragment = split_fragment(href)
    path = path.strip()
    if not path:
        return None

    path = percent_decode(path)
    # A decoded leading separator stays under the document's directory
    relative = path.lstrip("/\\")
    if os.path.splitdrive(relative)[0] or os.path.isabs(relative):
        return None

    base = os.path.dirname(current_path)
    candidate = os.path.normpath(os.path.join(base, relative))

    try:
        root_abs = fs.abspath(root_dir)
    except OSError as e:
        raise LinkResolutionError(f"abs root dir: {e}") from e
    try:
        candidate_abs = fs.abspath(candidate)
    except OSError as e:
        raise LinkResolutionError(f"abs resolved path: {e}") from e

    root_abs = _evaluate(fs, root_abs)
    candidate_abs = _evaluate(fs, candidate_abs)

    if not is_within(candidate_abs, root_abs):
        logger.debug("link %r escapes root %s", href, root_abs)
        return None

    try:
        info = fs.stat(candidate_abs)
    except OSError:
        return None
    if not stat.S_ISREG(info.st_mode):
        return None

    return FollowableLink(
        href=href,
        path=path,
        fragment=fragment,
        label="",
        resolved_path=candidate_abs,
        resolved_note=strip_absolute_path(candidate_abs, root_abs),
    )


# ============================================================================
# Registry
# ============================================================================

class LinkRegistry(Sequence[FollowableLink]):
    """Ordered, read-only set of the followable links of one rendered document."""

    def __init__(self, links: Sequence[FollowableLink] = ()):
        self._links = tuple(links)

    def __getitem__(self, index):
        return self._links[index]

    def __len__(self) -> int:
        return len(self._links)

    def __iter__(self) -> Iterator[FollowableLink]:
        return iter(self._links)

    def __repr__(self) -> str:
        return f"LinkRegistry({list(self._links)!r})"

    def get(self, index: int) -> Optional[FollowableLink]:
        """Link at ``index``, or None when out of range."""
        if 0 <= index < len(self._links):
            return self._links[index]
        return None


EMPTY_REGISTRY = LinkRegistry()


def followable_links_for_document(root_dir: str, current_path: str, markdown: str,
                                  fs: Optional[FileSystem] = None) -> LinkRegistry:
    """Build the link registry for a document."""
    links = []
    for raw in extract_raw_links(markdown):
        if not raw.label.strip():
            continue
        link = resolve_followable_link(root_dir, current_path, raw.href, fs)
        if link is None:
            continue
        links.append(FollowableLink(
            href=link.href,
            path=link.path,
            fragment=link.fragment,
            label=raw.label,
            resolved_path=link.resolved_path,
            resolved_note=link.resolved_note,
        ))

    logger.debug("%d followable links in %s", len(links), current_path)
    return LinkRegistry(links)
