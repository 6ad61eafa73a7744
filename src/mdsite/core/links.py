"""Rewriting of relative article links to declared permalinks"""

import logging
import posixpath
import re
from collections import Counter
from pathlib import Path, PurePosixPath
from typing import Iterable, Optional

from markdown_it import MarkdownIt

from mdsite.core.models import Document


logger = logging.getLogger(__name__)

# [text](target "title")  -- title may also be 'single' or (parenthesised); images match too
INLINE_LINK_RE = re.compile(r"""(\]\()(<[^>]*>|[^)\s]+)((?:\s+(?:"[^"]*"|'[^']*'|\([^)]*\)))?\s*\))""")
# [id]: target
REFERENCE_DEF_RE = re.compile(r'^( {0,3}\[[^\]]+\]:[ \t]*)(<[^>]*>|\S+)', re.MULTILINE)
CODE_SPAN_RE = re.compile(r'(`+)(?:(?!\1).)+?\1')
SCHEME_RE = re.compile(r'^[a-zA-Z][a-zA-Z0-9+.-]*:')
MD_SUFFIXES = {'.md', '.markdown'}
LINE_RE = re.compile(r'[^\r\n]*(?:\r\n|\r|\n)|[^\r\n]+$')
CODE_TOKENS = {'fence', 'code_block'}

_block_parser = MarkdownIt('commonmark')


class PermalinkIndex:
    """Lookup of site documents by relative path and by unique bare filename."""

    def __init__(self, by_path: dict[str, Optional[str]]):
        self.by_path = by_path
        names = Counter(PurePosixPath(p).name for p in by_path)
        self.by_name = {
            PurePosixPath(p).name: link for p, link in by_path.items() if names[PurePosixPath(p).name] == 1
        }

    def __contains__(self, path: str) -> bool:
        return path in self.by_path

    def lookup(self, target_path: str, source: PurePosixPath) -> tuple[bool, Optional[str]]:
        """Return (found, permalink) for a link target as written in source."""
        joined = posixpath.normpath(posixpath.join(str(source.parent), target_path))
        if joined in self.by_path:
            return True, self.by_path[joined]
        name = PurePosixPath(target_path).name
        if name in self.by_name:
            return True, self.by_name[name]
        return False, None


def build_permalink_index(documents: Iterable[Document]) -> PermalinkIndex:
    """Map every document's relative POSIX path to its permalink (None when undeclared)."""
    return PermalinkIndex({doc.path.as_posix(): doc.permalink for doc in documents})


def _split_target(target: str) -> tuple[str, str]:
    """Split 'file.md#frag' into ('file.md', '#frag'); same for '?query'."""
    for i, ch in enumerate(target):
        if ch in '#?':
            return target[:i], target[i:]
    return target, ''


def _is_local_markdown(path: str) -> bool:
    if not path or path.startswith('/') or SCHEME_RE.match(path):
        return False
    return PurePosixPath(path).suffix.lower() in MD_SUFFIXES


def _rewrite_target(target: str, index: PermalinkIndex, source: PurePosixPath, base_url: str) -> str:
    bracketed = target.startswith('<') and target.endswith('>')
    raw = target[1:-1] if bracketed else target
    path, suffix = _split_target(raw)
    if not _is_local_markdown(path):
        return target
    found, permalink = index.lookup(path, source)
    if not found or permalink is None:
        return target
    url = f"{base_url.rstrip('/')}{permalink}" if base_url else permalink
    return f"<{url}{suffix}>" if bracketed else f"{url}{suffix}"


def _outside_code(text: str) -> Iterable[tuple[bool, str]]:
    """Yield (is_code, chunk) pairs; fenced and indented code blocks are code."""
    lines = LINE_RE.findall(text)
    code = [False] * len(lines)
    for tok in _block_parser.parse(text):
        if tok.type in CODE_TOKENS and tok.map:
            start, end = tok.map
            for i in range(start, min(end, len(lines))):
                code[i] = True

    chunk: list[str] = []
    for i, line in enumerate(lines):
        if chunk and code[i] != code[i - 1]:
            yield code[i - 1], ''.join(chunk)
            chunk = []
        chunk.append(line)
    if chunk:
        yield code[-1], ''.join(chunk)


def _map_prose(text: str, fn) -> str:
    """Apply fn to the parts of a non-fenced chunk that are not inline code spans."""
    out, pos = [], 0
    for m in CODE_SPAN_RE.finditer(text):
        out.append(fn(text[pos:m.start()]))
        out.append(m.group(0))
        pos = m.end()
    out.append(fn(text[pos:]))
    return ''.join(out)


def resolve_links(
    body: str,
    index: PermalinkIndex,
    source: Path | PurePosixPath = PurePosixPath('index.md'),
    base_url: str = '',
    ) -> str:
    """Rewrite links to site documents that declare a permalink; leave everything else unchanged.

    Idempotent: rewritten targets are absolute paths or URLs and are never
    matched again.
    """
    src = PurePosixPath(Path(source).as_posix())

    def _inline(m: re.Match) -> str:
        return m.group(1) + _rewrite_target(m.group(2), index, src, base_url) + m.group(3)

    def _reference(m: re.Match) -> str:
        return m.group(1) + _rewrite_target(m.group(2), index, src, base_url)

    def _prose(text: str) -> str:
        return INLINE_LINK_RE.sub(_inline, REFERENCE_DEF_RE.sub(_reference, text))

    return ''.join(
        chunk if is_code else _map_prose(chunk, _prose)
        for is_code, chunk in _outside_code(body)
    )


def find_unresolved_links(body: str, index: PermalinkIndex, source: Path | PurePosixPath) -> list[str]:
    """Return local .md link targets in body that match no document in the index."""
    src = PurePosixPath(Path(source).as_posix())
    missing: list[str] = []

    def _collect(text: str) -> str:
        targets = [m.group(2) for m in INLINE_LINK_RE.finditer(text)]
        targets += [m.group(2) for m in REFERENCE_DEF_RE.finditer(text)]
        for t in targets:
            path, _ = _split_target(t.strip('<>'))
            if _is_local_markdown(path) and not index.lookup(path, src)[0]:
                missing.append(t)
        return text

    for is_code, chunk in _outside_code(body):
        if not is_code:
            _map_prose(chunk, _collect)
    return missing
