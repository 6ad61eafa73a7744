"""Front matter extraction and serialization for markdown sources"""

import logging
from pathlib import Path
from typing import Any

import yaml

from mdsite.core.errors import MalformedFrontMatter
from mdsite.core.models import Document


logger = logging.getLogger(__name__)

DELIMITER = '---'
BOM = '\ufeff'


def _is_delimiter(line: str) -> bool:
    return line.rstrip() == DELIMITER


def parse_frontmatter(text: str, path: Path | str = '<string>') -> tuple[dict[str, Any], str]:
    """Return (frontmatter, body). Body is returned byte-for-byte after the closing delimiter.

    Raises MalformedFrontMatter when the opening delimiter has no closing one,
    or when the block is not a YAML mapping.
    """
    stripped = text[len(BOM):] if text.startswith(BOM) else text
    lines = stripped.splitlines(keepends=True)
    if not lines or not _is_delimiter(lines[0]):
        return {}, text

    end = next((i for i in range(1, len(lines)) if _is_delimiter(lines[i])), None)
    if end is None:
        raise MalformedFrontMatter(path, "front matter has no closing '---' delimiter")

    block = ''.join(lines[1:end])
    try:
        fm = yaml.safe_load(block) if block.strip() else {}
    except yaml.YAMLError as e:
        raise MalformedFrontMatter(path, f"invalid YAML front matter: {e}") from e
    if fm is None:
        fm = {}
    if not isinstance(fm, dict):
        raise MalformedFrontMatter(path, f"front matter must be a mapping, got {type(fm).__name__}")

    return {str(k): v for k, v in fm.items()}, ''.join(lines[end + 1:])


def serialize_frontmatter(frontmatter: dict[str, Any], body: str) -> str:
    """Inverse of parse_frontmatter: prepend a YAML block (if any keys) to body."""
    if not frontmatter:
        return body
    header = yaml.safe_dump(frontmatter, default_flow_style=False, allow_unicode=True, sort_keys=False)
    return f"{DELIMITER}\n{header}{DELIMITER}\n{body}"


def load_document(path: Path, root: Path) -> Document:
    """Read a markdown file and split it into a Document keyed by its path relative to root."""
    try:
        rel = path.relative_to(root)
    except ValueError:
        rel = Path(path.name)
    if rel == Path('.'):
        rel = Path(path.name)
    raw = path.read_text(encoding='utf-8')
    frontmatter, body = parse_frontmatter(raw, path)
    logger.debug("Loaded %s (%d front matter keys)", rel, len(frontmatter))
    return Document(path=rel, frontmatter=frontmatter, body=body)
