"""Intermediate data models for the load, resolve and render pipeline"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional


@dataclass(frozen=True)
class Document:
    """One loaded markdown source file; immutable once read."""
    path:        Path               # source file, relative to the site root
    frontmatter: dict[str, Any]     # ordered, unrecognised keys kept verbatim
    body:        str                # markdown without the front matter block

    @property
    def title(self) -> str:
        value = self.frontmatter.get('title')
        if value:
            return str(value)
        return self.path.stem.replace('-', ' ').replace('_', ' ').title()

    @property
    def description(self) -> str:
        value = self.frontmatter.get('description')
        return str(value) if value is not None else ''

    @property
    def layout(self) -> Optional[str]:
        value = self.frontmatter.get('layout')
        return str(value) if value else None

    @property
    def permalink(self) -> Optional[str]:
        """Declared permalink normalised to a leading '/', or None."""
        value = self.frontmatter.get('permalink')
        if not value:
            return None
        value = str(value).strip()
        return value if value.startswith('/') else f"/{value}"

    @property
    def keywords(self) -> list[str]:
        value = self.frontmatter.get('keywords')
        if value is None:
            return []
        if isinstance(value, (list, tuple)):
            return [str(v) for v in value]
        return [k.strip() for k in str(value).split(',') if k.strip()]


@dataclass(frozen=True)
class NavEntry:
    """A navigation link found in a markdown list of an index document."""
    title:  str
    target: str
    source: Path


@dataclass(frozen=True)
class LoadFailure:
    path:  Path
    error: str


@dataclass
class Site:
    """All loaded documents plus navigation gathered from index documents."""
    root:       Path
    documents:  list[Document] = field(default_factory=list)
    navigation: list[NavEntry] = field(default_factory=list)
    failures:   list[LoadFailure] = field(default_factory=list)


@dataclass(frozen=True)
class RenderedPage:
    source: Path        # relative source path
    output: Path        # relative output path
    url:    str
    html:   str


@dataclass
class BuildReport:
    """Outcome of one build: per-status counts, changed pages, and failures."""
    counts:   dict[str, int] = field(default_factory=lambda: {
        "created": 0, "updated": 0, "unchanged": 0, "removed": 0, "failed": 0,
    })
    changes:  list[tuple[str, str]] = field(default_factory=list)    # (status, output path)
    failures: list[LoadFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures
