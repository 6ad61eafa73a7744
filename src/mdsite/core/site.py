"""File discovery, site loading, navigation and output path mapping"""

import logging
import posixpath
from collections import defaultdict
from pathlib import Path, PurePosixPath

from markdown_it import MarkdownIt

from mdsite.core.errors import MalformedFrontMatter, OutputPathError
from mdsite.core.frontmatter import load_document
from mdsite.core.models import Document, LoadFailure, NavEntry, Site


logger = logging.getLogger(__name__)

MD_EXTENSIONS = {'.md', '.markdown'}
INDEX_NAMES = {'index', 'readme'}


def discover_files(path: Path) -> list[Path]:
    """Return sorted markdown files under path, or [path] if a single file."""
    if path.is_file():
        return [path] if path.suffix.lower() in MD_EXTENSIONS else []
    return sorted(
        p for p in path.rglob('*')
        if p.is_file() and p.suffix.lower() in MD_EXTENSIONS and not any(part.startswith('_') for part in p.relative_to(path).parts)
    )


def is_index(doc: Document) -> bool:
    return doc.path.stem.lower() in INDEX_NAMES


def extract_navigation(doc: Document) -> list[NavEntry]:
    """Return links found inside markdown list items of doc, in document order."""
    tokens = MarkdownIt('commonmark').parse(doc.body)
    entries: list[NavEntry] = []
    depth = 0
    for tok in tokens:
        if tok.type in ('bullet_list_open', 'ordered_list_open'):
            depth += 1
        elif tok.type in ('bullet_list_close', 'ordered_list_close'):
            depth -= 1
        elif tok.type == 'inline' and depth and tok.children:
            href, text = None, []
            for child in tok.children:
                if child.type == 'link_open':
                    href, text = child.attrGet('href'), []
                elif child.type == 'link_close' and href is not None:
                    entries.append(NavEntry(title=''.join(text).strip(), target=str(href), source=doc.path))
                    href = None
                elif href is not None and child.type in ('text', 'code_inline'):
                    text.append(child.content)
    return entries


def load_site(root: Path) -> Site:
    """Load every markdown file under root. Per-file failures are recorded, never raised."""
    root_dir = root if root.is_dir() else root.parent
    site = Site(root=root_dir)
    for path in discover_files(root):
        try:
            doc = load_document(path, root_dir)
        except (MalformedFrontMatter, OSError, UnicodeDecodeError) as e:
            logger.error("Skipping %s: %s", path, e)
            site.failures.append(LoadFailure(path=path, error=str(e)))
            continue
        site.documents.append(doc)
        if is_index(doc):
            site.navigation.extend(extract_navigation(doc))
    logger.info("Loaded %d document(s), %d failure(s) from %s", len(site.documents), len(site.failures), root)
    return site


def duplicate_permalinks(site: Site) -> dict[str, list[Path]]:
    """Return permalinks declared by more than one document."""
    seen: dict[str, list[Path]] = defaultdict(list)
    for doc in site.documents:
        if doc.permalink:
            seen[doc.permalink].append(doc.path)
    return {link: paths for link, paths in seen.items() if len(paths) > 1}


def duplicate_navigation(site: Site) -> list[NavEntry]:
    """Return navigation entries whose target repeats an earlier entry of the same index."""
    seen: set[tuple[Path, str]] = set()
    dupes: list[NavEntry] = []
    for entry in site.navigation:
        key = (entry.source, entry.target)
        if key in seen:
            dupes.append(entry)
        seen.add(key)
    return dupes


def output_path_for(doc: Document) -> Path:
    """Relative output path: derived from permalink when declared, else from the source path.

    Raises OutputPathError when a permalink climbs out of the output directory.
    """
    permalink = doc.permalink
    if not permalink:
        return doc.path.with_suffix('.html')

    rel = permalink.lstrip('/')
    if not rel or permalink.endswith('/'):
        rel = posixpath.join(rel, 'index.html')
    elif not PurePosixPath(rel).suffix:
        rel = f"{rel}.html"
    rel = posixpath.normpath(rel)
    if rel == '..' or rel.startswith('../') or rel.startswith('/'):
        raise OutputPathError(doc.path, permalink)
    return Path(rel)


def url_for(doc: Document, base_url: str = '') -> str:
    """Site URL of doc; absolute when base_url is set."""
    url = doc.permalink or '/' + doc.path.with_suffix('.html').as_posix()
    return f"{base_url.rstrip('/')}{url}" if base_url else url
