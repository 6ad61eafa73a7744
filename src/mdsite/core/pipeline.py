"""Pipeline step functions: build, single-page render, and site check orchestration"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Optional

from sqlmodel import Session

from mdsite.config import Settings
from mdsite.core.errors import OutputPathError
from mdsite.core.frontmatter import load_document, serialize_frontmatter
from mdsite.core.links import PermalinkIndex, build_permalink_index, find_unresolved_links, resolve_links
from mdsite.core.models import BuildReport, Document, LoadFailure, RenderedPage, Site
from mdsite.core.render import Renderer
from mdsite.core.site import duplicate_navigation, duplicate_permalinks, load_site, output_path_for, url_for
from mdsite.core.utils.hashing import sha256
from mdsite.crud.builds import delete_record, get_all_records, get_by_path, upsert_record


logger = logging.getLogger(__name__)


def _layouts_dir(settings: Settings, root: Path) -> Optional[Path]:
    """Relative layouts_dir is looked up inside the source root first, then the working directory."""
    if not settings.layouts_dir:
        return None
    layouts = Path(settings.layouts_dir)
    if layouts.is_absolute() or not (root / layouts).is_dir():
        return layouts
    return root / layouts


def make_renderer(settings: Settings, root: Optional[Path] = None) -> Renderer:
    root = root or Path(settings.source_dir)
    layouts = _layouts_dir(settings, root if root.is_dir() else root.parent)
    return Renderer(
        parser_config=settings.parser_config,
        layouts_dir=layouts,
        default_layout=settings.default_layout,
        site={"title": settings.site_title, "base_url": settings.base_url},
    )


def render_page(doc: Document, renderer: Renderer, index: PermalinkIndex, base_url: str = '') -> RenderedPage:
    """Resolve links in doc and render it. Pure: no I/O."""
    body = resolve_links(doc.body, index, doc.path, base_url)
    return RenderedPage(
        source=doc.path,
        output=output_path_for(doc),
        url=url_for(doc, base_url),
        html=renderer.render(doc, body=body, url=url_for(doc, base_url)),
    )


def _render_or_fail(doc: Document, renderer: Renderer, index: PermalinkIndex, base_url: str, root: Path):
    try:
        return render_page(doc, renderer, index, base_url)
    except OutputPathError as e:
        logger.error("Skipping %s: %s", doc.path, e)
        return LoadFailure(path=root / doc.path, error=str(e))


def render_site(
    site: Site,
    renderer: Renderer,
    base_url: str = '',
    workers: int = 1,
    ) -> tuple[list[RenderedPage], list[LoadFailure]]:
    """Render every document of site; documents share no state so order and parallelism are free.

    Returns (pages, failures); a document whose output path is unsafe is a failure.
    """
    index = build_permalink_index(site.documents)
    render = lambda d: _render_or_fail(d, renderer, index, base_url, site.root)  # noqa: E731
    if workers <= 1:
        results = [render(d) for d in site.documents]
    else:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(render, site.documents))
    pages = [r for r in results if isinstance(r, RenderedPage)]
    failures = [r for r in results if isinstance(r, LoadFailure)]
    return pages, failures


def _inside(output_dir: Path, rel: Path | str) -> Optional[Path]:
    """Return output_dir / rel, or None when it resolves outside output_dir."""
    dest = output_dir / rel
    if not dest.resolve().is_relative_to(output_dir.resolve()):
        return None
    return dest


def _write(dest: Path, page: RenderedPage) -> Path:
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_text(page.html, encoding='utf-8')
    return dest


def _remove_output(output_dir: Path, rel: str) -> None:
    dest = _inside(output_dir, rel)
    if dest is None:
        logger.warning("Not removing %s: outside %s", rel, output_dir)
    elif dest.exists():
        dest.unlink()


def run_build(
    engine,
    settings: Settings,
    source: Optional[Path] = None,
    ) -> BuildReport:
    """Load, render and write every document under source (default settings.source_dir).

    Pages whose HTML matches the manifest are not rewritten. A page whose
    output path moved has its old output removed. When source is a
    directory, outputs of sources that no longer exist are removed; a
    single-file build leaves the rest of the site alone. Files that fail to
    load or render are reported and never block the rest of the batch.
    """
    root = Path(source or settings.source_dir)
    output_dir = Path(settings.output_dir)
    site = load_site(root)

    _warn_duplicates(site)
    pages, render_failures = render_site(site, make_renderer(settings, root), settings.base_url, settings.workers)
    report = BuildReport(failures=[*site.failures, *render_failures])
    sources = {d.path: d for d in site.documents}
    live_outputs = {p.output.as_posix() for p in pages}
    built_at = datetime.now()

    with Session(engine) as session:
        seen: set[str] = set()
        for page in pages:
            doc = sources[page.source]
            key = page.source.as_posix()
            dest = _inside(output_dir, page.output)
            if dest is None:
                error = OutputPathError(page.source, page.output.as_posix())
                logger.error("Skipping %s: %s", page.source, error)
                report.failures.append(LoadFailure(path=site.root / page.source, error=str(error)))
                continue
            seen.add(key)

            previous = get_by_path(session, key)
            old_output = previous.output_path if previous else None
            _, status = upsert_record(
                session,
                path=key,
                output_path=page.output.as_posix(),
                source_hash=sha256(serialize_frontmatter(doc.frontmatter, doc.body)),
                html_hash=sha256(page.html),
                built_at=built_at,
            )
            if status == 'unchanged' and not dest.exists():
                status = 'updated'
            if status != 'unchanged':
                _write(dest, page)
                report.changes.append((status, page.output.as_posix()))
            if old_output and old_output != page.output.as_posix() and old_output not in live_outputs:
                _remove_output(output_dir, old_output)
                report.changes.append(("removed", old_output))
            report.counts[status] += 1

        report.counts["failed"] = len(report.failures)
        failed = {f.path.relative_to(site.root).as_posix() for f in report.failures if f.path.is_relative_to(site.root)}
        if root.is_dir():
            for record in get_all_records(session):
                if record.path in seen or record.path in failed:
                    continue
                # keep outputs now owned by another source
                if record.output_path not in live_outputs:
                    _remove_output(output_dir, record.output_path)
                delete_record(session, record)
                report.counts["removed"] += 1
                report.changes.append(("removed", record.output_path))
        session.commit()

    logger.info("Build finished: %s", report.counts)
    return report


def render_one(path: Path, settings: Settings) -> str:
    """Render a single file to HTML, resolving links against its sibling documents.

    Raises MalformedFrontMatter when the file itself cannot be loaded.
    """
    root = Path(settings.source_dir)
    if not path.resolve().is_relative_to(root.resolve()):
        root = path.parent
    doc = load_document(path.resolve(), root.resolve())
    site = load_site(root)
    others = [d for d in site.documents if d.path != doc.path]
    index = build_permalink_index([doc, *others])
    return render_page(doc, make_renderer(settings, root), index, settings.base_url).html


def _warn_duplicates(site: Site) -> None:
    for link, paths in duplicate_permalinks(site).items():
        logger.warning("Permalink %s declared by %s", link, ", ".join(p.as_posix() for p in paths))
    for entry in duplicate_navigation(site):
        logger.warning("%s: navigation entry '%s' -> %s listed more than once", entry.source, entry.title, entry.target)


def run_check(settings: Settings, source: Optional[Path] = None) -> dict[str, list]:
    """Report site problems without writing anything.

    Keys: failures (LoadFailure), duplicate_permalinks ((permalink, paths)),
    duplicate_navigation (NavEntry), unresolved_links ((source, target)).
    """
    site = load_site(Path(source or settings.source_dir))
    index = build_permalink_index(site.documents)
    unresolved = [
        (doc.path, target)
        for doc in site.documents
        for target in find_unresolved_links(doc.body, index, doc.path)
    ]
    return {
        "failures": list(site.failures),
        "duplicate_permalinks": sorted(duplicate_permalinks(site).items()),
        "duplicate_navigation": duplicate_navigation(site),
        "unresolved_links": unresolved,
    }
