"""Markdown-to-HTML conversion and layout templating"""

import logging
from pathlib import Path
from typing import Any, Optional

from jinja2 import ChoiceLoader, DictLoader, Environment, FileSystemLoader, TemplateError, TemplateNotFound, select_autoescape
from markdown_it import MarkdownIt
from markupsafe import Markup

from mdsite.core.models import Document


logger = logging.getLogger(__name__)

BUILTIN_LAYOUTS: dict[str, str] = {
    "default.html": """\
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>{{ title }}{% if site.title %} | {{ site.title }}{% endif %}</title>
  {%- if description %}
  <meta name="description" content="{{ description }}">
  {%- endif %}
  {%- if keywords %}
  <meta name="keywords" content="{{ keywords | join(', ') }}">
  {%- endif %}
</head>
<body>
{% block body %}
<main>
{{ content }}
</main>
{% endblock %}
</body>
</html>
""",
    "page.html": """\
{% extends "default.html" %}
{% block body %}
<article class="page">
<h1>{{ title }}</h1>
{{ content }}
</article>
{% endblock %}
""",
    "post.html": """\
{% extends "default.html" %}
{% block body %}
<article class="post">
<header>
<h1>{{ title }}</h1>
{%- if description %}
<p class="description">{{ description }}</p>
{%- endif %}
</header>
{{ content }}
</article>
{% endblock %}
""",
}


def _make_parser(preset: str) -> MarkdownIt:
    """Build a MarkdownIt instance for the given preset name."""
    return MarkdownIt(preset, options_update={"linkify": False})


def make_environment(layouts_dir: Optional[Path] = None) -> Environment:
    """Jinja environment resolving layouts from layouts_dir first, then the built-ins."""
    loaders = []
    if layouts_dir is not None:
        if layouts_dir.is_dir():
            loaders.append(FileSystemLoader(str(layouts_dir)))
        else:
            logger.info("Layouts directory %s not found; using built-in layouts", layouts_dir)
    loaders.append(DictLoader(BUILTIN_LAYOUTS))
    return Environment(
        loader=ChoiceLoader(loaders),
        autoescape=select_autoescape(default=True, default_for_string=True),
        keep_trailing_newline=True,
    )


class Renderer:
    """Converts Documents to full HTML pages. Holds no per-document state."""

    def __init__(
        self,
        parser_config: str = 'gfm-like',
        layouts_dir: Optional[Path] = None,
        default_layout: str = 'default',
        site: Optional[dict[str, Any]] = None,
        ):
        self.md = _make_parser(parser_config)
        self.env = make_environment(layouts_dir)
        self.builtin = make_environment()
        self.default_layout = default_layout
        self.site = dict(site or {})

    def markdown_to_html(self, body: str) -> str:
        return self.md.render(body)

    def _template(self, layout: Optional[str], source: Path):
        """Resolve a layout by name; unknown names fall back to the default, then the built-in default."""
        for name in dict.fromkeys([layout or self.default_layout, self.default_layout, "default"]):
            try:
                template = self.env.get_template(f"{name}.html")
            except TemplateNotFound:
                logger.warning("%s: unknown layout '%s', falling back", source, name)
                continue
            except TemplateError as e:
                logger.warning("%s: layout '%s' is invalid (%s), falling back", source, name, e)
                continue
            return template
        raise TemplateNotFound("default.html")

    def render(self, doc: Document, body: Optional[str] = None, url: str = '') -> str:
        """Render doc (or an already link-resolved body for it) inside its layout.

        A layout that fails to render is replaced by the built-in default.
        """
        content = self.markdown_to_html(doc.body if body is None else body)
        context = dict(
            content=Markup(content),
            title=doc.title,
            description=doc.description,
            keywords=doc.keywords,
            page=doc.frontmatter,
            site=self.site,
            url=url,
        )
        try:
            return self._template(doc.layout, doc.path).render(**context)
        except TemplateError as e:
            logger.warning("%s: layout failed to render (%s), using built-in default", doc.path, e)
            return self.builtin.get_template("default.html").render(**context)
