"""Shared fixtures for core unit tests"""

from pathlib import Path

import pytest

from mdsite.core.links import build_permalink_index
from mdsite.core.models import Document


ARTICLE_MD = """\
---
layout: post
title: Null Safety
description: Nullable types and safe calls
permalink: /null-safety/
keywords:
  - kotlin
  - null
---

# Null Safety

Kotlin distinguishes `String` from `String?`.

```kotlin
val name: String? = null
println(name?.length)
```

See also [sealed classes](sealed-classes.md).
"""

INDEX_MD = """\
---
layout: default
title: Kotlin Notes
---

- [Null Safety](null-safety.md)
- [Sealed Classes](sealed-classes.md)
- [Null Safety](null-safety.md)
"""


@pytest.fixture(name="site_dir")
def site_dir_fixture(tmp_path) -> Path:
    """A small source tree: index, two articles, and one malformed file."""
    root = tmp_path / "src"
    root.mkdir()
    (root / "index.md").write_text(INDEX_MD)
    (root / "null-safety.md").write_text(ARTICLE_MD)
    (root / "sealed-classes.md").write_text("---\ntitle: Sealed Classes\n---\n\n# Sealed\n")
    (root / "broken.md").write_text("---\ntitle: Broken\n\nNo closing delimiter.\n")
    return root


@pytest.fixture(name="index")
def index_fixture():
    return build_permalink_index([
        Document(path=Path("other-doc.md"), frontmatter={"permalink": "/foo/"}, body=""),
        Document(path=Path("plain.md"), frontmatter={"title": "Plain"}, body=""),
        Document(path=Path("kotlin/enums.md"), frontmatter={"permalink": "/enums/"}, body=""),
    ])
