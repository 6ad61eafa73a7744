"""Exceptions raised while loading source documents"""

from pathlib import Path


class MalformedFrontMatter(ValueError):
    """Front matter block that cannot be read as key/value pairs."""

    def __init__(self, path: Path | str, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"{self.path}: {reason}")


class OutputPathError(ValueError):
    """Output location that would fall outside the output directory."""

    def __init__(self, path: Path | str, target: str):
        self.path = Path(path)
        self.target = target
        super().__init__(f"{self.path}: output path '{target}' escapes the output directory")
