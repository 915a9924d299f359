"""Structural build errors.

These abort a build before any page is processed. Per-document and
per-page failures live beside the code that raises them
(:class:`folio.convert.ConversionError`,
:class:`folio.layout.LayoutNotFoundError`).
"""

from __future__ import annotations

from pathlib import Path


class BuildError(RuntimeError):
    """Base error for build orchestration failures."""


class ContentDirectoryNotFoundError(BuildError):
    def __init__(self, *, path: Path) -> None:
        super().__init__(f"content directory not found: {path.as_posix()}")
        self.path = path


class LayoutsDirectoryNotFoundError(BuildError):
    def __init__(self, *, path: Path) -> None:
        super().__init__(f"layouts directory not found: {path.as_posix()}")
        self.path = path


class ThemeNotFoundError(BuildError):
    def __init__(self, *, theme: str, path: Path) -> None:
        super().__init__(f"theme '{theme}' not found in {path.as_posix()}")
        self.theme = theme
        self.path = path
