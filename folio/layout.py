"""Template resolution for pages.

A page's node type yields an ordered list of candidate template names,
most specific first. Resolution walks the search paths in priority order
(local layouts directory, then the theme) and, within each path, the
candidates in order; the first existing file wins.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path

from folio.generators import REDIRECT_LAYOUT
from folio.page import Page
from folio.schemas import NodeType

LAYOUT_EXTENSION = ".html"
REDIRECT_TEMPLATE = f"{REDIRECT_LAYOUT}{LAYOUT_EXTENSION}"


class LayoutNotFoundError(LookupError):
    def __init__(self, *, page_id: str, last_candidate: str | None) -> None:
        super().__init__(f"layout '{last_candidate}' not found for page '{page_id}'")
        self.page_id = page_id
        self.last_candidate = last_candidate


def _template(name: str) -> str:
    return f"{name}{LAYOUT_EXTENSION}"


def explicit_layout(page: Page) -> str | None:
    if not page.layout:
        return None
    layout = page.layout.strip().strip("/")
    layout = layout.removesuffix(LAYOUT_EXTENSION)
    return layout or None


def layout_candidates(page: Page) -> list[str]:
    layout = explicit_layout(page)
    singular = page.get("singular")

    if page.node_type == NodeType.homepage:
        names = ["index", "_default/list", "_default/page"]
    elif page.node_type == NodeType.section:
        names = ["_default/section", "_default/list"]
        if page.section:
            names.insert(0, f"section/{page.section}")
    elif page.node_type == NodeType.taxonomy:
        names = ["_default/taxonomy", "_default/list"]
        if singular:
            names.insert(0, f"taxonomy/{singular}")
    elif page.node_type == NodeType.terms:
        names = ["_default/terms"]
        if singular:
            names.insert(0, f"taxonomy/{singular}.terms")
    else:
        names = ["page", "_default/page"]
        if page.section:
            prefix = [f"{page.section}/page"]
            if layout:
                prefix.insert(0, f"{page.section}/{layout}")
            names = prefix + names
        elif layout:
            names.insert(0, layout)

    return [_template(name) for name in names]


def _path_exists(path: Path) -> bool:
    return path.is_file()


def resolve_layout(
    page: Page,
    search_paths: Sequence[Path],
    *,
    exists: Callable[[Path], bool] = _path_exists,
) -> str:
    if explicit_layout(page) == REDIRECT_LAYOUT:
        return REDIRECT_TEMPLATE

    candidates = layout_candidates(page)
    for search_path in search_paths:
        for candidate in candidates:
            if exists(Path(search_path) / candidate):
                return candidate
    raise LayoutNotFoundError(page_id=page.id, last_candidate=candidates[-1] if candidates else None)
