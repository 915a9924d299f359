"""Page entity and ordered page collection."""

from __future__ import annotations

import copy
import datetime as _dt
import re
import unicodedata
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from folio.schemas import MultipleMenus, NodeType, SingleMenu

URLIZE_SEPARATOR_RE = re.compile(r"[^a-z0-9]+")


def urlize(value: str) -> str:
    """Lower-case each path segment and collapse non-alphanumerics to hyphens.

    >>> urlize("Blog/My First Post!")
    'blog/my-first-post'
    """
    normalized = unicodedata.normalize("NFKD", str(value)).encode("ascii", "ignore").decode("ascii")
    segments: list[str] = []
    for segment in normalized.lower().split("/"):
        slug = URLIZE_SEPARATOR_RE.sub("-", segment).strip("-")
        if slug:
            segments.append(slug)
    return "/".join(segments)


def join_path(*parts: Any) -> str:
    return urlize("/".join(str(part) for part in parts if str(part)))


class DuplicatePageIdError(ValueError):
    def __init__(self, *, page_id: str) -> None:
        super().__init__(f"page id '{page_id}' already exists in collection")
        self.page_id = page_id


def _clone_value(value: Any) -> Any:
    # Pages referenced from variables (listings, pagination slices) stay shared;
    # they are collection members, not state of the page being cloned.
    if isinstance(value, Page):
        return value
    if isinstance(value, dict):
        return {key: _clone_value(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_clone_value(item) for item in value]
    if isinstance(value, tuple):
        return tuple(_clone_value(item) for item in value)
    if isinstance(value, set):
        return {_clone_value(item) for item in value}
    if isinstance(value, (SingleMenu, MultipleMenus)):
        return value.model_copy(deep=True)
    return copy.deepcopy(value)


def _export_value(value: Any) -> Any:
    if isinstance(value, Page):
        return {"$page": value.id}
    if isinstance(value, dict):
        return {str(key): _export_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_export_value(item) for item in value]
    if isinstance(value, set):
        return sorted(_export_value(item) for item in value)
    if isinstance(value, (SingleMenu, MultipleMenus)):
        return value.model_dump(mode="json")
    if isinstance(value, (_dt.date, _dt.datetime)):
        return value.isoformat()
    return value


@dataclass(eq=False)
class Page:
    id: str
    pathname: str = ""
    title: str | None = None
    section: str | None = None
    layout: str | None = None
    date: _dt.datetime | None = None
    node_type: NodeType = NodeType.page
    variables: dict[str, Any] = field(default_factory=dict)
    html: str | None = None
    is_virtual: bool = False
    frontmatter: str = ""
    body: str = ""
    source_path: Path | None = None

    @property
    def permalink(self) -> str:
        override = self.variables.get("permalink")
        if isinstance(override, str) and override.strip():
            return override.strip().strip("/")
        return self.pathname

    @property
    def name(self) -> str:
        if self.source_path is not None:
            return self.source_path.stem
        return self.id.rsplit("/", 1)[-1] if self.id else "index"

    def has(self, key: str) -> bool:
        return key in self.variables

    def get(self, key: str, default: Any = None) -> Any:
        return self.variables.get(key, default)

    def set(self, key: str, value: Any) -> "Page":
        self.variables[key] = value
        return self

    def unset(self, key: str) -> "Page":
        self.variables.pop(key, None)
        return self

    def __getitem__(self, key: str) -> Any:
        return self.variables[key]

    def clone(self) -> "Page":
        return replace(self, variables=_clone_value(self.variables))

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "pathname": self.pathname,
            "permalink": self.permalink,
            "title": self.title,
            "section": self.section,
            "layout": self.layout,
            "date": self.date.isoformat() if self.date is not None else None,
            "node_type": self.node_type.value,
            "is_virtual": self.is_virtual,
            "variables": _export_value(self.variables),
        }


class PageCollection:
    """Insertion-ordered mapping of page id to :class:`Page`."""

    def __init__(self, pages: Iterable[Page] | None = None) -> None:
        self._pages: dict[str, Page] = {}
        if pages is None:
            return
        for page in pages:
            self.add(page)

    def add(self, page: Page) -> None:
        if page.id in self._pages:
            raise DuplicatePageIdError(page_id=page.id)
        self._pages[page.id] = page

    def replace(self, page_id: str, page: Page) -> bool:
        """Swap the page stored under ``page_id`` keeping its position.

        Absent ids are left alone; returns whether a replacement happened.
        """
        if page_id not in self._pages:
            return False
        if page.id != page_id:
            if page.id in self._pages:
                raise DuplicatePageIdError(page_id=page.id)
            self._pages = {
                (page.id if key == page_id else key): (page if key == page_id else value)
                for key, value in self._pages.items()
            }
            return True
        self._pages[page_id] = page
        return True

    def add_or_replace(self, page: Page) -> None:
        if not self.replace(page.id, page):
            self.add(page)

    def remove(self, page_id: str) -> Page | None:
        return self._pages.pop(page_id, None)

    def get(self, page_id: str) -> Page | None:
        return self._pages.get(page_id)

    def has(self, page_id: str) -> bool:
        return page_id in self._pages

    def filter(self, predicate: Callable[[Page], bool]) -> "PageCollection":
        return PageCollection(page for page in self._pages.values() if predicate(page))

    def ids(self) -> list[str]:
        return list(self._pages)

    def copy(self) -> "PageCollection":
        return PageCollection(self._pages.values())

    def __iter__(self) -> Iterator[Page]:
        return iter(list(self._pages.values()))

    def __len__(self) -> int:
        return len(self._pages)

    def __contains__(self, page_id: object) -> bool:
        return page_id in self._pages

    def __repr__(self) -> str:
        return f"PageCollection({len(self._pages)} pages)"
