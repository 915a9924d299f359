from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from folio.config import SiteConfig
from folio.page import PageCollection
from folio.schemas import MenuEntrySpec, parse_menu_spec

logger = logging.getLogger("folio.menus")


@dataclass
class MenuEntry:
    id: str
    name: str
    url: str
    weight: int = 0

    def as_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "url": self.url, "weight": self.weight}


class Menu:
    """Named menu iterating entries by ascending weight, ties in insertion order."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._entries: dict[str, MenuEntry] = {}

    def add(self, entry: MenuEntry) -> None:
        # re-adding an id keeps its insertion slot
        self._entries[entry.id] = entry

    def remove(self, entry_id: str) -> MenuEntry | None:
        return self._entries.pop(entry_id, None)

    def has(self, entry_id: str) -> bool:
        return entry_id in self._entries

    def get(self, entry_id: str) -> MenuEntry | None:
        return self._entries.get(entry_id)

    def entries(self) -> list[MenuEntry]:
        return sorted(self._entries.values(), key=lambda entry: entry.weight)

    def __iter__(self) -> Iterator[MenuEntry]:
        return iter(self.entries())

    def __len__(self) -> int:
        return len(self._entries)

    def as_dict(self) -> list[dict[str, Any]]:
        return [entry.as_dict() for entry in self.entries()]


class MenuCollection:
    def __init__(self) -> None:
        self._menus: dict[str, Menu] = {}

    def get(self, name: str) -> Menu:
        """Return the named menu, creating it on first use."""
        menu = self._menus.get(name)
        if menu is None:
            menu = Menu(name)
            self._menus[name] = menu
        return menu

    def has(self, name: str) -> bool:
        return name in self._menus

    def names(self) -> list[str]:
        return list(self._menus)

    def __getitem__(self, name: str) -> Menu:
        return self._menus[name]

    def __iter__(self) -> Iterator[Menu]:
        return iter(self._menus.values())

    def __len__(self) -> int:
        return len(self._menus)

    def as_dict(self) -> dict[str, list[dict[str, Any]]]:
        return {name: menu.as_dict() for name, menu in self._menus.items()}


def add_page_entries(menus: MenuCollection, pages: PageCollection) -> None:
    for page in pages:
        if not page.has("menu"):
            continue
        try:
            spec = parse_menu_spec(page.get("menu"))
        except (ValueError, ValidationError) as exc:
            logger.warning("ignoring invalid menu of page '%s': %s", page.id, exc)
            continue
        if spec is None:
            continue
        for menu_name, weight in spec.memberships():
            menus.get(menu_name).add(
                MenuEntry(
                    id=page.id,
                    name=page.title or page.id,
                    url=page.permalink,
                    weight=weight,
                )
            )


def apply_menu_overrides(menus: MenuCollection, overrides: dict[str, list[MenuEntrySpec]]) -> None:
    for menu_name, entries in overrides.items():
        menu = menus.get(menu_name)
        for spec in entries:
            if spec.disabled:
                menu.remove(spec.id)
                continue
            menu.add(
                MenuEntry(
                    id=spec.id,
                    name=spec.name if spec.name is not None else spec.id,
                    url=spec.url or "",
                    weight=spec.weight,
                )
            )


def build_menus(pages: PageCollection, config: SiteConfig) -> MenuCollection:
    """Menus derived from page ``menu`` variables, then configuration overrides."""
    menus = MenuCollection()
    add_page_entries(menus, pages)
    apply_menu_overrides(menus, config.site.menu)
    return menus
