from __future__ import annotations

import pytest
from pydantic import ValidationError

from folio.config import SiteConfig
from folio.menus import Menu, MenuEntry, build_menus
from folio.page import Page, PageCollection
from folio.schemas import MultipleMenus, SingleMenu, parse_menu_spec


def test_menu_orders_by_weight_with_stable_ties() -> None:
    pages = PageCollection(
        [
            Page(id="a", title="A", pathname="a", variables={"menu": {"main": {"weight": 5}}}),
            Page(id="b", title="B", pathname="b", variables={"menu": {"main": {"weight": 1}}}),
            Page(id="c", title="C", pathname="c", variables={"menu": {"main": {"weight": 5}}}),
            Page(id="d", title="D", pathname="d", variables={"menu": {"main": {"weight": 0}}}),
        ]
    )

    menus = build_menus(pages, SiteConfig())

    assert [entry.id for entry in menus.get("main")] == ["d", "b", "a", "c"]


def test_single_and_multiple_menu_specs() -> None:
    pages = PageCollection(
        [
            Page(id="index", title="Home", pathname="", variables={"menu": "main"}),
            Page(id="about", pathname="about", variables={"menu": {"main": {"weight": 2}, "footer": None}}),
            Page(id="hidden", pathname="hidden"),
        ]
    )

    menus = build_menus(pages, SiteConfig())

    assert menus.names() == ["main", "footer"]
    assert menus.get("main").as_dict() == [
        {"id": "index", "name": "Home", "url": "", "weight": 0},
        {"id": "about", "name": "about", "url": "about", "weight": 2},
    ]
    assert [entry.id for entry in menus.get("footer")] == ["about"]


def test_invalid_page_menu_is_ignored() -> None:
    pages = PageCollection([Page(id="odd", variables={"menu": 42})])
    menus = build_menus(pages, SiteConfig())
    assert len(menus) == 0


def test_configuration_overrides_add_replace_and_disable() -> None:
    config = SiteConfig.model_validate(
        {
            "site": {
                "menu": {
                    "main": [
                        {"id": "about", "disabled": True},
                        {"id": "index", "name": "Start", "url": "/", "weight": 3},
                        {"id": "github", "name": "GitHub", "url": "https://github.com", "weight": -1},
                    ]
                }
            }
        }
    )
    pages = PageCollection(
        [
            Page(id="index", title="Home", variables={"menu": "main"}),
            Page(id="about", title="About", pathname="about", variables={"menu": "main"}),
        ]
    )

    menu = build_menus(pages, config).get("main")

    assert menu.has("about") is False
    assert [(entry.id, entry.name, entry.weight) for entry in menu] == [
        ("github", "GitHub", -1),
        ("index", "Start", 3),
    ]


def test_override_entry_requires_url_unless_disabled() -> None:
    with pytest.raises(ValidationError):
        SiteConfig.model_validate({"site": {"menu": {"main": [{"id": "x"}]}}})


def test_readding_entry_keeps_its_slot() -> None:
    menu = Menu("main")
    menu.add(MenuEntry(id="a", name="A", url="a"))
    menu.add(MenuEntry(id="b", name="B", url="b"))
    menu.add(MenuEntry(id="a", name="Renamed", url="a"))

    assert [entry.id for entry in menu] == ["a", "b"]
    assert menu.get("a").name == "Renamed"
    assert len(menu) == 2


def test_parse_menu_spec_shapes() -> None:
    assert parse_menu_spec(None) is None
    assert parse_menu_spec("main") == SingleMenu(name="main")
    assert parse_menu_spec(["main", "footer"]).memberships() == [("main", 0), ("footer", 0)]
    assert isinstance(parse_menu_spec({"main": {"weight": 4}}), MultipleMenus)
    with pytest.raises(ValueError):
        parse_menu_spec(3.5)
