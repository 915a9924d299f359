from __future__ import annotations

import datetime as _dt
import re
from collections.abc import Mapping
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

MENU_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")


class FolioBaseModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class NodeType(str, Enum):
    page = "page"
    homepage = "homepage"
    section = "section"
    taxonomy = "taxonomy"
    terms = "terms"


def validate_menu_name(value: str) -> str:
    text = value.strip()
    if not MENU_NAME_RE.match(text):
        raise ValueError(f"invalid menu name: {value!r}")
    return text


class MenuWeight(FolioBaseModel):
    weight: int = 0


class SingleMenu(FolioBaseModel):
    """``menu: main`` in frontmatter."""

    kind: Literal["single"] = "single"
    name: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return validate_menu_name(value)

    def memberships(self) -> list[tuple[str, int]]:
        return [(self.name, 0)]


class MultipleMenus(FolioBaseModel):
    """``menu: {main: {weight: 10}, footer: null}`` in frontmatter."""

    kind: Literal["multiple"] = "multiple"
    menus: dict[str, MenuWeight]

    @field_validator("menus")
    @classmethod
    def validate_names(cls, value: dict[str, MenuWeight]) -> dict[str, MenuWeight]:
        return {validate_menu_name(name): weight for name, weight in value.items()}

    def memberships(self) -> list[tuple[str, int]]:
        return [(name, item.weight) for name, item in self.menus.items()]


MenuSpec = SingleMenu | MultipleMenus


def parse_menu_spec(value: Any) -> MenuSpec | None:
    if value is None or isinstance(value, (SingleMenu, MultipleMenus)):
        return value
    if isinstance(value, str):
        if not value.strip():
            return None
        return SingleMenu(name=value)
    if isinstance(value, Mapping):
        menus: dict[str, MenuWeight] = {}
        for name, options in value.items():
            if options is None:
                menus[str(name)] = MenuWeight()
            elif isinstance(options, Mapping):
                menus[str(name)] = MenuWeight.model_validate(dict(options))
            else:
                raise ValueError(f"menu '{name}' options must be a mapping")
        return MultipleMenus(menus=menus)
    if isinstance(value, list):
        # a list of names behaves like a mapping with default weights
        return MultipleMenus(menus={str(name): MenuWeight() for name in value})
    raise ValueError("menu must be a menu name or a mapping of menu names")


class MenuEntrySpec(FolioBaseModel):
    id: str
    name: str | None = None
    url: str | None = None
    weight: int = 0
    disabled: bool = False

    @field_validator("id")
    @classmethod
    def validate_id(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("menu entry id must be non-empty")
        return text

    @model_validator(mode="after")
    def validate_enabled_entry(self) -> "MenuEntrySpec":
        if not self.disabled and self.url is None:
            raise ValueError(f"menu entry '{self.id}' requires url unless disabled")
        return self


def parse_page_date(value: Any) -> _dt.datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, _dt.datetime):
        return value
    if isinstance(value, _dt.date):
        return _dt.datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _dt.datetime.fromtimestamp(value, tz=_dt.UTC).replace(tzinfo=None)
    if isinstance(value, str):
        try:
            return _dt.datetime.fromisoformat(value.strip())
        except ValueError as exc:
            raise ValueError(f"date must be ISO formatted: {value!r}") from exc
    raise ValueError(f"unsupported date value: {value!r}")


def date_sort_key(value: _dt.datetime | None) -> tuple[int, float]:
    """Newest first, undated last."""
    if value is None:
        return (1, 0.0)
    if value.tzinfo is None:
        value = value.replace(tzinfo=_dt.UTC)
    return (0, -value.timestamp())
