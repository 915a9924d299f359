from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml
from markdown_it import MarkdownIt
from pydantic import ValidationError

from folio.config import FrontmatterFormat
from folio.page import Page
from folio.schemas import parse_menu_spec, parse_page_date

logger = logging.getLogger("folio.convert")

_md = MarkdownIt("commonmark", {"html": True}).enable("table")


class ConversionError(ValueError):
    def __init__(self, message: str, *, source_path: Path | str | None = None) -> None:
        self.source_path = str(source_path) if source_path is not None else None
        self.details = message
        if self.source_path:
            message = f"{self.source_path}: {message}"
        super().__init__(message)


def convert_frontmatter(raw: str, frontmatter_format: FrontmatterFormat | str = FrontmatterFormat.yaml) -> dict[str, Any]:
    fmt = FrontmatterFormat(frontmatter_format)
    if not raw.strip():
        return {}
    try:
        if fmt == FrontmatterFormat.json:
            payload = json.loads(raw)
        else:
            payload = yaml.safe_load(raw)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConversionError(f"malformed {fmt.value} frontmatter: {exc}") from exc
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ConversionError(f"{fmt.value} frontmatter must be a mapping")
    return {str(key): value for key, value in payload.items()}


def convert_body(raw: str) -> str:
    return _md.render(raw)


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def convert_page(page: Page, frontmatter_format: FrontmatterFormat | str = FrontmatterFormat.yaml) -> Page:
    """Return a converted copy of a raw content page.

    ``title``, ``section`` and ``layout`` move from the frontmatter onto the
    page; ``date`` and ``menu`` are parsed once and kept as variables.
    """
    try:
        variables = convert_frontmatter(page.frontmatter, frontmatter_format)
    except ConversionError as exc:
        raise ConversionError(exc.details, source_path=page.source_path or page.id) from exc

    converted = page.clone()

    title = _text(variables.pop("title", None))
    if title is not None:
        converted.title = title
    section = _text(variables.pop("section", None))
    if section is not None:
        converted.section = section
    layout = _text(variables.pop("layout", None))
    if layout is not None:
        converted.layout = layout

    try:
        if "date" in variables:
            converted.date = parse_page_date(variables["date"])
        if "menu" in variables:
            menu = parse_menu_spec(variables["menu"])
            if menu is None:
                del variables["menu"]
            else:
                variables["menu"] = menu
    except (ValueError, ValidationError) as exc:
        raise ConversionError(str(exc), source_path=page.source_path or page.id) from exc

    if isinstance(variables.get("aliases"), str):
        variables["aliases"] = [variables["aliases"]]
    variables.setdefault("published", True)

    converted.variables = variables
    converted.html = convert_body(page.body)
    logger.debug("converted %s", page.id)
    return converted


def is_published(page: Page, *, drafts: bool = False) -> bool:
    if drafts:
        return True
    return bool(page.get("published", True))
