from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from pathlib import Path, PurePosixPath
from typing import Any

from jinja2 import ChoiceLoader, DictLoader, Environment, FileSystemLoader, StrictUndefined

from folio.layout import REDIRECT_TEMPLATE
from folio.page import Page, urlize

TAG_RE = re.compile(r"<[^>]+>")
SLASHES_RE = re.compile(r"/+")

REDIRECT_SOURCE = """<!DOCTYPE html>
<html>
<head lang="en">
    <link rel="canonical" href="{{ page.get('destination') | url }}"/>
    <meta http-equiv="content-type" content="text/html; charset=utf-8" />
    <meta http-equiv="refresh" content="0;url={{ page.get('destination') | url }}" />
</head>
</html>
"""


def excerpt(value: str | None, length: int = 450, suffix: str = "…") -> str:
    text = TAG_RE.sub("", value or "").strip()
    if len(text) > length:
        return text[:length].rstrip() + suffix
    return text


def join_url(baseurl: str, path: str | None) -> str:
    if path is None:
        path = ""
    if re.match(r"^[a-z][a-z0-9+.-]*:", path) or path.startswith("//"):
        return path
    base = baseurl.rstrip("/")
    target = str(path).strip("/")
    if not target:
        return f"{base}/"
    return f"{base}/{target}"


class TemplateRenderer:
    """Jinja2 renderer over the layout search paths.

    ``redirect.html`` is built in and takes precedence over files on disk.
    """

    def __init__(self, search_paths: Sequence[Path], *, baseurl: str = "/") -> None:
        self.search_paths = [Path(path) for path in search_paths]
        self.baseurl = baseurl
        self.env = Environment(
            loader=ChoiceLoader(
                [
                    DictLoader({REDIRECT_TEMPLATE: REDIRECT_SOURCE}),
                    FileSystemLoader([str(path) for path in self.search_paths]),
                ]
            ),
            autoescape=False,
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )
        self._register_filters()

    def _register_filters(self) -> None:
        self.env.filters["urlize"] = urlize
        self.env.filters["excerpt"] = excerpt
        self.env.filters["url"] = lambda value: join_url(self.baseurl, _url_target(value))

    def add_global(self, name: str, value: Any) -> None:
        self.env.globals[name] = value

    def exists(self, path: Path) -> bool:
        return Path(path).is_file()

    def render(self, template_name: str, context: Mapping[str, Any]) -> bytes:
        template = self.env.get_template(template_name)
        return template.render(**context).encode("utf-8")


def _url_target(value: Any) -> str:
    if isinstance(value, Page):
        return value.permalink
    return "" if value is None else str(value)


def output_pathname(page: Page, output_dir: Path, filename: str) -> Path:
    """Destination file for a rendered page.

    Permalinks with a file extension are written as-is, anything else
    becomes ``<permalink>/<filename>``.
    """
    permalink = page.permalink
    if PurePosixPath(permalink).suffix:
        relative = permalink
    else:
        relative = f"{permalink}/{filename}"
    relative = SLASHES_RE.sub("/", relative).strip("/")
    return output_dir / relative


def write_output(pathname: Path, content: bytes) -> None:
    pathname.parent.mkdir(parents=True, exist_ok=True)
    pathname.write_bytes(content)
