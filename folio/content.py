from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from folio.errors import ContentDirectoryNotFoundError
from folio.page import Page, urlize
from folio.schemas import NodeType

FRONTMATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
INDEX_NAME = "index"


@dataclass(frozen=True)
class SourceDocument:
    raw_frontmatter: str
    raw_body: str
    source_path: Path
    relative_path: Path


def split_frontmatter(text: str) -> tuple[str, str]:
    match = FRONTMATTER_RE.match(text)
    if not match:
        return "", text
    body = text[match.end() :].lstrip("\r\n")
    return match.group(1), body


def is_ignored(relative_path: Path) -> bool:
    return any(part.startswith(("_", ".")) for part in relative_path.parts)


def locate_content(content_dir: Path, extensions: list[str]) -> list[SourceDocument]:
    if not content_dir.is_dir():
        raise ContentDirectoryNotFoundError(path=content_dir)

    suffixes = {f".{ext.lower()}" for ext in extensions}
    documents: list[SourceDocument] = []
    for path in sorted(content_dir.rglob("*"), key=lambda item: item.as_posix()):
        if not path.is_file() or path.suffix.lower() not in suffixes:
            continue
        relative_path = path.relative_to(content_dir)
        if is_ignored(relative_path):
            continue
        raw_frontmatter, raw_body = split_frontmatter(path.read_text(encoding="utf-8"))
        documents.append(
            SourceDocument(
                raw_frontmatter=raw_frontmatter,
                raw_body=raw_body,
                source_path=path,
                relative_path=relative_path,
            )
        )
    return documents


def page_from_document(document: SourceDocument) -> Page:
    """Create the raw (unconverted) page for a content document.

    ``index`` files are the node page of their directory: the root one is
    the homepage and ``<dir>/index`` is the section page of ``<dir>``.
    """
    relative = document.relative_path.with_suffix("")
    parts = [part for part in relative.parts if part]
    directories = parts[:-1]
    section = urlize(directories[0]) if directories else None

    if parts[-1] == INDEX_NAME:
        pathname = urlize("/".join(directories))
        node_type = NodeType.section if directories else NodeType.homepage
        page_id = urlize("/".join(parts))
    else:
        pathname = urlize("/".join(parts))
        node_type = NodeType.page
        page_id = pathname

    return Page(
        id=page_id or INDEX_NAME,
        pathname=pathname,
        title=parts[-1] if parts[-1] != INDEX_NAME else (directories[-1] if directories else None),
        section=section,
        node_type=node_type,
        frontmatter=document.raw_frontmatter,
        body=document.raw_body,
        source_path=document.source_path,
    )
