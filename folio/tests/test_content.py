from __future__ import annotations

from pathlib import Path

import pytest

from folio.content import locate_content, page_from_document, split_frontmatter
from folio.errors import ContentDirectoryNotFoundError
from folio.schemas import NodeType


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def test_split_frontmatter_separates_fenced_block() -> None:
    frontmatter, body = split_frontmatter("---\ntitle: Hello\n---\n\nBody text\n")
    assert frontmatter == "title: Hello"
    assert body == "Body text\n"


def test_split_frontmatter_without_block_returns_whole_body() -> None:
    assert split_frontmatter("Just text\n---\nnot frontmatter") == ("", "Just text\n---\nnot frontmatter")


def test_locate_content_filters_extensions_and_ignored_paths(tmp_path: Path) -> None:
    content = tmp_path / "content"
    _write(content / "index.md", "---\ntitle: Home\n---\nHi")
    _write(content / "blog" / "post.md", "Post body")
    _write(content / "blog" / "notes.txt", "ignored")
    _write(content / "_drafts" / "wip.md", "ignored")
    _write(content / ".hidden.md", "ignored")

    documents = locate_content(content, ["md"])

    assert [doc.relative_path.as_posix() for doc in documents] == ["blog/post.md", "index.md"]
    assert documents[1].raw_frontmatter == "title: Home"
    assert documents[0].raw_frontmatter == ""
    assert documents[0].raw_body == "Post body"


def test_locate_content_requires_existing_directory(tmp_path: Path) -> None:
    with pytest.raises(ContentDirectoryNotFoundError, match="content directory not found"):
        locate_content(tmp_path / "missing", ["md"])


def test_page_from_document_assigns_node_types_and_sections(tmp_path: Path) -> None:
    content = tmp_path / "content"
    _write(content / "index.md", "Home")
    _write(content / "About Us.md", "About")
    _write(content / "Blog" / "index.md", "Blog")
    _write(content / "Blog" / "First Post.md", "First")

    pages = {page.id: page for page in map(page_from_document, locate_content(content, ["md"]))}

    assert pages["index"].node_type == NodeType.homepage
    assert pages["index"].pathname == ""
    assert pages["about-us"].node_type == NodeType.page
    assert pages["about-us"].section is None
    assert pages["blog/index"].node_type == NodeType.section
    assert pages["blog/index"].pathname == "blog"
    assert pages["blog/index"].section == "blog"
    assert pages["blog/first-post"].section == "blog"
    assert pages["blog/first-post"].pathname == "blog/first-post"
    assert all(page.is_virtual is False for page in pages.values())
