from __future__ import annotations

import json
from pathlib import Path

import pytest

from folio.build import Builder, build_site
from folio.config import load_site_config
from folio.errors import ContentDirectoryNotFoundError, LayoutsDirectoryNotFoundError, ThemeNotFoundError
from folio.layout import LayoutNotFoundError


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def _make_site(root: Path, *, config: str = "") -> Path:
    _write(
        root / "config.yml",
        config
        or "\n".join(
            [
                "site:",
                "  title: Test Site",
                "  menu:",
                "    main:",
                "      - id: github",
                "        name: GitHub",
                "        url: https://github.com",
                "        weight: 1",
            ]
        ),
    )
    _write(root / "content" / "index.md", "---\ntitle: Home\nmenu: main\n---\nWelcome")
    _write(
        root / "content" / "about.md",
        "---\ntitle: About\nmenu:\n  main:\n    weight: 5\naliases:\n  - /old-about\n---\nAbout us",
    )
    _write(
        root / "content" / "blog" / "first.md",
        "---\ntitle: First\ndate: 2024-01-01\ntags: [python]\n---\n# First",
    )
    _write(
        root / "content" / "blog" / "second.md",
        "---\ntitle: Second\ndate: 2024-02-01\ntags: [python, web]\n---\nSecond post",
    )
    _write(root / "content" / "blog" / "draft.md", "---\ntitle: Draft\npublished: false\n---\nWIP")
    _write(root / "content" / "broken.md", "---\ntitle: [unclosed\n---\nbody")

    _write(root / "layouts" / "_default" / "page.html", "{{ page.title }}|{{ page.html }}")
    _write(
        root / "layouts" / "_default" / "list.html",
        "{{ page.title }}:{% for item in page.get('pages', []) %}{{ item.title }},{% endfor %}",
    )
    _write(root / "layouts" / "_default" / "terms.html", "{{ page.title }}:{{ page.get('terms') | join(',') }}")
    _write(root / "static" / "css" / "site.css", "body {}")
    return root


def _read(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def test_build_renders_content_generated_pages_and_static_files(tmp_path: Path) -> None:
    root = _make_site(tmp_path)
    events: list[str] = []

    def progress(code: str, message: str = "", count: int = 0, total: int = 0) -> None:
        events.append(code)

    report = build_site(root, load_site_config(root, environ={}), progress=progress)
    site = root / "_site"

    assert report.ok is True
    assert report.pages_created == 6
    assert report.pages_converted == 4
    assert report.pages_unpublished == 1
    assert report.pages_generated == 5
    assert report.pages_replaced == 1
    assert report.static_files_copied == 1
    assert [issue.code for issue in report.issues] == ["conversion_error"]
    assert report.issues[0].page_id == "broken"

    homepage = _read(site / "index.html")
    assert homepage.startswith("Home:")
    assert homepage.index("Second") < homepage.index("First") < homepage.index("About")
    assert "<h1>First</h1>" in _read(site / "blog" / "first" / "index.html")
    assert _read(site / "blog" / "index.html").startswith("blog:Second,First,")
    assert _read(site / "tags" / "python" / "index.html").startswith("python:Second,First,")
    assert _read(site / "tags" / "index.html") == "tags:python,web"
    assert "url=http://localhost:8000/about" in _read(site / "old-about" / "index.html")
    assert _read(site / "css" / "site.css") == "body {}"
    assert not (site / "broken").exists()
    assert not (site / "blog" / "draft").exists()

    assert [entry["id"] for entry in report.menus["main"]] == ["index", "github", "about"]
    assert {"CREATE", "CONVERT", "GENERATE", "RENDER", "COPY"} <= set(events)
    json.dumps(report.model_dump(mode="json"))


def test_drafts_setting_publishes_unpublished_pages(tmp_path: Path) -> None:
    root = _make_site(tmp_path)
    config = load_site_config(root, environ={"FOLIO_DRAFTS": "true"})

    report = Builder(root, config).build()

    assert report.pages_unpublished == 0
    assert (root / "_site" / "blog" / "draft" / "index.html").exists()


def test_missing_layout_aborts_by_default(tmp_path: Path) -> None:
    root = _make_site(tmp_path)
    (root / "layouts" / "_default" / "terms.html").unlink()

    with pytest.raises(LayoutNotFoundError, match="_default/terms.html"):
        build_site(root, load_site_config(root, environ={}))


def test_missing_layout_is_recorded_under_skip_policy(tmp_path: Path) -> None:
    root = _make_site(tmp_path, config="build:\n  on_layout_error: skip\n")
    (root / "layouts" / "_default" / "terms.html").unlink()

    report = build_site(root, load_site_config(root, environ={}))

    assert report.ok is False
    missing = [issue for issue in report.issues if issue.code == "layout_not_found"]
    assert [issue.page_id for issue in missing] == ["tags"]
    assert missing[0].candidate == "_default/terms.html"
    assert (root / "_site" / "about" / "index.html").exists()
    assert not (root / "_site" / "tags" / "index.html").exists()


def test_pagination_splits_explicit_listing_pages(tmp_path: Path) -> None:
    root = _make_site(tmp_path, config="site:\n  paginate:\n    max: 1\n")
    _write(root / "content" / "news" / "index.md", "---\ntitle: News\npages: [one, two, three]\n---\n")
    _write(
        root / "layouts" / "_default" / "section.html",
        "{% set pagination = page.get('pagination', {}) %}{{ pagination.get('current', 0) }}/{{ pagination.get('total', 0) }}",
    )

    report = build_site(root, load_site_config(root, environ={}))

    site = root / "_site"
    assert report.ok is True
    assert _read(site / "news" / "index.html") == "1/3"
    assert _read(site / "news" / "page" / "2" / "index.html") == "2/3"
    assert _read(site / "news" / "page" / "3" / "index.html") == "3/3"
    # page 2 links back to page/1, which redirects to the first slice
    assert "url=http://localhost:8000/news" in _read(site / "news" / "page" / "1" / "index.html")
    # listings produced by generators are not paginated in the same pass
    assert _read(site / "blog" / "index.html") == "0/0"
    assert not (site / "page" / "2").exists()


def test_theme_layouts_and_static_files_are_used(tmp_path: Path) -> None:
    root = _make_site(tmp_path, config="theme: plain\n")
    (root / "layouts" / "_default" / "terms.html").unlink()
    theme = root / "themes" / "plain"
    _write(theme / "layouts" / "_default" / "terms.html", "theme terms")
    _write(theme / "static" / "css" / "site.css", "theme css")
    _write(theme / "static" / "js" / "theme.js", "// theme")

    report = build_site(root, load_site_config(root, environ={}))

    site = root / "_site"
    assert report.static_files_copied == 3
    assert _read(site / "tags" / "index.html") == "theme terms"
    assert _read(site / "css" / "site.css") == "body {}"
    assert _read(site / "js" / "theme.js") == "// theme"


def test_missing_theme_raises(tmp_path: Path) -> None:
    root = _make_site(tmp_path, config="theme: absent\n")
    with pytest.raises(ThemeNotFoundError, match="absent"):
        build_site(root, load_site_config(root, environ={}))


def test_missing_directories_raise(tmp_path: Path) -> None:
    with pytest.raises(LayoutsDirectoryNotFoundError):
        build_site(tmp_path, load_site_config(tmp_path, environ={}))

    (tmp_path / "layouts").mkdir()
    with pytest.raises(ContentDirectoryNotFoundError):
        build_site(tmp_path, load_site_config(tmp_path, environ={}))


def test_output_dir_override(tmp_path: Path) -> None:
    root = _make_site(tmp_path / "site")
    output = tmp_path / "public"

    report = build_site(root, load_site_config(root, environ={}), output_dir=output)

    assert report.output_dir == str(output)
    assert (output / "index.html").exists()
    assert not (root / "_site").exists()
