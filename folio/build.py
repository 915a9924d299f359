"""Build orchestration.

Sequence: locate content, create raw pages, convert them, run the
generator pipeline, assemble menus, resolve a layout for and render every
page, copy static assets.
"""

from __future__ import annotations

import logging
import shutil
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from jinja2 import TemplateError
from pydantic import Field

from folio.config import LayoutErrorPolicy, SiteConfig
from folio.content import SourceDocument, locate_content, page_from_document
from folio.convert import ConversionError, convert_page, is_published
from folio.errors import LayoutsDirectoryNotFoundError, ThemeNotFoundError
from folio.generators import GeneratorManager, ProgressCallback, default_generators, merge_pages
from folio.layout import LayoutNotFoundError, resolve_layout
from folio.menus import MenuCollection, build_menus
from folio.page import DuplicatePageIdError, PageCollection
from folio.render import TemplateRenderer, output_pathname, write_output
from folio.schemas import FolioBaseModel

logger = logging.getLogger("folio.build")

FOLIO_VERSION = "0.1.0"
RENDER_FAILURE_CODES = frozenset({"layout_not_found", "render_error"})


def log_progress(code: str, message: str = "", count: int = 0, total: int = 0) -> None:
    if not code.endswith("_PROGRESS"):
        logger.info("%s", message)
    elif total > 0:
        logger.debug("%d%% (%d/%d) %s", int(count / total * 100), count, total, message)
    else:
        logger.debug("%s", message)


class BuildIssue(FolioBaseModel):
    code: str
    message: str
    page_id: str | None = None
    path: str | None = None
    candidate: str | None = None


class BuildReport(FolioBaseModel):
    ok: bool = True
    output_dir: str
    started_at: datetime
    completed_at: datetime | None = None
    pages_created: int = 0
    pages_converted: int = 0
    pages_unpublished: int = 0
    pages_generated: int = 0
    pages_replaced: int = 0
    pages_rendered: int = 0
    static_files_copied: int = 0
    menus: dict[str, list[dict[str, Any]]] = Field(default_factory=dict)
    issues: list[BuildIssue] = Field(default_factory=list)


class Builder:
    def __init__(
        self,
        project_root: Path,
        config: SiteConfig,
        *,
        output_dir: Path | None = None,
        progress: ProgressCallback | None = None,
        generators: GeneratorManager | None = None,
    ) -> None:
        self.project_root = project_root
        self.config = config
        self.output_dir = output_dir if output_dir is not None else project_root / config.output.dir
        self.progress = progress or log_progress
        self.generators = generators if generators is not None else default_generators(config)
        self.pages = PageCollection()
        self.menus = MenuCollection()
        self.report = BuildReport(output_dir=str(self.output_dir), started_at=datetime.now(tz=UTC))

    @property
    def content_dir(self) -> Path:
        return self.project_root / self.config.content.dir

    @property
    def layouts_dir(self) -> Path:
        return self.project_root / self.config.layouts.dir

    @property
    def theme_dir(self) -> Path | None:
        if self.config.theme is None:
            return None
        return self.project_root / self.config.themes.dir / self.config.theme

    def search_paths(self) -> list[Path]:
        if not self.layouts_dir.is_dir():
            raise LayoutsDirectoryNotFoundError(path=self.layouts_dir)
        paths = [self.layouts_dir]
        theme_dir = self.theme_dir
        if theme_dir is not None:
            if not theme_dir.is_dir():
                raise ThemeNotFoundError(theme=self.config.theme or "", path=theme_dir.parent)
            paths.append(theme_dir / "layouts")
        return paths

    def build(self) -> BuildReport:
        search_paths = self.search_paths()
        self.prepare()
        self.generate_menus()
        self.render_pages(search_paths)
        self.copy_static()
        self.report.completed_at = datetime.now(tz=UTC)
        self.report.ok = not any(issue.code in RENDER_FAILURE_CODES for issue in self.report.issues)
        return self.report

    def prepare(self) -> PageCollection:
        documents = locate_content(self.content_dir, self.config.content.ext)
        self.create_pages(documents)
        self.convert_pages()
        self.generate_pages()
        return self.pages

    def create_pages(self, documents: list[SourceDocument]) -> None:
        self.pages = PageCollection()
        if not documents:
            return
        self.progress("CREATE", "Creating pages", 0, 0)
        for count, document in enumerate(documents, start=1):
            page = page_from_document(document)
            try:
                self.pages.add(page)
            except DuplicatePageIdError as exc:
                logger.warning("%s: %s", document.source_path, exc)
                self.report.issues.append(
                    BuildIssue(
                        code="duplicate_page_id",
                        message=str(exc),
                        page_id=page.id,
                        path=document.source_path.as_posix(),
                    )
                )
                continue
            self.progress("CREATE_PROGRESS", page.id, count, len(documents))
        self.report.pages_created = len(self.pages)

    def convert_pages(self) -> None:
        if len(self.pages) == 0:
            return
        self.progress("CONVERT", "Converting pages", 0, 0)
        total = len(self.pages)
        for count, page in enumerate(self.pages, start=1):
            if page.is_virtual:
                continue
            try:
                converted = convert_page(page, self.config.frontmatter.format)
            except ConversionError as exc:
                logger.warning("unable to convert frontmatter of '%s': %s", page.id, exc.details)
                self.pages.remove(page.id)
                self.report.issues.append(
                    BuildIssue(
                        code="conversion_error",
                        message=exc.details,
                        page_id=page.id,
                        path=exc.source_path,
                    )
                )
                continue

            if not is_published(converted, drafts=self.config.drafts):
                self.pages.remove(page.id)
                self.report.pages_unpublished += 1
                self.progress("CONVERT_PROGRESS", f"{page.id} (not published)", count, total)
                continue

            if self.config.drafts:
                converted.set("published", True)
            self.pages.replace(page.id, converted)
            self.report.pages_converted += 1
            self.progress("CONVERT_PROGRESS", page.id, count, total)

    def generate_pages(self) -> None:
        self.progress("GENERATE", "Generating pages", 0, 0)
        generated = self.generators.generate(self.pages, self.progress)
        added, replaced = merge_pages(self.pages, generated)
        self.report.pages_generated = added
        self.report.pages_replaced = replaced

    def generate_menus(self) -> MenuCollection:
        self.menus = build_menus(self.pages, self.config)
        self.report.menus = self.menus.as_dict()
        return self.menus

    def site_globals(self) -> dict[str, Any]:
        return {
            **self.config.site_variables(),
            "menus": self.menus,
            "pages": self.pages,
        }

    def resolve_layouts(self, search_paths: list[Path]) -> dict[str, str | None]:
        resolved: dict[str, str | None] = {}
        for page in self.pages:
            try:
                resolved[page.id] = resolve_layout(page, search_paths)
            except LayoutNotFoundError as exc:
                logger.error("%s", exc)
                resolved[page.id] = None
        return resolved

    def render_pages(self, search_paths: list[Path]) -> None:
        renderer = TemplateRenderer(search_paths, baseurl=self.config.site.baseurl)
        renderer.add_global("site", self.site_globals())
        renderer.add_global("folio", {"version": FOLIO_VERSION, "poweredby": f"Folio v{FOLIO_VERSION}"})

        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.progress("RENDER", "Rendering pages", 0, 0)
        total = len(self.pages)
        for count, page in enumerate(self.pages, start=1):
            try:
                template_name = resolve_layout(page, search_paths, exists=renderer.exists)
                content = renderer.render(template_name, {"page": page})
            except LayoutNotFoundError as exc:
                logger.error("%s", exc)
                self._handle_render_failure(
                    exc,
                    BuildIssue(
                        code="layout_not_found",
                        message=str(exc),
                        page_id=exc.page_id,
                        candidate=exc.last_candidate,
                    ),
                )
                continue
            except TemplateError as exc:
                logger.error("rendering '%s' failed: %s", page.id, exc)
                self._handle_render_failure(
                    exc,
                    BuildIssue(code="render_error", message=str(exc), page_id=page.id),
                )
                continue

            pathname = output_pathname(page, self.output_dir, self.config.output.filename)
            write_output(pathname, content)
            self.report.pages_rendered += 1
            self.progress("RENDER_PROGRESS", pathname.as_posix(), count, total)

    def _handle_render_failure(self, exc: Exception, issue: BuildIssue) -> None:
        self.report.issues.append(issue)
        if self.config.build.on_layout_error == LayoutErrorPolicy.abort:
            raise exc

    def copy_static(self) -> None:
        self.progress("COPY", "Copying static files", 0, 0)
        theme_dir = self.theme_dir
        if theme_dir is not None:
            self.report.static_files_copied += copy_tree(theme_dir / "static", self.output_dir)
        self.report.static_files_copied += copy_tree(
            self.project_root / self.config.static.dir,
            self.output_dir,
        )
        self.progress("COPY_PROGRESS", "Done", 0, 0)


def copy_tree(source_dir: Path, destination_dir: Path) -> int:
    if not source_dir.exists() or not source_dir.is_dir():
        return 0
    copied = 0
    for path in sorted(source_dir.rglob("*"), key=lambda item: item.as_posix()):
        if not path.is_file() or path.name.startswith("."):
            continue
        destination = destination_dir / path.relative_to(source_dir)
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(path, destination)
        copied += 1
    return copied


def build_site(
    project_root: Path,
    config: SiteConfig,
    *,
    output_dir: Path | None = None,
    progress: ProgressCallback | None = None,
) -> BuildReport:
    return Builder(project_root, config, output_dir=output_dir, progress=progress).build()
