"""Virtual page generators and the generator pipeline.

Each generator reads the page collection it is given and returns a new
collection holding only the pages it derived. Generators never mutate
their input; derived pages are clones or fresh virtual pages. The
:class:`GeneratorManager` runs generators in ascending priority and every
generator sees the same, original input collection.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from typing import Any, Protocol

from folio.config import SiteConfig, TermsSort
from folio.page import Page, PageCollection, join_path, urlize
from folio.schemas import NodeType, date_sort_key

logger = logging.getLogger("folio.generators")

REDIRECT_LAYOUT = "redirect"

ProgressCallback = Callable[[str, str, int, int], None]


def noop_progress(code: str, message: str = "", count: int = 0, total: int = 0) -> None:
    return None


def sort_by_date(pages: list[Page]) -> list[Page]:
    return sorted(pages, key=lambda page: date_sort_key(page.date))


class Generator(Protocol):
    name: str

    def generate(self, pages: PageCollection, progress: ProgressCallback) -> PageCollection: ...


class SectionGenerator:
    """One SECTION page per top-level section, listing its pages newest first."""

    name = "section"

    def generate(self, pages: PageCollection, progress: ProgressCallback) -> PageCollection:
        generated = PageCollection()

        members: dict[str, list[Page]] = {}
        for page in pages:
            if page.node_type == NodeType.page and page.section:
                members.setdefault(page.section, []).append(page)

        explicit: dict[str, Page] = {}
        for page in pages:
            if page.node_type != NodeType.section or not page.section:
                continue
            if page.pathname == urlize(page.section):
                explicit.setdefault(page.section, page)

        for section, section_pages in members.items():
            listing = sort_by_date(section_pages)
            existing = explicit.get(section)
            if existing is not None:
                if not existing.has("pages"):
                    generated.add(existing.clone().set("pages", listing))
                continue

            section_id = urlize(section)
            if not section_id or pages.has(section_id):
                logger.debug("section '%s' collides with an existing page id; skipped", section)
                continue
            generated.add(
                Page(
                    id=section_id,
                    pathname=section_id,
                    title=section,
                    section=section,
                    node_type=NodeType.section,
                    variables={"pages": listing},
                    is_virtual=True,
                )
            )
        return generated


class AliasGenerator:
    """Redirect stub pages for every entry of a page's ``aliases`` variable."""

    name = "alias"

    def generate(self, pages: PageCollection, progress: ProgressCallback) -> PageCollection:
        generated = PageCollection()
        for page in pages:
            aliases = page.get("aliases")
            if not isinstance(aliases, list):
                continue
            for alias in aliases:
                alias_text = str(alias).strip()
                alias_id = urlize(alias_text)
                if not alias_id:
                    continue
                if pages.has(alias_id):
                    logger.warning("alias '%s' of '%s' shadows an existing page; skipped", alias_text, page.id)
                    continue
                generated.add_or_replace(
                    Page(
                        id=alias_id,
                        pathname=alias_id,
                        title=alias_text,
                        layout=REDIRECT_LAYOUT,
                        variables={"destination": page.permalink},
                        is_virtual=True,
                    )
                )
        return generated


class TaxonomyGenerator:
    """Term pages and a terms index page for every configured taxonomy."""

    name = "taxonomy"

    def __init__(self, config: SiteConfig) -> None:
        self.config = config

    @staticmethod
    def page_terms(page: Page, plural: str) -> list[str]:
        value = page.get(plural)
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, (list, tuple)):
            return []
        terms: list[str] = []
        for item in value:
            if item is None:
                continue
            term = str(item).strip()
            if term and term not in terms:
                terms.append(term)
        return terms

    def collect_terms(self, pages: PageCollection, plural: str) -> dict[str, list[Page]]:
        terms: dict[str, list[Page]] = {}
        for page in pages:
            if page.is_virtual:
                continue
            for term in self.page_terms(page, plural):
                terms.setdefault(term, []).append(page)
        return terms

    def sort_terms(self, terms: dict[str, list[Page]]) -> dict[str, list[Page]]:
        order = self.config.site.taxonomy_terms_sort
        items = list(terms.items())
        if order == TermsSort.name:
            items.sort(key=lambda item: item[0].casefold())
        elif order == TermsSort.count:
            items.sort(key=lambda item: -len(item[1]))
        return dict(items)

    @staticmethod
    def term_id(plural: str, term: str, taken: Callable[[str], bool]) -> str:
        """Page id for ``term``, suffixed ``-2``, ``-3``... while ``taken``."""
        base = join_path(plural, urlize(term) or "term")
        candidate = base
        suffix = 2
        while taken(candidate):
            candidate = f"{base}-{suffix}"
            suffix += 1
        return candidate

    def generate(self, pages: PageCollection, progress: ProgressCallback) -> PageCollection:
        generated = PageCollection()
        for plural, singular in self.config.site.taxonomies.items():
            terms = self.sort_terms(self.collect_terms(pages, plural))
            if not terms:
                continue

            # distinct terms may share a slug ("c++" and "c#"); each keeps its own page
            term_ids: dict[str, str] = {}
            for term, members in terms.items():
                term_id = self.term_id(plural, term, lambda page_id: generated.has(page_id) or pages.has(page_id))
                term_ids[term] = term_id
                generated.add(
                    Page(
                        id=term_id,
                        pathname=term_id,
                        title=term,
                        node_type=NodeType.taxonomy,
                        variables={
                            "pages": sort_by_date(members),
                            "plural": plural,
                            "singular": singular,
                            "term": term,
                        },
                        is_virtual=True,
                    )
                )

            index_id = urlize(plural)
            if pages.has(index_id):
                continue
            generated.add(
                Page(
                    id=index_id,
                    pathname=index_id,
                    title=plural,
                    node_type=NodeType.terms,
                    variables={
                        "terms": terms,
                        "term_ids": term_ids,
                        "plural": plural,
                        "singular": singular,
                    },
                    is_virtual=True,
                )
            )
        return generated


class HomepageGenerator:
    """Guarantee a HOMEPAGE listing every regular page."""

    name = "homepage"

    def __init__(self, config: SiteConfig) -> None:
        self.config = config

    def generate(self, pages: PageCollection, progress: ProgressCallback) -> PageCollection:
        generated = PageCollection()
        listing = sort_by_date([page for page in pages if page.node_type == NodeType.page])

        homepage = next((page for page in pages if page.node_type == NodeType.homepage), None)
        if homepage is not None:
            if not homepage.has("pages"):
                generated.add(homepage.clone().set("pages", listing))
            return generated

        if pages.has("index"):
            logger.warning("page id 'index' is taken by a non-homepage page; no homepage generated")
            return generated
        generated.add(
            Page(
                id="index",
                pathname="",
                title=self.config.site.title,
                node_type=NodeType.homepage,
                variables={"pages": listing},
                is_virtual=True,
            )
        )
        return generated


class PaginationGenerator:
    """Split the ``pages`` listing of HOMEPAGE and SECTION pages into slices.

    The first slice reuses the page's own id and pathname and gains an
    alias ``<path>/<paginate.path>/1``, backed by a redirect page emitted
    here; later slices live at ``<path>/<paginate.path>/<n>`` and never
    join menus.
    """

    name = "pagination"

    def __init__(self, config: SiteConfig) -> None:
        self.config = config

    def generate(self, pages: PageCollection, progress: ProgressCallback) -> PageCollection:
        generated = PageCollection()
        settings = self.config.site.paginate
        if settings.disabled:
            return generated
        per_page = settings.max
        if not isinstance(per_page, int) or per_page < 1:
            return generated

        listings = pages.filter(lambda page: page.node_type in (NodeType.homepage, NodeType.section))
        for page in listings:
            items = page.get("pages")
            if not isinstance(items, list) or len(items) <= per_page:
                continue
            for paginated in self.paginate(page, items, per_page, settings.path):
                generated.add(paginated)
            # the alias generator never sees the first slice's alias
            redirect = self.first_page_redirect(page, settings.path)
            if pages.has(redirect.id) or generated.has(redirect.id):
                logger.warning("pagination alias '%s' of '%s' shadows an existing page; skipped", redirect.id, page.id)
                continue
            generated.add(redirect)
        return generated

    @staticmethod
    def first_page_redirect(page: Page, paginate_path: str) -> Page:
        redirect_id = join_path(page.pathname, paginate_path, 1)
        return Page(
            id=redirect_id,
            pathname=redirect_id,
            title=redirect_id,
            layout=REDIRECT_LAYOUT,
            variables={"destination": page.permalink},
            is_virtual=True,
        )

    @staticmethod
    def paginate(page: Page, items: list[Any], per_page: int, paginate_path: str) -> list[Page]:
        path = page.pathname
        page_count = math.ceil(len(items) / per_page)
        paginated: list[Page] = []
        for index in range(page_count):
            altered = page.clone()
            if index == 0:
                aliases = altered.get("aliases")
                aliases = list(aliases) if isinstance(aliases, list) else []
                aliases.append(join_path(path, paginate_path, 1))
                altered.set("aliases", aliases)
            else:
                altered.id = join_path(path, paginate_path, index + 1)
                altered.pathname = altered.id
                altered.is_virtual = True
                altered.unset("menu").unset("aliases").unset("permalink")

            pagination: dict[str, Any] = {
                "pages": items[index * per_page : index * per_page + per_page],
                "current": index + 1,
                "total": page_count,
            }
            if index > 0:
                pagination["prev"] = join_path(path, paginate_path, index)
            if index < page_count - 1:
                pagination["next"] = join_path(path, paginate_path, index + 2)
            altered.set("pagination", pagination)
            paginated.append(altered)
        return paginated


class TransformGenerator:
    """Clone the pages matching ``predicate`` and apply ``transform`` to each clone."""

    name = "transform"

    def __init__(self, predicate: Callable[[Page], bool], transform: Callable[[Page], None]) -> None:
        self.predicate = predicate
        self.transform = transform

    def generate(self, pages: PageCollection, progress: ProgressCallback) -> PageCollection:
        generated = PageCollection()
        for page in pages.filter(self.predicate):
            altered = page.clone()
            self.transform(altered)
            generated.add(altered)
        return generated


def _upper_title(page: Page) -> None:
    page.title = page.title.upper() if page.title else page.title


class TitleReplaceGenerator(TransformGenerator):
    name = "title-replace"

    def __init__(self) -> None:
        super().__init__(predicate=lambda page: bool(page.title), transform=_upper_title)


def merge_pages(master: PageCollection, generated: PageCollection) -> tuple[int, int]:
    """Merge generated pages into ``master``; returns ``(added, replaced)``."""
    added = 0
    replaced = 0
    for page in generated:
        if master.replace(page.id, page):
            replaced += 1
        else:
            master.add(page)
            added += 1
    return added, replaced


class GeneratorManager:
    def __init__(self) -> None:
        self._entries: list[tuple[int, int, Generator]] = []

    def add_generator(self, generator: Generator, priority: int = 0) -> "GeneratorManager":
        self._entries.append((priority, len(self._entries), generator))
        return self

    def generators(self) -> list[Generator]:
        return [entry[2] for entry in sorted(self._entries, key=lambda entry: (entry[0], entry[1]))]

    def generate(self, pages: PageCollection, progress: ProgressCallback | None = None) -> PageCollection:
        """Run every generator against ``pages``; returns only derived pages.

        A page id produced by more than one generator keeps the version of
        the generator that ran last.
        """
        progress = progress or noop_progress
        generated = PageCollection()
        ordered = self.generators()
        for count, generator in enumerate(ordered, start=1):
            result = generator.generate(pages, progress)
            for page in result:
                generated.add_or_replace(page)
            logger.debug("generator %s produced %d pages", generator.name, len(result))
            progress("GENERATE_PROGRESS", f"{generator.name}: {len(result)} pages", count, len(ordered))
        return generated

    def run(self, pages: PageCollection, progress: ProgressCallback | None = None) -> PageCollection:
        """Return a copy of ``pages`` merged with everything the generators produced."""
        merged = pages.copy()
        merge_pages(merged, self.generate(pages, progress))
        return merged


def default_generators(config: SiteConfig) -> GeneratorManager:
    """Section, alias, taxonomy, homepage and pagination generators, in that order.

    Every generator reads the collection as it was before the pipeline ran,
    so pagination only splits HOMEPAGE and SECTION pages whose ``pages``
    listing comes from content (frontmatter). Listings created by the
    section and homepage generators in the same run are not paginated.
    """
    manager = (
        GeneratorManager()
        .add_generator(SectionGenerator(), 0)
        .add_generator(AliasGenerator(), 10)
        .add_generator(TaxonomyGenerator(config), 20)
        .add_generator(HomepageGenerator(config), 30)
        .add_generator(PaginationGenerator(config), 40)
    )
    if config.generators.title_replace:
        manager.add_generator(TitleReplaceGenerator(), 50)
    return manager
