from __future__ import annotations

import os
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import ConfigDict, Field, field_validator

from folio.schemas import FolioBaseModel, MenuEntrySpec, validate_menu_name

CONFIG_FILENAME = "config.yml"
DEFAULT_TAXONOMIES = {"tags": "tag", "categories": "category"}

_MISSING = object()


class TermsSort(str, Enum):
    insertion = "insertion"
    name = "name"
    count = "count"


class LayoutErrorPolicy(str, Enum):
    abort = "abort"
    skip = "skip"


class FrontmatterFormat(str, Enum):
    yaml = "yaml"
    json = "json"


def _validate_relative_path(value: str) -> str:
    path = value.strip()
    if not path:
        raise ValueError("path must be non-empty")
    if path.startswith("/"):
        raise ValueError("path must be relative")
    if ".." in path.split("/"):
        raise ValueError("path cannot contain '..'")
    return path


def _parse_bool(raw: str, *, env_var: str) -> bool:
    value = raw.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"{env_var} must be a boolean value")


def _parse_int(raw: str, *, env_var: str) -> int:
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{env_var} must be an integer") from exc


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


class SnapshotModel(FolioBaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class PaginateSettings(SnapshotModel):
    max: int = 5
    path: str = "page"
    disabled: bool = False

    @field_validator("max")
    @classmethod
    def validate_max(cls, value: int) -> int:
        if value < 1:
            raise ValueError("paginate.max must be >= 1")
        return value

    @field_validator("path")
    @classmethod
    def validate_path(cls, value: str) -> str:
        return _validate_relative_path(value).strip("/")


class SiteSettings(SnapshotModel):
    # free-form site variables (author, description, ...) are passed to templates
    model_config = ConfigDict(extra="allow", frozen=True)

    title: str = "Folio"
    baseline: str = "A Folio website"
    baseurl: str = "http://localhost:8000/"
    description: str = ""
    taxonomies: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_TAXONOMIES))
    taxonomy_terms_sort: TermsSort = TermsSort.insertion
    paginate: PaginateSettings = Field(default_factory=PaginateSettings)
    menu: dict[str, list[MenuEntrySpec]] = Field(default_factory=dict)

    @field_validator("taxonomies")
    @classmethod
    def validate_taxonomies(cls, value: dict[str, str]) -> dict[str, str]:
        cleaned: dict[str, str] = {}
        for plural, singular in value.items():
            plural_text = str(plural).strip()
            singular_text = str(singular).strip()
            if not plural_text or not singular_text:
                raise ValueError("taxonomy names must be non-empty")
            cleaned[plural_text] = singular_text
        return cleaned

    @field_validator("menu")
    @classmethod
    def validate_menu_names(cls, value: dict[str, list[MenuEntrySpec]]) -> dict[str, list[MenuEntrySpec]]:
        return {validate_menu_name(name): entries for name, entries in value.items()}


class ContentSettings(SnapshotModel):
    dir: str = "content"
    ext: list[str] = Field(default_factory=lambda: ["md"])

    @field_validator("dir")
    @classmethod
    def validate_dir(cls, value: str) -> str:
        return _validate_relative_path(value)

    @field_validator("ext", mode="before")
    @classmethod
    def normalize_ext(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = [value]
        if isinstance(value, list):
            return [str(item).strip().lstrip(".") for item in value if str(item).strip()]
        return value


class FrontmatterSettings(SnapshotModel):
    format: FrontmatterFormat = FrontmatterFormat.yaml


class DirSettings(SnapshotModel):
    dir: str

    @field_validator("dir")
    @classmethod
    def validate_dir(cls, value: str) -> str:
        return _validate_relative_path(value)


class OutputSettings(SnapshotModel):
    dir: str = "_site"
    filename: str = "index.html"

    @field_validator("dir")
    @classmethod
    def validate_dir(cls, value: str) -> str:
        return _validate_relative_path(value)

    @field_validator("filename")
    @classmethod
    def validate_filename(cls, value: str) -> str:
        text = value.strip()
        if not text or "/" in text:
            raise ValueError("output.filename must be a bare file name")
        return text


class GeneratorSettings(SnapshotModel):
    title_replace: bool = False


class BuildSettings(SnapshotModel):
    on_layout_error: LayoutErrorPolicy = LayoutErrorPolicy.abort


class SiteConfig(SnapshotModel):
    """Immutable configuration snapshot for one build."""

    site: SiteSettings = Field(default_factory=SiteSettings)
    content: ContentSettings = Field(default_factory=ContentSettings)
    frontmatter: FrontmatterSettings = Field(default_factory=FrontmatterSettings)
    static: DirSettings = Field(default_factory=lambda: DirSettings(dir="static"))
    layouts: DirSettings = Field(default_factory=lambda: DirSettings(dir="layouts"))
    themes: DirSettings = Field(default_factory=lambda: DirSettings(dir="themes"))
    theme: str | None = None
    output: OutputSettings = Field(default_factory=OutputSettings)
    drafts: bool = False
    generators: GeneratorSettings = Field(default_factory=GeneratorSettings)
    build: BuildSettings = Field(default_factory=BuildSettings)

    @field_validator("theme")
    @classmethod
    def normalize_theme(cls, value: str | None) -> str | None:
        if value is None:
            return None
        text = value.strip()
        if not text:
            return None
        return _validate_relative_path(text)

    def get(self, key: str, default: Any = None) -> Any:
        """Dotted lookup, e.g. ``config.get("site.paginate.max")``."""
        current: Any = self
        for part in key.split("."):
            if isinstance(current, FolioBaseModel):
                extra = current.model_extra or {}
                if part in type(current).model_fields:
                    current = getattr(current, part)
                elif part in extra:
                    current = extra[part]
                else:
                    return default
            elif isinstance(current, Mapping):
                current = current.get(part, _MISSING)
                if current is _MISSING:
                    return default
            else:
                return default
        return current

    def site_variables(self) -> dict[str, Any]:
        return self.site.model_dump(mode="python")


def read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValueError(f"{path.as_posix()} must contain a mapping")
    return payload


def load_site_config(
    project_root: Path,
    environ: Mapping[str, str] | None = None,
    *,
    overrides: Mapping[str, Any] | None = None,
) -> SiteConfig:
    env = dict(os.environ if environ is None else environ)
    payload = read_config_file(project_root / CONFIG_FILENAME)
    site_payload = payload.get("site") or {}
    payload["site"] = site_payload
    paginate_payload = site_payload.get("paginate") or {}
    site_payload["paginate"] = paginate_payload

    if "FOLIO_THEME" in env:
        payload["theme"] = env["FOLIO_THEME"]
    if "FOLIO_BASEURL" in env:
        site_payload["baseurl"] = env["FOLIO_BASEURL"].strip()
    if "FOLIO_DRAFTS" in env:
        payload["drafts"] = _parse_bool(env["FOLIO_DRAFTS"], env_var="FOLIO_DRAFTS")
    if "FOLIO_PAGINATE_MAX" in env:
        paginate_payload["max"] = _parse_int(env["FOLIO_PAGINATE_MAX"], env_var="FOLIO_PAGINATE_MAX")
    if "FOLIO_PAGINATE_DISABLED" in env:
        paginate_payload["disabled"] = _parse_bool(
            env["FOLIO_PAGINATE_DISABLED"],
            env_var="FOLIO_PAGINATE_DISABLED",
        )
    if "FOLIO_OUTPUT_DIR" in env:
        payload.setdefault("output", {})["dir"] = env["FOLIO_OUTPUT_DIR"]

    if overrides:
        payload = _deep_merge(payload, overrides)

    return SiteConfig.model_validate(payload)
