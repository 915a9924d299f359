from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any

from jinja2 import TemplateError

from folio.build import Builder
from folio.config import load_site_config
from folio.errors import BuildError
from folio.layout import LayoutNotFoundError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Folio static site builder")
    subparsers = parser.add_subparsers(dest="command", required=True)

    site_build_parser = subparsers.add_parser("build", help="Build the site into the output directory")
    site_build_parser.add_argument(
        "--project-root",
        type=Path,
        default=Path.cwd(),
        help="Site root containing config.yml, content/ and layouts/.",
    )
    site_build_parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Output directory (default: output.dir from config.yml).",
    )
    site_build_parser.add_argument(
        "--drafts",
        action="store_true",
        help="Publish pages marked `published: false`.",
    )
    site_build_parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON output.")
    site_build_parser.add_argument("--verbose", action="store_true", help="Log build progress to stderr.")

    resolve_parser = subparsers.add_parser(
        "resolve-layouts",
        help="Print the template each page resolves to, without rendering.",
    )
    resolve_parser.add_argument(
        "--project-root",
        type=Path,
        default=Path.cwd(),
        help="Site root containing config.yml, content/ and layouts/.",
    )
    resolve_parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON output.")
    resolve_parser.add_argument("--verbose", action="store_true", help="Log build progress to stderr.")

    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def emit(payload: dict[str, Any], *, pretty: bool) -> None:
    if pretty:
        print(json.dumps(payload, indent=2, sort_keys=True))
    else:
        print(json.dumps(payload, sort_keys=True))


def error_payload(exc: Exception) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "ok": False,
        "error_type": exc.__class__.__name__,
        "message": str(exc),
    }
    if isinstance(exc, LayoutNotFoundError):
        payload["page_id"] = exc.page_id
        payload["candidate"] = exc.last_candidate
    return payload


def run_build(args: argparse.Namespace) -> int:
    project_root = args.project_root.resolve()
    overrides = {"drafts": True} if args.drafts else None

    try:
        config = load_site_config(project_root, overrides=overrides)
        report = Builder(project_root, config, output_dir=args.output_dir).build()
    except (BuildError, LayoutNotFoundError, TemplateError, ValueError) as exc:
        emit(error_payload(exc), pretty=args.pretty)
        return 1

    emit(report.model_dump(mode="json"), pretty=args.pretty)
    return 0 if report.ok else 1


def run_resolve_layouts(args: argparse.Namespace) -> int:
    project_root = args.project_root.resolve()

    try:
        config = load_site_config(project_root)
        builder = Builder(project_root, config)
        search_paths = builder.search_paths()
        builder.prepare()
    except (BuildError, ValueError) as exc:
        emit(error_payload(exc), pretty=args.pretty)
        return 1

    layouts = builder.resolve_layouts(search_paths)
    missing = sorted(page_id for page_id, template in layouts.items() if template is None)
    payload = {
        "ok": not missing,
        "layouts": layouts,
        "missing": missing,
        "search_paths": [path.as_posix() for path in search_paths],
    }
    emit(payload, pretty=args.pretty)
    return 0 if not missing else 1


def main() -> int:
    parser = build_parser()
    args = parser.parse_args()
    configure_logging(args.verbose)

    if args.command == "build":
        return run_build(args)
    if args.command == "resolve-layouts":
        return run_resolve_layouts(args)
    parser.error(f"Unknown command: {args.command}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
