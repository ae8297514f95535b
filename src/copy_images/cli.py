"""Command-line interface for copy-images."""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from .version import __version__


def _get_usage() -> str:
    return (
        f"copy-images {__version__}\n"
        "Usage:\n"
        "  copy-images [--help] [--version|--ver]\n"
        "  copy-images DOCUMENT [DOCUMENT ...] --to-dir TO_DIR [options]\n\n"
        "Documents:\n"
        "  .adoc/.asciidoc/.asc, .md/.markdown, .html/.htm; use - to read AsciiDoc from stdin\n\n"
        "Options:\n"
        "  --resources LIST             Extra image directories, comma separated\n"
        "                               (fallback: COPY_IMAGES_RESOURCES env var)\n"
        "  --strict                     Exit with an error when an image can't be found\n"
        "  --verbose                    Log every copied image\n"
        "  --debug                      Debug logs, including each search path"
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument("--help", action="store_true")
    parser.add_argument("--version", action="store_true")
    parser.add_argument("--ver", action="store_true")
    parser.add_argument("documents", nargs="*", help="Documents whose images should be copied")
    parser.add_argument("--to-dir", help="Output directory for copied images")
    parser.add_argument(
        "--resources",
        default=None,
        help="Comma separated directories searched after the document directory",
    )
    parser.add_argument("--strict", action="store_true", help="Fail when an image can't be found")
    parser.add_argument("--verbose", action="store_true", help="Verbose progress logs")
    parser.add_argument("--debug", action="store_true", help="Debug logs")
    return parser


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    parser = _build_parser()
    args, unknown = parser.parse_known_args(argv)
    if unknown:
        print(_get_usage())
        return 2

    if not argv or args.help:
        print(_get_usage())
        return 0

    if args.version or args.ver:
        print(__version__)
        return 0

    from copy_images import core
    from copy_images.resolver import parse_resources

    if not args.documents or not args.to_dir:
        print(_get_usage())
        print("At least one document and --to-dir are required", file=sys.stderr)
        return core.EXIT_INVALID_ARGS

    documents: list[Path] = []
    for raw in args.documents:
        if raw == core.STDIN_DOCUMENT:
            documents.append(Path(raw))
            continue
        document = Path(raw).expanduser().resolve()
        if not document.exists() or not document.is_file():
            print(f"Document not found: {document}", file=sys.stderr)
            return core.EXIT_INVALID_ARGS
        documents.append(document)

    to_dir = Path(args.to_dir).expanduser().resolve()
    if to_dir.exists() and not to_dir.is_dir():
        print(f"Output path is not a directory: {to_dir}", file=sys.stderr)
        return core.EXIT_OUTPUT_DIR

    core.setup_logging(args.verbose, args.debug)

    resources_value = args.resources if args.resources is not None else os.environ.get(core.RESOURCES_ENV)
    config = core.CopyImagesConfig(
        to_dir=to_dir,
        resources=parse_resources(resources_value),
        verbose=bool(args.verbose),
        debug=bool(args.debug),
        strict=bool(args.strict),
    )

    try:
        to_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        print(f"Unable to create output directory {to_dir}: {exc}", file=sys.stderr)
        return core.EXIT_OUTPUT_DIR

    try:
        reports = core.run_copy_pipeline(documents, config)
    except core.CopyImageError as exc:
        print(f"Copy failed: {exc}", file=sys.stderr)
        return core.EXIT_COPY_FAILED
    except RuntimeError as exc:
        print(str(exc), file=sys.stderr)
        return core.EXIT_INVALID_ARGS

    if config.strict and any(report.missing for report in reports):
        return core.EXIT_MISSING_IMAGES
    return core.EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
