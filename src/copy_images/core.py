"""Core pipeline for copy-images."""

from __future__ import annotations

import logging
import posixpath
import re
import shutil
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from .coordinator import (
    STDIN_SOURCE,
    CopyImageFn,
    CopyReport,
    DocumentContext,
    ImageCopier,
)
from .resolver import build_search_path

LOG = logging.getLogger("copy_images")

EXIT_OK = 0
EXIT_INVALID_ARGS = 6
EXIT_OUTPUT_DIR = 7
EXIT_COPY_FAILED = 8
EXIT_MISSING_IMAGES = 9

RESOURCES_ENV = "COPY_IMAGES_RESOURCES"
STDIN_DOCUMENT = "-"

KIND_ASCIIDOC = "asciidoc"
KIND_MARKDOWN = "markdown"
KIND_HTML = "html"

DOCUMENT_SUFFIXES = {
    ".adoc": KIND_ASCIIDOC,
    ".asciidoc": KIND_ASCIIDOC,
    ".asc": KIND_ASCIIDOC,
    ".md": KIND_MARKDOWN,
    ".markdown": KIND_MARKDOWN,
    ".html": KIND_HTML,
    ".htm": KIND_HTML,
}

BLOCK_IMAGE_RE = re.compile(r"^image::(\S|\S.*?\S)\[.*\]\s*$")
INLINE_IMAGE_RE = re.compile(r"(?<![\\\w])image:([^:\s\[](?:[^\n\[]*[^\s\[])?)\[[^\]]*\]")
ASCIIDOC_COMMENT_BLOCK_RE = re.compile(r"^/{4,}\s*$")
IMG_LINK_RE = re.compile(r"(!\[[^\]]*\]\()([^\)]+)(\))")
FENCE_RE = re.compile(r"^\s*(```|~~~)")


class CopyImageError(RuntimeError):
    """The filesystem copy of a resolved image failed."""


@dataclass
class CopyImagesConfig:
    to_dir: Path
    resources: Optional[List[str]] = None
    verbose: bool = False
    debug: bool = False
    strict: bool = False


def _resolve_log_level(verbose: bool, debug: bool) -> int:
    return logging.DEBUG if debug else (logging.INFO if verbose else logging.WARNING)


def _configure_copy_images_logger(level: int) -> None:
    LOG.setLevel(level)
    LOG.propagate = False
    if not LOG.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        handler.setLevel(level)
        LOG.addHandler(handler)
    else:
        for handler in LOG.handlers:
            handler.setLevel(level)
            if handler.formatter is None:
                handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))


def setup_logging(verbose: bool, debug: bool) -> None:
    level = _resolve_log_level(verbose, debug)
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")
    _configure_copy_images_logger(level)


def document_kind(path: Path) -> str:
    return DOCUMENT_SUFFIXES.get(path.suffix.lower(), KIND_ASCIIDOC)


def iter_asciidoc_references(text: str) -> Iterator[Tuple[int, str]]:
    in_comment = False
    for line_no, line in enumerate(text.splitlines(), start=1):
        if ASCIIDOC_COMMENT_BLOCK_RE.match(line):
            in_comment = not in_comment
            continue
        if in_comment or (line.startswith("//") and not line.startswith("///")):
            continue
        block = BLOCK_IMAGE_RE.match(line)
        if block:
            yield line_no, block.group(1)
            continue
        for match in INLINE_IMAGE_RE.finditer(line):
            yield line_no, match.group(1)


def _clean_markdown_target(raw: str) -> str:
    target = raw.strip()
    if target.startswith("<") and ">" in target:
        return target[1 : target.index(">")].strip()
    return target.split()[0] if target else ""


def iter_markdown_references(text: str) -> Iterator[Tuple[int, str]]:
    fence: Optional[str] = None
    for line_no, line in enumerate(text.splitlines(), start=1):
        fence_match = FENCE_RE.match(line)
        if fence_match:
            marker = fence_match.group(1)
            if fence is None:
                fence = marker
            elif fence == marker:
                fence = None
            continue
        if fence is not None:
            continue
        for match in IMG_LINK_RE.finditer(line):
            target = _clean_markdown_target(match.group(2))
            if target:
                yield line_no, target


def iter_html_references(text: str) -> Iterator[Tuple[int, str]]:
    try:
        from bs4 import BeautifulSoup  # type: ignore
    except Exception as exc:
        raise RuntimeError(f"beautifulsoup4 not available: {exc}") from exc

    soup = BeautifulSoup(text, "html.parser")
    for tag in soup.find_all("img"):
        src = (tag.get("src") or "").strip()
        if src:
            yield tag.sourceline, src


def discover_references(text: str, kind: str) -> List[Tuple[int, str]]:
    if kind == KIND_MARKDOWN:
        return list(iter_markdown_references(text))
    if kind == KIND_HTML:
        return list(iter_html_references(text))
    if kind == KIND_ASCIIDOC:
        return list(iter_asciidoc_references(text))
    raise ValueError(f"Unsupported document kind: {kind}")


def output_relative_path(reference: str) -> Path:
    """Map a reference to a path inside the output directory.

    Leading ``/`` and ``..`` parts are dropped, so ``../images/a.png`` lands
    at ``images/a.png``.
    """
    normalized = posixpath.normpath(reference.replace("\\", "/"))
    parts = [part for part in normalized.split("/") if part not in ("", ".", "..")]
    if not parts:
        raise CopyImageError(f"Image reference {reference} has no file name")
    return Path(*parts)


def make_copy_image(to_dir: Path) -> CopyImageFn:
    """Build the copy side-effect that mirrors each reference under ``to_dir``."""
    root = Path(to_dir)

    def copy_image(reference: str, source: Path) -> None:
        destination = root / output_relative_path(reference)
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, destination)
        except OSError as exc:
            raise CopyImageError(f"Unable to copy {source} -> {destination}: {exc}") from exc
        LOG.debug("Copied image: %s -> %s", source, destination)

    return copy_image


def build_document_context(document: Path, resources: Optional[List[str]]) -> DocumentContext:
    if str(document) == STDIN_DOCUMENT:
        source = STDIN_SOURCE
        doc_dir = Path.cwd()
    else:
        source = str(document)
        doc_dir = document.parent
    return DocumentContext(source=source, doc_dir=doc_dir, search_path=build_search_path(doc_dir, resources))


def read_document(document: Path) -> str:
    if str(document) == STDIN_DOCUMENT:
        return sys.stdin.read()
    try:
        return document.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise RuntimeError(f"Unable to read document {document}: {exc}") from exc


def copy_document_images(
    text: str,
    context: DocumentContext,
    copy_image: CopyImageFn,
    kind: str = KIND_ASCIIDOC,
) -> CopyReport:
    copier = ImageCopier(context, copy_image)
    for line_no, reference in discover_references(text, kind):
        copier.resolve_and_copy(reference, line_no)
    return copier.report


def run_copy_pipeline(
    documents: List[Path],
    config: CopyImagesConfig,
    copy_image: Optional[CopyImageFn] = None,
) -> List[CopyReport]:
    if copy_image is None:
        copy_image = make_copy_image(config.to_dir)

    reports: List[CopyReport] = []
    for document in documents:
        context = build_document_context(document, config.resources)
        kind = KIND_ASCIIDOC if str(document) == STDIN_DOCUMENT else document_kind(document)
        text = read_document(document)
        if config.debug:
            LOG.debug("Search path for %s: %s", context.source, [str(p) for p in context.search_path])
        report = copy_document_images(text, context, copy_image, kind)
        if config.verbose:
            LOG.info(
                "%s: copied %d image(s), %d missing, %d external",
                report.source,
                len(report.copied),
                len(report.missing),
                len(report.external),
            )
        reports.append(report)
    return reports
