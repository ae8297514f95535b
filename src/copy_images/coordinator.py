"""Per-document copy coordination: resolve each image once, copy, report."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, FrozenSet, List, Optional, Set

from .resolver import (
    OUTCOME_EXTERNAL,
    OUTCOME_FOUND,
    Resolution,
    SearchPath,
    resolve,
)

LOG = logging.getLogger("copy_images")

STDIN_SOURCE = "<stdin>"

CopyImageFn = Callable[[str, Path], None]


@dataclass
class DocumentContext:
    source: str
    doc_dir: Path
    search_path: SearchPath


@dataclass
class CopyReport:
    source: str
    copied: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    external: List[str] = field(default_factory=list)


def message_with_context(source: str, line: Optional[int], text: str) -> str:
    if line is None:
        return f"{source}: {text}"
    return f"{source}: line {line}: {text}"


def format_attempts(attempts: List[Path]) -> str:
    return "[" + ", ".join(f'"{path}"' for path in attempts) + "]"


class ImageCopier:
    """Copies each distinct image reference of one document at most once.

    One instance covers one document pass. The seen set only grows; a
    reference is marked before it is resolved, so an image that could not be
    found is not searched for again later in the same document.
    """

    def __init__(
        self,
        context: DocumentContext,
        copy_image: CopyImageFn,
        logger: logging.Logger = LOG,
    ) -> None:
        self.context = context
        self.copy_image = copy_image
        self.logger = logger
        self.report = CopyReport(source=context.source)
        self._seen: Set[str] = set()
        self._lock = threading.Lock()

    @property
    def seen(self) -> FrozenSet[str]:
        return frozenset(self._seen)

    def _mark(self, reference: str) -> bool:
        with self._lock:
            if reference in self._seen:
                return False
            self._seen.add(reference)
            return True

    def resolve_and_copy(self, reference: str, line: Optional[int]) -> Optional[Resolution]:
        if not self._mark(reference):
            return None

        resolution = resolve(reference, self.context.search_path)
        if resolution.outcome == OUTCOME_EXTERNAL:
            self.report.external.append(reference)
            return resolution

        if resolution.outcome == OUTCOME_FOUND:
            if resolution.path is None:
                raise RuntimeError(f"Resolved image {reference} has no source path")
            self.logger.info(message_with_context(self.context.source, line, f"copying {reference}"))
            self.copy_image(reference, resolution.path)
            self.report.copied.append(reference)
            return resolution

        self.logger.warning(
            message_with_context(
                self.context.source,
                line,
                f"can't read image at any of {format_attempts(resolution.attempts)}",
            )
        )
        self.report.missing.append(reference)
        return resolution
