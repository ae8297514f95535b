"""Image reference resolution against a document search path."""

from __future__ import annotations

import csv
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

LOG = logging.getLogger("copy_images")

OUTCOME_EXTERNAL = "external"
OUTCOME_FOUND = "found"
OUTCOME_NOT_FOUND = "not_found"

DEFAULT_RESOURCES_DIR = "resources"
FALLBACK_DIR = Path("resources") / "copy_images"

# Scheme of at least two characters so Windows drive letters are not URIs.
URI_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9.+-]+:/{0,2}")


@dataclass(frozen=True)
class SearchPath:
    directories: Tuple[Path, ...]

    def __iter__(self):
        return iter(self.directories)

    def __len__(self) -> int:
        return len(self.directories)


@dataclass
class Resolution:
    outcome: str
    reference: str
    path: Optional[Path] = None
    base_dir: Optional[Path] = None
    attempts: List[Path] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.outcome == OUTCOME_FOUND


def is_external_reference(reference: str) -> bool:
    return bool(URI_SCHEME_RE.match(reference))


def parse_resources(value: Optional[str]) -> Optional[List[str]]:
    """Normalise the ``resources`` setting into an ordered list of entries.

    ``None`` means the setting is absent and is kept distinct from an empty
    list, which means it was given but named nothing usable.
    """
    if value is None:
        return None
    try:
        rows = list(csv.reader([value], skipinitialspace=True, strict=True))
    except csv.Error as exc:
        LOG.error("Error loading [resources]: %s", exc)
        # Fall back to a plain comma split so the usable entries survive.
        rows = [[raw.strip().strip('"') for raw in value.split(",")]]
    entries: List[str] = []
    for row in rows:
        for raw in row:
            entry = raw.strip()
            if entry:
                entries.append(entry)
    return entries


def build_search_path(doc_dir: Path, resources: Optional[Iterable[str]]) -> SearchPath:
    """Search order: the document directory, resources, then the fallback."""
    doc_dir = Path(doc_dir)
    directories: List[Path] = [doc_dir]
    if resources is None:
        directories.append(doc_dir / DEFAULT_RESOURCES_DIR)
    else:
        for entry in resources:
            # An absolute entry replaces doc_dir when joined.
            directories.append(doc_dir / entry)
    directories.append(doc_dir / FALLBACK_DIR)
    return SearchPath(tuple(directories))


def resolve(reference: str, search_path: SearchPath) -> Resolution:
    if is_external_reference(reference):
        return Resolution(outcome=OUTCOME_EXTERNAL, reference=reference)

    attempts: List[Path] = []
    for base_dir in search_path:
        candidate = base_dir / reference
        # Absolute references give the same candidate for every base.
        if candidate in attempts:
            continue
        attempts.append(candidate)
        if candidate.is_file():
            LOG.debug("Resolved %s in %s", reference, base_dir)
            return Resolution(
                outcome=OUTCOME_FOUND,
                reference=reference,
                path=candidate,
                base_dir=base_dir,
                attempts=attempts,
            )
    return Resolution(outcome=OUTCOME_NOT_FOUND, reference=reference, attempts=attempts)
