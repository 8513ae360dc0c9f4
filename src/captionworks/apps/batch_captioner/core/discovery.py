"""Filesystem helpers for locating images and their sidecar files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Tuple

from .models import ProcessingMode

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp"})
SIDECAR_SUFFIX = ".txt"


def is_image(path: str | Path) -> bool:
    """Check if a file name carries a recognised image extension."""
    return Path(path).suffix.lower() in IMAGE_EXTENSIONS


def sidecar_path(image_path: str | Path) -> Path:
    """Return the description file that sits next to *image_path*.

    Only the final extension is replaced, so ``a.b.jpg`` maps to ``a.b.txt``.
    """
    return Path(image_path).with_suffix(SIDECAR_SUFFIX)


def scan_directory(directory: Path) -> List[Path]:
    """Return image files directly inside *directory*, ordered by name.

    Subdirectories are never entered. Entries that are not directories are
    kept even if they cannot be read, so that a broken file surfaces as a
    per-image error instead of silently vanishing.
    """

    images: List[Path] = []
    for candidate in directory.iterdir():
        if candidate.is_dir():
            continue
        if is_image(candidate.name):
            images.append(candidate)
    images.sort(key=lambda path: path.name)
    logger.debug("Scanned %s: %d image(s)", directory, len(images))
    return images


def filter_by_mode(
    images: Iterable[Path], mode: ProcessingMode
) -> Tuple[List[Path], int]:
    """Drop images without an existing sidecar when *mode* needs one.

    Returns the retained images and the number skipped.
    """

    retained = list(images)
    if not mode.requires_existing:
        return retained, 0

    kept: List[Path] = []
    skipped = 0
    for image in retained:
        if sidecar_path(image).exists():
            kept.append(image)
        else:
            logger.debug("Skipping %s: no existing sidecar", image.name)
            skipped += 1
    return kept, skipped
