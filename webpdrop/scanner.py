"""Finding image files to queue."""

import logging
import os
from pathlib import Path
from typing import Iterator, Union

from .config import INPUT_EXTENSIONS

logger = logging.getLogger(__name__)


def is_image_file(path: Union[str, Path]) -> bool:
    """Check by extension (case-insensitive) that this is a supported image."""
    return Path(path).suffix.lower() in INPUT_EXTENSIONS


def _is_hidden(name: str) -> bool:
    return name.startswith('.')


def _raise_walk_error(error: OSError) -> None:
    raise error


def scan_folder(folder: Union[str, Path], recursive: bool = False) -> Iterator[Path]:
    """Yield supported image files in `folder`, skipping hidden entries.

    Non-recursive scans only list direct children. Raises OSError when a
    directory cannot be read.
    """
    folder = Path(folder)

    if recursive:
        for root, dirs, files in os.walk(folder, onerror=_raise_walk_error):
            # Prune hidden directories in place so os.walk does not descend
            dirs[:] = sorted(d for d in dirs if not _is_hidden(d))
            for name in sorted(files):
                if not _is_hidden(name) and is_image_file(name):
                    yield Path(root) / name
    else:
        with os.scandir(folder) as entries:
            names = sorted(
                entry.name for entry in entries
                if entry.is_file() and not _is_hidden(entry.name)
            )
        for name in names:
            if is_image_file(name):
                yield folder / name


def collect_images(folder: Union[str, Path], recursive: bool = False) -> list[Path]:
    """Scan `folder` eagerly.

    The whole call fails on a read error; nothing collected before the
    error is returned.
    """
    images = list(scan_folder(folder, recursive))
    logger.debug(f"Found {len(images)} image(s) in {folder} (recursive={recursive})")
    return images
