"""Locating and running the external cwebp encoder."""

import logging
import os
import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from .config import ENCODER_NAME
from .errors import EncoderNotFoundError, EncoderTimeoutError
from .models import CompressionSettings

logger = logging.getLogger(__name__)


def _app_dir() -> Path:
    """Directory the application runs from (the bundle dir when frozen)."""
    if getattr(sys, 'frozen', False):
        return Path(getattr(sys, '_MEIPASS', Path(sys.executable).parent))
    return Path(__file__).resolve().parent.parent


def is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


def candidate_paths(override: Optional[Path] = None) -> list[Path]:
    """Places to look for cwebp, in priority order."""
    candidates = []
    if override is not None:
        candidates.append(Path(override))
    app_dir = _app_dir()
    candidates.append(app_dir / ENCODER_NAME)
    candidates.append(app_dir / "tools" / ENCODER_NAME)
    on_path = shutil.which("cwebp")
    if on_path:
        candidates.append(Path(on_path))
    return candidates


def find_encoder(override: Optional[Path] = None,
                 candidates: Optional[Iterable[Path]] = None) -> Optional[Path]:
    """Return the first executable cwebp, or None when there is none."""
    if candidates is None:
        candidates = candidate_paths(override)
    for path in candidates:
        if is_executable(Path(path)):
            logger.debug(f"Using encoder at {path}")
            return Path(path)
    logger.warning("cwebp encoder not found; conversions will fail until it is installed")
    return None


@dataclass
class EncoderResult:
    """Exit status and diagnostics of one cwebp run."""
    returncode: int
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0


class Encoder:
    """Runs cwebp as `cwebp <input> [-lossless | -q N] -o <output>`."""

    def __init__(self, executable: Optional[Path], timeout: Optional[float] = None):
        self.executable = Path(executable) if executable is not None else None
        self.timeout = timeout

    @property
    def available(self) -> bool:
        return self.executable is not None and is_executable(self.executable)

    def build_arguments(self, input_path: Path, output_path: Path,
                        settings: CompressionSettings) -> list[str]:
        """Encoder arguments (without the executable) for one conversion."""
        args = [str(input_path)]
        if settings.lossless:
            args.append("-lossless")
        else:
            args.extend(["-q", str(settings.encoder_quality())])
        args.extend(["-o", str(output_path)])
        return args

    def convert(self, input_path: Path, output_path: Path,
                settings: CompressionSettings) -> EncoderResult:
        """Run the encoder and wait for it to exit.

        Raises EncoderNotFoundError when no usable binary is configured,
        OSError when the process cannot be started and EncoderTimeoutError
        when a timeout is configured and exceeded.
        """
        if not self.available:
            raise EncoderNotFoundError("Bundled cwebp not found or not executable.")

        command = [str(self.executable)] + self.build_arguments(input_path, output_path, settings)
        logger.debug(f"Running: {' '.join(command)}")

        try:
            completed = subprocess.run(
                command,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                text=True,
                encoding='utf-8',
                errors='replace',
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise EncoderTimeoutError(input_path, self.timeout) from exc

        return EncoderResult(returncode=completed.returncode, stderr=completed.stderr or "")
