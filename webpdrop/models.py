"""Data model for queued files, compression settings and output policy."""

import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from .config import DEFAULT_QUALITY


class ConversionStatus(Enum):
    PENDING = "pending"
    CONVERTED = "converted"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self is not ConversionStatus.PENDING

    @property
    def label(self) -> str:
        """Display text for the queue table."""
        return self.value.capitalize()


class SkipReason(Enum):
    ALREADY_TARGET_FORMAT = "already_target_format"
    OUTPUT_EXISTS = "output_exists"


class QualityPreset(Enum):
    """Quick quality presets offered next to the quality slider."""
    CUSTOM = "Custom"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    TINY = "Tiny"

    @property
    def quality(self) -> Optional[int]:
        return _PRESET_QUALITY.get(self)

    @classmethod
    def for_quality(cls, quality: float) -> "QualityPreset":
        """Return the preset matching a quality value, or CUSTOM."""
        for preset, value in _PRESET_QUALITY.items():
            if value == quality:
                return preset
        return cls.CUSTOM


_PRESET_QUALITY = {
    QualityPreset.HIGH: 90,
    QualityPreset.MEDIUM: 75,
    QualityPreset.LOW: 50,
    QualityPreset.TINY: 30,
}


@dataclass
class ConversionInfo:
    """Per-file sizes and conversion state."""
    original_size: int
    estimated_output_size: Optional[int] = None
    actual_output_size: Optional[int] = None
    status: ConversionStatus = ConversionStatus.PENDING
    error: Optional[str] = None
    skip_reason: Optional[SkipReason] = None


@dataclass(frozen=True)
class CompressionSettings:
    """Encoder settings chosen in the UI."""
    lossless: bool = False
    quality: float = DEFAULT_QUALITY

    def encoder_quality(self) -> int:
        """Quality rounded half-up and clamped to the encoder's 0-100 range."""
        return max(0, min(100, int(math.floor(self.quality + 0.5))))

    def describe(self) -> str:
        return "lossless" if self.lossless else f"q={self.encoder_quality()}"


@dataclass
class OutputPolicy:
    """Where converted files go and what happens around the conversion."""
    save_next_to_original: bool = True
    custom_folder: Optional[Path] = None
    auto_subfolder: bool = True
    preserve_structure: bool = False
    skip_existing_output: bool = True
    delete_original_on_success: bool = False
    use_trash: bool = True
    last_scanned_folder: Optional[Path] = None


@dataclass
class ConversionOutcome:
    """Result of one job, produced by a worker and applied by the coordinator."""
    source_path: Path
    status: ConversionStatus
    dest_path: Optional[Path] = None
    output_size: Optional[int] = None
    error: Optional[str] = None
    skip_reason: Optional[SkipReason] = None


@dataclass
class BatchProgress:
    completed: int
    total: int
    current_file: str = ""

    @property
    def fraction(self) -> float:
        if self.total <= 0:
            return 1.0
        return self.completed / self.total


@dataclass
class BatchSummary:
    """Outcome of a whole batch run."""
    total: int = 0  # entries pending when the batch started
    converted: int = 0
    failed: int = 0
    skipped: int = 0
    last_error: Optional[str] = None
    failures: dict[Path, str] = field(default_factory=dict)

    @property
    def has_errors(self) -> bool:
        return self.failed > 0

    @property
    def message(self) -> str:
        if self.has_errors:
            return f"Finished with errors: {self.last_error}"
        return f"Finished converting {self.total} file(s)."

    def record(self, outcome: ConversionOutcome) -> None:
        """Count one finished job."""
        if outcome.status is ConversionStatus.CONVERTED:
            self.converted += 1
        elif outcome.status is ConversionStatus.SKIPPED:
            self.skipped += 1
        elif outcome.status is ConversionStatus.FAILED:
            self.failed += 1
            self.last_error = outcome.error
            self.failures[outcome.source_path] = outcome.error or ""
