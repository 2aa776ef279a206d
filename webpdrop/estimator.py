"""Output size estimates and savings figures for queued files."""

import math
from fractions import Fraction
from typing import Optional

from .models import CompressionSettings, ConversionInfo, ConversionStatus

LOSSLESS_RATIO = Fraction(3, 4)
LOSSY_BASE_RATIO = Fraction(1, 5)
LOSSY_QUALITY_SPAN = Fraction(3, 4)


class SizeEstimator:
    """Estimates WebP output size from the original size and settings.

    The figures are a heuristic (about 20% of the original at q=0 up to 95%
    at q=100, 75% for lossless), not measured data.
    """

    @classmethod
    def estimate_ratio(cls, settings: CompressionSettings) -> Fraction:
        """Expected output/original size ratio for the given settings."""
        if settings.lossless:
            return LOSSLESS_RATIO
        return LOSSY_BASE_RATIO + Fraction(settings.quality) / 100 * LOSSY_QUALITY_SPAN

    @classmethod
    def estimate(cls, original_size: int, settings: CompressionSettings) -> int:
        """Projected output size in bytes.

        Computed with exact fractions so results such as 1,000,000 bytes at
        q=80 come out at 800,000 rather than one byte short.
        """
        return math.floor(original_size * cls.estimate_ratio(settings))

    @classmethod
    def estimated_savings(cls, total_size: int, settings: CompressionSettings) -> int:
        """Bytes saved if `total_size` bytes are converted with `settings`."""
        if total_size <= 0:
            return 0
        return max(0, total_size - cls.estimate(total_size, settings))

    @classmethod
    def estimated_savings_percent(cls, info: ConversionInfo) -> Optional[float]:
        """Estimated savings for a pending entry, or None when not applicable."""
        if info.status is not ConversionStatus.PENDING or info.estimated_output_size is None:
            return None
        if info.original_size <= 0:
            return None
        savings = info.original_size - info.estimated_output_size
        if savings <= 0:
            return None
        return savings / info.original_size * 100.0

    @classmethod
    def actual_savings_percent(cls, info: ConversionInfo) -> Optional[float]:
        """Measured savings for a converted or skipped entry.

        Returns 0.0 when the output did not get smaller.
        """
        if info.status not in (ConversionStatus.CONVERTED, ConversionStatus.SKIPPED):
            return None
        if info.actual_output_size is None or info.original_size <= 0:
            return None
        savings = info.original_size - info.actual_output_size
        if savings <= 0:
            return 0.0
        return savings / info.original_size * 100.0

    @classmethod
    def format_size(cls, size_bytes: Optional[float]) -> str:
        """Format byte size to human-readable string."""
        if size_bytes is None:
            return "—"
        for unit in ['B', 'KB', 'MB', 'GB']:
            if size_bytes < 1024:
                return f"{size_bytes:.1f} {unit}"
            size_bytes /= 1024
        return f"{size_bytes:.1f} TB"

    @classmethod
    def format_percent(cls, percent: Optional[float]) -> str:
        if percent is None:
            return "—"
        if percent <= 0:
            return "0%"
        return f"{percent:.1f}%"
