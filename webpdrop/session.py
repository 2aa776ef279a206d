"""The conversion session driven by the window: queue, settings and policy."""

import logging
from dataclasses import replace
from pathlib import Path
from typing import Iterable, Optional, Union

from .config import AppConfig, TARGET_EXTENSION
from .dispatcher import ConversionDispatcher, ProgressCallback
from .encoder import Encoder, find_encoder
from .estimator import SizeEstimator
from .models import (
    BatchSummary,
    CompressionSettings,
    ConversionStatus,
    OutputPolicy,
    QualityPreset,
    SkipReason,
)
from .paths import describe_output
from .queue_store import QueueStore, normalize_path
from .scanner import collect_images, is_image_file

logger = logging.getLogger(__name__)


class ConversionSession:
    """Everything the UI needs to queue, estimate and convert files."""

    def __init__(
        self,
        encoder: Encoder,
        settings: Optional[CompressionSettings] = None,
        policy: Optional[OutputPolicy] = None,
        scan_subfolders: bool = False,
        max_workers: Optional[int] = None,
    ):
        self.store = QueueStore()
        self.encoder = encoder
        self.settings = settings or CompressionSettings()
        self.policy = policy or OutputPolicy()
        self.scan_subfolders = scan_subfolders
        self.preset = QualityPreset.for_quality(self.settings.quality)
        self.dispatcher = ConversionDispatcher(self.store, encoder)
        if max_workers is not None:
            self.dispatcher.max_workers = max_workers

    @classmethod
    def from_config(cls, config: AppConfig, **kwargs) -> "ConversionSession":
        """Create a session whose encoder is located from `config`."""
        executable = find_encoder(config.encoder_path)
        if executable is None:
            logger.error("Bundled cwebp not found or not executable. Conversions will fail.")
        encoder = Encoder(executable, timeout=config.encoder_timeout)
        return cls(encoder, max_workers=config.max_workers, **kwargs)

    # -------------------------------------------------------------------------
    # Adding files
    # -------------------------------------------------------------------------

    def add_paths(self, paths: Iterable[Union[str, Path]]) -> int:
        """Handle dropped items: folders are scanned, files are queued."""
        added = 0
        for raw in paths:
            path = Path(raw)
            if path.is_dir():
                self.policy.last_scanned_folder = normalize_path(path)
                logger.info(
                    f"Dropped folder: {path} "
                    f"(include subfolders: {'yes' if self.scan_subfolders else 'no'})"
                )
                added += self.scan_folder(path)
            elif self.add_file(path):
                added += 1
        return added

    def add_file(self, path: Union[str, Path], quiet: bool = False) -> bool:
        """Queue one image file. Returns True if it was added."""
        path = Path(path)
        if not is_image_file(path):
            logger.warning(f"Unsupported file type: {path.suffix.lower() or '(none)'}")
            return False

        try:
            size = path.stat().st_size
        except OSError as e:
            logger.warning(f"Could not read dropped file: {path.name} ({e.strerror or e})")
            return False

        if not self.store.enqueue(path):
            if not quiet:
                logger.info(f"{path.name} is already in the queue.")
            return False

        self.store.record_size(path, size, self.settings)
        if self.policy.skip_existing_output and self._is_target_format(path):
            self.store.mark_skipped(path, size, SkipReason.ALREADY_TARGET_FORMAT)
            logger.info(f"Skipped {path.name} (already a WebP file).")

        if not quiet:
            logger.info(f"Added {path.name} to queue.")
        return True

    def scan_folder(self, folder: Union[str, Path], recursive: Optional[bool] = None) -> int:
        """Queue the images found in `folder`. Returns how many were new."""
        folder = Path(folder)
        if recursive is None:
            recursive = self.scan_subfolders
        self.policy.last_scanned_folder = normalize_path(folder)

        try:
            images = collect_images(folder, recursive)
        except OSError as e:
            logger.error(f"Failed to read folder: {e}")
            return 0

        added = sum(1 for image in images if self.add_file(image, quiet=True))
        if added > 0:
            logger.info(f"Added {added} file(s) from folder to queue.")
        else:
            logger.info("No new image files found in selected folder.")
        return added

    def remove(self, path: Union[str, Path]) -> None:
        self.store.dequeue(path)

    def clear(self) -> None:
        self.store.clear()

    # -------------------------------------------------------------------------
    # Settings and policy
    # -------------------------------------------------------------------------

    def update_settings(self, settings: CompressionSettings) -> None:
        """Switch compression settings and refresh estimates of pending files."""
        self.settings = settings
        self.store.refresh_estimates(settings)

    def set_quality(self, quality: float) -> None:
        """Manual quality change; selects the Custom preset."""
        self.preset = QualityPreset.CUSTOM
        self.update_settings(replace(self.settings, quality=quality))

    def set_lossless(self, lossless: bool) -> None:
        self.update_settings(replace(self.settings, lossless=lossless))

    def apply_preset(self, preset: QualityPreset) -> None:
        """Select a quality preset; Custom keeps the current quality."""
        self.preset = preset
        if preset.quality is not None:
            self.update_settings(replace(self.settings, quality=preset.quality))

    def set_skip_existing(self, skip: bool) -> None:
        """Toggle skipping of existing WebP files and update queued WebP entries.

        Raises QueueBusyError while a batch is running; nothing changes then.
        """
        with self.store.idle("change the skip setting"):
            self.policy.skip_existing_output = skip
            for path, info in self.store.snapshot():
                if not self._is_target_format(path) or info is None:
                    continue
                if skip:
                    if info.status is ConversionStatus.PENDING:
                        self.store.mark_skipped(path, info.original_size, SkipReason.ALREADY_TARGET_FORMAT)
                elif (info.status is ConversionStatus.SKIPPED
                      and info.skip_reason is SkipReason.ALREADY_TARGET_FORMAT
                      and info.actual_output_size == info.original_size):
                    self.store.reset_to_pending(path, self.settings)

    @staticmethod
    def _is_target_format(path: Path) -> bool:
        return path.suffix.lower() == TARGET_EXTENSION

    def output_description(self) -> str:
        return describe_output(self.policy)

    # -------------------------------------------------------------------------
    # Conversion
    # -------------------------------------------------------------------------

    @property
    def is_converting(self) -> bool:
        return self.store.is_running

    def run_batch(self, progress_callback: Optional[ProgressCallback] = None) -> BatchSummary:
        """Convert every pending entry. Blocks until the batch is done."""
        pending = len(self.store.pending_paths())
        if pending == 0:
            logger.info("No files in queue.")
            return BatchSummary()

        logger.info(f"Converting {pending} file(s)…")
        summary = self.dispatcher.run(self.settings, replace(self.policy), progress_callback)

        if summary.has_errors:
            logger.error(summary.message)
        else:
            logger.info(summary.message)
        return summary

    # -------------------------------------------------------------------------
    # Summaries
    # -------------------------------------------------------------------------

    def is_batch_complete(self) -> bool:
        """True when the queue is non-empty and nothing is pending."""
        entries = self.store.snapshot()
        if not entries:
            return False
        return all(info is not None and info.status.is_terminal for _, info in entries)

    def estimated_total_savings(self) -> int:
        """Estimated bytes saved over all queued files at the current settings."""
        total = sum(info.original_size for _, info in self.store.snapshot() if info is not None)
        return SizeEstimator.estimated_savings(total, self.settings)

    def total_savings(self) -> int:
        """Measured bytes saved over converted and skipped files."""
        original = 0
        output = 0
        for _, info in self.store.snapshot():
            if info is None or info.actual_output_size is None:
                continue
            if info.status not in (ConversionStatus.CONVERTED, ConversionStatus.SKIPPED):
                continue
            original += info.original_size
            output += info.actual_output_size
        return max(0, original - output)

    def savings_line(self) -> Optional[str]:
        """'Estimated savings: …' before a batch, 'Total savings: …' after."""
        if len(self.store) == 0:
            return None
        if self.is_batch_complete():
            label, savings = "Total savings:", self.total_savings()
        else:
            label, savings = "Estimated savings:", self.estimated_total_savings()
        if savings <= 0:
            return None
        return f"{label} {SizeEstimator.format_size(savings)}"
