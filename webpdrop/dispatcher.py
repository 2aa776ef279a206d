"""Batch conversion with a bounded worker pool."""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, Optional

from send2trash import send2trash

from .config import MAX_CONCURRENT_JOBS, TARGET_EXTENSION
from .encoder import Encoder
from .errors import EncoderNotFoundError, EncoderTimeoutError
from .models import (
    BatchProgress,
    BatchSummary,
    CompressionSettings,
    ConversionOutcome,
    ConversionStatus,
    OutputPolicy,
    SkipReason,
)
from .paths import resolve_output_path
from .queue_store import QueueStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[BatchProgress], None]


def _file_size(path: Path) -> Optional[int]:
    try:
        return path.stat().st_size
    except OSError:
        return None


def _same_file(a: Path, b: Path) -> bool:
    return a.resolve() == b.resolve()


def remove_original(path: Path, use_trash: bool) -> None:
    """Move `path` to the trash, or delete it outright."""
    if use_trash:
        send2trash(str(path))
    else:
        path.unlink()


class ConversionDispatcher:
    """Runs the pending queue entries through the encoder.

    Jobs are submitted in queue order to a pool of `max_workers` threads.
    Workers only touch the file system and the encoder; the thread calling
    run() applies every result to the queue store and reports progress.
    """

    def __init__(self, store: QueueStore, encoder: Encoder,
                 max_workers: int = MAX_CONCURRENT_JOBS):
        self.store = store
        self.encoder = encoder
        self.max_workers = max_workers

    def convert_single_file(self, source_file: Path, settings: CompressionSettings,
                            policy: OutputPolicy) -> ConversionOutcome:
        """Convert one file. Never raises; failures come back as outcomes."""
        if policy.skip_existing_output and source_file.suffix.lower() == TARGET_EXTENSION:
            logger.info(f"Skipped {source_file.name} (already a WebP file).")
            return ConversionOutcome(
                source_path=source_file,
                status=ConversionStatus.SKIPPED,
                dest_path=source_file,
                output_size=_file_size(source_file),
                skip_reason=SkipReason.ALREADY_TARGET_FORMAT,
            )

        dest_path = resolve_output_path(source_file, policy)

        if policy.skip_existing_output and dest_path.exists():
            logger.info(f"Skipped {source_file.name} (WebP already exists).")
            return ConversionOutcome(
                source_path=source_file,
                status=ConversionStatus.SKIPPED,
                dest_path=dest_path,
                output_size=_file_size(dest_path),
                skip_reason=SkipReason.OUTPUT_EXISTS,
            )

        try:
            dest_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return self._failed(source_file, dest_path,
                                f"Could not create output folder {dest_path.parent}: {e}")

        try:
            result = self.encoder.convert(source_file, dest_path, settings)
        except (EncoderNotFoundError, EncoderTimeoutError) as e:
            return self._failed(source_file, dest_path, str(e))
        except OSError as e:
            return self._failed(source_file, dest_path, f"Failed to run cwebp: {e}")

        if not result.success:
            detail = result.stderr.strip()
            if not detail:
                detail = f"Conversion failed (status {result.returncode}) for {source_file.name}."
                logger.error(detail)
            else:
                logger.error(f"Error for {source_file.name}: {detail}")
            return ConversionOutcome(
                source_path=source_file,
                status=ConversionStatus.FAILED,
                dest_path=dest_path,
                error=detail,
            )

        output_size = _file_size(dest_path)

        if policy.delete_original_on_success and _same_file(source_file, dest_path):
            logger.info(f"Kept {source_file.name}: it was converted in place.")
        elif policy.delete_original_on_success:
            try:
                remove_original(source_file, policy.use_trash)
                logger.info(f"Deleted original: {source_file.name}")
            except OSError as e:
                logger.warning(f"Warning: Could not delete original {source_file.name}: {e}")

        logger.info(f"OK: {source_file.name} → {dest_path.name} ({settings.describe()})")
        return ConversionOutcome(
            source_path=source_file,
            status=ConversionStatus.CONVERTED,
            dest_path=dest_path,
            output_size=output_size,
        )

    def _failed(self, source_file: Path, dest_path: Optional[Path], message: str) -> ConversionOutcome:
        logger.error(message)
        return ConversionOutcome(
            source_path=source_file,
            status=ConversionStatus.FAILED,
            dest_path=dest_path,
            error=message,
        )

    def _apply(self, outcome: ConversionOutcome) -> None:
        """Write one outcome into the queue store."""
        if outcome.status is ConversionStatus.CONVERTED:
            self.store.mark_converted(outcome.source_path, outcome.output_size)
        elif outcome.status is ConversionStatus.SKIPPED:
            self.store.mark_skipped(outcome.source_path, outcome.output_size, outcome.skip_reason)
        else:
            self.store.mark_failed(outcome.source_path, outcome.error or "Conversion failed.")

    def run(self, settings: CompressionSettings, policy: OutputPolicy,
            progress_callback: Optional[ProgressCallback] = None) -> BatchSummary:
        """Convert every pending entry and wait for all of them to finish."""
        files = self.store.pending_paths()
        summary = BatchSummary(total=len(files))

        self.store.begin_batch()
        try:
            completed = 0
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                # Submission follows queue order; completion order does not
                future_to_file = {
                    executor.submit(self.convert_single_file, f, settings, policy): f
                    for f in files
                }

                for future in as_completed(future_to_file):
                    source_file = future_to_file[future]
                    try:
                        outcome = future.result()
                    except Exception as e:
                        logger.error(f"Unexpected error converting {source_file.name}: {e}", exc_info=True)
                        outcome = ConversionOutcome(
                            source_path=source_file,
                            status=ConversionStatus.FAILED,
                            error=str(e),
                        )

                    self._apply(outcome)
                    summary.record(outcome)
                    completed += 1

                    if progress_callback is not None:
                        progress_callback(BatchProgress(completed, summary.total, source_file.name))
        finally:
            self.store.end_batch()

        return summary
