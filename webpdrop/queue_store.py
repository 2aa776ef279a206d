"""Ordered queue of files and their conversion state."""

import os
import threading
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path
from typing import Iterator, Optional, Union

from .errors import QueueBusyError
from .estimator import SizeEstimator
from .models import CompressionSettings, ConversionInfo, ConversionStatus, SkipReason


def normalize_path(path: Union[str, Path]) -> Path:
    """Absolute, normalized form used as the queue key."""
    return Path(os.path.abspath(path))


class QueueStore:
    """Thread-safe ordered file queue.

    Every read and write goes through one lock. Status writes during a batch
    come only from the dispatcher's coordinating thread.
    """

    def __init__(self):
        self._order: list[Path] = []
        self._info: dict[Path, ConversionInfo] = {}
        self._running = False
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._order)

    def __contains__(self, path) -> bool:
        with self._lock:
            return normalize_path(path) in self._order

    def __iter__(self) -> Iterator[Path]:
        return iter(self.paths())

    def paths(self) -> list[Path]:
        """Queued paths in insertion order."""
        with self._lock:
            return list(self._order)

    # -------------------------------------------------------------------------
    # Batch lock
    # -------------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._running

    def begin_batch(self) -> None:
        with self._lock:
            if self._running:
                raise QueueBusyError("A conversion batch is already running.")
            self._running = True

    def end_batch(self) -> None:
        with self._lock:
            self._running = False

    def _ensure_idle(self, action: str) -> None:
        if self._running:
            raise QueueBusyError(f"Cannot {action} while a conversion batch is running.")

    @contextmanager
    def idle(self, action: str):
        """Hold the lock for a multi-step update that must not overlap a batch."""
        with self._lock:
            self._ensure_idle(action)
            yield self

    # -------------------------------------------------------------------------
    # Membership
    # -------------------------------------------------------------------------

    def enqueue(self, path: Union[str, Path]) -> bool:
        """Append `path` unless already queued. Returns True if it was added."""
        key = normalize_path(path)
        with self._lock:
            if key in self._order:
                return False
            self._order.append(key)
            return True

    def dequeue(self, path: Union[str, Path]) -> None:
        """Remove `path` and its conversion info."""
        key = normalize_path(path)
        with self._lock:
            self._ensure_idle("remove files")
            if key in self._order:
                self._order.remove(key)
            self._info.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._ensure_idle("clear the queue")
            self._order.clear()
            self._info.clear()

    # -------------------------------------------------------------------------
    # Conversion info
    # -------------------------------------------------------------------------

    def info(self, path: Union[str, Path]) -> Optional[ConversionInfo]:
        """Copy of the conversion info for `path`, or None if size is unknown."""
        with self._lock:
            info = self._info.get(normalize_path(path))
            return replace(info) if info is not None else None

    def status(self, path: Union[str, Path]) -> ConversionStatus:
        """Status of `path`; entries without info count as pending."""
        with self._lock:
            info = self._info.get(normalize_path(path))
            return info.status if info is not None else ConversionStatus.PENDING

    def snapshot(self) -> list[tuple[Path, Optional[ConversionInfo]]]:
        """Ordered (path, info copy) pairs for display."""
        with self._lock:
            return [
                (path, replace(self._info[path]) if path in self._info else None)
                for path in self._order
            ]

    def pending_paths(self) -> list[Path]:
        """Queued paths still waiting for conversion, in queue order."""
        with self._lock:
            return [
                path for path in self._order
                if path not in self._info or self._info[path].status is ConversionStatus.PENDING
            ]

    def record_size(self, path: Union[str, Path], size: int,
                    settings: Optional[CompressionSettings] = None) -> ConversionInfo:
        """Store the probed original size, creating the info on first call."""
        key = normalize_path(path)
        with self._lock:
            info = self._info.get(key)
            if info is None:
                info = ConversionInfo(original_size=size)
                self._info[key] = info
            else:
                info.original_size = size
            if settings is not None and info.status is ConversionStatus.PENDING:
                self._estimate(info, settings)
            return replace(info)

    def _estimate(self, info: ConversionInfo, settings: CompressionSettings) -> None:
        info.estimated_output_size = SizeEstimator.estimate(info.original_size, settings)

    def refresh_estimates(self, settings: CompressionSettings) -> int:
        """Recompute estimates for every pending entry. Returns how many changed."""
        refreshed = 0
        with self._lock:
            for path in self._order:
                info = self._info.get(path)
                if info is not None and info.status is ConversionStatus.PENDING:
                    self._estimate(info, settings)
                    refreshed += 1
        return refreshed

    def _require_info(self, path: Union[str, Path]) -> Optional[ConversionInfo]:
        key = normalize_path(path)
        info = self._info.get(key)
        if info is None and key in self._order:
            # Size probe never succeeded; track the entry from zero
            info = ConversionInfo(original_size=0)
            self._info[key] = info
        return info

    def mark_converted(self, path: Union[str, Path], output_size: Optional[int]) -> None:
        with self._lock:
            info = self._require_info(path)
            if info is None:
                return
            info.status = ConversionStatus.CONVERTED
            if output_size is not None:
                info.actual_output_size = output_size
            info.estimated_output_size = None
            info.error = None
            info.skip_reason = None

    def mark_skipped(self, path: Union[str, Path], output_size: Optional[int],
                     reason: SkipReason) -> None:
        with self._lock:
            info = self._require_info(path)
            if info is None:
                return
            info.status = ConversionStatus.SKIPPED
            info.actual_output_size = output_size
            info.estimated_output_size = None
            info.error = None
            info.skip_reason = reason

    def mark_failed(self, path: Union[str, Path], error: str) -> None:
        with self._lock:
            info = self._require_info(path)
            if info is None:
                return
            info.status = ConversionStatus.FAILED
            info.estimated_output_size = None
            info.error = error
            info.skip_reason = None

    def reset_to_pending(self, path: Union[str, Path],
                         settings: Optional[CompressionSettings] = None) -> None:
        """Return a skipped entry to pending, dropping its recorded output size."""
        with self._lock:
            info = self._info.get(normalize_path(path))
            if info is None:
                return
            info.status = ConversionStatus.PENDING
            info.actual_output_size = None
            info.error = None
            info.skip_reason = None
            if settings is not None:
                self._estimate(info, settings)
