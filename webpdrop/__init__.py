"""
WebP Drop
Batch conversion of dropped images to WebP using the cwebp encoder.
"""

from .config import AppConfig, load_config
from .dispatcher import ConversionDispatcher
from .encoder import Encoder, EncoderResult, find_encoder
from .errors import EncoderNotFoundError, EncoderTimeoutError, QueueBusyError, WebPDropError
from .estimator import SizeEstimator
from .models import (
    BatchProgress,
    BatchSummary,
    CompressionSettings,
    ConversionInfo,
    ConversionOutcome,
    ConversionStatus,
    OutputPolicy,
    QualityPreset,
    SkipReason,
)
from .paths import describe_output, resolve_output_dir, resolve_output_path
from .queue_store import QueueStore
from .scanner import collect_images, is_image_file, scan_folder
from .session import ConversionSession

__version__ = "1.0.0"

__all__ = [
    "AppConfig",
    "BatchProgress",
    "BatchSummary",
    "CompressionSettings",
    "ConversionDispatcher",
    "ConversionInfo",
    "ConversionOutcome",
    "ConversionSession",
    "ConversionStatus",
    "Encoder",
    "EncoderNotFoundError",
    "EncoderResult",
    "EncoderTimeoutError",
    "OutputPolicy",
    "QualityPreset",
    "QueueBusyError",
    "QueueStore",
    "SizeEstimator",
    "SkipReason",
    "WebPDropError",
    "collect_images",
    "describe_output",
    "find_encoder",
    "is_image_file",
    "load_config",
    "resolve_output_dir",
    "resolve_output_path",
    "scan_folder",
]
