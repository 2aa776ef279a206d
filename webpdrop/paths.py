"""Destination path policy for converted files."""

from pathlib import Path
from typing import Optional

from .config import OUTPUT_SUBFOLDER_NAME, TARGET_EXTENSION
from .models import OutputPolicy


def destination_root(policy: OutputPolicy) -> Optional[Path]:
    """Top-level output folder, or None when files go next to their originals."""
    if policy.save_next_to_original or policy.custom_folder is None:
        return None
    root = Path(policy.custom_folder)
    if policy.auto_subfolder:
        root = root / OUTPUT_SUBFOLDER_NAME
    return root


def relative_subfolder(input_path: Path, scanned_folder: Path) -> Optional[Path]:
    """Folder of `input_path` relative to `scanned_folder`, or None when outside it."""
    parent = Path(input_path).parent.resolve()
    base = Path(scanned_folder).resolve()
    try:
        return parent.relative_to(base)
    except ValueError:
        return None


def resolve_output_dir(input_path: Path, policy: OutputPolicy) -> Path:
    """Directory the converted file for `input_path` is written to."""
    input_path = Path(input_path)
    root = destination_root(policy)
    if root is None:
        return input_path.parent

    if policy.preserve_structure and policy.last_scanned_folder is not None:
        relative = relative_subfolder(input_path, policy.last_scanned_folder)
        if relative is not None:
            return root / relative

    return root


def resolve_output_path(input_path: Path, policy: OutputPolicy) -> Path:
    """Full path of the converted file: input stem plus the WebP extension."""
    input_path = Path(input_path)
    return resolve_output_dir(input_path, policy) / (input_path.stem + TARGET_EXTENSION)


def describe_output(policy: OutputPolicy) -> str:
    """Human-readable description of where output files will be written."""
    if policy.save_next_to_original:
        return "Output: same folder as original image"
    if policy.custom_folder is None:
        return "Output: No folder selected"
    if policy.auto_subfolder:
        return f'Output: "{OUTPUT_SUBFOLDER_NAME}" subfolder in {policy.custom_folder}'
    return f"Output: {policy.custom_folder}"
