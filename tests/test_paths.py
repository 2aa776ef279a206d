from pathlib import Path

import pytest

from webpdrop.models import OutputPolicy
from webpdrop.paths import describe_output, resolve_output_dir, resolve_output_path

INPUTS = [Path("/photos/a.png"), Path("/photos/trip/b.JPG"), Path("/elsewhere/c.tiff")]


@pytest.mark.parametrize("input_path", INPUTS)
@pytest.mark.parametrize("auto_subfolder", [True, False])
@pytest.mark.parametrize("preserve", [True, False])
def test_next_to_original_ignores_other_flags(input_path, auto_subfolder, preserve):
    policy = OutputPolicy(
        save_next_to_original=True,
        custom_folder=Path("/out"),
        auto_subfolder=auto_subfolder,
        preserve_structure=preserve,
        last_scanned_folder=Path("/photos"),
    )
    assert resolve_output_dir(input_path, policy) == input_path.parent


def test_missing_custom_folder_falls_back_to_parent():
    policy = OutputPolicy(save_next_to_original=False, custom_folder=None)
    assert resolve_output_dir(Path("/photos/a.png"), policy) == Path("/photos")


@pytest.mark.parametrize("input_path", INPUTS)
def test_custom_folder_with_auto_subfolder(input_path):
    policy = OutputPolicy(
        save_next_to_original=False,
        custom_folder=Path("/out"),
        auto_subfolder=True,
        preserve_structure=False,
    )
    assert resolve_output_dir(input_path, policy) == Path("/out/WebP output")


def test_custom_folder_flat():
    policy = OutputPolicy(save_next_to_original=False, custom_folder=Path("/out"), auto_subfolder=False)
    assert resolve_output_path(Path("/photos/trip/b.JPG"), policy) == Path("/out/b.webp")


def test_preserve_structure_appends_relative_folder(tmp_path):
    scanned = tmp_path / "photos"
    policy = OutputPolicy(
        save_next_to_original=False,
        custom_folder=tmp_path / "out",
        auto_subfolder=True,
        preserve_structure=True,
        last_scanned_folder=scanned,
    )
    nested = scanned / "trip" / "day2" / "d.heic"
    top = scanned / "a.png"
    assert resolve_output_dir(nested, policy) == tmp_path / "out" / "WebP output" / "trip" / "day2"
    assert resolve_output_dir(top, policy) == tmp_path / "out" / "WebP output"


def test_preserve_structure_fails_closed_outside_scan_root(tmp_path):
    policy = OutputPolicy(
        save_next_to_original=False,
        custom_folder=tmp_path / "out",
        auto_subfolder=False,
        preserve_structure=True,
        last_scanned_folder=tmp_path / "photos",
    )
    # Shares a string prefix with the scan root but is not inside it
    sibling = tmp_path / "photos-old" / "x.png"
    assert resolve_output_dir(sibling, policy) == tmp_path / "out"


def test_preserve_structure_without_scanned_folder_is_flat():
    policy = OutputPolicy(save_next_to_original=False, custom_folder=Path("/out"),
                          auto_subfolder=False, preserve_structure=True)
    assert resolve_output_dir(Path("/photos/trip/b.png"), policy) == Path("/out")


def test_output_name_replaces_extension():
    policy = OutputPolicy()
    assert resolve_output_path(Path("/p/holiday.photo.JPEG"), policy) == Path("/p/holiday.photo.webp")
    assert resolve_output_path(Path("/p/a.webp"), policy) == Path("/p/a.webp")


def test_describe_output():
    assert describe_output(OutputPolicy()) == "Output: same folder as original image"
    assert describe_output(OutputPolicy(save_next_to_original=False)) == "Output: No folder selected"
    policy = OutputPolicy(save_next_to_original=False, custom_folder=Path("/out"))
    assert describe_output(policy) == 'Output: "WebP output" subfolder in /out'
    policy.auto_subfolder = False
    assert describe_output(policy) == "Output: /out"
