import os

import pytest

from webpdrop.dispatcher import ConversionDispatcher
from webpdrop.encoder import Encoder
from webpdrop.models import CompressionSettings, ConversionStatus, OutputPolicy, SkipReason
from webpdrop.queue_store import QueueStore

from conftest import write_file


def make_store(*paths):
    store = QueueStore()
    for path in paths:
        store.enqueue(path)
        store.record_size(path, path.stat().st_size, CompressionSettings())
    return store


def test_all_entries_terminal_after_batch(fake_cwebp, tmp_path):
    files = [
        write_file(tmp_path / "a.png", 1000),
        write_file(tmp_path / "broken.png", 1000),
        write_file(tmp_path / "c.webp", 500),
        write_file(tmp_path / "mute.jpg", 100),
        write_file(tmp_path / "e.gif", 300),
    ]
    store = make_store(*files)
    dispatcher = ConversionDispatcher(store, Encoder(fake_cwebp))

    summary = dispatcher.run(CompressionSettings(), OutputPolicy())

    assert all(store.status(f).is_terminal for f in files)
    assert store.pending_paths() == []
    assert (summary.total, summary.converted, summary.failed, summary.skipped) == (5, 2, 2, 1)
    assert not store.is_running


def test_concurrency_never_exceeds_four(fake_encoder, tmp_path):
    files = [write_file(tmp_path / f"img{i:02d}.png", 100) for i in range(12)]
    store = make_store(*files)
    dispatcher = ConversionDispatcher(store, fake_encoder)

    dispatcher.run(CompressionSettings(), OutputPolicy())

    assert fake_encoder.max_in_flight <= 4
    assert fake_encoder.max_in_flight > 1
    assert len(fake_encoder.calls) == 12


def test_submission_follows_queue_order(fake_encoder, tmp_path):
    files = [write_file(tmp_path / f"img{i:02d}.png", 100) for i in range(6)]
    store = make_store(*files)
    dispatcher = ConversionDispatcher(store, fake_encoder, max_workers=1)

    dispatcher.run(CompressionSettings(), OutputPolicy())

    assert fake_encoder.calls == [f.name for f in files]


def test_progress_reports_every_completion(fake_encoder, tmp_path):
    files = [write_file(tmp_path / f"img{i}.png", 100) for i in range(5)]
    store = make_store(*files)
    reports = []

    ConversionDispatcher(store, fake_encoder).run(CompressionSettings(), OutputPolicy(), reports.append)

    assert [r.completed for r in reports] == [1, 2, 3, 4, 5]
    assert all(r.total == 5 for r in reports)
    assert reports[-1].fraction == 1.0
    assert {r.current_file for r in reports} == {f.name for f in files}


def test_already_webp_is_skipped_without_encoder(fake_encoder, tmp_path):
    source = write_file(tmp_path / "done.WEBP", 321)
    store = make_store(source)

    ConversionDispatcher(store, fake_encoder).run(CompressionSettings(), OutputPolicy())

    info = store.info(source)
    assert info.status is ConversionStatus.SKIPPED
    assert info.actual_output_size == 321
    assert info.skip_reason is SkipReason.ALREADY_TARGET_FORMAT
    assert fake_encoder.calls == []


def test_existing_output_is_skipped(fake_encoder, tmp_path):
    source = write_file(tmp_path / "a.png", 1000)
    write_file(tmp_path / "a.webp", 77)
    store = make_store(source)

    ConversionDispatcher(store, fake_encoder).run(CompressionSettings(), OutputPolicy())

    info = store.info(source)
    assert info.status is ConversionStatus.SKIPPED
    assert info.actual_output_size == 77
    assert info.skip_reason is SkipReason.OUTPUT_EXISTS
    assert fake_encoder.calls == []


def test_existing_output_is_overwritten_when_not_skipping(fake_encoder, tmp_path):
    source = write_file(tmp_path / "a.png", 1000)
    write_file(tmp_path / "a.webp", 77)
    store = make_store(source)
    policy = OutputPolicy(skip_existing_output=False)

    ConversionDispatcher(store, fake_encoder).run(CompressionSettings(), policy)

    assert store.status(source) is ConversionStatus.CONVERTED
    assert store.info(source).actual_output_size == fake_encoder.output_size


def test_failure_detail_and_last_error(fake_cwebp, tmp_path):
    broken = write_file(tmp_path / "broken.png", 10)
    mute = write_file(tmp_path / "mute.png", 10)
    store = make_store(broken, mute)

    summary = ConversionDispatcher(store, Encoder(fake_cwebp), max_workers=1).run(
        CompressionSettings(), OutputPolicy())

    assert store.info(broken).error.startswith("Could not process file")
    assert store.info(broken).error == store.info(broken).error.strip()
    assert store.info(mute).error == "Conversion failed (status 3) for mute.png."
    assert summary.has_errors
    assert summary.last_error == "Conversion failed (status 3) for mute.png."
    assert summary.message == "Finished with errors: Conversion failed (status 3) for mute.png."
    assert set(summary.failures) == {broken, mute}


def test_missing_encoder_fails_each_entry_without_aborting(tmp_path):
    files = [write_file(tmp_path / f"{n}.png", 10) for n in "abc"]
    store = make_store(*files)

    summary = ConversionDispatcher(store, Encoder(None)).run(CompressionSettings(), OutputPolicy())

    assert summary.failed == 3
    for f in files:
        assert store.status(f) is ConversionStatus.FAILED
        assert store.info(f).error == "Bundled cwebp not found or not executable."


def test_launch_error_is_reported_per_entry(fake_encoder, tmp_path, monkeypatch):
    source = write_file(tmp_path / "a.png", 10)
    store = make_store(source)

    def refuse(*args):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(fake_encoder, "convert", refuse)
    ConversionDispatcher(store, fake_encoder).run(CompressionSettings(), OutputPolicy())

    assert store.status(source) is ConversionStatus.FAILED
    assert store.info(source).error.startswith("Failed to run cwebp:")


def test_destination_directory_is_created(fake_encoder, tmp_path):
    source = write_file(tmp_path / "photos" / "trip" / "a.png", 10)
    store = make_store(source)
    policy = OutputPolicy(
        save_next_to_original=False,
        custom_folder=tmp_path / "out",
        preserve_structure=True,
        last_scanned_folder=tmp_path / "photos",
    )

    ConversionDispatcher(store, fake_encoder).run(CompressionSettings(), policy)

    assert (tmp_path / "out" / "WebP output" / "trip" / "a.webp").is_file()
    assert store.status(source) is ConversionStatus.CONVERTED


@pytest.mark.parametrize("use_trash", [True, False])
def test_delete_original_on_success(fake_encoder, tmp_path, monkeypatch, use_trash):
    trashed = []

    def fake_trash(path):
        trashed.append(path)
        os.remove(path)

    monkeypatch.setattr("webpdrop.dispatcher.send2trash", fake_trash)
    source = write_file(tmp_path / "a.png", 10)
    store = make_store(source)
    policy = OutputPolicy(delete_original_on_success=True, use_trash=use_trash)

    ConversionDispatcher(store, fake_encoder).run(CompressionSettings(), policy)

    assert not source.exists()
    assert (tmp_path / "a.webp").exists()
    assert trashed == ([str(source)] if use_trash else [])
    assert store.status(source) is ConversionStatus.CONVERTED


def test_delete_failure_keeps_converted_status(fake_encoder, tmp_path, monkeypatch, caplog):
    def refuse(path):
        raise OSError("trash unavailable")

    monkeypatch.setattr("webpdrop.dispatcher.send2trash", refuse)
    source = write_file(tmp_path / "a.png", 10)
    store = make_store(source)
    policy = OutputPolicy(delete_original_on_success=True)

    with caplog.at_level("WARNING", logger="webpdrop"):
        ConversionDispatcher(store, fake_encoder).run(CompressionSettings(), policy)

    assert source.exists()
    assert store.status(source) is ConversionStatus.CONVERTED
    assert "Could not delete original a.png" in caplog.text


def test_failed_originals_are_never_deleted(fake_cwebp, tmp_path):
    source = write_file(tmp_path / "broken.png", 10)
    store = make_store(source)
    policy = OutputPolicy(delete_original_on_success=True, use_trash=False)

    ConversionDispatcher(store, Encoder(fake_cwebp)).run(CompressionSettings(), policy)

    assert source.exists()


def test_terminal_entries_are_not_reprocessed(fake_encoder, tmp_path):
    done = write_file(tmp_path / "done.png", 10)
    todo = write_file(tmp_path / "todo.png", 10)
    store = make_store(done, todo)
    store.mark_failed(done, "earlier failure")

    summary = ConversionDispatcher(store, fake_encoder).run(CompressionSettings(), OutputPolicy())

    assert fake_encoder.calls == ["todo.png"]
    assert summary.total == 1
    assert store.info(done).error == "earlier failure"


def test_in_place_conversion_keeps_the_output(fake_encoder, tmp_path, caplog):
    source = write_file(tmp_path / "a.webp", 500)
    store = make_store(source)
    policy = OutputPolicy(skip_existing_output=False, delete_original_on_success=True, use_trash=False)

    with caplog.at_level("INFO", logger="webpdrop"):
        ConversionDispatcher(store, fake_encoder).run(CompressionSettings(), policy)

    assert fake_encoder.calls == ["a.webp"]
    assert source.exists()
    assert source.stat().st_size == fake_encoder.output_size
    assert store.status(source) is ConversionStatus.CONVERTED
    assert store.info(source).actual_output_size == fake_encoder.output_size
    assert "converted in place" in caplog.text
