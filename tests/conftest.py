import stat
import sys
import threading
import time
from pathlib import Path

import pytest

from webpdrop.encoder import Encoder, EncoderResult
from webpdrop.models import CompressionSettings, OutputPolicy
from webpdrop.session import ConversionSession

# Stand-in for cwebp honoring `<input> [-lossless | -q N] -o <output>`.
# Inputs whose name contains "broken" fail with a diagnostic, "mute" fails
# silently. The output is 60% of the input size unless FAKE_CWEBP_SIZE is set.
FAKE_CWEBP = '''#!{python}
import os
import sys

args = sys.argv[1:]
source = args[0]
output = args[args.index("-o") + 1]
log = os.environ.get("FAKE_CWEBP_LOG")
if log:
    with open(log, "a") as fh:
        fh.write(" ".join(args) + "\\n")
name = os.path.basename(source)
if "broken" in name:
    sys.stderr.write("Could not process file " + source + "\\nError! Cannot read input picture file\\n")
    sys.exit(255)
if "mute" in name:
    sys.exit(3)
size = os.environ.get("FAKE_CWEBP_SIZE")
size = int(size) if size else int(os.path.getsize(source) * 0.6)
with open(output, "wb") as fh:
    fh.write(b"W" * size)
'''


def write_file(path: Path, size: int) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\0" * size)
    return path


@pytest.fixture
def fake_cwebp(tmp_path) -> Path:
    script = tmp_path / "bin" / "cwebp"
    script.parent.mkdir()
    script.write_text(FAKE_CWEBP.format(python=sys.executable))
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


@pytest.fixture
def photos(tmp_path) -> Path:
    """A small folder tree of images and non-images."""
    root = tmp_path / "photos"
    write_file(root / "a.png", 1000)
    write_file(root / "b.JPG", 2000)
    write_file(root / "notes.txt", 10)
    write_file(root / ".hidden.png", 10)
    write_file(root / "trip" / "c.tiff", 3000)
    write_file(root / "trip" / "day2" / "d.heic", 4000)
    write_file(root / ".cache" / "e.png", 10)
    return root


@pytest.fixture
def session(fake_cwebp) -> ConversionSession:
    return ConversionSession(
        Encoder(fake_cwebp),
        settings=CompressionSettings(quality=80),
        policy=OutputPolicy(),
    )


class FakeEncoder(Encoder):
    """In-process encoder that records how many conversions overlap."""

    def __init__(self, delay: float = 0.05, output_size: int = 100):
        super().__init__(None)
        self.delay = delay
        self.output_size = output_size
        self.in_flight = 0
        self.max_in_flight = 0
        self.calls = []
        self._lock = threading.Lock()

    @property
    def available(self) -> bool:
        return True

    def convert(self, input_path, output_path, settings):
        with self._lock:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            self.calls.append(Path(input_path).name)
        try:
            time.sleep(self.delay)
            Path(output_path).write_bytes(b"W" * self.output_size)
            return EncoderResult(returncode=0)
        finally:
            with self._lock:
                self.in_flight -= 1


@pytest.fixture
def fake_encoder() -> FakeEncoder:
    return FakeEncoder()


@pytest.fixture(autouse=True)
def _clean_fake_env(monkeypatch):
    monkeypatch.delenv("FAKE_CWEBP_SIZE", raising=False)
    monkeypatch.delenv("FAKE_CWEBP_LOG", raising=False)
    yield
