"""Shared fixtures and fake collaborators for the hevcify test suite."""

from pathlib import Path

import pytest

from hevc.transcode import TranscodeError, VideoInfo
from hevc.utils import LogLevel, logger

KiB = 1024
MiB = 1024 * 1024


def make_file(path: Path, size: int) -> Path:
    """Create a (sparse) file of exactly ``size`` bytes."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as fh:
        fh.truncate(size)
    return path


class FakeProbe:
    """Answers with a codec per file name; ``None`` means the probe failed."""

    def __init__(self, codecs=None, default="h264"):
        self.codecs = codecs or {}
        self.default = default
        self.calls = []

    def inspect(self, path):
        self.calls.append(path)
        codec = self.codecs.get(path.name, self.default)
        if codec is None:
            return None
        return VideoInfo(codec=codec, width=1920, height=1080, duration=60.0)


class FakeTranscoder:
    """Writes a staging file of a configured size, or fails with a partial file."""

    def __init__(self, sizes=None, fail=(), default_size=1):
        self.sizes = sizes or {}
        self.fail = set(fail)
        self.default_size = default_size
        self.calls = []

    def run(self, src, dst, params, token=None, info=None):
        self.calls.append((src, dst))
        if src.name in self.fail:
            dst.write_bytes(b"partial")
            raise TranscodeError(src, 1, "boom")
        size = self.sizes.get(src.name, self.default_size)
        make_file(dst, size)
        return size


class CancellingTranscoder(FakeTranscoder):
    """Simulates an interrupt arriving while ffmpeg is writing ``cancel_on``."""

    def __init__(self, cancel_on, **kwargs):
        super().__init__(**kwargs)
        self.cancel_on = cancel_on

    def run(self, src, dst, params, token=None, info=None):
        if src.name != self.cancel_on:
            return super().run(src, dst, params, token=token, info=info)
        self.calls.append((src, dst))
        dst.write_bytes(b"half-written")
        token.cancel()
        # ffmpeg exits non-zero after being terminated
        raise TranscodeError(src, 255, "terminated")


@pytest.fixture(autouse=True)
def _reset_log_level():
    logger.set_log_level(LogLevel.INFO)
    yield
    logger.set_log_level(LogLevel.INFO)


@pytest.fixture
def roots(tmp_path):
    src = tmp_path / "src"
    dst = tmp_path / "dst"
    src.mkdir()
    return src, dst
