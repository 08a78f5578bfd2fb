from conftest import CancellingTranscoder, FakeProbe, FakeTranscoder, KiB, MiB, make_file

from hevc.transcode import batch
from hevc.transcode.batch import BatchOrchestrator, iter_video_files
from hevc.transcode.cancel import CancellationToken, RunState
from hevc.transcode.policy import Outcome
from hevc.utils import EXIT_INTERRUPTED, EXIT_OK, LogLevel, logger
from hevc.utils.file_util import CopyError


def _orchestrator(roots, probe=None, transcoder=None, token=None):
    src, dst = roots
    return BatchOrchestrator(src, dst, probe or FakeProbe(), transcoder or FakeTranscoder(), token=token)


def test_iter_video_files_filters_and_sorts(tmp_path):
    make_file(tmp_path / "b" / "two.MKV", 1)
    make_file(tmp_path / "a.mp4", 1)
    make_file(tmp_path / "c" / "three.webm", 1)
    make_file(tmp_path / "notes.txt", 1)
    make_file(tmp_path / "leftover.mp4.tmp", 1)
    (tmp_path / "dir.avi").mkdir()

    assert iter_video_files(tmp_path) == [
        tmp_path / "a.mp4",
        tmp_path / "b" / "two.MKV",
        tmp_path / "c" / "three.webm",
    ]


def test_compressed_when_transcode_is_smaller(roots, capsys):
    src, dst = roots
    source = make_file(src / "movie.mkv", 100 * MiB)
    orch = _orchestrator(roots, transcoder=FakeTranscoder(sizes={"movie.mkv": 40 * MiB}))

    assert orch.run() == EXIT_OK

    target = dst / "movie.mp4"
    assert target.stat().st_size == 40 * MiB
    assert not source.exists()
    assert not list(dst.rglob("*.tmp"))

    s = orch.stats.snapshot()
    assert (s.processed, s.compressed, s.moved, s.failed) == (1, 1, 0, 0)
    assert s.original_size == 100 * MiB
    assert s.final_size == 40 * MiB

    out = capsys.readouterr().out
    assert "Processed: 1" in out
    assert "Space Saved: 60MiB" in out
    assert "Compression Ratio: 40.00%" in out
    assert "Transcoding completed" in out


def test_already_hevc_is_moved_without_transcode(roots, capsys):
    src, dst = roots
    source = make_file(src / "show" / "ep1.mkv", 50 * MiB)
    transcoder = FakeTranscoder()
    orch = _orchestrator(roots, probe=FakeProbe(default="hevc"), transcoder=transcoder)

    assert orch.run() == EXIT_OK

    assert (dst / "show" / "ep1.mp4").stat().st_size == 50 * MiB
    assert not source.exists()
    assert transcoder.calls == []

    s = orch.stats.snapshot()
    assert (s.processed, s.moved) == (1, 1)
    assert s.original_size == s.final_size == 50 * MiB
    out = capsys.readouterr().out
    assert "Space Saved: 0B" in out
    assert "Compression Ratio: 100.00%" in out


def test_larger_transcode_falls_back_to_original(roots, capsys):
    src, dst = roots
    source = src / "clip.avi"
    source.write_bytes(b"o" * (100 * KiB))
    orch = _orchestrator(roots, transcoder=FakeTranscoder(sizes={"clip.avi": 120 * KiB}))

    orch.run()

    target = dst / "clip.mp4"
    assert target.read_bytes() == b"o" * (100 * KiB)
    assert not source.exists()
    s = orch.stats.snapshot()
    assert (s.processed, s.moved, s.compressed) == (1, 1, 0)
    assert s.final_size == 100 * KiB
    assert "file.larger" in capsys.readouterr().out


def test_equal_size_transcode_falls_back_to_original(roots):
    src, dst = roots
    make_file(src / "same.mov", 10 * KiB)
    orch = _orchestrator(roots, transcoder=FakeTranscoder(sizes={"same.mov": 10 * KiB}))

    result = orch.process_file(src / "same.mov")

    assert result.outcome is Outcome.MOVED
    assert result.final_size == 10 * KiB


def test_failed_transcode_keeps_source(roots, capsys):
    src, dst = roots
    source = make_file(src / "broken.wmv", 10 * KiB)
    orch = _orchestrator(roots, transcoder=FakeTranscoder(fail={"broken.wmv"}))

    assert orch.run() == EXIT_OK

    assert source.exists()
    assert not (dst / "broken.mp4").exists()
    assert not (dst / "broken.mp4.tmp").exists()
    s = orch.stats.snapshot()
    assert (s.processed, s.failed) == (1, 1)
    assert s.original_size == 0
    out = capsys.readouterr().out
    assert 'reason="transcode"' in out
    assert "Failed: 1" in out
    assert "Space Saved" not in out


def test_probe_failure_means_transcode(roots):
    src, _ = roots
    make_file(src / "odd.flv", 10 * KiB)
    transcoder = FakeTranscoder(sizes={"odd.flv": KiB})
    orch = _orchestrator(roots, probe=FakeProbe(default=None), transcoder=transcoder)

    result = orch.process_file(src / "odd.flv")

    assert result.outcome is Outcome.COMPRESSED
    assert len(transcoder.calls) == 1


def test_copy_failure_keeps_source(roots, monkeypatch):
    src, dst = roots
    source = make_file(src / "a.mp4", 10 * KiB)

    def broken_copy(from_path, staging):
        staging.write_bytes(b"partial")
        raise CopyError(from_path, staging, OSError("disk full"))

    monkeypatch.setattr(batch, "copy_to_staging", broken_copy)
    orch = _orchestrator(roots, probe=FakeProbe(default="hevc"))

    result = orch.process_file(source)

    assert result.outcome is Outcome.FAILED
    assert result.reason == "copy"
    assert source.exists()
    assert not (dst / "a.mp4").exists()
    assert not (dst / "a.mp4.tmp").exists()


def test_publish_failure_keeps_source(roots, monkeypatch):
    src, dst = roots
    source = make_file(src / "a.mkv", 10 * KiB)

    def broken_publish(staging, target):
        raise OSError("read-only file system")

    monkeypatch.setattr(batch, "publish", broken_publish)
    orch = _orchestrator(roots, transcoder=FakeTranscoder(sizes={"a.mkv": KiB}))

    result = orch.process_file(source)

    assert result.outcome is Outcome.FAILED
    assert result.reason == "publish"
    assert source.exists()
    assert not (dst / "a.mp4.tmp").exists()


def test_existing_destination_is_overwritten_with_warning(roots, capsys):
    src, dst = roots
    make_file(src / "a.mkv", 10 * KiB)
    make_file(dst / "a.mp4", 1)
    orch = _orchestrator(roots, transcoder=FakeTranscoder(sizes={"a.mkv": 2 * KiB}))

    orch.run()

    assert (dst / "a.mp4").stat().st_size == 2 * KiB
    assert "file.overwrite" in capsys.readouterr().out


def test_mixed_batch_counts_add_up(roots):
    src, dst = roots
    make_file(src / "1.mkv", 10 * KiB)
    make_file(src / "2.mkv", 10 * KiB)
    make_file(src / "3.mkv", 10 * KiB)
    make_file(src / "4.mkv", 10 * KiB)
    probe = FakeProbe(codecs={"1.mkv": "hevc"})
    transcoder = FakeTranscoder(sizes={"2.mkv": KiB, "3.mkv": 20 * KiB}, fail={"4.mkv"})
    orch = _orchestrator(roots, probe=probe, transcoder=transcoder)

    orch.run()

    s = orch.stats.snapshot()
    assert (s.moved, s.compressed, s.failed) == (2, 1, 1)
    assert s.processed == s.moved + s.compressed + s.failed
    assert s.original_size == 30 * KiB
    assert s.final_size == 21 * KiB
    assert sorted(p.name for p in dst.iterdir()) == ["1.mp4", "2.mp4", "3.mp4"]
    assert [p.name for p in src.iterdir()] == ["4.mkv"]


def test_source_deleted_only_when_destination_exists(roots):
    src, dst = roots
    for name in ("a.mkv", "b.mkv", "c.mkv"):
        make_file(src / name, 10 * KiB)
    transcoder = FakeTranscoder(sizes={"a.mkv": KiB, "b.mkv": 50 * KiB}, fail={"c.mkv"})
    orch = _orchestrator(roots, transcoder=transcoder)

    orch.run()

    for name in ("a", "b", "c"):
        source_exists = (src / f"{name}.mkv").exists()
        target_exists = (dst / f"{name}.mp4").exists()
        assert source_exists != target_exists


def test_interrupt_mid_transcode(roots, capsys):
    src, dst = roots
    make_file(src / "a.mkv", 10 * KiB)
    second = make_file(src / "b.mkv", 10 * KiB)
    third = make_file(src / "c.mkv", 10 * KiB)
    stale = make_file(dst / "old" / "stale.mp4.tmp", 5)
    token = CancellationToken()
    transcoder = CancellingTranscoder("b.mkv", sizes={"a.mkv": KiB})
    orch = _orchestrator(roots, transcoder=transcoder, token=token)

    assert orch.run() == EXIT_INTERRUPTED

    assert not list(dst.rglob("*.tmp"))
    assert not stale.exists()
    assert (dst / "a.mp4").exists()
    assert second.exists() and third.exists()
    assert not (dst / "b.mp4").exists()
    assert [call[0].name for call in transcoder.calls] == ["a.mkv", "b.mkv"]

    s = orch.stats.snapshot()
    assert (s.processed, s.compressed, s.failed) == (1, 1, 0)
    assert token.state is RunState.REPORTED
    out = capsys.readouterr().out
    assert "Transcoding cancelled by user" in out
    assert "Processed: 1" in out


def test_cancelled_before_start_processes_nothing(roots):
    src, dst = roots
    source = make_file(src / "a.mkv", 10 * KiB)
    token = CancellationToken()
    token.cancel()
    probe = FakeProbe()
    orch = _orchestrator(roots, probe=probe, token=token)

    assert orch.run() == EXIT_INTERRUPTED
    assert probe.calls == []
    assert source.exists()
    assert orch.stats.snapshot().processed == 0


def test_unusable_destination_directory_fails_only_that_file(roots, capsys):
    src, dst = roots
    blocked = make_file(src / "a" / "x.mkv", 10 * KiB)
    make_file(src / "b.mkv", 10 * KiB)
    make_file(dst / "a", 3)
    orch = _orchestrator(roots, transcoder=FakeTranscoder(default_size=KiB))

    assert orch.run() == EXIT_OK

    assert blocked.exists()
    assert (dst / "b.mp4").exists()
    assert (dst / "a").read_bytes() == b"\0\0\0"
    s = orch.stats.snapshot()
    assert (s.processed, s.compressed, s.failed) == (2, 1, 1)
    out = capsys.readouterr().out
    assert 'reason="mkdir"' in out
    assert "Failed: 1" in out


def test_filesystem_error_inside_pipeline_is_contained(roots):
    src, _ = roots
    make_file(src / "a.mkv", 10 * KiB)
    make_file(src / "b.mkv", 10 * KiB)

    class PermissionDenied(FakeProbe):
        def inspect(self, path):
            if path.name == "a.mkv":
                raise PermissionError("permission denied")
            return super().inspect(path)

    orch = _orchestrator(roots, probe=PermissionDenied(), transcoder=FakeTranscoder(default_size=KiB))

    assert orch.run() == EXIT_OK
    s = orch.stats.snapshot()
    assert (s.processed, s.failed, s.compressed) == (2, 1, 1)


def test_interrupt_during_copy_is_not_published(roots, monkeypatch):
    src, dst = roots
    source = make_file(src / "a.mkv", 10 * KiB)
    make_file(src / "b.mkv", 10 * KiB)
    token = CancellationToken()

    def copy_then_interrupt(from_path, staging):
        staging.write_bytes(from_path.read_bytes())
        token.cancel(signal="SIGINT")

    monkeypatch.setattr(batch, "copy_to_staging", copy_then_interrupt)
    orch = _orchestrator(roots, probe=FakeProbe(default="hevc"), token=token)

    assert orch.run() == EXIT_INTERRUPTED

    assert source.exists()
    assert not (dst / "a.mp4").exists()
    assert not list(dst.rglob("*.tmp"))
    assert orch.stats.snapshot().processed == 0


def test_report_survives_quiet_log_level(roots, capsys):
    src, _ = roots
    make_file(src / "a.mkv", 10 * KiB)
    logger.set_log_level(LogLevel.WARN)
    orch = _orchestrator(roots, transcoder=FakeTranscoder(default_size=KiB))

    orch.run()

    out = capsys.readouterr().out
    assert "file.start" not in out
    assert "Processed: 1" in out
    assert "Failed: 0" in out
