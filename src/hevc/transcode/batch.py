"""
This module provides the batch orchestrator that rebuilds a source tree of
videos as HEVC files under a destination tree.

Files are discovered once, then processed strictly one after another. For each
file the orchestrator probes the codec, transcodes when needed, picks the
outcome through the policy, and publishes the result by renaming a staging
file into place before the source is deleted. A source file is never deleted
unless its replacement now exists at the destination.
"""
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from hevc.utils import EXIT_INTERRUPTED, EXIT_OK, VIDEO_EXTENSIONS, LogLevel, logger
from hevc.utils.file_util import (
    CopyError,
    copy_to_staging,
    destination_for,
    discard,
    file_size,
    publish,
    sweep_staging_files,
)
from hevc.utils.format_util import duration_h, size_h
from .cancel import CancellationToken, RunState
from .core import TranscodeError, TranscodeParams, is_target_codec
from .policy import Action, Outcome, decide
from .stats import StatsAccumulator


def iter_video_files(root: Path) -> List[Path]:
    """Find all video files recursively, sorted for reproducible runs."""
    files = []
    for p in root.rglob("*"):
        if p.is_file() and p.suffix.lower() in VIDEO_EXTENSIONS:
            files.append(p)
    return sorted(files)


@dataclass
class FileResult:
    """What happened to one source file. ``outcome`` is None when cancelled mid-file."""

    source: Path
    target: Optional[Path]
    outcome: Optional[Outcome]
    original_size: int = 0
    final_size: int = 0
    reason: Optional[str] = None


class BatchOrchestrator:
    """
    Drives the per-file pipeline over a whole source tree.

    The probe needs an ``inspect(path)`` method returning a VideoInfo or None;
    the transcoder needs ``run(src, dst, params, token=..., info=...)`` returning
    the produced size and raising TranscodeError on failure.
    """

    def __init__(self, source_root: Path, dest_root: Path, probe, transcoder,
                 params: Optional[TranscodeParams] = None,
                 stats: Optional[StatsAccumulator] = None,
                 token: Optional[CancellationToken] = None,
                 clock=time.monotonic):
        self.source_root = Path(source_root)
        self.dest_root = Path(dest_root)
        self.probe = probe
        self.transcoder = transcoder
        self.params = params or TranscodeParams()
        self.stats = stats or StatsAccumulator(clock=clock)
        self.token = token or CancellationToken()
        self._clock = clock

    def run(self) -> int:
        """Process every video under the source root and return the exit code."""
        logger.log("hevcify.start", LogLevel.INFO,
                   msg="Transcoding started",
                   source=str(self.source_root),
                   destination=str(self.dest_root))

        self.dest_root.mkdir(parents=True, exist_ok=True)
        files = iter_video_files(self.source_root)
        logger.log("hevcify.scan", LogLevel.INFO, files_found=len(files))

        for src in tqdm(files, desc="Transcoding", unit="file", disable=None):
            if self.token.cancelled:
                break
            self.process_file(src)

        if self.token.cancelled:
            return self.shutdown_cancelled()

        self.stats.report(cancelled=False)
        return EXIT_OK

    def shutdown_cancelled(self) -> int:
        """Remove leftover staging files, report, and return the interrupted exit code."""
        self.token.log_request()
        self.token.advance(RunState.CLEANING)
        logger.log("cancel.cleanup", LogLevel.INFO, msg="Removing temporary files")
        removed = sweep_staging_files(self.dest_root)
        logger.log("cancel.cleanup", LogLevel.INFO, removed=removed)

        self.stats.report(cancelled=True)
        self.token.advance(RunState.REPORTED)
        return EXIT_INTERRUPTED

    def process_file(self, src: Path) -> FileResult:
        """Run the probe -> transcode -> publish pipeline for one file."""
        start = self._clock()
        target, staging = destination_for(src, self.source_root, self.dest_root)
        original_size = file_size(src)
        logger.log("file.start", LogLevel.INFO, msg="Processing", file=str(src), size=size_h(original_size))

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            result = self._fail(src, staging, original_size, "mkdir", str(e))
        else:
            if target.exists():
                logger.log("file.overwrite", LogLevel.WARN, msg="Destination exists and will be replaced",
                           dst=str(target))
            try:
                result = self._pipeline(src, target, staging, original_size)
            except OSError as e:
                result = self._fail(src, staging, original_size, "io", str(e))

        if result.outcome is not None:
            self.stats.record_outcome(result.outcome, result.original_size, result.final_size)
        logger.log("file.duration", LogLevel.INFO, file=src.name,
                   duration=duration_h(self._clock() - start))
        return result

    def _pipeline(self, src: Path, target: Path, staging: Path, original_size: int) -> FileResult:
        info = self.probe.inspect(src)
        already_target = is_target_codec(info)
        if self.token.cancelled:
            return self._abandon(src, staging)

        action = decide(already_target, False, False, original_size, 0)
        if action is Action.MOVE:
            logger.log("file.skip_transcode", LogLevel.INFO,
                       msg="Already in hevc, moving file to destination", file=src.name)
            return self._move_original(src, target, staging, original_size)

        produced_size = 0
        succeeded = False
        try:
            produced_size = self.transcoder.run(src, staging, self.params, token=self.token, info=info)
            succeeded = True
        except TranscodeError as e:
            logger.log("file.transcode_error", LogLevel.DEBUG, file=src.name, error=str(e))

        if self.token.cancelled:
            return self._abandon(src, staging)

        action = decide(already_target, True, succeeded, original_size, produced_size)
        if action is Action.FAIL:
            return self._fail(src, staging, original_size, "transcode", "Cannot transcode video")

        ratio = f"{produced_size / original_size * 100:.2f}%" if original_size else "N/A"
        logger.log("file.converted", LogLevel.INFO,
                   msg=f"Compressed: {size_h(produced_size)}/{size_h(original_size)} ({ratio})",
                   file=src.name)

        if action is Action.COMPRESS:
            try:
                publish(staging, target)
            except OSError as e:
                return self._fail(src, staging, original_size, "publish", str(e))
            self._delete_source(src)
            logger.log("file.compressed", LogLevel.INFO, msg="Saved", dst=str(target))
            return FileResult(src, target, Outcome.COMPRESSED, original_size, produced_size)

        logger.log("file.larger", LogLevel.WARN, msg="Converted file is larger, moving original file",
                   file=src.name)
        discard(staging)
        return self._move_original(src, target, staging, original_size)

    def _move_original(self, src: Path, target: Path, staging: Path, original_size: int) -> FileResult:
        try:
            copy_to_staging(src, staging)
        except CopyError as e:
            return self._fail(src, staging, original_size, "copy", str(e))
        if self.token.cancelled:
            return self._abandon(src, staging)
        try:
            publish(staging, target)
        except OSError as e:
            return self._fail(src, staging, original_size, "publish", str(e))
        self._delete_source(src)
        logger.log("file.moved", LogLevel.INFO, msg="Saved", dst=str(target))
        return FileResult(src, target, Outcome.MOVED, original_size, original_size)

    def _fail(self, src: Path, staging: Path, original_size: int, reason: str, detail: str) -> FileResult:
        discard(staging)
        logger.log("file.failed", LogLevel.ERROR, file=str(src), reason=reason, error=detail)
        return FileResult(src, None, Outcome.FAILED, original_size, 0, reason=reason)

    def _abandon(self, src: Path, staging: Path) -> FileResult:
        discard(staging)
        logger.log("file.cancelled", LogLevel.WARN, file=str(src), msg="Interrupted, source kept")
        return FileResult(src, None, None, reason="cancelled")

    @staticmethod
    def _delete_source(src: Path) -> None:
        try:
            src.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.log("file.delete_failed", LogLevel.WARN, file=str(src), error=str(e))
