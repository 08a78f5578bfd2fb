"""Video transcoding functionality for batch HEVC conversion.

This package provides several levels of functionality:
- core: Low-level FFmpeg utilities (VideoInfo, probing, transcoding)
- policy: The per-file outcome decision
- stats: Run statistics and the final report
- cancel: Cancellation token and interrupt handling
- batch: High-level orchestration (file discovery, per-file pipeline)
"""

from .core import (
    VideoInfo,
    TranscodeParams,
    TranscodeError,
    FFprobeMediaProbe,
    FFmpegTranscoder,
    ffprobe_video_info,
    is_target_codec,
    build_ffmpeg_cmd,
)
from .policy import Action, Outcome, decide
from .stats import RunStatistics, StatsAccumulator
from .cancel import CancellationToken, InterruptHandler, RunState
from .batch import (
    BatchOrchestrator,
    FileResult,
    iter_video_files,
)

__all__ = [
    # Video info
    "VideoInfo",
    "ffprobe_video_info",
    "is_target_codec",
    "FFprobeMediaProbe",
    # Transcoding
    "TranscodeParams",
    "TranscodeError",
    "FFmpegTranscoder",
    "build_ffmpeg_cmd",
    # Policy and statistics
    "Action",
    "Outcome",
    "decide",
    "RunStatistics",
    "StatsAccumulator",
    # Cancellation
    "CancellationToken",
    "InterruptHandler",
    "RunState",
    # Orchestration
    "BatchOrchestrator",
    "FileResult",
    "iter_video_files",
]
