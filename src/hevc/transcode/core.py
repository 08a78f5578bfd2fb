"""
Functions to gather video information and run ffmpeg transcodes to HEVC.

This module provides the two external collaborators of the batch orchestrator:
a media probe that asks ffprobe for a file's video codec, and a transcoder that
re-encodes a file to HEVC in an MP4 container with ffmpeg, logging progress as
it goes and stopping early when the run is cancelled.
"""
import json
import re
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, List

from hevc.utils import (
    DEFAULT_AUDIO_BITRATE,
    DEFAULT_AUDIO_CODEC,
    DEFAULT_CRF,
    DEFAULT_PRESET,
    DEFAULT_VIDEO_ENCODER,
    TARGET_CODECS,
    VIDEO_TAG,
    LogLevel,
    logger,
    system_util,
    time_util,
)
from hevc.utils.constants import PROGRESS_INTERVAL
from hevc.utils.file_util import file_size


class TranscodeError(Exception):
    """Raised when ffmpeg cannot be started or exits with a non-zero status."""

    def __init__(self, src: Path, exit_code: Optional[int], detail: str = ""):
        msg = f"ffmpeg failed for {src}"
        if exit_code is not None:
            msg += f" (exit code {exit_code})"
        super().__init__(msg)
        self.src = src
        self.exit_code = exit_code
        self.detail = detail


@dataclass
class VideoInfo:
    codec: str
    width: Optional[int] = None
    height: Optional[int] = None
    duration: Optional[float] = None


@dataclass
class TranscodeParams:
    video_encoder: str = DEFAULT_VIDEO_ENCODER
    crf: int = DEFAULT_CRF
    preset: str = DEFAULT_PRESET
    audio_codec: str = DEFAULT_AUDIO_CODEC
    audio_bitrate: str = DEFAULT_AUDIO_BITRATE


def ffprobe_video_info(path: Path) -> Optional[VideoInfo]:
    """Probe the first video stream of a file. Returns None when it cannot be read."""
    cmd = [
        "ffprobe", "-v", "error",
        "-select_streams", "v:0",
        "-show_entries", "stream=codec_name,width,height:format=duration",
        "-of", "json",
        str(path)
    ]
    try:
        code, out, err = system_util.run_cmd(cmd)
    except (OSError, ValueError) as e:
        logger.log("probe.failed", LogLevel.WARN, file=path.name, error=str(e))
        return None
    if code != 0:
        logger.log("probe.failed", LogLevel.DEBUG, file=path.name, exit_code=code)
        return None
    try:
        data = json.loads(out)
    except ValueError:
        logger.log("probe.failed", LogLevel.DEBUG, file=path.name, error="invalid ffprobe output")
        return None
    if not isinstance(data, dict):
        return None
    streams = data.get("streams") or []
    if not streams:
        return None
    s = streams[0]

    # Get duration from format section
    duration = None
    if "format" in data and "duration" in data["format"]:
        try:
            duration = float(data["format"]["duration"])
        except (ValueError, TypeError):
            pass

    return VideoInfo(
        codec=s.get("codec_name", ""),
        width=s.get("width"),
        height=s.get("height"),
        duration=duration,
    )


def is_target_codec(info: Optional[VideoInfo]) -> bool:
    """True when the probed codec already is HEVC."""
    return info is not None and info.codec.lower() in TARGET_CODECS


class FFprobeMediaProbe:
    """Media probe backed by ffprobe."""

    def inspect(self, path: Path) -> Optional[VideoInfo]:
        return ffprobe_video_info(path)


def build_ffmpeg_cmd(src: Path, dst: Path, params: TranscodeParams) -> List[str]:
    """Build ffmpeg command for transcoding video to HEVC in an MP4 container."""
    cmd = [
        "ffmpeg",
        "-nostdin",
        "-hide_banner",
        "-loglevel", "error",
        "-stats",
        "-i", str(src),
        "-c:v", params.video_encoder,
        "-crf", str(params.crf),
        "-preset", params.preset,
    ]
    if params.video_encoder == "libx265":
        cmd += ["-x265-params", "log-level=none"]

    cmd += [
        "-c:a", params.audio_codec,
        "-b:a", params.audio_bitrate,
        "-tag:v", VIDEO_TAG,
        "-movflags", "+faststart",
        "-f", "mp4",
        "-y",
        str(dst),
    ]
    return cmd


def _log_progress(src: Path, line: str, info: Optional[VideoInfo]) -> None:
    """Log a progress event from an ffmpeg stats line."""
    # Example: frame= 1234 fps=18 q=-0.0 size=  10240KiB time=00:01:23.45 bitrate=1234.5kbits/s speed=0.75x
    time_match = re.search(r'time=(\S+)', line)
    speed_match = re.search(r'speed=\s*(\S+)', line)
    if not (time_match and speed_match):
        return

    speed_str = speed_match.group(1).rstrip('x')
    try:
        elapsed_seconds = time_util.parse_ffmpeg_time(time_match.group(1))
        if not (info and info.duration):
            logger.log("transcode.progress", LogLevel.INFO,
                       file=src.name,
                       pct="N/A",
                       eta="N/A",
                       speed=f"{speed_str}x")
            return

        percent = (elapsed_seconds / info.duration) * 100
        speed_val = float(speed_str)
        if speed_val > 0:
            logger.log("transcode.progress", LogLevel.INFO,
                       file=src.name,
                       pct=round(percent, 1),
                       eta=time_util.get_eta_single_file(info.duration, speed_val, elapsed_seconds),
                       speed=f"{speed_str}x")
        else:
            logger.log("transcode.progress", LogLevel.INFO,
                       file=src.name,
                       pct=round(percent, 1),
                       speed=f"{speed_str}x")
    except (ValueError, ZeroDivisionError):
        pass  # Skip progress update if parsing fails


class FFmpegTranscoder:
    """Transcoder backed by ffmpeg."""

    def __init__(self, debug: bool = False, progress_interval: float = PROGRESS_INTERVAL):
        self.debug = debug
        self.progress_interval = progress_interval

    def run(self, src: Path, dst: Path, params: TranscodeParams, token=None,
            info: Optional[VideoInfo] = None) -> int:
        """
        Transcode ``src`` into ``dst`` and return the size of the produced file.

        Args:
            src: Source video file path
            dst: Staging file path to write to
            params: Encoder parameters
            token: Optional CancellationToken; the ffmpeg process is registered
                with it so an interrupt can terminate it
            info: Probe result, used for progress percentages

        Raises:
            TranscodeError: ffmpeg could not be started or exited non-zero
        """
        cmd = build_ffmpeg_cmd(src, dst, params)

        logger.log("transcode.start", LogLevel.INFO,
                   file=src.name,
                   dst=dst.name)

        if self.debug:
            logger.log("transcode.details", LogLevel.DEBUG,
                       source_codec=info.codec.upper() if info else "unknown",
                       source_res=f"{info.width}x{info.height}" if info else "unknown",
                       target="HEVC (H.265)",
                       encoder=params.video_encoder,
                       crf=params.crf,
                       preset=params.preset)

        try:
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace"
            )
        except OSError as e:
            logger.log("transcode.failed", LogLevel.ERROR, file=src.name, error=str(e))
            raise TranscodeError(src, None, str(e)) from e

        if token is not None:
            token.attach(process)

        stderr_output = []
        last_progress_log = time.time()
        try:
            # Read stderr line by line for progress updates
            while True:
                line = process.stderr.readline()
                if not line and process.poll() is not None:
                    break

                if line:
                    stderr_output.append(line)
                    if "time=" in line and "speed=" in line:
                        current_time = time.time()
                        if current_time - last_progress_log >= self.progress_interval:
                            _log_progress(src, line, info)
                            last_progress_log = current_time

            # Wait for process to complete and get remaining output
            _, remaining_stderr = process.communicate()
            stderr_output.append(remaining_stderr or "")
        except Exception as e:
            logger.log("transcode.failed", LogLevel.ERROR, file=src.name, error=str(e))
            raise TranscodeError(src, None, str(e)) from e
        finally:
            if process.poll() is None:
                process.kill()
                process.wait()
            if token is not None:
                token.detach()

        stderr_text = ''.join(stderr_output)
        code = process.returncode

        if code != 0:
            logger.log("transcode.failed", LogLevel.ERROR,
                       file=src.name,
                       exit_code=code,
                       error=stderr_text[-200:] if self.debug else "see logs")
            raise TranscodeError(src, code, stderr_text)

        produced = file_size(dst)
        logger.log("transcode.complete", LogLevel.INFO,
                   file=src.name,
                   size=produced)
        return produced
