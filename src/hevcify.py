"""
Hevcify: batch-convert a tree of videos into space-efficient HEVC MP4 files.

Every video under the source directory is either re-encoded to HEVC (when that
makes it smaller) or moved unchanged into the same relative location under the
destination directory. Sources are deleted once their replacement is in place.
Interrupting the run with Ctrl-C removes temporary files, prints the summary
and exits with status 130.
"""

import argparse
import atexit
import os
import sys
from pathlib import Path

import hevc as hevc_module
from hevc import transcode
from hevc.utils import EXIT_USAGE, LogLevel, logger, system_util
from hevc.utils.constants import (
    DEFAULT_AUDIO_BITRATE,
    DEFAULT_CRF,
    DEFAULT_PRESET,
    LOG_FILE,
    LOG_LEVEL,
)


class UsageError(Exception):
    """Bad command line arguments or a missing source directory."""


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message):
        raise UsageError(message)


class _TeeStream:
    def __init__(self, *streams):
        self._streams = streams

    def write(self, data):
        for stream in self._streams:
            stream.write(data)
        return len(data)

    def flush(self):
        for stream in self._streams:
            stream.flush()

    def isatty(self):
        return any(getattr(stream, "isatty", lambda: False)() for stream in self._streams)


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="hevcify",
        description="Batch transcode a directory tree of videos to HEVC MP4 files, "
                    "moving files that are already HEVC or would not get smaller.",
        epilog="Example: hevcify ~/Videos/raw ~/Videos/hevc",
    )
    parser.add_argument("source", help="Directory to read videos from (files are removed once converted)")
    parser.add_argument("destination", help="Directory to write converted videos to (created if missing)")
    parser.add_argument("--crf", type=int, default=DEFAULT_CRF,
                        help=f"x265 constant rate factor (default: {DEFAULT_CRF} or $HEVCIFY_CRF)")
    parser.add_argument("--preset", default=DEFAULT_PRESET,
                        help=f"x265 preset (default: {DEFAULT_PRESET} or $HEVCIFY_PRESET)")
    parser.add_argument("--audio-bitrate", default=DEFAULT_AUDIO_BITRATE,
                        help=f"AAC audio bitrate (default: {DEFAULT_AUDIO_BITRATE} or $HEVCIFY_AUDIO_BITRATE)")
    parser.add_argument("--log-file",
                        help="Write console output to a file as well (default: $HEVCIFY_LOG_FILE)")
    parser.add_argument("--debug", action="store_true", help="Enable debug output")
    parser.add_argument("--version", action="version", version=f"%(prog)s {hevc_module.__version__}")
    return parser


def _tee_to_log_file(log_file: str) -> Path:
    log_path = Path(log_file).expanduser().resolve()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    log_file_handle = open(log_path, "a", encoding="utf-8", buffering=1)
    sys.stdout = _TeeStream(sys.stdout, log_file_handle)
    sys.stderr = _TeeStream(sys.stderr, log_file_handle)
    atexit.register(log_file_handle.close)
    return log_path


def main(argv=None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
        source_dir = Path(args.source).expanduser()
        if not source_dir.is_dir():
            raise UsageError(f"Source directory {source_dir} does not exist")
    except UsageError as e:
        parser.print_usage(sys.stderr)
        logger.safe_print(f"{parser.prog}: error: {e}", file=sys.stderr)
        return EXIT_USAGE

    log_file = args.log_file or LOG_FILE
    if log_file:
        log_path = _tee_to_log_file(log_file)
        logger.safe_print(f"Logging to: {log_path}")

    hevc_module.DEBUG = args.debug
    if args.debug:
        logger.set_log_level(LogLevel.DEBUG)
    else:
        logger.set_log_level(logger.parse_log_level(LOG_LEVEL))

    system_util.which_or_die("ffmpeg")
    system_util.which_or_die("ffprobe")

    dest_dir = Path(args.destination).expanduser()
    params = transcode.TranscodeParams(crf=args.crf, preset=args.preset, audio_bitrate=args.audio_bitrate)
    token = transcode.CancellationToken()
    orchestrator = transcode.BatchOrchestrator(
        source_dir.resolve(),
        dest_dir.resolve(),
        probe=transcode.FFprobeMediaProbe(),
        transcoder=transcode.FFmpegTranscoder(debug=args.debug),
        params=params,
        token=token,
    )

    logger.log("hevcify.config", LogLevel.DEBUG, pid=os.getpid(), crf=params.crf, preset=params.preset,
               audio_bitrate=params.audio_bitrate)

    with transcode.InterruptHandler(token):
        return orchestrator.run()


if __name__ == "__main__":
    sys.exit(main())
