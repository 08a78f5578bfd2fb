"""
Helpers for calling ffmpeg and ffprobe.

run_cmd decodes output leniently: ffprobe echoes input paths in its messages
and those are not always valid UTF-8. which_or_die stops the run before any
file is touched when one of the binaries is not installed.
"""
import shutil
import subprocess
import sys
from typing import Tuple, List

from hevc.utils.constants import EXIT_USAGE
from hevc.utils.logger import safe_print


def run_cmd(cmd: List[str]) -> Tuple[int, str, str]:
    """Run a command and return (code, stdout, stderr)."""
    p = subprocess.run(cmd, stdin=subprocess.DEVNULL, stdout=subprocess.PIPE, stderr=subprocess.PIPE,
                       text=True, errors="replace")
    return p.returncode, p.stdout, p.stderr


def which_or_die(binary: str):
    """Exit with the usage status if ``binary`` is not on PATH."""
    if shutil.which(binary) is None:
        safe_print(f"ERROR: '{binary}' not found on PATH. Install it first (e.g. apt install ffmpeg).",
                   file=sys.stderr)
        sys.exit(EXIT_USAGE)
