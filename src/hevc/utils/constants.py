"""
Constants and configuration settings for batch HEVC transcoding.

This module contains the fixed values used by the transcoding pipeline: the
accepted video extensions, the target container and codec, the staging suffix,
the default encoder parameters and the process exit codes. Encoder parameters
and logging options can be overridden with environment variables, which may
also be supplied through a ``.env`` file.
"""

import os

from dotenv import load_dotenv

load_dotenv()

# Accepted video file extensions (compared lower-cased)
VIDEO_EXTENSIONS = {".mp4", ".mkv", ".avi", ".mov", ".m4v", ".flv", ".wmv", ".webm"}

# Output container and codec
TARGET_EXTENSION = ".mp4"
TARGET_CODECS = {"hevc", "h265"}
STAGING_SUFFIX = ".tmp"

# Encoder defaults
DEFAULT_VIDEO_ENCODER = "libx265"
DEFAULT_CRF = int(os.getenv("HEVCIFY_CRF", "23"))
DEFAULT_PRESET = os.getenv("HEVCIFY_PRESET", "medium")
DEFAULT_AUDIO_CODEC = "aac"
DEFAULT_AUDIO_BITRATE = os.getenv("HEVCIFY_AUDIO_BITRATE", "128k")
VIDEO_TAG = "hvc1"

# Progress logging interval for long transcodes (seconds)
PROGRESS_INTERVAL = 60

# Logging settings
LOG_LEVEL = os.getenv("HEVCIFY_LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("HEVCIFY_LOG_FILE")

# Process exit codes
EXIT_OK = 0
EXIT_USAGE = 1
EXIT_INTERRUPTED = 130

# Processing status codes
STATUS_MOVED = "MOVED"
STATUS_COMPRESSED = "COMPRESSED"
STATUS_FAIL = "FAIL"
