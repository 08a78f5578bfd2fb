"""
A module providing constants, utility functions, and logging mechanisms
for batch transcoding tasks.

This module includes the constants and configuration of the transcoding
pipeline, utility functions for system operations such as command execution,
file staging helpers and human-readable formatting. It also integrates a
structured logging mechanism for safe and controlled output.
"""

from .constants import (
    DEFAULT_AUDIO_BITRATE,
    DEFAULT_AUDIO_CODEC,
    DEFAULT_CRF,
    DEFAULT_PRESET,
    DEFAULT_VIDEO_ENCODER,
    EXIT_INTERRUPTED,
    EXIT_OK,
    EXIT_USAGE,
    STAGING_SUFFIX,
    STATUS_COMPRESSED,
    STATUS_FAIL,
    STATUS_MOVED,
    TARGET_CODECS,
    TARGET_EXTENSION,
    VIDEO_EXTENSIONS,
    VIDEO_TAG,
)
from .logger import LogLevel

__all__ = [
    "VIDEO_EXTENSIONS",
    "TARGET_EXTENSION",
    "TARGET_CODECS",
    "STAGING_SUFFIX",
    "DEFAULT_VIDEO_ENCODER",
    "DEFAULT_CRF",
    "DEFAULT_PRESET",
    "DEFAULT_AUDIO_CODEC",
    "DEFAULT_AUDIO_BITRATE",
    "VIDEO_TAG",
    "EXIT_OK",
    "EXIT_USAGE",
    "EXIT_INTERRUPTED",
    "STATUS_MOVED",
    "STATUS_COMPRESSED",
    "STATUS_FAIL",
    "LogLevel",
]
