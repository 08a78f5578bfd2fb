"""
A batch media module for shrinking video libraries with HEVC.

This module walks a source tree of video files and rebuilds it under a
destination tree, re-encoding each file to HEVC in an MP4 container when that
saves space and moving it unchanged otherwise. Source files are removed only
once their replacement has been published at the destination.

The module is organized into two categories:
- Utilities for constants, structured logging, system commands, file handling
  and human-readable formatting.
- Transcoding: codec probing, the ffmpeg transcoder, the per-file outcome
  policy, run statistics, cancellation handling and the batch orchestrator.
"""

__version__ = "1.0.0"

# Debug flag for controlling verbose output
DEBUG: bool = False

__all__ = ["__version__", "DEBUG"]
