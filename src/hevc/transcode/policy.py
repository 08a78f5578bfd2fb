"""
Per-file outcome policy.

Decides, without touching the filesystem, what happens to a file given what the
probe said and how the transcode went:

- already in the target codec: move it as is;
- not yet transcoded: transcode it;
- transcode failed: the file fails and the source stays put;
- transcode produced a smaller file: keep the transcoded output;
- transcode produced a file that is not smaller: move the original instead.
"""
from enum import Enum

from hevc.utils import STATUS_COMPRESSED, STATUS_FAIL, STATUS_MOVED


class Action(Enum):
    """Next step for a file in the pipeline."""
    TRANSCODE = "transcode"
    MOVE = "move"
    COMPRESS = "compress"
    FAIL = "fail"


class Outcome(Enum):
    """Final classification of a processed file."""
    MOVED = STATUS_MOVED
    COMPRESSED = STATUS_COMPRESSED
    FAILED = STATUS_FAIL


def decide(already_target: bool, transcode_attempted: bool, transcode_succeeded: bool,
           original_size: int, produced_size: int) -> Action:
    """Select the next action for a file."""
    if already_target:
        return Action.MOVE
    if not transcode_attempted:
        return Action.TRANSCODE
    if not transcode_succeeded:
        return Action.FAIL
    if produced_size < original_size:
        return Action.COMPRESS
    return Action.MOVE
