from datetime import datetime, timedelta, timezone


def parse_ffmpeg_time(time_str: str) -> float:
    """Convert an ffmpeg ``HH:MM:SS.ss`` timestamp to seconds."""
    hours, minutes, seconds = time_str.split(':')
    return float(hours) * 3600 + float(minutes) * 60 + float(seconds)


def get_eta_single_file(video_duration, speed_val, elapsed_seconds):
    remaining_seconds = max(video_duration - elapsed_seconds, 0) / speed_val
    return _get_eta_string(remaining_seconds)


def _get_eta_string(time_in_seconds):
    completion_time = (datetime.now(timezone.utc) + timedelta(
        seconds=time_in_seconds)).strftime("%Y-%m-%d %H:%M:%S")

    eta_hours = int(time_in_seconds // 3600)
    eta_mins = int((time_in_seconds % 3600) // 60)
    eta_secs = int(time_in_seconds % 60)
    if eta_hours > 0:
        formatted_time = f"{eta_hours}h{eta_mins}m{eta_secs}s"
    elif eta_mins > 0:
        formatted_time = f"{eta_mins}m{eta_secs}s"
    else:
        formatted_time = f"{eta_secs}s"

    return f"{completion_time} ({formatted_time})"
