"""Human-readable rendering of byte counts and durations."""

_IEC_PREFIXES = ["Ki", "Mi", "Gi", "Ti", "Pi", "Ei", "Zi", "Yi"]


def _ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


def size_h(size_bytes: int) -> str:
    """
    Render a byte count with binary (IEC) units, e.g. ``512B``, ``1.5KiB``, ``60MiB``.

    Values are rounded away from zero. Below ten units one decimal place is
    kept, above that the value is shown as a whole number.
    """
    size_bytes = int(size_bytes)
    sign = "-" if size_bytes < 0 else ""
    n = abs(size_bytes)
    if n < 1024:
        return f"{sign}{n}B"

    power = 1
    while power < len(_IEC_PREFIXES) and n >= 1024 ** (power + 1):
        power += 1

    while True:
        divisor = 1024 ** power
        tenths = _ceil_div(n * 10, divisor)
        if tenths < 100:
            text = f"{tenths // 10}.{tenths % 10}"
            break
        whole = _ceil_div(n, divisor)
        if whole >= 1024 and power < len(_IEC_PREFIXES):
            # Rounding carried into the next unit
            power += 1
            continue
        text = str(whole)
        break

    return f"{sign}{text}{_IEC_PREFIXES[power - 1]}B"


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" + ("s" if count > 1 else "")


def duration_h(seconds) -> str:
    """Render seconds as e.g. ``1 hour, 2 minutes and 3 seconds``."""
    total = abs(int(seconds))
    if total == 0:
        return "0 seconds"

    days = total // 86400
    hours = total // 3600 % 24
    minutes = total // 60 % 60
    secs = total % 60

    units = []
    for count, unit in ((days, "day"), (hours, "hour"), (minutes, "minute"), (secs, "second")):
        if count > 0:
            units.append(_plural(count, unit))

    if len(units) == 1:
        return units[0]
    return ", ".join(units[:-1]) + " and " + units[-1]
