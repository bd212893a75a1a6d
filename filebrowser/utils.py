import re
from datetime import datetime, timezone

# Characters allowed in stored upload names: word characters of any script, dot, dash.
_UNSAFE_NAME_CHARS = re.compile(r"[^\w.\-]")


def parse_file_size(size_str: str) -> int:
    """Parse file size string with units (B, KB, MB, GB) to bytes.

    Examples:
        "10" -> 10 bytes
        "10mb" or "10MB" -> 10485760 bytes
        "5gb" or "5GB" -> 5368709120 bytes
        "500kb" or "500KB" -> 512000 bytes
    """
    size_str = str(size_str).strip()

    # Check if it's just a number (bytes)
    if size_str.isdigit():
        return int(size_str)

    # Parse with units
    match = re.match(r'^(\d+(?:\.\d+)?)\s*(b|kb|mb|gb)$', size_str, re.IGNORECASE)
    if not match:
        raise ValueError(f"Invalid file size format: {size_str}")

    value = float(match.group(1))
    unit = match.group(2).lower()

    multipliers = {
        'b': 1,
        'kb': 1024 ** 1,
        'mb': 1024 ** 2,
        'gb': 1024 ** 3
    }

    return int(value * multipliers[unit])


def parse_extensions(raw: str) -> frozenset[str]:
    """Parse a comma separated extension list ("txt, .PNG,md") into a normalized set."""
    return frozenset(
        ext.strip().lstrip(".").lower()
        for ext in raw.split(",")
        if ext.strip().lstrip(".")
    )


def file_extension(name: str) -> str:
    """Return the lower-cased suffix of *name* without the dot ("" if none).

    Dot-prefixed names without a further dot (".bashrc") have no extension.
    """
    stem, dot, ext = name.rpartition(".")
    if not dot or not stem:
        return ""
    return ext.lower()


def sanitize_filename(name: str) -> str:
    """Make an uploaded filename safe to store.

    Anything outside letters, digits, ``.``, ``-`` and ``_`` becomes ``_``,
    so separators can never survive.  Names made only of dots become ``_``.
    """
    safe = _UNSAFE_NAME_CHARS.sub("_", name)
    if not safe.strip("."):
        return "_"
    return safe


def format_bytes(n: int) -> str:
    """Human-readable byte size."""
    for unit in ("B", "KB", "MB", "GB"):
        if n < 1024:
            return f"{n:.1f} {unit}" if n != int(n) else f"{int(n)} {unit}"
        n /= 1024
    return f"{n:.1f} TB"


def isoformat_mtime(timestamp: float) -> str:
    """Format a stat mtime as an ISO-8601 UTC string with millisecond precision."""
    moment = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")
