"""Human-readable sizes for listings and the storage meter."""
import math

MB = 1024 * 1024


def format_size(num_bytes: int) -> str:
    """Render bytes as MB below 1 GB and GB above, two decimals."""
    if num_bytes <= 0:
        return "0 MB"
    mb = num_bytes / MB
    if mb < 1024:
        return f"{mb:.2f} MB"
    return f"{mb / 1024:.2f} GB"


def usage_fraction(used_bytes: int, quota_bytes: int) -> float:
    """Share of the quota in use, capped at 1.0."""
    if quota_bytes <= 0:
        return 1.0
    return min(max(used_bytes, 0) / quota_bytes, 1.0)


def render_meter(used_bytes: int, quota_bytes: int, width: int = 30) -> str:
    filled = round_half_up(usage_fraction(used_bytes, quota_bytes) * width)
    return "#" * filled + "-" * (width - filled)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3)."""
    return math.floor(value + 0.5)
