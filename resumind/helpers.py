# helpers.py
import math
import time
import uuid

SIZE_UNITS = ["Bytes", "KB", "MB", "GB", "TB"]

def _now() -> float:
    return time.time()

def generate_uuid() -> str:
    return str(uuid.uuid4())

def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))

def format_size(n_bytes: int) -> str:
    """Human readable size: 0 Bytes, 512 Bytes, 1.5 KB, 20 MB."""
    if n_bytes <= 0:
        return "0 Bytes"
    value, i = float(n_bytes), 0
    while value >= 1024 and i < len(SIZE_UNITS) - 1:
        value /= 1024
        i += 1
    # drop trailing zeros: 20.00 -> 20, 1.50 -> 1.5
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {SIZE_UNITS[i]}"
