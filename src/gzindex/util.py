# gzindex/util.py
import sys

# -------------------------
# Utility: logging & timing
# -------------------------

def ms(s: float) -> str:
    """Format seconds -> milliseconds string with 3 decimals."""
    return f"{s * 1000:.3f} ms"


def info(msg: str):
    # stderr: stdout may be carrying decompressed data
    print(msg, file=sys.stderr, flush=True)
