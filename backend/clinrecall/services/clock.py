import time


def now_ms() -> int:
    """Current time in epoch milliseconds. Routers take it via Depends(now_ms)
    so the scheduling path never reads the clock itself."""
    return time.time_ns() // 1_000_000
