from __future__ import annotations

import math
import threading
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

# Process-wide aggregator: op name -> { calls, errors: {code: n}, latency_ms: [ms] }
_ops: Dict[str, Dict[str, Any]] = {}
_guard = threading.Lock()

# Keep the latency window bounded per op
MAX_SAMPLES = 1000


def _latency_summary(samples: List[int]) -> Dict[str, Optional[int]]:
    """Nearest-rank p50/p95/p99 plus max over the retained window."""
    if not samples:
        return {"p50": None, "p95": None, "p99": None, "max": None}
    ordered = sorted(samples)
    n = len(ordered)

    def rank(p: int) -> int:
        return ordered[max(1, math.ceil(p / 100 * n)) - 1]

    return {"p50": rank(50), "p95": rank(95), "p99": rank(99), "max": ordered[-1]}


def record_op(op: str, latency_ms: int, error: Optional[str] = None) -> None:
    with _guard:
        entry = _ops.setdefault(op, {"calls": 0, "errors": {}, "latency_ms": []})
        entry["calls"] += 1
        if error:
            entry["errors"][error] = entry["errors"].get(error, 0) + 1
        samples = entry["latency_ms"]
        samples.append(int(latency_ms))
        if len(samples) > MAX_SAMPLES:
            del samples[: len(samples) - MAX_SAMPLES]


@contextmanager
def track(op: str) -> Iterator[Dict[str, Optional[str]]]:
    """Time the block and record it under ``op``.

    Set ``outcome["error"]`` inside the block to count a failure tag.
    """
    outcome: Dict[str, Optional[str]] = {"error": None}
    t0 = time.perf_counter()
    try:
        yield outcome
    finally:
        record_op(op, int((time.perf_counter() - t0) * 1000), outcome["error"])


def summary() -> Dict[str, Any]:
    with _guard:
        return {
            op: {
                "calls": v["calls"],
                "errors": dict(v["errors"]),
                "latency": _latency_summary(v["latency_ms"]),
            }
            for op, v in _ops.items()
        }


def reset() -> None:
    with _guard:
        _ops.clear()
