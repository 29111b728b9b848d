"""Hot path profiling for the mapper, zero-cost when disabled.

Set ``JMAPPER_PROFILE`` in the environment before import to collect timings
for the read and write entry points. Without it, ``ProfileContext`` is a
no-op and the stats functions report nothing.
"""

import os
import threading
import time
from dataclasses import dataclass
from typing import Any

PROFILE_HOT_PATHS = __debug__ and "JMAPPER_PROFILE" in os.environ


@dataclass
class HotPathStats:
    """Timing totals for one profiled entry point."""

    function_name: str
    call_count: int = 0
    total_time_ns: int = 0
    max_time_ns: int = 0

    @property
    def mean_time_ns(self) -> float:
        return self.total_time_ns / self.call_count if self.call_count else 0.0

    def record_call(self, duration_ns: int) -> None:
        self.call_count += 1
        self.total_time_ns += duration_ns
        self.max_time_ns = max(self.max_time_ns, duration_ns)


if PROFILE_HOT_PATHS:
    _hot_path_stats: dict[str, HotPathStats] = {}
    _stats_lock = threading.Lock()

    class ProfileContext:
        """Times the enclosed block and folds it into the named stats entry."""

        __slots__ = ("func_name", "start_time")

        def __init__(self, func_name: str) -> None:
            self.func_name = func_name
            self.start_time = 0

        def __enter__(self) -> "ProfileContext":
            self.start_time = time.perf_counter_ns()
            return self

        def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
            duration = time.perf_counter_ns() - self.start_time
            with _stats_lock:
                stats = _hot_path_stats.get(self.func_name)
                if stats is None:
                    stats = _hot_path_stats[self.func_name] = HotPathStats(
                        self.func_name
                    )
                stats.record_call(duration)

    def get_hot_path_stats() -> dict[str, HotPathStats]:
        """Returns a snapshot of the collected statistics."""
        with _stats_lock:
            return dict(_hot_path_stats)

    def clear_hot_path_stats() -> None:
        with _stats_lock:
            _hot_path_stats.clear()

else:

    class ProfileContext:  # type: ignore[no-redef]
        __slots__ = ()

        def __init__(self, func_name: str) -> None:
            pass

        def __enter__(self) -> "ProfileContext":
            return self

        def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
            pass

    def get_hot_path_stats() -> dict[str, HotPathStats]:
        return {}

    def clear_hot_path_stats() -> None:
        pass
