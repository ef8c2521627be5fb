"""Per-stage wall-clock timing for a pipeline run."""

import time
from contextlib import contextmanager
from typing import Dict, Iterator


class StageTimer:
    """Accumulates elapsed milliseconds per named stage."""

    def __init__(self) -> None:
        self._started = time.monotonic()
        self._stages: Dict[str, float] = {}

    @contextmanager
    def stage(self, name: str) -> Iterator[None]:
        start = time.monotonic()
        try:
            yield
        finally:
            elapsed_ms = (time.monotonic() - start) * 1000
            self._stages[name] = self._stages.get(name, 0.0) + elapsed_ms

    @property
    def total_ms(self) -> float:
        return (time.monotonic() - self._started) * 1000

    def as_dict(self) -> Dict[str, float]:
        timings = {name: round(ms, 2) for name, ms in self._stages.items()}
        timings["total"] = round(self.total_ms, 2)
        return timings
