#!/usr/bin/env python3
"""Run metrics for release notes builds, written as JSONL.

Each event is one JSON line under METRICS_ROOT, so a CI job can keep the file
as an artifact and compare commit counts and timings across builds.
"""

from __future__ import annotations

import json
import os
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from configs.config import Config

METRICS_FILE = "metrics.log"


class MetricsLog:
    def __init__(self, root: Optional[str] = None, enabled: Optional[bool] = None):
        obs = Config.observability()
        self.root = Path(root or obs["metrics_root"])
        self.enabled = obs["metrics_enabled"] if enabled is None else enabled

    @property
    def path(self) -> Path:
        return self.root / METRICS_FILE

    def emit(self, metric: str, value: Any = 1, **fields: Any) -> None:
        if not self.enabled:
            return
        rec: Dict[str, Any] = {"ts": int(time.time()), "metric": metric, "value": value}
        rec.update(fields)
        self.root.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(json.dumps(rec, separators=(",", ":")) + "\n")
            f.flush()
            os.fsync(f.fileno())

    @contextmanager
    def timed(self, metric: str, **fields: Any) -> Iterator[None]:
        t0 = time.perf_counter()
        try:
            yield
        finally:
            self.emit(f"{metric}.latency_s", round(time.perf_counter() - t0, 3), **fields)

    def record_build(self, build_type: str, revision: str, stories: int, defects: int) -> None:
        self.emit("notes.stories", stories, build_type=build_type, revision=revision)
        self.emit("notes.defects", defects, build_type=build_type, revision=revision)
