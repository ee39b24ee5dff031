from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Mapping

LOGGER = logging.getLogger(__name__)
COUNTERS = (
    "ticks",
    "threads_seen",
    "replies_sent",
    "already_replied",
    "skipped_no_recipient",
    "failures",
    "poll_failures",
)


class StatisticsService:
    """Very small JSON-backed counter store for the reply loop."""

    def __init__(self, stats_file: Path):
        self._stats_file = stats_file
        self._stats_file.parent.mkdir(parents=True, exist_ok=True)
        self._stats_file.touch(exist_ok=True)
        if not self._stats_file.read_text(encoding="utf-8").strip():
            self._write({})

    def _read(self) -> Dict:
        try:
            return json.loads(self._stats_file.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            LOGGER.warning("Stats file was corrupt, resetting %s", self._stats_file)
            self._write({})
            return {}

    def _write(self, payload: Dict) -> None:
        self._stats_file.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def record_tick(self, counts: Mapping[str, int]) -> None:
        stats = self._read()
        stats["ticks"] = stats.get("ticks", 0) + 1
        for name, value in counts.items():
            if name not in COUNTERS:
                raise KeyError(f"Unknown counter: {name}")
            stats[name] = stats.get(name, 0) + value
        stats["last_tick_at"] = datetime.now(timezone.utc).isoformat()
        self._write(stats)

    def snapshot(self) -> Dict:
        return self._read()
