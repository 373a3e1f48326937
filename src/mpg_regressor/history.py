"""Per-epoch training history collection and persistence helpers."""

from __future__ import annotations

import csv
import json
import threading
from collections.abc import Callable
from pathlib import Path

from mpg_regressor.models import HistoryEntry


class TrainingHistory:
    """Append-only record of one loss/metric pair per epoch."""

    _CSV_COLUMNS = ["epoch", "loss", "metric"]

    def __init__(self) -> None:
        self._entries: list[HistoryEntry] = []
        self._lock = threading.Lock()
        self._live_sink: Callable[[HistoryEntry], None] | None = None

    @classmethod
    def from_entries(cls, entries: list[HistoryEntry]) -> TrainingHistory:
        """Rebuild a history from already-recorded entries."""
        history = cls()
        for entry in entries:
            history.record(entry.epoch, entry.loss, entry.metric)
        return history

    def set_live_sink(self, sink: Callable[[HistoryEntry], None] | None) -> None:
        """Set optional callback to stream entries as they are recorded."""
        with self._lock:
            self._live_sink = sink

    def record(self, epoch: int, loss: float, metric: float) -> HistoryEntry:
        """Append the result of a completed epoch."""
        with self._lock:
            if self._entries and epoch <= self._entries[-1].epoch:
                raise ValueError(
                    f"Epoch {epoch} recorded after epoch {self._entries[-1].epoch}."
                )
            entry = HistoryEntry(epoch=epoch, loss=loss, metric=metric)
            self._entries.append(entry)
            sink = self._live_sink
        if sink is not None:
            try:
                sink(entry)
            except Exception:
                # Progress display must never interrupt training.
                pass
        return entry

    def entries(self) -> list[HistoryEntry]:
        """Return a shallow copy of recorded entries."""
        with self._lock:
            return list(self._entries)

    def losses(self) -> list[float]:
        return [entry.loss for entry in self.entries()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def write_json(self, path: Path) -> None:
        """Write entries as JSON array."""
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps([entry.model_dump() for entry in self.entries()], indent=2)
        path.write_text(payload + "\n", encoding="utf-8")

    def write_csv(self, path: Path) -> None:
        """Write entries as CSV rows."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", newline="", encoding="utf-8") as file_obj:
            writer = csv.DictWriter(file_obj, fieldnames=self._CSV_COLUMNS)
            writer.writeheader()
            for entry in self.entries():
                writer.writerow(entry.model_dump())
