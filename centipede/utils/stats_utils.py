"""Statistics sinks for training metrics.

The controller reports named scalar metrics at its own cadence. Recorders
buffer them and publish averages when flushed, either in memory or to a
wandb run.
"""

from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Dict, List, Optional

import numpy as np
import wandb


class StatsRecorder(ABC):
    """Accepts named scalar metrics."""

    def __init__(self):
        self.buffer: Dict[str, List[float]] = defaultdict(list)

    def add(self, key: str, value: float):
        """Buffers one sample of the metric `key`."""
        self.buffer[key].append(float(value))

    def summary(self) -> Dict[str, float]:
        """Mean of the buffered samples per metric."""
        return {key: float(np.mean(values)) for key, values in self.buffer.items() if values}

    def flush(self, step: Optional[int] = None):
        """Publishes the buffered averages and clears the buffer."""
        summary = self.summary()
        if summary:
            self._publish(summary, step)

        self.buffer.clear()

    @abstractmethod
    def _publish(self, summary: Dict[str, float], step: Optional[int]):
        pass

    def close(self):
        self.flush()


class MemoryStatsRecorder(StatsRecorder):
    """Keeps every published summary in `history`."""

    def __init__(self):
        super().__init__()
        self.history: List[Dict[str, float]] = []

    def _publish(self, summary: Dict[str, float], step: Optional[int]):
        self.history.append(summary)


class WandbStatsRecorder(StatsRecorder):
    """Publishes averages to a wandb run.

    Attaches to the active run if there is one, otherwise starts a new run
    which is finished on `close()`.
    """

    def __init__(
        self,
        project: str = "centipede",
        entity: Optional[str] = None,
        name: Optional[str] = None,
        notes: str = "",
    ):
        super().__init__()
        if wandb.run:
            self.run = wandb.run
            self.owns_run = False
        else:
            self.run = wandb.init(project=project, entity=entity, name=name, notes=notes)
            self.owns_run = True

    def _publish(self, summary: Dict[str, float], step: Optional[int]):
        self.run.log(summary, step=step)

    def close(self):
        super().close()
        if self.owns_run:
            self.run.finish()
