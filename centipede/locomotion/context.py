"""Shared services handed to the controller at construction."""

from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from centipede.sim.tick_scheduler import TickScheduler
from centipede.utils.stats_utils import MemoryStatsRecorder, StatsRecorder


@dataclass
class EnvContext:
    """Services shared by the controller and its collaborators.

    Attributes:
        stats: Sink for training metrics.
        scheduler: Tick counted callbacks, advanced once per physics tick.
        rng: Random generator for target randomization.
    """

    stats: StatsRecorder = field(default_factory=MemoryStatsRecorder)
    scheduler: TickScheduler = field(default_factory=TickScheduler)
    rng: np.random.Generator = field(default_factory=np.random.default_rng)

    @classmethod
    def create(
        cls, seed: Optional[int] = None, stats: Optional[StatsRecorder] = None
    ) -> "EnvContext":
        return cls(
            stats=stats if stats is not None else MemoryStatsRecorder(),
            rng=np.random.default_rng(seed),
        )

    def seed(self, seed: int):
        self.rng = np.random.default_rng(seed)

    def teardown(self):
        """Flushes and closes the stats sink, drops pending callbacks."""
        self.scheduler.clear()
        self.stats.close()
