"""Policy replaying the configured per-bone heuristic values.

The values are not a gait, only a fixed pose that can be set from the gin
configuration to inspect the rig.
"""

from typing import Any, Dict

import numpy as np
import numpy.typing as npt

from centipede.locomotion.centipede_env import CentipedeEnv
from centipede.policies import BasePolicy


class HeuristicPolicy(BasePolicy):
    def __init__(
        self, name: str, env: CentipedeEnv, n_steps_total: float = float("inf")
    ):
        super().__init__(name, env, n_steps_total)
        self.action = env.heuristic()

    def step(
        self, obs: npt.NDArray[np.float32], info: Dict[str, Any]
    ) -> npt.NDArray[np.float32]:
        return self.action.copy()
