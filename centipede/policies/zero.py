"""Policy holding every controllable joint at its rest target."""

from typing import Any, Dict

import numpy as np
import numpy.typing as npt

from centipede.locomotion.centipede_env import CentipedeEnv
from centipede.policies import BasePolicy


class ZeroPolicy(BasePolicy):
    def __init__(
        self, name: str, env: CentipedeEnv, n_steps_total: float = float("inf")
    ):
        super().__init__(name, env, n_steps_total)

    def step(
        self, obs: npt.NDArray[np.float32], info: Dict[str, Any]
    ) -> npt.NDArray[np.float32]:
        return np.zeros(self.action_size, dtype=np.float32)
