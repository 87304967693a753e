"""Uniformly random actions, resampled every decision."""

from typing import Any, Dict, Optional

import numpy as np
import numpy.typing as npt

from centipede.locomotion.centipede_env import CentipedeEnv
from centipede.policies import BasePolicy


class RandomActionsPolicy(BasePolicy):
    def __init__(
        self,
        name: str,
        env: CentipedeEnv,
        n_steps_total: float = float("inf"),
        seed: Optional[int] = None,
        scale: float = 1.0,
    ):
        """Initializes the policy.

        Args:
            name: Identifier name for this policy instance.
            env: Environment the policy acts in.
            n_steps_total: Maximum number of decisions to run.
            seed: Seed of the action sampler.
            scale: Actions are drawn from [-scale, scale], clipped to [-1, 1].
        """
        super().__init__(name, env, n_steps_total)
        self.rng = np.random.default_rng(seed)
        self.scale = float(np.clip(scale, 0.0, 1.0))

    def step(
        self, obs: npt.NDArray[np.float32], info: Dict[str, Any]
    ) -> npt.NDArray[np.float32]:
        return self.rng.uniform(-self.scale, self.scale, self.action_size).astype(
            np.float32
        )
