"""Policies driving the centipede environment.

Every policy maps the stacked observation of a decision step to one
normalized action per controllable degree of freedom. Policies are looked
up by their snake case name with `get_policy_class`, so the command line
runner can select them.
"""

import importlib
from abc import ABC, abstractmethod
from typing import Any, Dict, Type

import numpy as np
import numpy.typing as npt

from centipede.locomotion.centipede_env import CentipedeEnv


def snake2camel(snake_str: str) -> str:
    """Converts 'random_actions' to 'RandomActions'."""
    return "".join(word[:1].upper() + word[1:] for word in snake_str.split("_"))


class BasePolicy(ABC):
    """Abstract base class for all centipede policies."""

    @abstractmethod
    def __init__(
        self, name: str, env: CentipedeEnv, n_steps_total: float = float("inf")
    ):
        """Initialize the policy.

        Args:
            name: Identifier name for this policy instance.
            env: Environment the policy acts in.
            n_steps_total: Maximum number of decisions to run. Defaults to
                infinity for continuous operation.
        """
        self.name = name
        self.action_size = env.action_size
        self.control_dt = env.dt
        self.n_steps_total = n_steps_total

    def reset(self):
        """Resets the policy state at the start of an episode."""
        pass

    @abstractmethod
    def step(
        self, obs: npt.NDArray[np.float32], info: Dict[str, Any]
    ) -> npt.NDArray[np.float32]:
        """Returns the action for the current decision.

        Args:
            obs: Stacked observation of the environment.
            info: Info dict returned together with the observation.

        Returns:
            Normalized action values in [-1, 1].
        """
        pass

    def close(self):
        pass


def get_policy_class(policy_name: str) -> Type[BasePolicy]:
    """Imports `centipede.policies.<policy_name>` and returns its policy class.

    Raises:
        ValueError: If the module or a matching BasePolicy subclass is missing.
    """
    module_name = f"centipede.policies.{policy_name}"
    class_name = snake2camel(policy_name) + "Policy"
    try:
        module = importlib.import_module(module_name)
    except ModuleNotFoundError as e:
        raise ValueError(f"Policy '{policy_name}' not found: {e}") from e

    cls = getattr(module, class_name, None)
    if cls is None or not isinstance(cls, type) or not issubclass(cls, BasePolicy):
        raise ValueError(
            f"Policy '{policy_name}' could not be loaded: "
            f"no BasePolicy subclass '{class_name}' in '{module_name}'"
        )

    return cls
