"""Ray based ground detection for legs."""

from typing import List, Sequence

import numpy as np

from centipede.sim import BaseJoint, BaseSim

DOWN = np.array([0.0, 0.0, -1.0])


class GroundContactSensor:
    """Normalized ground distance of one leg.

    The observation is -1 while the leg touches the ground, the ray hit
    distance divided by the ray length while the ground is within reach
    below the leg, and 1 when no ground is detected.
    """

    def __init__(
        self,
        joint: BaseJoint,
        sim: BaseSim,
        ray_origin: Sequence[float],
        ray_length: float = 0.1,
        ground_group: int = 3,
    ):
        """Creates a sensor for a leg joint.

        Args:
            joint: The leg joint carrying the sensor.
            sim: Backend answering ray queries.
            ray_origin: Ray origin in the leg's local frame.
            ray_length: Maximum ray length.
            ground_group: Geometry group counted as ground.
        """
        if ray_length <= 0:
            raise ValueError(f"ray_length must be > 0, got {ray_length}")

        self.joint = joint
        self.sim = sim
        self.ray_origin = np.asarray(ray_origin, dtype=np.float64)
        self.ray_length = ray_length
        self.ground_group = ground_group
        self.is_touching = False

    def reset(self):
        self.is_touching = False

    def ray_start(self) -> np.ndarray:
        """World position of the ray origin, ignoring any scale of the leg."""
        return self.joint.position + self.joint.rotation.apply(self.ray_origin)

    def collect_observation(self, obs: List[float]):
        """Appends the normalized ground distance to `obs`."""
        if self.is_touching:
            obs.append(-1.0)
            return

        distance = self.sim.raycast(
            self.ray_start(), DOWN, self.ray_length, self.ground_group
        )
        if distance is None:
            obs.append(1.0)
        else:
            obs.append(float(distance) / self.ray_length)

    def on_contact_enter(self, group: int):
        if group == self.ground_group:
            self.is_touching = True

    def on_contact_exit(self, group: int):
        if group == self.ground_group:
            self.is_touching = False
