"""Locomotion controller for the centipede body.

This module provides the LocomotionController, which owns the decision loop
of the centipede: it builds the observation vector, computes the reward,
randomizes the target, and turns sparse decisions into per-tick drive targets
by interpolating between consecutive decisions.
"""

from typing import Callable, List, Optional, Sequence

import numpy as np
import numpy.typing as npt

from centipede.locomotion.bone import Bone, BoneKind
from centipede.locomotion.config import CentipedeConfig
from centipede.locomotion.context import EnvContext
from centipede.locomotion.ground_sensor import GroundContactSensor
from centipede.locomotion.resetter import HierarchyResetter
from centipede.sim import FORWARD, UP
from centipede.utils.math_utils import (
    interpolate,
    normalize,
    project_on_plane,
    signed_angle,
)

TargetIndicator = Callable[[np.ndarray, np.ndarray], None]


class LocomotionController:
    """Decision loop of the centipede agent.

    One decision cycle spans `decision_interval` physics ticks. The controller
    collects observations and rewards once per cycle and applies actions on
    every tick. Ticks are numbered from 1 after each decision; the tick with
    `step_count % decision_interval == 0` is the last one of a cycle, where
    the decision is applied as is and buffered as the start point of the
    next cycle's interpolation.

    The controller initializes and resets all of its collaborators itself,
    in a fixed order, so none of them depends on external call ordering.
    """

    def __init__(
        self,
        bones: Sequence[Bone],
        sensors: Sequence[GroundContactSensor],
        resetter: HierarchyResetter,
        cfg: CentipedeConfig,
        context: EnvContext,
        dt: float,
        indicator: Optional[TargetIndicator] = None,
    ):
        """Initializes the controller.

        Args:
            bones: Skeleton in hierarchy order; action slicing and observation
                concatenation follow this order.
            sensors: Ground sensors in leg order.
            resetter: Resetter of the whole hierarchy.
            cfg: Environment configuration.
            context: Shared stats recorder, tick scheduler and random generator.
            dt: Duration of one physics tick in seconds.
            indicator: Optional callback receiving (position, target direction)
                when the target is randomized.
        """
        self.bones = list(bones)
        self.segments = [b for b in self.bones if b.kind is BoneKind.BODY_SEGMENT]
        if len(self.segments) == 0:
            raise ValueError("The skeleton needs at least one body segment")

        self.sensors = list(sensors)
        self.resetter = resetter
        self.cfg = cfg
        self.context = context
        self.indicator = indicator

        self.control_body_segments = cfg.control.control_body_segments
        self.decision_interval = cfg.control.decision_interval
        if self.decision_interval < 1:
            raise ValueError(
                f"decision_interval must be >= 1, got {self.decision_interval}"
            )
        self.first_interpolated_index = 0 if cfg.control.interpolate_first_action else 1
        self.interp_type = cfg.control.interp_type

        self.randomization_interval = cfg.target.randomization_interval
        self.randomize_target = self.randomization_interval > 0
        self.target_range = cfg.target.target_range
        self.reach_radius_sq = cfg.target.reach_radius_sq
        self.stats_interval = cfg.episode.stats_interval
        self.delta_time = dt * self.decision_interval

        self.position = np.zeros(3)
        self.forward = np.zeros(3)
        self.default_position = np.zeros(3)
        self.prev_position = np.zeros(3)
        self.target_position = np.zeros(3)
        self.target_direction = FORWARD.copy()
        self.local_target_angle = 0.0

        self.num_actions = 0
        self.prev_actions = np.zeros(0, dtype=np.float32)
        self.decision_count = 0
        self.step_count = 0
        self.reward = 0.0
        self.speed_reward = 0.0
        self.facing_reward = 0.0
        self.episode_return = 0.0
        self.initialized = False

    @property
    def num_observations(self) -> int:
        return 1 + 3 * len(self.bones) + len(self.sensors)

    def initialize(self):
        """Initializes resetter and bones and captures the default body position.

        Legs are always controllable; body segments only if configured. Body
        segments that are not controllable get passive drive parameters.
        """
        self.resetter.initialize()

        for bone in self.bones:
            is_segment = bone.kind is BoneKind.BODY_SEGMENT
            bone.initialize(self.control_body_segments or not is_segment)

            if is_segment and not self.control_body_segments:
                # Non-controllable connecting segments stay somewhat flexible.
                bone.set_drive_params(
                    self.cfg.control.passive_stiffness,
                    self.cfg.control.passive_damping,
                    self.cfg.control.passive_force_limit,
                )

        self.num_actions = sum(b.dof for b in self.bones if b.controllable)
        self.prev_actions = np.zeros(self.num_actions, dtype=np.float32)

        self.update_body()
        self.default_position = self.position.copy()
        self.prev_position = self.default_position.copy()
        self.initialized = True

    def on_episode_begin(self):
        """Resets the decision loop state, the body pose and the ground sensors."""
        if not self.initialized:
            raise RuntimeError("LocomotionController.on_episode_begin() called before initialize()")

        self.decision_count = 0
        self.step_count = 0
        self.prev_position = self.default_position.copy()
        self.target_direction = FORWARD.copy()
        self.reward = 0.0
        self.episode_return = 0.0
        self.prev_actions[:] = 0.0

        self.resetter.managed_reset()
        for sensor in self.sensors:
            sensor.reset()

    def update_body(self):
        """Recomputes the body centroid and the ground projected forward direction."""
        forward = np.zeros(3)
        position = np.zeros(3)
        for segment in self.segments:
            # -up is forward because of the rig rotation.
            forward -= segment.joint.up
            position += segment.joint.position

        n = len(self.segments)
        self.forward = project_on_plane(forward / n, UP)
        self.position = position / n

    def collect_observations(self) -> npt.NDArray[np.float32]:
        """Builds the observation vector of a decision step and computes its reward.

        The order is: normalized target angle, three rotation values per bone
        and one ground distance per sensor, all in skeleton order.

        Returns:
            The observation vector.
        """
        if not self.initialized:
            raise RuntimeError("LocomotionController.collect_observations() called before initialize()")

        self.decision_count += 1
        self.update_body()

        if self.randomize_target:
            delta = self.target_position - self.position
            self.target_direction = normalize(project_on_plane(delta, UP))

            if self.indicator is not None:
                self.indicator(self.position, self.target_direction)

            if (
                np.dot(delta, delta) < self.reach_radius_sq
                or self.decision_count % self.randomization_interval == 0
            ):
                # Takes effect at the next decision.
                self.randomize_target_position()

        self.local_target_angle = (
            signed_angle(self.forward, self.target_direction, UP) / 180.0
        )

        obs: List[float] = [self.local_target_angle]
        for bone in self.bones:
            bone.collect_observation(obs)

        for sensor in self.sensors:
            sensor.collect_observation(obs)

        self.add_rewards()
        return np.asarray(obs, dtype=np.float32)

    def add_rewards(self):
        """Rewards speed towards the target, weighted by facing the target."""
        velocity = (self.position - self.prev_position) / self.delta_time
        self.prev_position = self.position.copy()

        self.speed_reward = float(np.dot(self.target_direction, velocity))
        self.facing_reward = 1.0 - abs(self.local_target_angle)
        self.reward = self.speed_reward * self.facing_reward
        self.episode_return += self.reward

        if self.stats_interval > 0 and self.decision_count % self.stats_interval == 0:
            self.context.stats.add("Agent/Speed Reward", self.speed_reward)
            self.context.stats.add("Agent/Facing Reward", self.facing_reward)

    def randomize_target_position(self):
        x, y = self.context.rng.uniform(-self.target_range, self.target_range, size=2)
        self.target_position = np.array([x, y, 0.0])

    def heuristic(self) -> npt.NDArray[np.float32]:
        """Concatenated heuristic values of all controllable bones, in action order."""
        values = [b.heuristic_values() for b in self.bones if b.controllable]
        if len(values) == 0:
            return np.zeros(0, dtype=np.float32)

        return np.concatenate(values).astype(np.float32)

    def interpolate_actions(
        self, actions: npt.NDArray[np.float32], tick_in_cycle: int
    ) -> npt.NDArray[np.float32]:
        """Returns the actions to apply at a tick of the decision cycle.

        Args:
            actions: The fresh decision, left unchanged.
            tick_in_cycle: `step_count % decision_interval` of the tick.

        Returns:
            The fresh decision at the last tick of a cycle (`tick_in_cycle == 0`),
            otherwise the interpolation from the previous decision to the fresh
            one, with components before `first_interpolated_index` taken from
            the fresh decision.
        """
        applied = np.array(actions, dtype=np.float32, copy=True)
        if tick_in_cycle == 0:
            return applied

        start = self.first_interpolated_index
        applied[start:] = interpolate(
            self.prev_actions[start:],
            applied[start:],
            self.decision_interval,
            tick_in_cycle,
            self.interp_type,
        )
        return applied

    def on_action_received(self, actions: Sequence[float]) -> npt.NDArray[np.float32]:
        """Applies one physics tick worth of actions to the controllable bones.

        Args:
            actions: The current decision, one value per controllable degree
                of freedom.

        Returns:
            The actions actually applied at this tick.

        Raises:
            ValueError: If the decision has the wrong width.
        """
        actions = np.asarray(actions, dtype=np.float32).reshape(-1)
        if actions.shape[0] != self.num_actions:
            raise ValueError(
                f"Expected {self.num_actions} actions, got {actions.shape[0]}"
            )

        self.step_count += 1
        tick_in_cycle = self.step_count % self.decision_interval

        applied = self.interpolate_actions(actions, tick_in_cycle)
        if tick_in_cycle == 0:
            # Last tick of the cycle: buffer the decision for the next cycle.
            self.prev_actions[:] = actions

        index = 0
        for bone in self.bones:
            if bone.controllable:
                index = bone.apply_actions(applied, index)

        return applied
