"""Centipede environment.

Builds the MuJoCo scene from the configuration, wraps its bodies into bones,
ground sensors and a resetter, and exposes the locomotion controller through
a gym-style `reset`/`step` interface. One `step` is one decision: the action
is applied over `decision_interval` physics ticks before the next
observation is collected.
"""

from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import numpy.typing as npt

from centipede.descriptions.centipede_xml import (
    HEAD_NAME,
    INDICATOR_NAME,
    get_bone_names,
    get_centipede_xml,
)
from centipede.locomotion.bone import Bone, BoneKind
from centipede.locomotion.config import CentipedeConfig
from centipede.locomotion.context import EnvContext
from centipede.locomotion.controller import LocomotionController
from centipede.locomotion.ground_sensor import GroundContactSensor
from centipede.locomotion.resetter import HierarchyResetter
from centipede.sim.mujoco_sim import MuJoCoSim


class CentipedeEnv:
    """Target-seeking locomotion environment for the centipede.

    Observations are the controller's observation vectors of the last
    `frame_stack` decisions, newest first, zero-filled after a reset.
    Episodes never terminate; they are truncated once `max_steps` physics
    ticks have run, unless `max_steps` is 0.
    """

    def __init__(
        self,
        cfg: Optional[CentipedeConfig] = None,
        context: Optional[EnvContext] = None,
        seed: Optional[int] = None,
        vis_type: Optional[str] = None,
    ):
        """Initializes the environment.

        Args:
            cfg: Environment configuration. Defaults to `CentipedeConfig()`.
            context: Shared services. A fresh context seeded with `seed` is
                created if omitted.
            seed: Seed of the target randomization.
            vis_type: Overrides `cfg.sim.vis_type`; 'view' opens the viewer.
        """
        self.cfg = cfg if cfg is not None else CentipedeConfig()
        self.context = context if context is not None else EnvContext.create(seed)
        if context is not None and seed is not None:
            self.context.seed(seed)

        if vis_type is None:
            vis_type = self.cfg.sim.vis_type

        show_indicator = self.cfg.target.show_indicator
        self.sim = MuJoCoSim(
            xml_string=get_centipede_xml(self.cfg, add_indicator=show_indicator),
            root_body=HEAD_NAME,
            vis_type=vis_type,
            indicator_body=INDICATOR_NAME,
        )

        bone_names = get_bone_names(self.cfg)
        heuristic_values = self.cfg.control.heuristic_values
        self.bones: List[Bone] = []
        self.sensors: List[GroundContactSensor] = []
        for joint in self.sim.joints:
            if joint.name in bone_names["segments"]:
                kind = BoneKind.BODY_SEGMENT
            elif joint.name in bone_names["legs"]:
                kind = BoneKind.LEG
            else:
                continue

            self.bones.append(Bone(joint, kind, heuristic_values.get(joint.name)))

            if kind is BoneKind.LEG:
                sensor = GroundContactSensor(
                    joint,
                    self.sim,
                    self.cfg.sensor.ray_origin,
                    self.cfg.sensor.ray_length,
                    self.cfg.sensor.ground_group,
                )
                self.sim.add_contact_listener(joint.name, sensor)
                self.sensors.append(sensor)

        self.resetter = HierarchyResetter(self.sim.joints, self.context.scheduler)
        self.controller = LocomotionController(
            self.bones,
            self.sensors,
            self.resetter,
            self.cfg,
            self.context,
            self.sim.dt,
            indicator=self.sim.set_target_indicator if show_indicator else None,
        )
        self.controller.initialize()

        self.decision_interval = self.cfg.control.decision_interval
        self.max_steps = self.cfg.episode.max_steps
        self.num_obs_history = self.cfg.obs.frame_stack
        self.obs_size = self.controller.num_observations
        self.obs_history = np.zeros(
            self.num_obs_history * self.obs_size, dtype=np.float32
        )
        self.total_decisions = 0

    @property
    def observation_size(self) -> int:
        return self.num_obs_history * self.obs_size

    @property
    def action_size(self) -> int:
        return self.controller.num_actions

    @property
    def dt(self) -> float:
        """Duration of one decision in seconds."""
        return self.controller.delta_time

    def _stack_obs(self, obs: npt.NDArray[np.float32]) -> npt.NDArray[np.float32]:
        self.obs_history = np.roll(self.obs_history, obs.size)
        self.obs_history[: obs.size] = obs
        return self.obs_history.copy()

    def _get_info(self) -> Dict[str, Any]:
        return {
            "speed_reward": self.controller.speed_reward,
            "facing_reward": self.controller.facing_reward,
            "episode_return": self.controller.episode_return,
            "decision_count": self.controller.decision_count,
            "step_count": self.controller.step_count,
            "target_direction": self.controller.target_direction.copy(),
        }

    def reset(
        self, seed: Optional[int] = None
    ) -> Tuple[npt.NDArray[np.float32], Dict[str, Any]]:
        """Starts a new episode.

        Publishes the metrics buffered during the previous episode, resets the
        body pose, the decision loop and the contact state and collects the
        first observation.

        Args:
            seed: Reseeds the target randomization if given.

        Returns:
            The stacked observation and the info dict.
        """
        if seed is not None:
            self.context.seed(seed)

        self.context.stats.flush(step=self.total_decisions)
        self.controller.on_episode_begin()
        # Legs still touching the ground after the pose reset re-latch their sensors.
        self.sim.reset_contacts()

        self.obs_history = np.zeros_like(self.obs_history)
        obs = self._stack_obs(self.controller.collect_observations())
        self.total_decisions += 1
        return obs, self._get_info()

    def step(
        self, action: npt.NDArray[np.float32]
    ) -> Tuple[npt.NDArray[np.float32], float, bool, bool, Dict[str, Any]]:
        """Applies one decision for `decision_interval` physics ticks.

        Args:
            action: Normalized values in [-1, 1], one per controllable degree
                of freedom.

        Returns:
            Observation, reward, terminated, truncated and the info dict.
        """
        for _ in range(self.decision_interval):
            self.controller.on_action_received(action)
            self.sim.step()
            self.context.scheduler.tick()

        obs = self._stack_obs(self.controller.collect_observations())
        self.total_decisions += 1

        stats_interval = self.cfg.episode.stats_interval
        if stats_interval > 0 and self.controller.decision_count % stats_interval == 0:
            self.context.stats.flush(step=self.total_decisions)

        truncated = self.max_steps > 0 and self.controller.step_count >= self.max_steps
        return obs, self.controller.reward, False, truncated, self._get_info()

    def heuristic(self) -> npt.NDArray[np.float32]:
        """The configured per-bone heuristic values as one action."""
        return self.controller.heuristic()

    def close(self):
        self.sim.close()
        self.context.teardown()
