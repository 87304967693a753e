"""Configuration classes for the centipede environment.

This module defines gin-configurable dataclasses for the simulation, the
generated body, the decision loop, target randomization, ground sensing,
observation stacking and episode bookkeeping.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import gin

DEFAULT_GIN_PATH = os.path.join(os.path.dirname(__file__), "centipede.gin")


@gin.configurable
@dataclass
class CentipedeConfig:
    """Configuration class for the centipede environment."""

    @gin.configurable
    @dataclass
    class SimConfig:
        timestep: float = 0.005
        vis_type: str = ""  # "" or "view"

    @gin.configurable
    @dataclass
    class BodyConfig:
        n_segments: int = 21
        segment_spacing: float = 0.05
        segment_radius: float = 0.015
        leg_reach: float = 0.05
        leg_drop: float = 0.04
        leg_radius: float = 0.006
        spawn_height: float = 0.06
        # Symmetric joint ranges in degrees, written to the MJCF.
        segment_joint_range: float = 30.0
        leg_joint_range: float = 45.0
        drive_stiffness: float = 2.0
        drive_damping: float = 0.05
        drive_force_limit: float = 1.0
        joint_damping: float = 0.01
        joint_armature: float = 0.0005

    @gin.configurable
    @dataclass
    class ControlConfig:
        # Legs are always controlled, body segments only if this is set.
        control_body_segments: bool = True
        decision_interval: int = 5
        # The first action component is taken from the fresh decision unless set.
        interpolate_first_action: bool = False
        interp_type: str = "linear"
        passive_stiffness: float = 2.0
        passive_damping: float = 0.4
        passive_force_limit: float = 40.0
        # Bone name -> normalized per-axis values for the heuristic policy.
        heuristic_values: Dict[str, List[float]] = field(default_factory=dict)

    @gin.configurable
    @dataclass
    class TargetConfig:
        # In decisions, 0 keeps the fixed forward target.
        randomization_interval: int = 0
        target_range: float = 25.0
        reach_radius_sq: float = 1.0
        show_indicator: bool = False

    @gin.configurable
    @dataclass
    class SensorConfig:
        # Ray origin in the leg frame, just above the foot tip.
        ray_origin: List[float] = field(default_factory=lambda: [0.05, -0.03, 0.0])
        ray_length: float = 0.1
        ground_group: int = 3

    @gin.configurable
    @dataclass
    class ObsConfig:
        frame_stack: int = 2

    @gin.configurable
    @dataclass
    class EpisodeConfig:
        max_steps: int = 5000  # physics ticks, 0 for endless episodes
        stats_interval: int = 100  # decisions, 0 disables reward metrics

    def __init__(self):
        """Initialize all configuration sections with their default values."""
        self.sim = self.SimConfig()
        self.body = self.BodyConfig()
        self.control = self.ControlConfig()
        self.target = self.TargetConfig()
        self.sensor = self.SensorConfig()
        self.obs = self.ObsConfig()
        self.episode = self.EpisodeConfig()
        self.validate()

    def validate(self):
        """Checks value ranges.

        Raises:
            ValueError: If a value is outside its valid range.
        """
        if self.sim.timestep <= 0:
            raise ValueError(f"timestep must be > 0, got {self.sim.timestep}")
        if self.body.n_segments < 1:
            raise ValueError(f"n_segments must be >= 1, got {self.body.n_segments}")
        if self.control.decision_interval < 1:
            raise ValueError(
                f"decision_interval must be >= 1, got {self.control.decision_interval}"
            )
        if self.control.interp_type not in ("linear", "quadratic", "cubic"):
            raise ValueError(f"Unsupported interp_type: {self.control.interp_type}")
        if self.target.randomization_interval < 0:
            raise ValueError("randomization_interval must be >= 0")
        if self.sensor.ray_length <= 0:
            raise ValueError(f"ray_length must be > 0, got {self.sensor.ray_length}")
        if len(self.sensor.ray_origin) != 3:
            raise ValueError("ray_origin must have 3 components")
        if self.obs.frame_stack < 1:
            raise ValueError(f"frame_stack must be >= 1, got {self.obs.frame_stack}")
        if self.episode.max_steps < 0 or self.episode.stats_interval < 0:
            raise ValueError("max_steps and stats_interval must be >= 0")


def get_env_config(gin_file_path: Optional[str] = None) -> CentipedeConfig:
    """Parses a gin file and returns the resulting configuration.

    Args:
        gin_file_path (str, optional): Path of the gin file. Defaults to the
            bundled `centipede.gin`.

    Returns:
        CentipedeConfig: Configuration with the gin bindings applied.

    Raises:
        FileNotFoundError: If the gin file does not exist.
    """
    if gin_file_path is None:
        gin_file_path = DEFAULT_GIN_PATH

    if not os.path.exists(gin_file_path):
        raise FileNotFoundError(f"File {gin_file_path} not found.")

    gin.parse_config_file(gin_file_path)
    return CentipedeConfig()
