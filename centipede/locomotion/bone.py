"""Bones: the controllable joints of the centipede body.

A bone wraps one joint of the articulated hierarchy and maps normalized
action values to drive targets and joint rotations to normalized
observations. Variants differ only in which drive axes they actuate, so
they are described by a `BoneKind` instead of subclasses.
"""

from enum import Enum
from typing import List, Optional, Sequence, Tuple

import numpy as np
import numpy.typing as npt
from scipy.spatial.transform import Rotation as R

from centipede.sim import AXES, BaseJoint
from centipede.utils.math_utils import delta_angle


class BoneKind(Enum):
    """Bone variants with their actuated axes, in action order."""

    BODY_SEGMENT = ("x", "y", "z")
    LEG = ("y", "z")

    @property
    def axes(self) -> Tuple[str, ...]:
        return self.value

    @property
    def dof(self) -> int:
        return len(self.value)


class Bone:
    """One articulated bone of the skeleton.

    Attributes:
        joint: The underlying articulated joint.
        kind: Variant deciding the actuated axes.
        controllable: Whether actions drive this bone, set by `initialize`.
        joint_limit: Upper rotation limit in radians, shared by all axes.
        rest_rotation: Local rotation at initialization, the observation baseline.
    """

    def __init__(
        self,
        joint: BaseJoint,
        kind: BoneKind,
        heuristic: Optional[Sequence[float]] = None,
    ):
        """Creates a bone.

        Args:
            joint: The joint to wrap.
            kind: The bone variant.
            heuristic: Normalized per-axis values returned by `heuristic_values`,
                one per actuated axis. Defaults to zeros.

        Raises:
            ValueError: If `heuristic` does not have one value per actuated axis.
        """
        self.joint = joint
        self.kind = kind

        if heuristic is None:
            heuristic = [0.0] * kind.dof
        if len(heuristic) != kind.dof:
            raise ValueError(
                f"Bone {joint.name} expects {kind.dof} heuristic values, got {len(heuristic)}"
            )
        self.heuristic = np.clip(np.asarray(heuristic, dtype=np.float32), -1.0, 1.0)

        self.controllable = False
        self.joint_limit = 0.0
        self.rest_rotation: Optional[R] = None

    @property
    def name(self) -> str:
        return self.joint.name

    @property
    def dof(self) -> int:
        return self.kind.dof

    @property
    def is_initialized(self) -> bool:
        return self.rest_rotation is not None

    def initialize(self, controllable: bool):
        """Records controllability, the joint limit and the rest rotation.

        Must run exactly once, before any other call. Running it again would
        move the observation baseline to the current pose.

        Args:
            controllable: Whether the agent controls this bone's rotation.

        Raises:
            ValueError: If the joint's upper limit is not positive.
        """
        # Limits are assumed identical and symmetric for all drives of a bone.
        joint_limit = self.joint.get_drive("z").upper_limit
        if joint_limit <= 0:
            raise ValueError(
                f"Bone {self.name} needs a positive joint limit, got {joint_limit}"
            )

        self.controllable = controllable
        self.joint_limit = float(joint_limit)
        self.rest_rotation = self.joint.local_rotation

    def _check_initialized(self):
        if not self.is_initialized:
            raise RuntimeError(f"Bone {self.name} used before initialize()")

    def heuristic_values(self) -> npt.NDArray[np.float32]:
        """Returns the configured per-axis values, one per degree of freedom."""
        self._check_initialized()
        return self.heuristic.copy()

    def apply_actions(self, actions: Sequence[float], index: int) -> int:
        """Writes `dof` consecutive action values as drive targets.

        Each value is scaled by the joint limit and written to the drive of
        the corresponding axis, in `kind.axes` order.

        Args:
            actions: Normalized action values for the whole skeleton.
            index: Position of this bone's first value.

        Returns:
            The index of the next bone's first value, `index + dof`.

        Raises:
            IndexError: If fewer than `dof` values remain after `index`.
        """
        self._check_initialized()
        if index < 0 or index + self.dof > len(actions):
            raise IndexError(
                f"Bone {self.name} needs {self.dof} actions at index {index}, "
                f"but only {len(actions)} were given"
            )

        for axis in self.kind.axes:
            drive = self.joint.get_drive(axis)
            drive.target = float(actions[index]) * self.joint_limit
            self.joint.set_drive(axis, drive)
            index += 1

        return index

    def collect_observation(self, obs: List[float]):
        """Appends the normalized rotation from rest for all three axes.

        The rotation from the rest pose is expressed as intrinsic XYZ Euler
        angles, wrapped to the shortest signed path, divided by the joint
        limit and clipped to [-1, 1]. Every variant emits three values.

        Args:
            obs: Observation list to extend.
        """
        self._check_initialized()
        assert self.rest_rotation is not None
        delta = (self.rest_rotation.inv() * self.joint.local_rotation).as_euler("XYZ")
        normalized = np.clip(delta_angle(delta) / self.joint_limit, -1.0, 1.0)
        obs.extend(float(v) for v in normalized)

    def set_drive_params(self, stiffness: float, damping: float, force_limit: float):
        """Sets the spring parameters of all three drives and zeroes their targets.

        Used for body segments that are not controlled by actions, to keep
        them passively compliant.

        Args:
            stiffness: Spring stiffness.
            damping: Spring damping.
            force_limit: Drive force limit.
        """
        self._check_initialized()
        for axis in AXES:
            drive = self.joint.get_drive(axis)
            drive.target = 0.0
            drive.stiffness = stiffness
            drive.damping = damping
            drive.force_limit = force_limit
            self.joint.set_drive(axis, drive)
