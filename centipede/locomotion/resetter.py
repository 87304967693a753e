"""Pose reset for every joint of the articulated hierarchy."""

from typing import List, Optional, Sequence

import numpy as np
from scipy.spatial.transform import Rotation as R

from centipede.sim import AXES, BaseJoint
from centipede.sim.tick_scheduler import ScheduledTask, TickScheduler


class HierarchyResetter:
    """Restores all joints to the pose captured at initialization.

    Teleporting an articulation and re-enabling it within the same update is
    not reliable, so joints are disabled, reset, and only re-enabled one tick
    later, all at once.
    """

    def __init__(self, joints: Sequence[BaseJoint], scheduler: TickScheduler):
        self.joints = list(joints)
        self.scheduler = scheduler
        self.default_positions: List[np.ndarray] = []
        self.default_rotations: List[R] = []
        self._pending_enable: Optional[ScheduledTask] = None

    @property
    def is_pending(self) -> bool:
        """Whether a re-enable is scheduled but has not run yet."""
        task = self._pending_enable
        return task is not None and not task.done and not task.cancelled

    def initialize(self):
        """Captures the default local pose of every joint."""
        self.default_positions = [np.array(j.local_position, copy=True) for j in self.joints]
        self.default_rotations = [j.local_rotation for j in self.joints]

    def managed_reset(self):
        """Disables all joints, restores their default pose and zeroes drives and velocities.

        Re-enabling is scheduled one tick later. If a re-enable is already
        pending, the pose is restored again without scheduling another one.

        Raises:
            RuntimeError: If called before `initialize`.
        """
        if len(self.default_positions) != len(self.joints):
            raise RuntimeError("HierarchyResetter.managed_reset() called before initialize()")

        for joint, position, rotation in zip(
            self.joints, self.default_positions, self.default_rotations
        ):
            joint.enabled = False

            for axis in AXES:
                drive = joint.get_drive(axis)
                drive.target = 0.0
                joint.set_drive(axis, drive)

            joint.clear_velocity()
            joint.local_position = position
            joint.local_rotation = rotation

        if not self.is_pending:
            self._pending_enable = self.scheduler.call_later(self._enable, 1)

    def _enable(self):
        for joint in self.joints:
            joint.enabled = True
