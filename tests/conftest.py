"""Shared fixtures: an in-memory physics backend for controller level tests."""

from typing import Dict, List, Optional

import gin
import numpy as np
import pytest
from scipy.spatial.transform import Rotation as R

from centipede.locomotion.bone import Bone, BoneKind
from centipede.locomotion.config import CentipedeConfig
from centipede.locomotion.context import EnvContext
from centipede.locomotion.controller import LocomotionController
from centipede.locomotion.ground_sensor import GroundContactSensor
from centipede.locomotion.resetter import HierarchyResetter
from centipede.sim import AXES, BaseJoint, BaseSim, ContactListener, JointDrive

# Rotation of the generated rig: local z backwards, local x up.
RIG_ROTATION = R.from_rotvec([0.0, -np.pi / 2, 0.0])


class FakeJoint(BaseJoint):
    """Joint whose pose is set directly by the test."""

    def __init__(self, name: str, limit_deg: float = 30.0):
        super().__init__(name)
        limit = np.deg2rad(limit_deg)
        self.drives = {
            axis: JointDrive(lower_limit=-limit, upper_limit=limit) for axis in AXES
        }
        self.world_position = np.zeros(3)
        self.world_rotation = RIG_ROTATION
        self._local_position = np.zeros(3)
        self._local_rotation = R.identity()
        self.linear_velocity = np.zeros(3)
        self._enabled = True
        self.clear_count = 0

    def get_drive(self, axis: str) -> JointDrive:
        return JointDrive(**vars(self.drives[axis]))

    def set_drive(self, axis: str, drive: JointDrive):
        self.drives[axis] = JointDrive(**vars(drive))

    @property
    def position(self):
        return self.world_position.copy()

    @property
    def rotation(self):
        return self.world_rotation

    @property
    def local_position(self):
        return self._local_position.copy()

    @local_position.setter
    def local_position(self, value):
        self._local_position = np.array(value, dtype=np.float64)

    @property
    def local_rotation(self):
        return self._local_rotation

    @local_rotation.setter
    def local_rotation(self, value):
        self._local_rotation = value

    @property
    def velocity(self):
        return self.linear_velocity.copy()

    @property
    def angular_velocity(self):
        return np.zeros(3)

    def clear_velocity(self):
        self.linear_velocity = np.zeros(3)
        self.clear_count += 1

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool):
        self._enabled = value


class FakeSim(BaseSim):
    """Backend answering every ray query with `ray_hit`."""

    def __init__(self, joints: List[FakeJoint]):
        super().__init__("fake", 0.005)
        self._joints = joints
        self.ray_hit: Optional[float] = None
        self.ray_queries: List[tuple] = []
        self.listeners: Dict[str, List[ContactListener]] = {}
        self.n_steps = 0

    @property
    def joints(self):
        return list(self._joints)

    def raycast(self, origin, direction, max_distance, group):
        self.ray_queries.append((np.array(origin), np.array(direction), max_distance, group))
        if self.ray_hit is None or self.ray_hit > max_distance:
            return None

        return self.ray_hit

    def add_contact_listener(self, joint_name: str, listener: ContactListener):
        self.get_joint(joint_name)
        self.listeners.setdefault(joint_name, []).append(listener)

    def step(self):
        self.n_steps += 1

    def close(self):
        pass


@pytest.fixture(autouse=True)
def clear_gin():
    gin.clear_config()
    yield
    gin.clear_config()


@pytest.fixture
def cfg() -> CentipedeConfig:
    return CentipedeConfig()


@pytest.fixture
def context() -> EnvContext:
    return EnvContext.create(seed=0)


def make_rig(cfg: CentipedeConfig, context: EnvContext, n_segments: int = 2):
    """Builds a fake skeleton of `n_segments` segments with two legs each."""
    joints: List[FakeJoint] = [FakeJoint("head")]
    bones: List[Bone] = []
    legs: List[FakeJoint] = []
    for i in range(n_segments):
        segment = FakeJoint(f"segment_{i:02d}", cfg.body.segment_joint_range)
        segment.world_position = np.array([-0.05 * (i + 1), 0.0, 0.06])
        joints.append(segment)
        bones.append(Bone(segment, BoneKind.BODY_SEGMENT))
        for side in ("left", "right"):
            leg = FakeJoint(f"leg_{side}_{i:02d}", cfg.body.leg_joint_range)
            joints.append(leg)
            legs.append(leg)
            bones.append(Bone(leg, BoneKind.LEG))

    sim = FakeSim(joints)
    sensors = []
    for leg in legs:
        sensor = GroundContactSensor(
            leg, sim, cfg.sensor.ray_origin, cfg.sensor.ray_length, cfg.sensor.ground_group
        )
        sim.add_contact_listener(leg.name, sensor)
        sensors.append(sensor)

    resetter = HierarchyResetter(joints, context.scheduler)
    controller = LocomotionController(bones, sensors, resetter, cfg, context, sim.dt)
    return sim, controller


@pytest.fixture
def rig(cfg, context):
    sim, controller = make_rig(cfg, context)
    controller.initialize()
    controller.on_episode_begin()
    return sim, controller
