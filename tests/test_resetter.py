import numpy as np
import pytest
from scipy.spatial.transform import Rotation as R

from centipede.locomotion.resetter import HierarchyResetter
from centipede.sim.tick_scheduler import TickScheduler
from tests.conftest import FakeJoint


@pytest.fixture
def joints():
    head = FakeJoint("head")
    head.local_position = np.array([0.0, 0.0, 0.06])
    segment = FakeJoint("segment_00")
    segment.local_position = np.array([0.0, 0.0, 0.05])
    return [head, segment]


def disturb(joints):
    for joint in joints:
        joint.local_position = joint.local_position + 1.0
        joint.local_rotation = R.from_euler("y", 40.0, degrees=True)
        joint.linear_velocity = np.ones(3)
        drive = joint.get_drive("y")
        drive.target = 0.3
        joint.set_drive("y", drive)


def test_reset_before_initialize_fails(joints):
    with pytest.raises(RuntimeError):
        HierarchyResetter(joints, TickScheduler()).managed_reset()


def test_reset_restores_pose_and_reenables_one_tick_later(joints):
    scheduler = TickScheduler()
    resetter = HierarchyResetter(joints, scheduler)
    resetter.initialize()
    disturb(joints)

    resetter.managed_reset()
    for joint, position in zip(joints, [[0.0, 0.0, 0.06], [0.0, 0.0, 0.05]]):
        assert not joint.enabled
        np.testing.assert_allclose(joint.local_position, position)
        np.testing.assert_allclose(joint.local_rotation.as_quat(), R.identity().as_quat())
        np.testing.assert_allclose(joint.velocity, np.zeros(3))
        assert all(joint.drives[axis].target == 0.0 for axis in "xyz")

    assert resetter.is_pending
    scheduler.tick()
    assert all(joint.enabled for joint in joints)
    assert not resetter.is_pending


def test_overlapping_resets_schedule_a_single_reenable(joints):
    scheduler = TickScheduler()
    resetter = HierarchyResetter(joints, scheduler)
    resetter.initialize()

    resetter.managed_reset()
    disturb(joints)
    resetter.managed_reset()

    assert scheduler.pending == 1
    np.testing.assert_allclose(joints[0].local_position, [0.0, 0.0, 0.06])
    assert joints[0].clear_count == 2

    scheduler.tick()
    assert all(joint.enabled for joint in joints)
    assert scheduler.pending == 0


def test_reset_after_scheduler_clear_schedules_a_new_reenable(joints):
    scheduler = TickScheduler()
    resetter = HierarchyResetter(joints, scheduler)
    resetter.initialize()

    resetter.managed_reset()
    scheduler.clear()
    assert not resetter.is_pending

    resetter.managed_reset()
    assert scheduler.pending == 1
    scheduler.tick()
    assert all(joint.enabled for joint in joints)
    assert not resetter.is_pending
