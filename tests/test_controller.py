import numpy as np
import pytest
from scipy.spatial.transform import Rotation as R

from centipede.locomotion.bone import Bone, BoneKind
from centipede.locomotion.controller import LocomotionController
from centipede.locomotion.resetter import HierarchyResetter
from tests.conftest import RIG_ROTATION, FakeJoint, make_rig

SEGMENT_LIMIT = np.deg2rad(30.0)
LEG_LIMIT = np.deg2rad(45.0)


def segment_joints(controller):
    return [bone.joint for bone in controller.segments]


def move_segments(controller, offset):
    for joint in segment_joints(controller):
        joint.world_position = joint.world_position + np.asarray(offset)


def test_sizes_follow_the_skeleton(rig):
    _, controller = rig
    # 2 segments with 3 axes, 4 legs with 2 axes.
    assert controller.num_actions == 14
    assert controller.num_observations == 1 + 3 * 6 + 4
    assert controller.delta_time == pytest.approx(0.025)


def test_uncontrolled_segments_are_passive(cfg, context):
    cfg.control.control_body_segments = False
    _, controller = make_rig(cfg, context)
    controller.initialize()

    assert controller.num_actions == 8
    for joint in segment_joints(controller):
        for drive in joint.drives.values():
            assert drive.stiffness == 2.0
            assert drive.damping == 0.4
            assert drive.force_limit == 40.0
            assert drive.target == 0.0

    controller.on_episode_begin()
    controller.on_action_received(np.ones(8))
    for joint in segment_joints(controller):
        assert all(drive.target == 0.0 for drive in joint.drives.values())


def test_skeleton_without_segments_is_rejected(cfg, context):
    leg = FakeJoint("leg_left_00", 45.0)
    resetter = HierarchyResetter([leg], context.scheduler)
    with pytest.raises(ValueError):
        LocomotionController([Bone(leg, BoneKind.LEG)], [], resetter, cfg, context, 0.005)


def test_episode_begin_requires_initialize(cfg, context):
    _, controller = make_rig(cfg, context)
    with pytest.raises(RuntimeError):
        controller.on_episode_begin()


def test_wrong_action_width_is_rejected(rig):
    _, controller = rig
    with pytest.raises(ValueError):
        controller.on_action_received(np.zeros(13))


def test_actions_interpolate_over_the_decision_cycle(rig):
    _, controller = rig
    fresh = np.ones(14, dtype=np.float32)

    applied = controller.on_action_received(fresh)
    assert applied[0] == pytest.approx(1.0)
    np.testing.assert_allclose(applied[1:], 0.2, rtol=1e-6)

    applied = controller.on_action_received(fresh)
    assert applied[0] == pytest.approx(1.0)
    np.testing.assert_allclose(applied[1:], 0.4, rtol=1e-6)
    np.testing.assert_allclose(fresh, 1.0)

    segment = controller.bones[0].joint
    left_leg = controller.bones[1].joint
    assert segment.drives["x"].target == pytest.approx(SEGMENT_LIMIT)
    assert segment.drives["y"].target == pytest.approx(0.4 * SEGMENT_LIMIT, rel=1e-6)
    assert left_leg.drives["y"].target == pytest.approx(0.4 * LEG_LIMIT, rel=1e-6)

    controller.on_action_received(fresh)
    controller.on_action_received(fresh)
    applied = controller.on_action_received(fresh)
    np.testing.assert_allclose(applied, 1.0)
    np.testing.assert_allclose(controller.prev_actions, 1.0)

    # The next cycle starts from the buffered decision.
    applied = controller.on_action_received(np.zeros(14))
    assert applied[0] == 0.0
    np.testing.assert_allclose(applied[1:], 0.8, rtol=1e-6)


def test_first_action_can_be_interpolated(cfg, context):
    cfg.control.interpolate_first_action = True
    _, controller = make_rig(cfg, context)
    controller.initialize()
    controller.on_episode_begin()

    controller.on_action_received(np.ones(14))
    applied = controller.on_action_received(np.ones(14))
    np.testing.assert_allclose(applied, 0.4, rtol=1e-6)


def test_single_tick_decisions_are_applied_directly(cfg, context):
    cfg.control.decision_interval = 1
    _, controller = make_rig(cfg, context)
    controller.initialize()
    controller.on_episode_begin()

    actions = np.linspace(-1.0, 1.0, 14)
    np.testing.assert_allclose(controller.on_action_received(actions), actions, rtol=1e-6)


def test_observation_layout(rig):
    sim, controller = rig
    obs = controller.collect_observations()

    assert obs.dtype == np.float32
    assert obs.shape == (controller.num_observations,)
    # Facing the fixed forward target.
    assert obs[0] == pytest.approx(0.0, abs=1e-6)
    np.testing.assert_allclose(obs[1:19], 0.0, atol=1e-6)
    np.testing.assert_allclose(obs[19:], 1.0)

    sim.listeners["leg_left_00"][0].on_contact_enter(3)
    sim.ray_hit = 0.05
    obs = controller.collect_observations()
    np.testing.assert_allclose(obs[19:], [-1.0, 0.5, 0.5, 0.5], rtol=1e-6)


def test_bone_observation_tracks_rotation(rig):
    _, controller = rig
    controller.bones[0].joint.local_rotation = R.from_euler("z", -15.0, degrees=True)
    obs = controller.collect_observations()
    np.testing.assert_allclose(obs[1:4], [0.0, 0.0, -0.5], atol=1e-6)


def test_reward_is_speed_towards_target(rig):
    _, controller = rig
    controller.collect_observations()
    assert controller.reward == pytest.approx(0.0)

    move_segments(controller, [0.01, 0.0, 0.0])
    controller.collect_observations()
    assert controller.speed_reward == pytest.approx(0.4)
    assert controller.facing_reward == pytest.approx(1.0)
    assert controller.reward == pytest.approx(0.4)

    move_segments(controller, [-0.01, 0.0, 0.0])
    controller.collect_observations()
    assert controller.reward == pytest.approx(-0.4)
    assert controller.episode_return == pytest.approx(0.0)


def test_facing_away_from_target_scales_reward(rig):
    _, controller = rig
    controller.collect_observations()
    for joint in segment_joints(controller):
        joint.world_rotation = R.from_rotvec([0.0, 0.0, np.pi / 2]) * RIG_ROTATION

    move_segments(controller, [0.01, 0.0, 0.0])
    obs = controller.collect_observations()
    # The body faces +y, the target lies to its right.
    assert obs[0] == pytest.approx(-0.5)
    assert controller.facing_reward == pytest.approx(0.5)
    assert controller.reward == pytest.approx(0.2)


def test_target_randomization_takes_effect_next_decision(cfg, context):
    cfg.target.randomization_interval = 3
    _, controller = make_rig(cfg, context)
    indicated = []
    controller.indicator = lambda position, direction: indicated.append(direction.copy())
    controller.initialize()
    controller.on_episode_begin()

    # The initial target at the origin is within reach, so a new one is drawn.
    controller.collect_observations()
    np.testing.assert_allclose(controller.target_direction, [1.0, 0.0, 0.0])
    assert np.all(np.abs(controller.target_position[:2]) <= 25.0)
    assert np.any(controller.target_position != 0.0)

    controller.target_position = np.array([10.0, 10.0, 0.0])
    controller.collect_observations()
    expected = np.array([10.075, 10.0, 0.0]) / np.linalg.norm([10.075, 10.0])
    np.testing.assert_allclose(controller.target_direction, expected)
    np.testing.assert_allclose(controller.target_position, [10.0, 10.0, 0.0])

    # Every third decision draws a new target after using the current one.
    controller.collect_observations()
    np.testing.assert_allclose(controller.target_direction, expected, rtol=1e-6)
    assert not np.allclose(controller.target_position, [10.0, 10.0, 0.0])
    assert len(indicated) == 3


def test_fixed_target_stays_forward(rig):
    _, controller = rig
    move_segments(controller, [0.0, 5.0, 0.0])
    controller.collect_observations()
    np.testing.assert_allclose(controller.target_direction, [1.0, 0.0, 0.0])
    np.testing.assert_allclose(controller.target_position, np.zeros(3))
    # Moving perpendicular to the target direction earns nothing.
    assert controller.speed_reward == pytest.approx(0.0)
    assert controller.reward == pytest.approx(0.0)


def test_metrics_are_reported_at_stats_interval(cfg, context):
    cfg.episode.stats_interval = 2
    _, controller = make_rig(cfg, context)
    controller.initialize()
    controller.on_episode_begin()

    controller.collect_observations()
    assert len(context.stats.buffer) == 0
    controller.collect_observations()
    assert set(context.stats.buffer) == {"Agent/Speed Reward", "Agent/Facing Reward"}


def test_zero_stats_interval_disables_metrics(cfg, context):
    cfg.episode.stats_interval = 0
    _, controller = make_rig(cfg, context)
    controller.initialize()
    controller.on_episode_begin()
    for _ in range(4):
        controller.collect_observations()

    assert len(context.stats.buffer) == 0


def test_heuristic_concatenates_controllable_bones(rig):
    _, controller = rig
    assert controller.heuristic().shape == (14,)

    controller.bones[1].heuristic = np.array([0.5, -0.5], dtype=np.float32)
    np.testing.assert_allclose(controller.heuristic()[3:5], [0.5, -0.5])


def test_episode_begin_resets_the_loop(rig, context):
    sim, controller = rig
    context.scheduler.tick()
    for _ in range(7):
        controller.on_action_received(np.ones(14))
    move_segments(controller, [0.01, 0.0, 0.0])
    controller.collect_observations()
    sim.listeners["leg_right_01"][0].on_contact_enter(3)

    controller.on_episode_begin()
    assert controller.step_count == 0
    assert controller.decision_count == 0
    assert controller.episode_return == 0.0
    np.testing.assert_allclose(controller.prev_actions, 0.0)
    assert not any(joint.enabled for joint in sim.joints)
    assert not controller.sensors[-1].is_touching

    context.scheduler.tick()
    assert all(joint.enabled for joint in sim.joints)
