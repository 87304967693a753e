from typing import Dict, List, Optional, Set, Tuple

import mujoco
import mujoco.viewer
import numpy as np
import numpy.typing as npt
from scipy.spatial.transform import Rotation as R

from centipede.sim import AXES, BaseJoint, BaseSim, ContactListener, JointDrive
from centipede.utils.math_utils import yaw_quat

QPOS_SIZE = {
    mujoco.mjtJoint.mjJNT_FREE: 7,
    mujoco.mjtJoint.mjJNT_BALL: 4,
    mujoco.mjtJoint.mjJNT_SLIDE: 1,
    mujoco.mjtJoint.mjJNT_HINGE: 1,
}
DOF_SIZE = {
    mujoco.mjtJoint.mjJNT_FREE: 6,
    mujoco.mjtJoint.mjJNT_BALL: 3,
    mujoco.mjtJoint.mjJNT_SLIDE: 1,
    mujoco.mjtJoint.mjJNT_HINGE: 1,
}


class MuJoCoJoint(BaseJoint):
    """A body of a MuJoCo articulation seen as one joint.

    The drives of axis `a` are the hinge `<body>_<a>` and the position
    actuator of the same name: target is the control value, stiffness and
    damping are the actuator's kp and kv, the force limit its force range
    and the limits come from the hinge range. Axes without a hinge keep
    their drive values in memory only. Hinges of a body are expected to be
    declared in x, y, z order along the body's local axes.
    """

    def __init__(self, sim: "MuJoCoSim", body_id: int):
        model = sim.model
        super().__init__(mujoco.mj_id2name(model, mujoco.mjtObj.mjOBJ_BODY, body_id))
        self.sim = sim
        self.body_id = body_id
        self.parent_id = int(model.body_parentid[body_id])
        self.body_rot = R.from_quat(model.body_quat[body_id], scalar_first=True)
        self._enabled = True

        self.hinge_ids: Dict[str, int] = {}
        self.actuator_ids: Dict[str, int] = {}
        for axis in AXES:
            name = f"{self.name}_{axis}"
            joint_id = mujoco.mj_name2id(model, mujoco.mjtObj.mjOBJ_JOINT, name)
            if joint_id >= 0:
                self.hinge_ids[axis] = joint_id
            actuator_id = mujoco.mj_name2id(model, mujoco.mjtObj.mjOBJ_ACTUATOR, name)
            if actuator_id >= 0:
                self.actuator_ids[axis] = actuator_id

        self.free_qpos_adr: Optional[int] = None
        self.free_dof_adr: Optional[int] = None
        qpos_adr: List[int] = []
        dof_adr: List[int] = []
        jnt_start = int(model.body_jntadr[body_id])
        for joint_id in range(jnt_start, jnt_start + int(model.body_jntnum[body_id])):
            jnt_type = mujoco.mjtJoint(model.jnt_type[joint_id])
            q0 = int(model.jnt_qposadr[joint_id])
            d0 = int(model.jnt_dofadr[joint_id])
            qpos_adr.extend(range(q0, q0 + QPOS_SIZE[jnt_type]))
            dof_adr.extend(range(d0, d0 + DOF_SIZE[jnt_type]))
            if jnt_type == mujoco.mjtJoint.mjJNT_FREE:
                self.free_qpos_adr = q0
                self.free_dof_adr = d0

        self.qpos_adr = np.array(qpos_adr, dtype=int)
        self.dof_adr = np.array(dof_adr, dtype=int)
        self._virtual_drives = {axis: JointDrive() for axis in AXES}

    def get_drive(self, axis: str) -> JointDrive:
        model, data = self.sim.model, self.sim.data
        if axis not in self.actuator_ids:
            drive = self._virtual_drives[axis]
            return JointDrive(**vars(drive))

        act = self.actuator_ids[axis]
        drive = JointDrive(
            target=float(data.ctrl[act]),
            stiffness=float(model.actuator_gainprm[act, 0]),
            damping=float(-model.actuator_biasprm[act, 2]),
            force_limit=float(model.actuator_forcerange[act, 1]),
        )
        if axis in self.hinge_ids:
            drive.lower_limit = float(model.jnt_range[self.hinge_ids[axis], 0])
            drive.upper_limit = float(model.jnt_range[self.hinge_ids[axis], 1])

        return drive

    def set_drive(self, axis: str, drive: JointDrive):
        model, data = self.sim.model, self.sim.data
        if axis not in self.actuator_ids:
            self._virtual_drives[axis] = JointDrive(**vars(drive))
            return

        act = self.actuator_ids[axis]
        data.ctrl[act] = drive.target
        model.actuator_gainprm[act, 0] = drive.stiffness
        model.actuator_biasprm[act, 1] = -drive.stiffness
        model.actuator_biasprm[act, 2] = -drive.damping
        model.actuator_forcelimited[act] = 1
        model.actuator_forcerange[act] = [-drive.force_limit, drive.force_limit]

    @property
    def position(self) -> npt.NDArray[np.float64]:
        self.sim.sync()
        return self.sim.data.xpos[self.body_id].copy()

    @property
    def rotation(self) -> R:
        self.sim.sync()
        return R.from_quat(self.sim.data.xquat[self.body_id], scalar_first=True)

    def _parent_rotation(self) -> R:
        return R.from_quat(self.sim.data.xquat[self.parent_id], scalar_first=True)

    @property
    def local_position(self) -> npt.NDArray[np.float64]:
        self.sim.sync()
        data = self.sim.data
        offset = data.xpos[self.body_id] - data.xpos[self.parent_id]
        return self._parent_rotation().inv().apply(offset)

    @local_position.setter
    def local_position(self, value: npt.NDArray[np.float64]):
        # Bodies without a free joint keep a fixed offset from their parent.
        if self.free_qpos_adr is None:
            return

        adr = self.free_qpos_adr
        self.sim.data.qpos[adr : adr + 3] = value
        self.sim.mark_dirty()

    @property
    def local_rotation(self) -> R:
        self.sim.sync()
        return self._parent_rotation().inv() * self.rotation

    @local_rotation.setter
    def local_rotation(self, value: R):
        data = self.sim.data
        if self.free_qpos_adr is not None:
            adr = self.free_qpos_adr
            data.qpos[adr + 3 : adr + 7] = value.as_quat(scalar_first=True)
        elif len(self.hinge_ids) > 0:
            # Hinges compose intrinsically on top of the body frame.
            angles = (self.body_rot.inv() * value).as_euler("XYZ")
            for i, axis in enumerate(AXES):
                if axis in self.hinge_ids:
                    qadr = self.sim.model.jnt_qposadr[self.hinge_ids[axis]]
                    data.qpos[qadr] = angles[i]

        self.sim.mark_dirty()

    def _object_velocity(self) -> npt.NDArray[np.float64]:
        self.sim.sync()
        res = np.zeros(6)
        mujoco.mj_objectVelocity(
            self.sim.model, self.sim.data, mujoco.mjtObj.mjOBJ_BODY, self.body_id, res, 0
        )
        return res

    @property
    def velocity(self) -> npt.NDArray[np.float64]:
        return self._object_velocity()[3:]

    @property
    def angular_velocity(self) -> npt.NDArray[np.float64]:
        return self._object_velocity()[:3]

    def clear_velocity(self):
        self.sim.data.qvel[self.dof_adr] = 0.0
        self.sim.mark_dirty()

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool):
        self._enabled = bool(value)


class MuJoCoSim(BaseSim):
    """MuJoCo physics backend for the centipede.

    Every body of the articulation rooted at `root_body` becomes a
    `MuJoCoJoint`, in body order (pre-order of the MJCF tree). Disabled
    joints are held in place: their generalized positions are restored and
    their velocities zeroed after each integration step. Contacts are
    compared tick to tick and reported to listeners as enter/exit events
    tagged with the geom group of the other body.
    """

    def __init__(
        self,
        xml_string: str = "",
        xml_path: str = "",
        root_body: str = "head",
        vis_type: str = "",
        indicator_body: str = "target_indicator",
    ):
        """Initialize the MuJoCo backend.

        Args:
            xml_string: MJCF document to load. Takes precedence over `xml_path`.
            xml_path: Path to an MJCF file.
            root_body: Name of the root body of the articulation.
            vis_type: 'view' for the interactive passive viewer, '' for none.
            indicator_body: Name of an optional mocap body showing the target direction.
        """
        if len(xml_string) > 0:
            self.model = mujoco.MjModel.from_xml_string(xml_string)
        elif len(xml_path) > 0:
            self.model = mujoco.MjModel.from_xml_path(xml_path)
        else:
            raise ValueError("Either xml_string or xml_path must be given.")

        super().__init__("mujoco", float(self.model.opt.timestep))
        self.data = mujoco.MjData(self.model)
        self._dirty = True
        self.sync()

        root_id = mujoco.mj_name2id(self.model, mujoco.mjtObj.mjOBJ_BODY, root_body)
        if root_id < 0:
            raise KeyError(f"Unknown root body: {root_body}")

        self._joints = [
            MuJoCoJoint(self, body_id)
            for body_id in range(1, self.model.nbody)
            if self.model.body_rootid[body_id] == root_id
        ]
        self._joints_by_name = {joint.name: joint for joint in self._joints}

        self._listeners: Dict[int, List[ContactListener]] = {}
        self._contacts: Set[Tuple[int, int]] = set()

        indicator_id = mujoco.mj_name2id(
            self.model, mujoco.mjtObj.mjOBJ_BODY, indicator_body
        )
        self.indicator_mocap_id = (
            int(self.model.body_mocapid[indicator_id]) if indicator_id >= 0 else -1
        )

        if vis_type == "view":
            self.viewer = mujoco.viewer.launch_passive(self.model, self.data)
        else:
            self.viewer = None

    @property
    def joints(self) -> List[BaseJoint]:
        return list(self._joints)

    def get_joint(self, name: str) -> BaseJoint:
        if name not in self._joints_by_name:
            raise KeyError(f"Unknown joint: {name}")

        return self._joints_by_name[name]

    def mark_dirty(self):
        self._dirty = True

    def sync(self):
        """Recomputes derived quantities after generalized positions were written."""
        if self._dirty:
            mujoco.mj_forward(self.model, self.data)
            self._dirty = False

    def raycast(
        self,
        origin: npt.NDArray[np.float64],
        direction: npt.NDArray[np.float64],
        max_distance: float,
        group: int,
    ) -> Optional[float]:
        self.sync()
        geomgroup = np.zeros(mujoco.mjNGROUP, dtype=np.uint8)
        geomgroup[group] = 1
        geom_id = np.array([-1], dtype=np.int32)
        distance = mujoco.mj_ray(
            self.model,
            self.data,
            np.asarray(origin, dtype=np.float64),
            np.asarray(direction, dtype=np.float64),
            geomgroup,
            1,
            -1,
            geom_id,
        )
        if distance < 0 or distance > max_distance:
            return None

        return float(distance)

    def add_contact_listener(self, joint_name: str, listener: ContactListener):
        joint = self.get_joint(joint_name)
        assert isinstance(joint, MuJoCoJoint)
        self._listeners.setdefault(joint.body_id, []).append(listener)

    def set_target_indicator(
        self, position: npt.NDArray[np.float64], direction: npt.NDArray[np.float64]
    ):
        """Moves the indicator arrow, if the model has one, to point along `direction`."""
        if self.indicator_mocap_id < 0:
            return

        self.data.mocap_pos[self.indicator_mocap_id] = position
        self.data.mocap_quat[self.indicator_mocap_id] = yaw_quat(direction)

    def _current_contacts(self) -> Set[Tuple[int, int]]:
        """(listened body, other geom) pairs in contact."""
        contacts: Set[Tuple[int, int]] = set()
        for i in range(self.data.ncon):
            con = self.data.contact[i]
            body1 = int(self.model.geom_bodyid[con.geom1])
            body2 = int(self.model.geom_bodyid[con.geom2])
            if body1 in self._listeners:
                contacts.add((body1, int(con.geom2)))
            if body2 in self._listeners:
                contacts.add((body2, int(con.geom1)))

        return contacts

    def _dispatch_contacts(self):
        contacts = self._current_contacts()
        for body_id, geom_id in sorted(self._contacts - contacts):
            group = int(self.model.geom_group[geom_id])
            for listener in self._listeners[body_id]:
                listener.on_contact_exit(group)

        for body_id, geom_id in sorted(contacts - self._contacts):
            group = int(self.model.geom_group[geom_id])
            for listener in self._listeners[body_id]:
                listener.on_contact_enter(group)

        self._contacts = contacts

    def reset_contacts(self):
        """Reports every contact of the current pose to the listeners as a new contact."""
        self.sync()
        self._contacts = set()
        self._dispatch_contacts()

    def step(self):
        """Integrates one tick, holds disabled joints and dispatches contact events."""
        self.sync()
        held = [
            (joint, self.data.qpos[joint.qpos_adr].copy())
            for joint in self._joints
            if not joint.enabled and len(joint.qpos_adr) > 0
        ]

        mujoco.mj_step(self.model, self.data)

        if len(held) > 0:
            for joint, qpos in held:
                self.data.qpos[joint.qpos_adr] = qpos
                self.data.qvel[joint.dof_adr] = 0.0
            mujoco.mj_forward(self.model, self.data)

        self._dispatch_contacts()

        if self.viewer is not None:
            self.viewer.sync()

    def close(self):
        """Closes the viewer if it is currently open."""
        if self.viewer is not None:
            self.viewer.close()
            self.viewer = None
