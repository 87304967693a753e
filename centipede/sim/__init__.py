from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Protocol

import numpy as np
import numpy.typing as npt
from scipy.spatial.transform import Rotation as R

AXES = ("x", "y", "z")
UP = np.array([0.0, 0.0, 1.0])
FORWARD = np.array([1.0, 0.0, 0.0])


@dataclass
class JointDrive:
    """Spring drive of one rotation axis of a joint.

    Attributes:
        target: Commanded joint angle in radians.
        stiffness: Spring stiffness.
        damping: Spring damping.
        force_limit: Maximum force the drive may apply.
        lower_limit: Lower rotation limit in radians.
        upper_limit: Upper rotation limit in radians.
    """

    target: float = 0.0
    stiffness: float = 0.0
    damping: float = 0.0
    force_limit: float = 0.0
    lower_limit: float = 0.0
    upper_limit: float = 0.0


class ContactListener(Protocol):
    """Receives contact begin/end notifications for one body."""

    def on_contact_enter(self, group: int) -> None: ...

    def on_contact_exit(self, group: int) -> None: ...


class BaseJoint(ABC):
    """One articulated body of the simulated hierarchy.

    A joint exposes three drives (one per local axis), its world and local
    pose, its velocities and whether it currently takes part in the
    simulation. Drives are value objects: `get_drive` returns a copy which
    has to be written back with `set_drive`.
    """

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def get_drive(self, axis: str) -> JointDrive:
        """Returns a copy of the drive of the given axis ("x", "y" or "z")."""
        pass

    @abstractmethod
    def set_drive(self, axis: str, drive: JointDrive):
        """Writes target, stiffness, damping and force limit of an axis drive."""
        pass

    @property
    @abstractmethod
    def position(self) -> npt.NDArray[np.float64]:
        """World position."""
        pass

    @property
    @abstractmethod
    def rotation(self) -> R:
        """World rotation."""
        pass

    @property
    def up(self) -> npt.NDArray[np.float64]:
        """World direction of the local z axis."""
        return self.rotation.apply(UP)

    @property
    @abstractmethod
    def local_position(self) -> npt.NDArray[np.float64]:
        pass

    @local_position.setter
    @abstractmethod
    def local_position(self, value: npt.NDArray[np.float64]):
        pass

    @property
    @abstractmethod
    def local_rotation(self) -> R:
        pass

    @local_rotation.setter
    @abstractmethod
    def local_rotation(self, value: R):
        pass

    @property
    @abstractmethod
    def velocity(self) -> npt.NDArray[np.float64]:
        """Linear velocity in the world frame."""
        pass

    @property
    @abstractmethod
    def angular_velocity(self) -> npt.NDArray[np.float64]:
        """Angular velocity in the world frame."""
        pass

    @abstractmethod
    def clear_velocity(self):
        """Zeroes linear and angular velocity."""
        pass

    @property
    @abstractmethod
    def enabled(self) -> bool:
        pass

    @enabled.setter
    @abstractmethod
    def enabled(self, value: bool):
        pass


class BaseSim(ABC):
    """Base class for physics backends driving an articulated body.

    Concrete backends own the simulated world: the ordered joints of the
    body hierarchy, ray queries against tagged geometry and contact events.
    """

    @abstractmethod
    def __init__(self, name: str, dt: float):
        """Initialize the backend.

        Args:
            name: Identifier name for this backend instance.
            dt: Duration of one physics tick in seconds.
        """
        self.name = name
        self.dt = dt

    @property
    @abstractmethod
    def joints(self) -> List[BaseJoint]:
        """All joints of the hierarchy in pre-order (parents before children)."""
        pass

    def get_joint(self, name: str) -> BaseJoint:
        """Returns the joint with the given name.

        Raises:
            KeyError: If no joint has that name.
        """
        for joint in self.joints:
            if joint.name == name:
                return joint

        raise KeyError(f"Unknown joint: {name}")

    @abstractmethod
    def raycast(
        self,
        origin: npt.NDArray[np.float64],
        direction: npt.NDArray[np.float64],
        max_distance: float,
        group: int,
    ) -> Optional[float]:
        """Casts a ray against the geometry of one group.

        Returns:
            The hit distance, or None if nothing of that group lies within
            `max_distance` along `direction`.
        """
        pass

    @abstractmethod
    def add_contact_listener(self, joint_name: str, listener: ContactListener):
        """Registers a listener for contact begin/end events of a joint."""
        pass

    def reset_contacts(self):
        """Forgets tracked contacts so ongoing ones are reported as new enter events.

        Called after the listeners were reset, for backends that only report
        contact changes.
        """
        pass

    @abstractmethod
    def step(self):
        """Advances the simulation by one tick."""
        pass

    @abstractmethod
    def close(self):
        """Releases viewer and other backend resources."""
        pass
