"""Centipede MJCF generation.

Builds the MuJoCo description of the centipede: a head carrying a free joint,
a chain of body segments with three hinges each and a pair of legs with two
hinges each per segment, a ground plane and an optional target indicator.

Every hinge is named `<body>_<axis>` and driven by a position actuator of the
same name. The head is rotated so that each segment's local z axis points
backwards along the body; the forward direction of a segment is its negated
up axis. Legs are framed so that their local y axis points up and their local
x axis points outwards, letting both sides share the same ray origin.
"""

import argparse
import xml.etree.ElementTree as ET
from typing import Dict, List

from centipede.locomotion.config import CentipedeConfig
from centipede.utils.io_utils import pretty_write_xml, pretty_xml_string

HEAD_NAME = "head"
INDICATOR_NAME = "target_indicator"
SEGMENT_AXES = ("x", "y", "z")
LEG_AXES = ("y", "z")
AXIS_VECTORS = {"x": "1 0 0", "y": "0 1 0", "z": "0 0 1"}
# Leg frames relative to their segment, as axis-angle in degrees.
LEG_FRAMES = {"left": "1 1 0 180", "right": "0 0 1 -90"}

ROBOT_CONTYPE = "2"
GROUND_CONTYPE = "1"


def segment_name(index: int) -> str:
    return f"segment_{index:02d}"


def leg_name(side: str, index: int) -> str:
    return f"leg_{side}_{index:02d}"


def list_to_string(lst: List[float], digits: int = 6) -> str:
    """Convert a list of floats to a space separated string."""
    return " ".join(str(round(float(item), digits)) for item in lst)


def add_hinges(
    body: ET.Element,
    actuator: ET.Element,
    name: str,
    axes: tuple,
    joint_range: float,
    body_cfg: CentipedeConfig.BodyConfig,
):
    """Adds one limited hinge and one position actuator per axis, in axis order."""
    for axis in axes:
        joint_name = f"{name}_{axis}"
        ET.SubElement(
            body,
            "joint",
            {
                "name": joint_name,
                "type": "hinge",
                "axis": AXIS_VECTORS[axis],
                "range": list_to_string([-joint_range, joint_range]),
                "damping": str(body_cfg.joint_damping),
                "armature": str(body_cfg.joint_armature),
            },
        )
        force = body_cfg.drive_force_limit
        ET.SubElement(
            actuator,
            "position",
            {
                "name": joint_name,
                "joint": joint_name,
                "kp": str(body_cfg.drive_stiffness),
                "kv": str(body_cfg.drive_damping),
                "forcelimited": "true",
                "forcerange": list_to_string([-force, force]),
            },
        )


def add_leg(
    segment: ET.Element,
    actuator: ET.Element,
    side: str,
    index: int,
    body_cfg: CentipedeConfig.BodyConfig,
):
    offset = body_cfg.segment_radius if side == "left" else -body_cfg.segment_radius
    name = leg_name(side, index)
    leg = ET.SubElement(
        segment,
        "body",
        {
            "name": name,
            "pos": list_to_string([0.0, offset, 0.0]),
            "axisangle": LEG_FRAMES[side],
        },
    )
    add_hinges(leg, actuator, name, LEG_AXES, body_cfg.leg_joint_range, body_cfg)
    ET.SubElement(
        leg,
        "geom",
        {
            "name": f"{name}_geom",
            "type": "capsule",
            "fromto": list_to_string(
                [0.0, 0.0, 0.0, body_cfg.leg_reach, -body_cfg.leg_drop, 0.0]
            ),
            "size": str(body_cfg.leg_radius),
            "rgba": "0.45 0.2 0.1 1",
        },
    )


def build_centipede_xml(
    cfg: CentipedeConfig, add_indicator: bool = False
) -> ET.Element:
    """Builds the MJCF tree of the centipede scene.

    Args:
        cfg: Environment configuration; body dimensions, drive defaults,
            timestep and ground group are read from it.
        add_indicator: Whether to add a mocap arrow showing the target direction.

    Returns:
        The root `<mujoco>` element.
    """
    body_cfg = cfg.body
    root = ET.Element("mujoco", {"model": "centipede"})
    ET.SubElement(root, "compiler", {"angle": "degree", "autolimits": "true"})
    ET.SubElement(
        root,
        "option",
        {"timestep": str(cfg.sim.timestep), "integrator": "implicitfast"},
    )

    default = ET.SubElement(root, "default")
    ET.SubElement(
        default,
        "geom",
        {
            "contype": ROBOT_CONTYPE,
            "conaffinity": "0",
            "condim": "3",
            "friction": "1 0.005 0.0001",
            "density": "500",
        },
    )

    worldbody = ET.SubElement(root, "worldbody")
    ET.SubElement(
        worldbody,
        "light",
        {"pos": "0 0 3", "dir": "0 0 -1", "directional": "true"},
    )
    ET.SubElement(
        worldbody,
        "geom",
        {
            "name": "floor",
            "type": "plane",
            "size": "50 50 0.05",
            "group": str(cfg.sensor.ground_group),
            "contype": GROUND_CONTYPE,
            "conaffinity": ROBOT_CONTYPE,
            "rgba": "0.6 0.65 0.6 1",
        },
    )

    actuator = ET.Element("actuator")

    # Rotated so that local z points backwards (world -x) and local x up.
    head = ET.SubElement(
        worldbody,
        "body",
        {
            "name": HEAD_NAME,
            "pos": list_to_string([0.0, 0.0, body_cfg.spawn_height]),
            "axisangle": "0 1 0 -90",
        },
    )
    ET.SubElement(head, "freejoint", {"name": "root"})
    ET.SubElement(
        head,
        "geom",
        {
            "name": f"{HEAD_NAME}_geom",
            "type": "sphere",
            "size": str(body_cfg.segment_radius * 1.2),
            "rgba": "0.2 0.1 0.05 1",
        },
    )

    parent = head
    for i in range(body_cfg.n_segments):
        name = segment_name(i)
        segment = ET.SubElement(
            parent,
            "body",
            {
                "name": name,
                "pos": list_to_string([0.0, 0.0, body_cfg.segment_spacing]),
            },
        )
        add_hinges(
            segment, actuator, name, SEGMENT_AXES, body_cfg.segment_joint_range, body_cfg
        )
        ET.SubElement(
            segment,
            "geom",
            {
                "name": f"{name}_geom",
                "type": "capsule",
                "fromto": list_to_string(
                    [0.0, 0.0, 0.0, 0.0, 0.0, 0.4 * body_cfg.segment_spacing]
                ),
                "size": str(body_cfg.segment_radius),
                "rgba": "0.55 0.3 0.1 1",
            },
        )
        for side in ("left", "right"):
            add_leg(segment, actuator, side, i, body_cfg)

        parent = segment

    if add_indicator:
        indicator = ET.SubElement(
            worldbody,
            "body",
            {"name": INDICATOR_NAME, "mocap": "true", "pos": "0 0 0.15"},
        )
        ET.SubElement(
            indicator,
            "geom",
            {
                "type": "capsule",
                "fromto": "0 0 0 0.2 0 0",
                "size": "0.008",
                "contype": "0",
                "conaffinity": "0",
                "group": "2",
                "rgba": "1 0.3 0 0.8",
            },
        )

    root.append(actuator)
    return root


def get_centipede_xml(cfg: CentipedeConfig, add_indicator: bool = False) -> str:
    """Returns the centipede scene as an MJCF string."""
    return pretty_xml_string(build_centipede_xml(cfg, add_indicator))


def get_bone_names(cfg: CentipedeConfig) -> Dict[str, List[str]]:
    """Names of the segment and leg bodies in hierarchy order."""
    segments: List[str] = []
    legs: List[str] = []
    for i in range(cfg.body.n_segments):
        segments.append(segment_name(i))
        legs.extend(leg_name(side, i) for side in ("left", "right"))

    return {"segments": segments, "legs": legs}


def main(args=None):
    """Writes the centipede MJCF to a file."""
    parser = argparse.ArgumentParser(description="Generate the centipede MJCF.")
    parser.add_argument(
        "--output", type=str, default="centipede.xml", help="Output XML path."
    )
    parser.add_argument(
        "--segments", type=int, default=0, help="Number of body segments (0 keeps the config)."
    )
    parser.add_argument(
        "--indicator",
        action="store_true",
        default=False,
        help="Add the target direction indicator.",
    )
    args = parser.parse_args(args)

    cfg = CentipedeConfig()
    if args.segments > 0:
        cfg.body.n_segments = args.segments

    pretty_write_xml(build_centipede_xml(cfg, args.indicator), args.output)
    print(f"Centipede with {cfg.body.n_segments} segments written to {args.output}")


if __name__ == "__main__":
    main()
