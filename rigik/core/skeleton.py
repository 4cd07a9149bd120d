"""Skeleton data model and the Mixamo humanoid rig.

Bones live in a flat list and refer to their parent by index. Each bone may
carry a back-reference to a ``SceneNode``, the transform object owned by the
rendering side; the IK rig reads bones from their nodes before solving and
writes the solved values back afterwards.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, List, Optional
import numpy as np

from .transforms import compose


class MixamoBone(IntEnum):
    """Essential Mixamo bone indices for full body animation.

    Values double as positions in the bone list, so parents always come
    before their children.
    """
    # Root and Spine
    HIPS = 0
    SPINE = 1
    SPINE1 = 2
    SPINE2 = 3

    # Head and Neck
    NECK = 4
    HEAD = 5

    # Left Arm
    LEFT_SHOULDER = 6
    LEFT_ARM = 7
    LEFT_FOREARM = 8
    LEFT_HAND = 9

    # Right Arm
    RIGHT_SHOULDER = 10
    RIGHT_ARM = 11
    RIGHT_FOREARM = 12
    RIGHT_HAND = 13

    # Left Leg
    LEFT_UP_LEG = 14
    LEFT_LEG = 15
    LEFT_FOOT = 16
    LEFT_TOE_BASE = 17

    # Right Leg
    RIGHT_UP_LEG = 18
    RIGHT_LEG = 19
    RIGHT_FOOT = 20
    RIGHT_TOE_BASE = 21


# Mixamo bone names as they appear in exported models
MIXAMO_BONE_NAMES = {
    MixamoBone.HIPS: "mixamorig:Hips",
    MixamoBone.SPINE: "mixamorig:Spine",
    MixamoBone.SPINE1: "mixamorig:Spine1",
    MixamoBone.SPINE2: "mixamorig:Spine2",
    MixamoBone.NECK: "mixamorig:Neck",
    MixamoBone.HEAD: "mixamorig:Head",
    MixamoBone.LEFT_SHOULDER: "mixamorig:LeftShoulder",
    MixamoBone.LEFT_ARM: "mixamorig:LeftArm",
    MixamoBone.LEFT_FOREARM: "mixamorig:LeftForeArm",
    MixamoBone.LEFT_HAND: "mixamorig:LeftHand",
    MixamoBone.RIGHT_SHOULDER: "mixamorig:RightShoulder",
    MixamoBone.RIGHT_ARM: "mixamorig:RightArm",
    MixamoBone.RIGHT_FOREARM: "mixamorig:RightForeArm",
    MixamoBone.RIGHT_HAND: "mixamorig:RightHand",
    MixamoBone.LEFT_UP_LEG: "mixamorig:LeftUpLeg",
    MixamoBone.LEFT_LEG: "mixamorig:LeftLeg",
    MixamoBone.LEFT_FOOT: "mixamorig:LeftFoot",
    MixamoBone.LEFT_TOE_BASE: "mixamorig:LeftToeBase",
    MixamoBone.RIGHT_UP_LEG: "mixamorig:RightUpLeg",
    MixamoBone.RIGHT_LEG: "mixamorig:RightLeg",
    MixamoBone.RIGHT_FOOT: "mixamorig:RightFoot",
    MixamoBone.RIGHT_TOE_BASE: "mixamorig:RightToeBase",
}


# Bone parent relationships (child -> parent)
MIXAMO_BONE_PARENTS = {
    MixamoBone.SPINE: MixamoBone.HIPS,
    MixamoBone.SPINE1: MixamoBone.SPINE,
    MixamoBone.SPINE2: MixamoBone.SPINE1,
    MixamoBone.NECK: MixamoBone.SPINE2,
    MixamoBone.HEAD: MixamoBone.NECK,
    MixamoBone.LEFT_SHOULDER: MixamoBone.SPINE2,
    MixamoBone.LEFT_ARM: MixamoBone.LEFT_SHOULDER,
    MixamoBone.LEFT_FOREARM: MixamoBone.LEFT_ARM,
    MixamoBone.LEFT_HAND: MixamoBone.LEFT_FOREARM,
    MixamoBone.RIGHT_SHOULDER: MixamoBone.SPINE2,
    MixamoBone.RIGHT_ARM: MixamoBone.RIGHT_SHOULDER,
    MixamoBone.RIGHT_FOREARM: MixamoBone.RIGHT_ARM,
    MixamoBone.RIGHT_HAND: MixamoBone.RIGHT_FOREARM,
    MixamoBone.LEFT_UP_LEG: MixamoBone.HIPS,
    MixamoBone.LEFT_LEG: MixamoBone.LEFT_UP_LEG,
    MixamoBone.LEFT_FOOT: MixamoBone.LEFT_LEG,
    MixamoBone.LEFT_TOE_BASE: MixamoBone.LEFT_FOOT,
    MixamoBone.RIGHT_UP_LEG: MixamoBone.HIPS,
    MixamoBone.RIGHT_LEG: MixamoBone.RIGHT_UP_LEG,
    MixamoBone.RIGHT_FOOT: MixamoBone.RIGHT_LEG,
    MixamoBone.RIGHT_TOE_BASE: MixamoBone.RIGHT_FOOT,
}


# T-pose local offsets in meters (Y up, character faces +Z, left is +X)
MIXAMO_REST_OFFSETS = {
    MixamoBone.HIPS: (0.0, 1.0, 0.0),
    MixamoBone.SPINE: (0.0, 0.10, 0.0),
    MixamoBone.SPINE1: (0.0, 0.12, 0.0),
    MixamoBone.SPINE2: (0.0, 0.12, 0.0),
    MixamoBone.NECK: (0.0, 0.15, 0.0),
    MixamoBone.HEAD: (0.0, 0.10, 0.0),
    MixamoBone.LEFT_SHOULDER: (0.05, 0.12, 0.0),
    MixamoBone.LEFT_ARM: (0.12, 0.0, 0.0),
    MixamoBone.LEFT_FOREARM: (0.28, 0.0, 0.0),
    MixamoBone.LEFT_HAND: (0.25, 0.0, 0.0),
    MixamoBone.RIGHT_SHOULDER: (-0.05, 0.12, 0.0),
    MixamoBone.RIGHT_ARM: (-0.12, 0.0, 0.0),
    MixamoBone.RIGHT_FOREARM: (-0.28, 0.0, 0.0),
    MixamoBone.RIGHT_HAND: (-0.25, 0.0, 0.0),
    MixamoBone.LEFT_UP_LEG: (0.10, -0.05, 0.0),
    MixamoBone.LEFT_LEG: (0.0, -0.42, 0.0),
    MixamoBone.LEFT_FOOT: (0.0, -0.40, 0.0),
    MixamoBone.LEFT_TOE_BASE: (0.0, -0.05, 0.15),
    MixamoBone.RIGHT_UP_LEG: (-0.10, -0.05, 0.0),
    MixamoBone.RIGHT_LEG: (0.0, -0.42, 0.0),
    MixamoBone.RIGHT_FOOT: (0.0, -0.40, 0.0),
    MixamoBone.RIGHT_TOE_BASE: (0.0, -0.05, 0.15),
}


def _vec3(value, default: float) -> np.ndarray:
    if value is None:
        return np.full(3, default, dtype=np.float64)
    return np.array(value, dtype=np.float64).reshape(3)


@dataclass
class SceneNode:
    """Transform object owned by the rendering side (position, Euler XYZ, scale)."""
    name: str
    position: np.ndarray = None
    rotation: np.ndarray = None
    scale: np.ndarray = None

    def __post_init__(self):
        self.position = _vec3(self.position, 0.0)
        self.rotation = _vec3(self.rotation, 0.0)
        self.scale = _vec3(self.scale, 1.0)

    def copy(self) -> "SceneNode":
        return SceneNode(self.name, self.position.copy(),
                         self.rotation.copy(), self.scale.copy())


@dataclass
class Bone:
    """One skeletal segment, addressed by its index in the bone list."""
    name: str
    offset: np.ndarray = None  # (3,) local translation
    rotation: np.ndarray = None  # (3,) local Euler XYZ, radians
    scale: np.ndarray = None  # (3,) defaults to (1,1,1)
    parent_index: int = -1
    static: bool = False  # Driven by the animation only, never solved
    slide: bool = False  # Translation is solvable too
    node: Optional[SceneNode] = None

    def __post_init__(self):
        self.offset = _vec3(self.offset, 0.0)
        self.rotation = _vec3(self.rotation, 0.0)
        self.scale = _vec3(self.scale, 1.0)

    @property
    def is_root(self) -> bool:
        return self.parent_index < 0

    def local_matrix(self) -> np.ndarray:
        return compose(self.offset, self.rotation, self.scale)

    def read_node(self) -> None:
        """Pull the current transform from the scene node."""
        if self.node is None:
            return
        self.offset = self.node.position.copy()
        self.rotation = self.node.rotation.copy()
        self.scale = self.node.scale.copy()

    def write_node(self) -> None:
        """Push the bone transform to the scene node."""
        if self.node is None:
            return
        self.node.position[:] = self.offset
        self.node.rotation[:] = self.rotation
        self.node.scale[:] = self.scale


def find_bone(bones: List[Bone], name: str) -> int:
    """Index of the bone called ``name`` (exact match, then suffix match), -1 if absent."""
    for i, bone in enumerate(bones):
        if bone.name == name:
            return i
    for i, bone in enumerate(bones):
        if bone.name.split(":")[-1] == name:
            return i
    return -1


def build_humanoid_skeleton(
    scale: float = 1.0,
    static_root: bool = True,
    with_nodes: bool = True
) -> List[Bone]:
    """
    Build the Mixamo humanoid in its T-pose.

    Args:
        scale: Uniform factor applied to the rest offsets
        static_root: Mark the hips static (animation-driven root)
        with_nodes: Attach a SceneNode to every bone

    Returns:
        Bones ordered by MixamoBone value
    """
    bones: List[Bone] = []
    for bone_id in MixamoBone:
        name = MIXAMO_BONE_NAMES[bone_id]
        parent = MIXAMO_BONE_PARENTS.get(bone_id)
        offset = np.array(MIXAMO_REST_OFFSETS[bone_id], dtype=np.float64) * scale
        bone = Bone(
            name=name,
            offset=offset,
            parent_index=int(parent) if parent is not None else -1,
            static=static_root and bone_id == MixamoBone.HIPS,
        )
        if with_nodes:
            bone.node = SceneNode(name, offset.copy())
        bones.append(bone)
    return bones


@dataclass
class SkeletonFrame:
    """A single solved frame: local transform per bone name."""
    frame_number: int
    timestamp: float
    bone_transforms: Dict[str, Dict[str, List[float]]] = field(default_factory=dict)

    @classmethod
    def from_bones(cls, frame_number: int, timestamp: float,
                   bones: List[Bone]) -> "SkeletonFrame":
        return cls(
            frame_number=frame_number,
            timestamp=timestamp,
            bone_transforms={
                bone.name: {
                    "position": bone.offset.tolist(),
                    "rotation": bone.rotation.tolist(),
                    "scale": bone.scale.tolist(),
                }
                for bone in bones
            }
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "frame": self.frame_number,
            "timestamp": self.timestamp,
            "bones": self.bone_transforms,
        }
