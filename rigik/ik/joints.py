"""Kinematic chain builder - bones to single-DOF joints and back.

Every solvable bone is split into one joint per degree of freedom so the
solver gets an independent scalar unknown per axis:

* static bone: one STATIC joint carrying the whole local transform
* regular bone: REVOLUTION X, Y, Z
* slide bone: SLIDE X, Y, Z followed by REVOLUTION X, Y, Z

The bone offset rides on the first revolution joint (slide bones carry it in
their slide values instead) and the scale on the last one, so composing a
bone's joints in order gives ``T @ Rx @ Ry @ Rz @ S``.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import List
import numpy as np

from rigik.core.skeleton import Bone


class JointType(IntEnum):
    STATIC = 0
    REVOLUTION = 1
    SLIDE = 2


def _zeros() -> np.ndarray:
    return np.zeros(3, dtype=np.float64)


def _ones() -> np.ndarray:
    return np.ones(3, dtype=np.float64)


@dataclass
class Joint:
    """One scalar (or fixed) degree of freedom of a bone."""
    bone_index: int
    type: JointType
    axis: int = 0  # 0/1/2 = X/Y/Z, unused for STATIC
    value: float = 0.0  # Angle (REVOLUTION) or displacement (SLIDE)
    offset: np.ndarray = field(default_factory=_zeros)
    rotation: np.ndarray = field(default_factory=_zeros)  # STATIC only
    scale: np.ndarray = field(default_factory=_ones)
    parent_index: int = -1
    dirty: bool = True
    world: np.ndarray = field(default_factory=lambda: np.eye(4, dtype=np.float64))

    @property
    def is_dof(self) -> bool:
        """Whether the solver may change this joint."""
        return self.type != JointType.STATIC


def convert_bones_to_joints(bones: List[Bone]) -> List[Joint]:
    """
    Build the ordered joint list for a parent-before-child bone list.

    Args:
        bones: Bones, each parent stored before its children

    Returns:
        Joints in topological order (every parent index points backwards)
    """
    joints: List[Joint] = []
    last_joint_of_bone: List[int] = []

    for i, bone in enumerate(bones):
        start = len(joints)

        if bone.static:
            joints.append(Joint(
                bone_index=i, type=JointType.STATIC,
                offset=bone.offset.copy(), rotation=bone.rotation.copy(),
                scale=bone.scale.copy()
            ))
        else:
            if bone.slide:
                for axis in range(3):
                    joints.append(Joint(
                        bone_index=i, type=JointType.SLIDE, axis=axis,
                        value=float(bone.offset[axis])
                    ))

            offset = _zeros() if bone.slide else bone.offset.copy()
            joints.append(Joint(
                bone_index=i, type=JointType.REVOLUTION, axis=0,
                value=float(bone.rotation[0]), offset=offset
            ))
            joints.append(Joint(
                bone_index=i, type=JointType.REVOLUTION, axis=1,
                value=float(bone.rotation[1])
            ))
            joints.append(Joint(
                bone_index=i, type=JointType.REVOLUTION, axis=2,
                value=float(bone.rotation[2]), scale=bone.scale.copy()
            ))

        # First joint hangs off the parent bone's last joint, the rest chain up
        if 0 <= bone.parent_index < i:
            joints[start].parent_index = last_joint_of_bone[bone.parent_index]
        for index in range(start + 1, len(joints)):
            joints[index].parent_index = index - 1

        last_joint_of_bone.append(len(joints) - 1)

    return joints


def bone_to_joint_index(joints: List[Joint], bone_index: int) -> int:
    """
    Last joint of a bone, whose world transform is the bone's world transform.

    Returns:
        Joint index, or -1 when the bone has no joint
    """
    for index in range(len(joints) - 1, -1, -1):
        if joints[index].bone_index == bone_index:
            return index
    return -1


def bone_joint_indices(joints: List[Joint], bone_index: int) -> List[int]:
    """All joints of a bone, in chain order."""
    return [i for i, joint in enumerate(joints) if joint.bone_index == bone_index]


def apply_joints_to_bones(joints: List[Joint], bones: List[Bone]) -> None:
    """Fold solved joint values back into the bones' local transforms."""
    for joint in joints:
        bone = bones[joint.bone_index]
        if joint.type == JointType.REVOLUTION:
            bone.rotation[joint.axis] = joint.value
        elif joint.type == JointType.SLIDE:
            bone.offset[joint.axis] = joint.value
