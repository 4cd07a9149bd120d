"""Forward kinematics over the joint list.

World matrices are cached on the joints and recomputed lazily: a joint is
recomputed when its ``dirty`` flag is set, from its parent's world matrix and
its own local matrix. The joint list is topologically sorted, so a forward
walk sees every parent before its children.
"""

from typing import List
import numpy as np

from rigik.core.transforms import (
    axis_rotation, cancel_scaling, cancel_translate, get_rotation_xyz,
    rot_xyz, scale_matrix, translation_matrix
)
from .joints import Joint, JointType


def joint_local_matrix(joint: Joint) -> np.ndarray:
    """``T(offset) @ motion @ S(scale)`` for the joint's kind and value."""
    if joint.type == JointType.STATIC:
        motion = rot_xyz(*joint.rotation)
    elif joint.type == JointType.REVOLUTION:
        motion = axis_rotation(joint.axis, joint.value)
    else:
        displacement = np.zeros(3)
        displacement[joint.axis] = joint.value
        motion = translation_matrix(displacement)
    return translation_matrix(joint.offset) @ motion @ scale_matrix(joint.scale)


def joint_world_matrix(joints: List[Joint], index: int) -> np.ndarray:
    """
    World transform of a joint, computed on demand.

    Returns:
        4x4 matrix; identity for index < 0
    """
    if index < 0:
        return np.eye(4, dtype=np.float64)

    # Collect the dirty part of the ancestor chain, then resolve it top-down
    pending = []
    current = index
    while current >= 0 and joints[current].dirty:
        pending.append(current)
        current = joints[current].parent_index

    for i in reversed(pending):
        joint = joints[i]
        parent = joints[joint.parent_index].world if joint.parent_index >= 0 \
            else np.eye(4, dtype=np.float64)
        joint.world = parent @ joint_local_matrix(joint)
        joint.dirty = False

    return joints[index].world


def update_world_matrices(joints: List[Joint]) -> None:
    """Recompute every dirty joint in list order."""
    for index, joint in enumerate(joints):
        if joint.dirty:
            joint_world_matrix(joints, index)


def mark_dirty(joints: List[Joint]) -> None:
    for joint in joints:
        joint.dirty = True


def set_joint_value(joints: List[Joint], index: int, value: float) -> None:
    """Change one DOF and invalidate it together with all its descendants."""
    joints[index].value = value
    joints[index].dirty = True
    for joint in joints[index + 1:]:
        if joint.parent_index >= 0 and joints[joint.parent_index].dirty:
            joint.dirty = True


def ancestors(joints: List[Joint], index: int) -> List[int]:
    """Chain from a joint up to its root, the joint itself first."""
    chain = []
    while index >= 0:
        chain.append(index)
        index = joints[index].parent_index
    return chain


def joint_world_position(joints: List[Joint], index: int) -> np.ndarray:
    return joint_world_matrix(joints, index)[:3, 3].copy()


def joint_world_rotation(joints: List[Joint], index: int) -> np.ndarray:
    """3x3 world rotation with scale and translation stripped."""
    world = cancel_translate(cancel_scaling(joint_world_matrix(joints, index)))
    return world[:3, :3]


def joint_orientation(joints: List[Joint], index: int) -> np.ndarray:
    """World orientation of a joint as XYZ Euler angles."""
    return get_rotation_xyz(joint_world_rotation(joints, index))
