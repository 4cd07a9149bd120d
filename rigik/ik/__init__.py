"""Inverse kinematics module"""

from .joints import (
    Joint, JointType, apply_joints_to_bones, bone_to_joint_index, convert_bones_to_joints,
)
from .kinematics import (
    joint_local_matrix, joint_orientation, joint_world_matrix, joint_world_position,
    update_world_matrices,
)
from .constraints import (
    Constraint, ConstraintStatus, ConstraintType, Priority, Task,
    compute_reference_error, constraints_from_config, resolve_constraints,
)
from .solver import JacobianIKSolver, solve_jacobian_ik
from .rig import IKRig, RigSettings

__all__ = [
    "Joint", "JointType", "apply_joints_to_bones", "bone_to_joint_index",
    "convert_bones_to_joints",
    "joint_local_matrix", "joint_orientation", "joint_world_matrix",
    "joint_world_position", "update_world_matrices",
    "Constraint", "ConstraintStatus", "ConstraintType", "Priority", "Task",
    "compute_reference_error", "constraints_from_config", "resolve_constraints",
    "JacobianIKSolver", "solve_jacobian_ik",
    "IKRig", "RigSettings",
]
