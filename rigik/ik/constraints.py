"""Constraints and the per-frame constraint resolver.

Constraints are plain data records authored in config (or moved around by an
interactive layer between frames). Each frame the resolver maps the enabled
ones to tasks on the freshly built joint list and measures the current
state; it also computes the reference-pose error that the solver uses as
its secondary objective.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, List, Optional
import numpy as np

from rigik.core import get_logger
from rigik.core.skeleton import Bone, find_bone
from rigik.core.transforms import get_rotation_xyz, rot_wrap, rot_xyz, rotation_vector
from .joints import Joint, JointType, bone_to_joint_index
from .kinematics import joint_orientation, joint_world_position, joint_world_rotation

logger = get_logger("ik.constraints")


class Priority(IntEnum):
    LOW = 0
    HIGH = 1


class ConstraintType(IntEnum):
    POSITION = 0
    ORIENTATION = 1
    ORIENTATION_BOUND = 2


PRIORITY_NAMES = {
    "high": Priority.HIGH,
    "low": Priority.LOW,
}

CONSTRAINT_TYPE_NAMES = {
    "position": ConstraintType.POSITION,
    "orientation": ConstraintType.ORIENTATION,
    "orientation_bound": ConstraintType.ORIENTATION_BOUND,
}


def _optional_vec3(value) -> Optional[np.ndarray]:
    if value is None:
        return None
    return np.array(value, dtype=np.float64).reshape(3)


@dataclass
class Constraint:
    """A user goal on one bone."""
    type: ConstraintType
    bone: int
    priority: Priority = Priority.HIGH
    enabled: bool = True
    position: Optional[np.ndarray] = None  # POSITION: world target
    rotation: Optional[np.ndarray] = None  # ORIENTATION: world Euler XYZ
    base_rot: Optional[np.ndarray] = None  # ORIENTATION_BOUND: Euler XYZ in the parent bone frame
    gamma_max: float = np.pi / 4  # ORIENTATION_BOUND: cone half-angle
    name: str = ""

    def __post_init__(self):
        self.position = _optional_vec3(self.position)
        self.rotation = _optional_vec3(self.rotation)
        self.base_rot = _optional_vec3(self.base_rot)
        if self.type == ConstraintType.POSITION and self.position is None:
            self.position = np.zeros(3)
        elif self.type == ConstraintType.ORIENTATION and self.rotation is None:
            self.rotation = np.zeros(3)
        elif self.type == ConstraintType.ORIENTATION_BOUND and self.base_rot is None:
            self.base_rot = np.zeros(3)
        if not self.name:
            self.name = f"{self.type.name.lower()}[{self.bone}]"


@dataclass
class Task:
    """A constraint resolved against this frame's joint list."""
    constraint: Constraint
    joint: int  # -1 when the bone has no joint, the task is then inert
    parent_joint: int = -1  # Parent bone's last joint, ORIENTATION_BOUND only

    @property
    def type(self) -> ConstraintType:
        return self.constraint.type

    @property
    def priority(self) -> Priority:
        return self.constraint.priority

    @property
    def is_resolved(self) -> bool:
        return self.joint >= 0


@dataclass
class ConstraintStatus:
    """Debug snapshot of one constraint."""
    name: str
    type: ConstraintType
    priority: Priority
    enabled: bool
    joint: int
    target: Optional[np.ndarray]
    current: Optional[np.ndarray]
    error: float


def _make_task(joints: List[Joint], bones: List[Bone], constraint: Constraint) -> Task:
    joint = bone_to_joint_index(joints, constraint.bone)
    parent_joint = -1
    if constraint.type == ConstraintType.ORIENTATION_BOUND and 0 <= constraint.bone < len(bones):
        parent_bone = bones[constraint.bone].parent_index
        if parent_bone >= 0:
            parent_joint = bone_to_joint_index(joints, parent_bone)
    return Task(constraint=constraint, joint=joint, parent_joint=parent_joint)


def resolve_constraints(
    joints: List[Joint],
    bones: List[Bone],
    constraints: Iterable[Constraint]
) -> List[Task]:
    """
    Map the enabled constraints onto the current joint list.

    Disabled constraints are left out entirely. A constraint whose bone has
    no joint still yields a task, with ``joint == -1``; the solver skips it.
    """
    return [
        _make_task(joints, bones, constraint)
        for constraint in constraints
        if constraint.enabled
    ]


def bound_reference_rotation(joints: List[Joint], task: Task) -> np.ndarray:
    """World 3x3 reference orientation of an orientation bound."""
    parent = np.eye(3)
    if task.parent_joint >= 0:
        parent = joint_world_rotation(joints, task.parent_joint)
    return parent @ rot_xyz(*task.constraint.base_rot)[:3, :3]


def bound_base_from_world(
    joints: List[Joint],
    bones: List[Bone],
    constraint: Constraint,
    world_rotation: np.ndarray
) -> np.ndarray:
    """
    Express a world orientation in the parent bone frame and store it as
    the bound's ``base_rot`` (what a rotate gizmo on the cone produces).

    Returns:
        The new base_rot
    """
    task = _make_task(joints, bones, constraint)
    parent = np.eye(3)
    if task.parent_joint >= 0:
        parent = joint_world_rotation(joints, task.parent_joint)
    local = parent.T @ rot_xyz(*world_rotation)[:3, :3]
    constraint.base_rot = get_rotation_xyz(local)
    return constraint.base_rot


def measure(joints: List[Joint], task: Task) -> Optional[np.ndarray]:
    """Current world position or Euler orientation of the task's joint."""
    if not task.is_resolved:
        return None
    if task.type == ConstraintType.POSITION:
        return joint_world_position(joints, task.joint)
    return joint_orientation(joints, task.joint)


def task_target(joints: List[Joint], task: Task) -> np.ndarray:
    """World-space target of a task (bound: the cone axis orientation)."""
    constraint = task.constraint
    if task.type == ConstraintType.POSITION:
        return constraint.position.copy()
    if task.type == ConstraintType.ORIENTATION:
        return constraint.rotation.copy()
    return get_rotation_xyz(bound_reference_rotation(joints, task))


def task_error(joints: List[Joint], task: Task) -> np.ndarray:
    """
    Error of a task as a 3-vector in world space.

    Positions give ``target - current``; orientations give the rotation
    vector taking the current orientation to the target. An orientation
    bound is zero inside its cone and pulls back to the cone surface
    outside of it.
    """
    if not task.is_resolved:
        return np.zeros(3)

    constraint = task.constraint
    if task.type == ConstraintType.POSITION:
        return constraint.position - joint_world_position(joints, task.joint)

    current = joint_world_rotation(joints, task.joint)
    if task.type == ConstraintType.ORIENTATION:
        target = rot_xyz(*constraint.rotation)[:3, :3]
        return rotation_vector(target @ current.T)

    relative = rotation_vector(bound_reference_rotation(joints, task) @ current.T)
    gamma = float(np.linalg.norm(relative))
    gamma_max = max(float(constraint.gamma_max), 0.0)
    if gamma <= gamma_max:
        return np.zeros(3)
    return relative * ((gamma - gamma_max) / gamma)


def compute_reference_error(joints: List[Joint], bones: List[Bone], sampler) -> np.ndarray:
    """
    Per-joint distance to the reference (animated) pose.

    Revolution errors are wrapped into (-pi, pi] so the pull always takes the
    short way round. Static bones are snapped to the reference pose instead,
    and non-slide bones take their translation from it.

    Args:
        joints: Joint list of the current frame
        bones: Bone list (snapped bones are updated in place)
        sampler: Object with ``sample(bone)`` returning a reference sample
            (``position``, ``rotation``) or None

    Returns:
        Array with one entry per joint, 0 for static joints
    """
    errors = np.zeros(len(joints), dtype=np.float64)
    if sampler is None:
        return errors

    samples = {}
    for i, joint in enumerate(joints):
        if joint.bone_index not in samples:
            samples[joint.bone_index] = sampler.sample(bones[joint.bone_index])
        sample = samples[joint.bone_index]
        if sample is None:
            continue

        bone = bones[joint.bone_index]
        if joint.type == JointType.REVOLUTION:
            if not bone.slide and joint.axis == 0:
                bone.offset = np.array(sample.position, dtype=np.float64)
                joint.offset = bone.offset.copy()
                joint.dirty = True
            errors[i] = rot_wrap(sample.rotation[joint.axis] - joint.value)
        elif joint.type == JointType.SLIDE:
            errors[i] = sample.position[joint.axis] - joint.value
        else:
            bone.offset = np.array(sample.position, dtype=np.float64)
            bone.rotation = np.array(sample.rotation, dtype=np.float64)
            joint.offset = bone.offset.copy()
            joint.rotation = bone.rotation.copy()
            joint.dirty = True

    return errors


def constraints_from_config(entries: Iterable[dict], bones: List[Bone]) -> List[Constraint]:
    """
    Build constraints from config entries.

    Each entry has ``type`` and ``bone`` (index or bone name) plus optional
    ``name``, ``priority``, ``enabled`` and the payload for its type
    (``position``, ``rotation``, ``base_rot``/``gamma_max``).

    Raises:
        ValueError: on an unknown type or priority, or a missing bone
    """
    constraints = []
    for entry in entries:
        type_name = str(entry.get("type", "")).lower()
        if type_name not in CONSTRAINT_TYPE_NAMES:
            raise ValueError(f"Unknown constraint type: {entry.get('type')!r}")
        priority_name = str(entry.get("priority", "high")).lower()
        if priority_name not in PRIORITY_NAMES:
            raise ValueError(f"Unknown constraint priority: {entry.get('priority')!r}")
        if "bone" not in entry:
            raise ValueError(f"Constraint entry without bone: {entry!r}")

        bone = entry["bone"]
        if isinstance(bone, str):
            bone_index = find_bone(bones, bone)
            if bone_index < 0:
                logger.warning(f"Constraint bone {bone!r} not in skeleton, constraint is inert")
        else:
            bone_index = int(bone)

        constraints.append(Constraint(
            type=CONSTRAINT_TYPE_NAMES[type_name],
            bone=bone_index,
            priority=PRIORITY_NAMES[priority_name],
            enabled=bool(entry.get("enabled", True)),
            position=entry.get("position"),
            rotation=entry.get("rotation"),
            base_rot=entry.get("base_rot"),
            gamma_max=float(entry.get("gamma_max", np.pi / 4)),
            name=entry.get("name", ""),
        ))

    logger.debug(f"Loaded {len(constraints)} constraints from config")
    return constraints


def constraint_status(
    joints: List[Joint],
    bones: List[Bone],
    constraints: Iterable[Constraint]
) -> List[ConstraintStatus]:
    """Target, current value and error of every constraint, enabled or not."""
    report = []
    for constraint in constraints:
        task = _make_task(joints, bones, constraint)
        resolved = task.is_resolved
        report.append(ConstraintStatus(
            name=constraint.name,
            type=constraint.type,
            priority=constraint.priority,
            enabled=constraint.enabled,
            joint=task.joint,
            target=task_target(joints, task) if resolved else None,
            current=measure(joints, task),
            error=float(np.linalg.norm(task_error(joints, task))) if resolved else 0.0,
        ))
    return report
