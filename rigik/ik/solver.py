"""Inverse Kinematics Solver - priority-weighted Jacobian transpose"""

from typing import Dict, List, Optional, Tuple
import numpy as np

from rigik.core import get_logger, Config, FrameTimer
from rigik.core.transforms import normalize
from .constraints import ConstraintType, Priority, Task, task_error
from .joints import Joint, JointType
from .kinematics import ancestors, mark_dirty, update_world_matrices


DEFAULT_ITERATIONS = 8
DEFAULT_STEP_SIZE = 1.0 / 8.0
DEFAULT_PRIORITY_WEIGHTS = {
    Priority.HIGH: 2.0,
    Priority.LOW: 0.5,
}
DEFAULT_REFERENCE_WEIGHT = 1.0
DEFAULT_DRIVEN_THRESHOLD = 1e-4


def jacobian_column(
    joints: List[Joint],
    index: int,
    target_position: np.ndarray
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Sensitivity of a target point and frame to one DOF.

    World matrices must be up to date.

    Returns:
        (linear, angular) 3-vectors: d(position)/dq and d(orientation)/dq
    """
    joint = joints[index]
    world = joint.world
    if joint.type == JointType.REVOLUTION:
        # The joint's own rotation leaves its axis column unchanged
        axis = normalize(world[:3, joint.axis])
        return np.cross(axis, target_position - world[:3, 3]), axis
    if joint.type == JointType.SLIDE:
        return world[:3, joint.axis].copy(), np.zeros(3)
    return np.zeros(3), np.zeros(3)


def task_residual(joints: List[Joint], tasks: List[Task]) -> float:
    """Sum of the error norms of all resolvable tasks."""
    mark_dirty(joints)
    update_world_matrices(joints)
    return float(sum(
        np.linalg.norm(task_error(joints, task))
        for task in tasks if task.is_resolved
    ))


def _bounds_outside_at_reference(
    joints: List[Joint],
    bounds: List[Task],
    reference_error: np.ndarray
) -> List[bool]:
    """Whether each bound is violated once every DOF sits on the reference pose."""
    values = [joint.value for joint in joints]
    for joint, error in zip(joints, reference_error):
        if joint.is_dof:
            joint.value += error
    mark_dirty(joints)
    update_world_matrices(joints)

    outside = [bool(task_error(joints, task).any()) for task in bounds]

    for joint, value in zip(joints, values):
        joint.value = value
    mark_dirty(joints)
    return outside


def driven_mask(
    joints: List[Joint],
    tasks: List[Task],
    reference_error: np.ndarray,
    weights: Dict[Priority, float],
    threshold: float = DEFAULT_DRIVEN_THRESHOLD
) -> np.ndarray:
    """
    DOFs owned by a task, which therefore ignore the reference pose.

    A DOF is driven when the weighted sensitivity of the tasks reaching it,
    ``sum(weight * |column|)``, is at least ``threshold``. Sensitivity does
    not vanish as a task converges, so the mask stays put while the error
    shrinks. Position and orientation tasks always count. An orientation
    bound counts when the reference pose lies outside its cone; otherwise
    the animation already respects it and keeps driving the chain.
    """
    count = len(joints)
    dof_mask = np.array([joint.is_dof for joint in joints], dtype=bool)
    if not tasks:
        return np.zeros(count, dtype=bool)

    bounds = [task for task in tasks if task.type == ConstraintType.ORIENTATION_BOUND]
    inside = set()
    if bounds:
        outside = _bounds_outside_at_reference(joints, bounds, reference_error)
        inside = {id(task) for task, violated in zip(bounds, outside) if not violated}

    mark_dirty(joints)
    update_world_matrices(joints)
    sensitivity = np.zeros(count)
    for task in tasks:
        if id(task) in inside:
            continue

        weight = weights[task.priority]
        positional = task.type == ConstraintType.POSITION
        target_position = joints[task.joint].world[:3, 3]
        for k in ancestors(joints, task.joint):
            if not dof_mask[k]:
                continue
            linear, angular = jacobian_column(joints, k, target_position)
            sensitivity[k] += weight * float(np.linalg.norm(linear if positional else angular))

    return dof_mask & (sensitivity >= threshold)


def solve_jacobian_ik(
    joints: List[Joint],
    tasks: List[Task],
    iterations: int = DEFAULT_ITERATIONS,
    step_size: float = DEFAULT_STEP_SIZE,
    reference_error: Optional[np.ndarray] = None,
    weights: Optional[Dict[Priority, float]] = None,
    reference_weight: float = DEFAULT_REFERENCE_WEIGHT,
    driven_threshold: float = DEFAULT_DRIVEN_THRESHOLD
) -> None:
    """
    Move every joint value toward the tasks and the reference pose.

    Runs exactly ``iterations`` damped gradient steps. Each step sums
    ``weight * J^T e`` over the tasks, using only the ancestors of each
    task's joint, then adds ``reference_weight * reference_error`` on every
    DOF outside driven_mask(), and moves the values by ``step_size`` times
    that update. The mask is taken once per solve.

    The reference error is fixed for the whole solve, so with
    ``iterations * step_size * reference_weight == 1`` every DOF no task
    reaches ends exactly on the reference pose.

    Args:
        joints: Joint list, values are updated in place
        tasks: Resolved tasks; unresolved or disabled ones are ignored
        iterations: Number of steps, no early exit
        step_size: Scale of each step
        reference_error: Per-joint distance to the reference pose
        weights: Per-priority task weights, HIGH must outweigh LOW
        reference_weight: Weight of the reference-pose pull
        driven_threshold: Weighted task sensitivity at or above which a DOF
            ignores the reference pose
    """
    weights = {**DEFAULT_PRIORITY_WEIGHTS, **(weights or {})}
    count = len(joints)
    if count == 0 or iterations <= 0:
        return

    if reference_error is None:
        reference_error = np.zeros(count)
    reference_error = np.asarray(reference_error, dtype=np.float64)
    dof_mask = np.array([joint.is_dof for joint in joints], dtype=bool)
    active = [task for task in tasks if task.is_resolved and task.constraint.enabled]

    follow = dof_mask & ~driven_mask(joints, active, reference_error, weights, driven_threshold)
    pull = np.where(follow, reference_weight * reference_error, 0.0)

    for _ in range(iterations):
        mark_dirty(joints)
        update_world_matrices(joints)

        update = pull.copy()

        for task in active:
            error = task_error(joints, task)
            if not error.any():
                continue

            weight = weights[task.priority]
            positional = task.type == ConstraintType.POSITION
            target_position = joints[task.joint].world[:3, 3]

            for k in ancestors(joints, task.joint):
                if not dof_mask[k]:
                    continue
                linear, angular = jacobian_column(joints, k, target_position)
                column = linear if positional else angular
                update[k] += weight * float(column @ error)

        for k in np.flatnonzero(update):
            joints[k].value += step_size * update[k]

        mark_dirty(joints)


class JacobianIKSolver:
    """
    Config-driven front end for solve_jacobian_ik().

    Reads the ``ik`` section (checked by Config.validate_ik()): iterations,
    step_size, priority_weights, reference_weight and driven_threshold.
    """

    def __init__(self, config: Optional[Config] = None):
        self.logger = get_logger("ik.solver")
        self.config = config or Config()
        self.config.validate_ik()

        ik_config = self.config.ik or {}
        weights = ik_config.get("priority_weights", {}) or {}

        self._iterations = int(ik_config.get("iterations", DEFAULT_ITERATIONS))
        self._step_size = float(ik_config.get("step_size", DEFAULT_STEP_SIZE))
        self._weights = {
            Priority.HIGH: float(weights.get("high", DEFAULT_PRIORITY_WEIGHTS[Priority.HIGH])),
            Priority.LOW: float(weights.get("low", DEFAULT_PRIORITY_WEIGHTS[Priority.LOW])),
        }
        self._reference_weight = float(
            ik_config.get("reference_weight", DEFAULT_REFERENCE_WEIGHT))
        self._driven_threshold = float(
            ik_config.get("driven_threshold", DEFAULT_DRIVEN_THRESHOLD))

        if self._weights[Priority.HIGH] <= self._weights[Priority.LOW]:
            raise ValueError(
                "ik.priority_weights.high must be greater than ik.priority_weights.low"
            )

        self._timer = FrameTimer()
        self._last_residual = 0.0

        self.logger.info(
            f"Initialized IK solver (iterations={self._iterations}, "
            f"step={self._step_size:.4f}, high={self._weights[Priority.HIGH]}, "
            f"low={self._weights[Priority.LOW]})"
        )

    def solve(
        self,
        joints: List[Joint],
        tasks: List[Task],
        reference_error: Optional[np.ndarray] = None
    ) -> float:
        """
        Solve in place.

        Returns:
            Remaining task residual (sum of error norms)
        """
        self._timer.start()
        solve_jacobian_ik(
            joints, tasks,
            iterations=self._iterations,
            step_size=self._step_size,
            reference_error=reference_error,
            weights=self._weights,
            reference_weight=self._reference_weight,
            driven_threshold=self._driven_threshold,
        )
        elapsed = self._timer.stop()

        self._last_residual = task_residual(joints, tasks)
        self.logger.debug(
            f"Solved {len(joints)} joints, {len(tasks)} tasks in "
            f"{elapsed * 1000:.2f} ms (residual={self._last_residual:.4f})"
        )
        return self._last_residual

    @property
    def iterations(self) -> int:
        return self._iterations

    @property
    def step_size(self) -> float:
        return self._step_size

    @property
    def weights(self) -> Dict[Priority, float]:
        return dict(self._weights)

    @property
    def last_residual(self) -> float:
        return self._last_residual

    @property
    def average_solve_time(self) -> float:
        return self._timer.average_frame_time

    @property
    def max_solve_time(self) -> float:
        return self._timer.max_frame_time
