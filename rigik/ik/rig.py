"""Per-frame IK pipeline: scene nodes -> joints -> solve -> scene nodes"""

from dataclasses import dataclass
from typing import List, Optional
import numpy as np

from rigik.core import get_logger, Config
from rigik.core.skeleton import Bone
from rigik.motion.animation import AnimationPlayer
from rigik.motion.reference_pose import ReferencePoseSampler
from .constraints import (
    Constraint, ConstraintStatus, bound_base_from_world,
    compute_reference_error, constraint_status, resolve_constraints
)
from .joints import Joint, apply_joints_to_bones, convert_bones_to_joints
from .solver import JacobianIKSolver


@dataclass
class RigSettings:
    animation: bool = True  # Advance the animation player each frame
    debug: bool = False  # Log the constraint status each frame


class IKRig:
    """
    Runs the solver once per frame on a skeleton.

    The joint list is rebuilt from the bones every frame; constraints are
    plain records that may be edited between frames.
    """

    def __init__(
        self,
        bones: List[Bone],
        constraints: Optional[List[Constraint]] = None,
        player: Optional[AnimationPlayer] = None,
        config: Optional[Config] = None,
        sampler=None
    ):
        self.logger = get_logger("ik.rig")
        self.config = config or Config()

        self.bones = bones
        self.constraints: List[Constraint] = list(constraints or [])
        self.player = player
        if sampler is None and player is not None:
            sampler = ReferencePoseSampler(player)
        self.sampler = sampler
        self.solver = JacobianIKSolver(self.config)

        self.settings = RigSettings(
            animation=bool(self.config.get("animation.enabled", True)),
            debug=bool(self.config.get("app.debug", False)),
        )
        self.joints: List[Joint] = []
        self._frame_count = 0

        if bones and self.config.get("skeleton.slide_root", False):
            self.set_slide_root(True)

        self.logger.info(
            f"Initialized IK rig ({len(bones)} bones, {len(self.constraints)} constraints)"
        )

    def update(self, delta: float) -> float:
        """
        Solve one frame.

        Args:
            delta: Seconds since the previous frame, advances the animation

        Returns:
            Remaining task residual
        """
        if not self.bones:
            return 0.0

        for bone in self.bones:
            bone.read_node()

        self.joints = convert_bones_to_joints(self.bones)
        tasks = resolve_constraints(self.joints, self.bones, self.constraints)

        if self.settings.animation and self.player is not None:
            self.player.update(delta)

        reference_error = compute_reference_error(self.joints, self.bones, self.sampler)
        residual = self.solver.solve(self.joints, tasks, reference_error)

        apply_joints_to_bones(self.joints, self.bones)
        for bone in self.bones:
            bone.write_node()

        if self.settings.debug:
            for status in self.status():
                self.logger.debug(
                    f"[{self._frame_count}] {status.name}: enabled={status.enabled} "
                    f"error={status.error:.4f}"
                )

        self._frame_count += 1
        return residual

    def set_slide_root(self, slide: bool) -> None:
        """Let the solver move the root (slide) or keep it animation-driven (static)."""
        root = self.bones[0]
        root.slide = slide
        root.static = not slide
        self.logger.info(f"Root bone {root.name!r} is now {'slide' if slide else 'static'}")

    def set_bound_orientation(self, constraint: Constraint, world_rotation) -> np.ndarray:
        """Point an orientation bound's cone at a world orientation (Euler XYZ)."""
        joints = convert_bones_to_joints(self.bones)
        return bound_base_from_world(joints, self.bones, constraint, world_rotation)

    def status(self) -> List[ConstraintStatus]:
        """Constraint report against the current bone pose."""
        joints = convert_bones_to_joints(self.bones)
        return constraint_status(joints, self.bones, self.constraints)

    @property
    def frame_count(self) -> int:
        return self._frame_count
