"""Reference pose sampling - the animated pose the IK pulls toward"""

from dataclasses import dataclass
from typing import Dict, List, Optional
import numpy as np

from rigik.core.skeleton import Bone
from .animation import AnimationPlayer


@dataclass
class ReferenceSample:
    """Raw local transform of a bone in the reference pose."""
    position: np.ndarray  # (3,)
    rotation: np.ndarray  # (3,) Euler XYZ, not wrapped


class ReferencePoseSampler:
    """Reads the animation player's node for a bone, matched by name."""

    def __init__(self, player: AnimationPlayer):
        self.player = player

    def sample(self, bone: Bone) -> Optional[ReferenceSample]:
        node = self.player.node(bone.name)
        if node is None:
            return None
        return ReferenceSample(node.position.copy(), node.rotation.copy())

    def sample_all(self, bones: List[Bone]) -> List[Optional[ReferenceSample]]:
        return [self.sample(bone) for bone in bones]


class FixedPoseSampler:
    """Reference pose given directly as a bone name -> sample mapping."""

    def __init__(self, poses: Optional[Dict[str, ReferenceSample]] = None):
        self.poses: Dict[str, ReferenceSample] = dict(poses or {})

    @classmethod
    def from_bones(cls, bones: List[Bone]) -> "FixedPoseSampler":
        """Use the bones' current local transforms as the reference pose."""
        return cls({
            bone.name: ReferenceSample(bone.offset.copy(), bone.rotation.copy())
            for bone in bones
        })

    def set(self, name: str, position, rotation) -> None:
        self.poses[name] = ReferenceSample(
            np.array(position, dtype=np.float64), np.array(rotation, dtype=np.float64)
        )

    def sample(self, bone: Bone) -> Optional[ReferenceSample]:
        sample = self.poses.get(bone.name)
        if sample is None:
            return None
        return ReferenceSample(sample.position.copy(), sample.rotation.copy())
