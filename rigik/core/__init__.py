"""Core systems - config, logging, timing, transforms, skeleton"""

from .config import Config
from .logging import setup_logging, get_logger
from .timing import FrameTimer, FrameClock, FrameData
from .skeleton import (
    Bone,
    SceneNode,
    SkeletonFrame,
    MixamoBone,
    MIXAMO_BONE_NAMES,
    MIXAMO_BONE_PARENTS,
    build_humanoid_skeleton,
    find_bone,
)

__all__ = [
    "Config", "setup_logging", "get_logger",
    "FrameTimer", "FrameClock", "FrameData",
    "Bone", "SceneNode", "SkeletonFrame",
    "MixamoBone", "MIXAMO_BONE_NAMES", "MIXAMO_BONE_PARENTS",
    "build_humanoid_skeleton", "find_bone",
]
