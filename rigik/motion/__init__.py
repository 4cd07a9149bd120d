"""Motion module - animation playback and reference pose sampling"""

from .animation import (
    AnimationAction, AnimationClip, AnimationPlayer, BoneTrack,
    build_demo_clips, load_clip, save_clip,
)
from .reference_pose import FixedPoseSampler, ReferencePoseSampler, ReferenceSample

__all__ = [
    "AnimationAction", "AnimationClip", "AnimationPlayer", "BoneTrack",
    "build_demo_clips", "load_clip", "save_clip",
    "FixedPoseSampler", "ReferencePoseSampler", "ReferenceSample",
]
