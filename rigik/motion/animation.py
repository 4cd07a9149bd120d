"""Animation clips and the time-advanced animation player.

The player drives its own copy of the skeleton (one SceneNode per bone, the
hidden "animation" skeleton); the IK rig samples that copy as its reference
pose, so the visible skeleton is free to deviate from it.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union
import numpy as np
import yaml

from rigik.core import get_logger, Config
from rigik.core.skeleton import Bone, SceneNode, MixamoBone, MIXAMO_BONE_NAMES
from rigik.core.transforms import (
    euler_to_quaternion, normalize, quaternion_slerp, quaternion_to_euler
)


@dataclass
class BoneTrack:
    """Keyframes of one bone: positions and/or XYZ Euler rotations."""
    bone: str
    times: np.ndarray
    positions: Optional[np.ndarray] = None  # (N, 3)
    rotations: Optional[np.ndarray] = None  # (N, 3) Euler XYZ

    def __post_init__(self):
        self.times = np.asarray(self.times, dtype=np.float64).reshape(-1)
        if self.times.size == 0:
            raise ValueError(f"Track {self.bone!r} has no keyframes")
        if np.any(np.diff(self.times) < 0):
            raise ValueError(f"Track {self.bone!r} keyframe times are not sorted")

        if self.positions is not None:
            self.positions = np.asarray(self.positions, dtype=np.float64).reshape(-1, 3)
            if len(self.positions) != len(self.times):
                raise ValueError(f"Track {self.bone!r}: positions/times length mismatch")
        if self.rotations is not None:
            self.rotations = np.asarray(self.rotations, dtype=np.float64).reshape(-1, 3)
            if len(self.rotations) != len(self.times):
                raise ValueError(f"Track {self.bone!r}: rotations/times length mismatch")
            self._quaternions = np.array([euler_to_quaternion(r) for r in self.rotations])

    def _locate(self, t: float):
        """Keyframe pair around ``t`` and the blend factor, clamped at the ends."""
        times = self.times
        if t <= times[0] or len(times) == 1:
            return 0, 0, 0.0
        if t >= times[-1]:
            last = len(times) - 1
            return last, last, 0.0
        i1 = int(np.searchsorted(times, t, side="right"))
        i0 = i1 - 1
        span = times[i1] - times[i0]
        alpha = (t - times[i0]) / span if span > 0 else 0.0
        return i0, i1, alpha

    def sample_position(self, t: float) -> Optional[np.ndarray]:
        if self.positions is None:
            return None
        i0, i1, alpha = self._locate(t)
        return (1.0 - alpha) * self.positions[i0] + alpha * self.positions[i1]

    def sample_rotation(self, t: float) -> Optional[np.ndarray]:
        """Rotation at ``t`` as a quaternion."""
        if self.rotations is None:
            return None
        i0, i1, alpha = self._locate(t)
        if i0 == i1:
            return self._quaternions[i0].copy()
        return quaternion_slerp(self._quaternions[i0], self._quaternions[i1], alpha)

    def to_dict(self) -> dict:
        data = {"times": self.times.tolist()}
        if self.positions is not None:
            data["positions"] = self.positions.tolist()
        if self.rotations is not None:
            data["rotations"] = self.rotations.tolist()
        return data


@dataclass
class AnimationClip:
    """Container for animation data."""
    name: str
    duration: float
    tracks: Dict[str, BoneTrack] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "AnimationClip":
        tracks = {
            bone: BoneTrack(
                bone=bone,
                times=track["times"],
                positions=track.get("positions"),
                rotations=track.get("rotations"),
            )
            for bone, track in (data.get("tracks") or {}).items()
        }
        duration = data.get("duration")
        if duration is None:
            duration = max((float(t.times[-1]) for t in tracks.values()), default=0.0)
        return cls(name=data.get("name", "clip"), duration=float(duration), tracks=tracks)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "duration": self.duration,
            "tracks": {bone: track.to_dict() for bone, track in self.tracks.items()},
        }


def load_clip(path: Union[str, Path]) -> AnimationClip:
    """Load a clip from a .json or .yaml/.yml file."""
    path = Path(path)
    suffix = path.suffix.lower()
    with open(path, "r") as f:
        if suffix == ".json":
            data = json.load(f)
        elif suffix in (".yaml", ".yml"):
            data = yaml.safe_load(f)
        else:
            raise ValueError(f"Unsupported clip format: {path.suffix}")
    if not isinstance(data, dict):
        raise ValueError(f"Clip file {path} does not contain a mapping")
    return AnimationClip.from_dict(data)


def save_clip(clip: AnimationClip, path: Union[str, Path]) -> Path:
    path = Path(path)
    with open(path, "w") as f:
        if path.suffix.lower() == ".json":
            json.dump(clip.to_dict(), f, indent=2)
        else:
            yaml.dump(clip.to_dict(), f, default_flow_style=False)
    return path


@dataclass
class AnimationAction:
    """A clip being played with its own time and blend weight."""
    clip: AnimationClip
    weight: float = 1.0
    time: float = 0.0
    enabled: bool = True
    loop: bool = True

    def advance(self, delta: float) -> None:
        duration = self.clip.duration
        if duration <= 0:
            self.time = 0.0
            return
        self.time += delta
        if self.loop:
            self.time %= duration
        else:
            self.time = min(max(self.time, 0.0), duration)


class AnimationPlayer:
    """
    Plays weighted clips on a hidden copy of the skeleton.

    Blending per bone: weighted positions and sign-aligned weighted
    quaternions; when the weights of the actions animating a bone sum to
    less than 1 the rest pose fills the remainder.
    """

    def __init__(self, bones: List[Bone], config: Optional[Config] = None):
        self.logger = get_logger("motion.animation")
        self.config = config or Config()

        anim_config = self.config.animation

        self.time_scale = float(anim_config.get("time_scale", 1.0))
        self._default_weights: Dict[str, float] = dict(anim_config.get("weights", {}) or {})

        self._rest: Dict[str, SceneNode] = {
            bone.name: SceneNode(bone.name, bone.offset.copy(),
                                 bone.rotation.copy(), bone.scale.copy())
            for bone in bones
        }
        self._rest_quaternions = {
            name: euler_to_quaternion(node.rotation) for name, node in self._rest.items()
        }
        self.nodes: Dict[str, SceneNode] = {
            name: node.copy() for name, node in self._rest.items()
        }
        self.actions: List[AnimationAction] = []

        self.logger.info(
            f"Initialized animation player ({len(self.nodes)} nodes, "
            f"time_scale={self.time_scale})"
        )

    def add_clip(self, clip: AnimationClip, weight: Optional[float] = None) -> AnimationAction:
        """Start playing a clip. Weight defaults to ``animation.weights.<name>``, else 1."""
        if weight is None:
            weight = float(self._default_weights.get(clip.name, 1.0))
        action = AnimationAction(clip=clip, weight=weight)
        self.actions.append(action)

        unknown = [name for name in clip.tracks if name not in self.nodes]
        if unknown:
            self.logger.warning(f"Clip {clip.name!r} animates unknown bones: {unknown}")
        self.logger.info(f"Playing clip {clip.name!r} (weight={weight:.2f}, "
                         f"duration={clip.duration:.2f}s)")
        return action

    def action(self, name: str) -> Optional[AnimationAction]:
        for action in self.actions:
            if action.clip.name == name:
                return action
        return None

    def set_weight(self, name: str, weight: float) -> float:
        """Set the blend weight of a playing clip (clamped to [0, 1])."""
        action = self.action(name)
        if action is None:
            raise KeyError(f"No clip named {name!r} is playing")
        action.enabled = True
        action.weight = float(np.clip(weight, 0.0, 1.0))
        return action.weight

    def node(self, name: str) -> Optional[SceneNode]:
        return self.nodes.get(name)

    def update(self, delta: float) -> None:
        """Advance every action by ``delta * time_scale`` and pose the nodes."""
        for action in self.actions:
            if action.enabled:
                action.advance(delta * self.time_scale)
        self._apply()

    def _apply(self) -> None:
        for name, node in self.nodes.items():
            rest = self._rest[name]
            rest_quat = self._rest_quaternions[name]

            total = 0.0
            position = np.zeros(3)
            quaternion = np.zeros(4)

            for action in self.actions:
                if not action.enabled or action.weight <= 0:
                    continue
                track = action.clip.tracks.get(name)
                if track is None:
                    continue

                w = action.weight
                sampled_position = track.sample_position(action.time)
                sampled_quat = track.sample_rotation(action.time)
                if sampled_position is None:
                    sampled_position = rest.position
                if sampled_quat is None:
                    sampled_quat = rest_quat
                if np.dot(sampled_quat, rest_quat) < 0:
                    sampled_quat = -sampled_quat

                position += w * sampled_position
                quaternion += w * sampled_quat
                total += w

            if total <= 0:
                node.position[:] = rest.position
                node.rotation[:] = rest.rotation
                continue

            if total < 1.0:
                position += (1.0 - total) * rest.position
                quaternion += (1.0 - total) * rest_quat
                total = 1.0

            node.position[:] = position / total
            node.rotation[:] = quaternion_to_euler(normalize(quaternion))


def _sine_track(
    bone: str,
    rest_rotation: np.ndarray,
    axis: int,
    amplitude: float,
    duration: float,
    bias: float = 0.0,
    samples: int = 16
) -> BoneTrack:
    times = np.linspace(0.0, duration, samples + 1)
    rotations = np.tile(rest_rotation, (len(times), 1))
    rotations[:, axis] += bias + amplitude * np.sin(2.0 * np.pi * times / duration)
    return BoneTrack(bone=bone, times=times, rotations=rotations)


def build_demo_clips(bones: List[Bone]) -> List[AnimationClip]:
    """
    Procedural "idle" and "wave" clips for the humanoid rig.

    Bones missing from ``bones`` are skipped.
    """
    by_name = {bone.name: bone for bone in bones}

    def rest_of(bone_id: MixamoBone) -> Optional[Bone]:
        return by_name.get(MIXAMO_BONE_NAMES[bone_id])

    idle = AnimationClip(name="idle", duration=2.0)
    hips = rest_of(MixamoBone.HIPS)
    if hips is not None:
        times = np.linspace(0.0, idle.duration, 17)
        positions = np.tile(hips.offset, (len(times), 1))
        positions[:, 1] += 0.02 * np.sin(2.0 * np.pi * times / idle.duration)
        idle.tracks[hips.name] = BoneTrack(
            bone=hips.name, times=times, positions=positions,
            rotations=np.tile(hips.rotation, (len(times), 1))
        )
    for bone_id, axis, amplitude, bias in (
        (MixamoBone.SPINE1, 2, 0.05, 0.0),
        (MixamoBone.LEFT_ARM, 2, 0.05, -1.2),
        (MixamoBone.RIGHT_ARM, 2, 0.05, 1.2),
    ):
        bone = rest_of(bone_id)
        if bone is not None:
            idle.tracks[bone.name] = _sine_track(
                bone.name, bone.rotation, axis, amplitude, idle.duration, bias)

    wave = AnimationClip(name="wave", duration=1.0)
    for bone_id, axis, amplitude, bias in (
        (MixamoBone.RIGHT_ARM, 2, 0.1, -1.0),
        (MixamoBone.RIGHT_FOREARM, 2, 0.4, -0.5),
    ):
        bone = rest_of(bone_id)
        if bone is not None:
            wave.tracks[bone.name] = _sine_track(
                bone.name, bone.rotation, axis, amplitude, wave.duration, bias)

    return [idle, wave]
