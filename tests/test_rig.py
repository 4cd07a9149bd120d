"""
Tests for the per-frame IK rig.
"""

import numpy as np
import pytest

from rigik.core import MixamoBone
from rigik.ik import IKRig, constraints_from_config
from rigik.ik.constraints import Constraint, ConstraintType, Priority
from rigik.motion import AnimationPlayer, FixedPoseSampler, build_demo_clips


def _player(bones, config):
    player = AnimationPlayer(bones, config)
    for clip in build_demo_clips(bones):
        player.add_clip(clip)
    return player


class TestIKRig:
    """Test the scene-node to solver round trip."""

    def test_hand_reaches_target(self, config, humanoid):
        constraints = constraints_from_config(config.constraints, humanoid)
        rig = IKRig(humanoid, constraints, player=_player(humanoid, config), config=config)
        initial = rig.status()[0].error

        for _ in range(30):
            residual = rig.update(1.0 / 30.0)

        assert rig.frame_count == 30
        assert residual < 0.5 * initial
        assert rig.status()[0].error == pytest.approx(residual)

    def test_static_root_follows_animation(self, config, humanoid):
        player = _player(humanoid, config)
        rig = IKRig(humanoid, player=player, config=config)

        rig.update(0.25)

        hips = humanoid[MixamoBone.HIPS]
        assert np.allclose(hips.offset, player.node(hips.name).position)
        assert np.allclose(hips.node.position, player.node(hips.name).position)

    def test_no_constraints_plays_animation(self, config, humanoid):
        player = _player(humanoid, config)
        rig = IKRig(humanoid, player=player, config=config)

        rig.update(0.3)

        for bone in humanoid:
            node = player.node(bone.name)
            assert np.allclose(bone.rotation, node.rotation, atol=1e-9)
            assert np.allclose(bone.offset, node.position, atol=1e-9)

    def test_writes_nodes(self, config, humanoid):
        constraints = constraints_from_config(config.constraints, humanoid)
        rig = IKRig(humanoid, constraints, player=_player(humanoid, config), config=config)

        rig.update(1.0 / 30.0)

        for bone in humanoid:
            assert np.allclose(bone.node.rotation, bone.rotation)
            assert np.allclose(bone.node.position, bone.offset)

    def test_reads_nodes_each_frame(self, config, humanoid):
        rig = IKRig(humanoid, config=config)
        arm = humanoid[MixamoBone.LEFT_ARM]
        arm.node.rotation[:] = [0.0, 0.0, -0.8]

        rig.update(0.1)

        # Without a reference pose the edited node is kept
        assert np.allclose(arm.rotation, [0.0, 0.0, -0.8])

    def test_slide_root_from_config(self, config, humanoid):
        config.set("skeleton.slide_root", True)
        rig = IKRig(humanoid, config=config)

        rig.update(0.1)

        assert humanoid[0].slide and not humanoid[0].static
        assert len(rig.joints) == 6 + 3 * (len(humanoid) - 1)

    def test_static_root_by_default(self, config, humanoid):
        rig = IKRig(humanoid, config=config)
        rig.update(0.1)
        assert len(rig.joints) == 1 + 3 * (len(humanoid) - 1)

    def test_animation_disabled(self, config, humanoid):
        config.set("animation.enabled", False)
        player = _player(humanoid, config)
        rig = IKRig(humanoid, player=player, config=config)

        rig.update(0.5)

        assert all(action.time == 0.0 for action in player.actions)

    def test_debug_status(self, config, humanoid):
        config.set("app.debug", True)
        constraints = constraints_from_config(config.constraints, humanoid)
        rig = IKRig(humanoid, constraints, config=config)
        assert rig.settings.debug
        rig.update(0.1)

    def test_empty_skeleton(self, config):
        rig = IKRig([], config=config)
        assert rig.update(0.1) == 0.0
        assert rig.status() == []

    def test_set_bound_orientation(self, config, humanoid):
        cone = Constraint(ConstraintType.ORIENTATION_BOUND, MixamoBone.HEAD)
        rig = IKRig(humanoid, [cone], config=config)

        base = rig.set_bound_orientation(cone, [0.2, 0.0, 0.0])

        assert np.allclose(base, [0.2, 0.0, 0.0])
        assert np.allclose(cone.base_rot, [0.2, 0.0, 0.0])

    @pytest.mark.parametrize("kwargs", [
        {"type": ConstraintType.POSITION, "bone": MixamoBone.LEFT_HAND,
         "position": (0.45, 1.35, 0.25)},
        {"type": ConstraintType.ORIENTATION_BOUND, "bone": MixamoBone.HEAD,
         "base_rot": (0.4, 0.0, 0.0), "gamma_max": 0.0},
    ])
    def test_settles_under_fixed_reference(self, config, humanoid, kwargs):
        constraint = Constraint(**kwargs)
        sampler = FixedPoseSampler.from_bones(humanoid)
        rig = IKRig(humanoid, [constraint], config=config, sampler=sampler)

        errors = []
        for _ in range(300):
            rig.update(1.0 / 30.0)
            errors.append(rig.status()[0].error)

        tail = errors[-10:]
        assert max(tail) - min(tail) < 1e-6
        assert errors[-1] < 1e-3

    def test_low_head_bound_restores_under_animation(self, config, humanoid):
        cone = Constraint(
            ConstraintType.ORIENTATION_BOUND, MixamoBone.HEAD, priority=Priority.LOW,
            base_rot=(0.4, 0.0, 0.0), gamma_max=0.0
        )
        rig = IKRig(humanoid, [cone], player=_player(humanoid, config), config=config)

        for _ in range(200):
            rig.update(1.0 / 30.0)

        assert rig.status()[0].error < 1e-4
        assert np.allclose(humanoid[MixamoBone.HEAD].rotation, [0.4, 0.0, 0.0], atol=1e-4)
