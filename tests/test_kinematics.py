"""
Tests for the forward kinematics engine.
"""

import numpy as np

from rigik.core import Bone, MixamoBone
from rigik.core.transforms import compose, mul, rot_xyz
from rigik.ik.joints import bone_to_joint_index, convert_bones_to_joints
from rigik.ik.kinematics import (
    ancestors, joint_orientation, joint_world_matrix, joint_world_position,
    joint_world_rotation, set_joint_value, update_world_matrices
)


def _bone_world(bones, index):
    chain = []
    while index >= 0:
        chain.append(bones[index].local_matrix())
        index = bones[index].parent_index
    return mul(*reversed(chain))


class TestWorldMatrices:
    """World transforms agree with composing bone transforms."""

    def test_hand_matches_bone_chain(self, humanoid):
        humanoid[MixamoBone.LEFT_ARM].rotation[:] = [0.2, -0.3, 0.9]
        humanoid[MixamoBone.LEFT_FOREARM].rotation[:] = [0.0, 0.7, 0.1]
        humanoid[MixamoBone.SPINE].scale[:] = 1.5
        joints = convert_bones_to_joints(humanoid)

        hand = bone_to_joint_index(joints, MixamoBone.LEFT_HAND)
        expected = _bone_world(humanoid, MixamoBone.LEFT_HAND)
        assert np.allclose(joint_world_matrix(joints, hand), expected, atol=1e-12)

    def test_every_bone_after_full_update(self, humanoid):
        humanoid[MixamoBone.RIGHT_UP_LEG].rotation[:] = [-0.4, 0.1, 0.2]
        joints = convert_bones_to_joints(humanoid)
        update_world_matrices(joints)

        assert not any(j.dirty for j in joints)
        for i in range(len(humanoid)):
            world = joints[bone_to_joint_index(joints, i)].world
            assert np.allclose(world, _bone_world(humanoid, i), atol=1e-12)

    def test_negative_index_is_identity(self, two_link_chain):
        joints = convert_bones_to_joints(two_link_chain)
        assert np.allclose(joint_world_matrix(joints, -1), np.eye(4))

    def test_rest_pose_tip(self, two_link_chain):
        joints = convert_bones_to_joints(two_link_chain)
        tip = bone_to_joint_index(joints, 2)
        assert np.allclose(joint_world_position(joints, tip), [0.0, 2.0, 0.0])


class TestCaching:
    """World matrices are cached until invalidated."""

    def test_stale_until_invalidated(self, two_link_chain):
        joints = convert_bones_to_joints(two_link_chain)
        tip = bone_to_joint_index(joints, 2)
        before = joint_world_position(joints, tip)

        # A direct value write does not invalidate anything
        joints[0].value = np.pi / 2
        assert np.allclose(joint_world_position(joints, tip), before)

        set_joint_value(joints, 0, np.pi / 2)
        assert np.allclose(joint_world_position(joints, tip), [0.0, 0.0, 2.0], atol=1e-12)

    def test_set_value_invalidates_descendants_only(self, two_link_chain):
        joints = convert_bones_to_joints(two_link_chain)
        update_world_matrices(joints)

        set_joint_value(joints, 3, 0.5)

        assert [j.dirty for j in joints] == [False, False, False, True, True, True, True]


class TestQueries:
    """Test ancestor chains and orientation queries."""

    def test_ancestors(self, two_link_chain):
        joints = convert_bones_to_joints(two_link_chain)
        assert ancestors(joints, 6) == [6, 5, 4, 3, 2, 1, 0]
        assert ancestors(joints, 0) == [0]
        assert ancestors(joints, -1) == []

    def test_rotated_static_root(self):
        bones = [
            Bone("root", offset=(1.0, 0.0, 0.0), rotation=(0.0, 0.0, np.pi / 2), static=True),
            Bone("child", offset=(1.0, 0.0, 0.0), parent_index=0, static=True),
        ]
        joints = convert_bones_to_joints(bones)

        assert np.allclose(joint_world_position(joints, 1), [1.0, 1.0, 0.0], atol=1e-12)
        assert np.allclose(joint_orientation(joints, 1), [0.0, 0.0, np.pi / 2], atol=1e-12)

    def test_rotation_ignores_scale(self):
        bones = [Bone("root", rotation=(0.3, 0.2, -0.1), scale=(2.0, 3.0, 0.5), static=True)]
        joints = convert_bones_to_joints(bones)
        assert np.allclose(joint_world_rotation(joints, 0), rot_xyz(0.3, 0.2, -0.1)[:3, :3])

    def test_world_matches_compose(self):
        bones = [Bone("root", offset=(1, 2, 3), rotation=(0.5, 0.1, 0.2))]
        joints = convert_bones_to_joints(bones)
        assert np.allclose(joint_world_matrix(joints, 2), compose((1, 2, 3), (0.5, 0.1, 0.2), (1, 1, 1)))
