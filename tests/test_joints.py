"""
Tests for the kinematic chain builder.
"""

import numpy as np
import pytest

from rigik.core import Bone
from rigik.core.transforms import mul
from rigik.ik.joints import (
    JointType, apply_joints_to_bones, bone_joint_indices, bone_to_joint_index,
    convert_bones_to_joints
)
from rigik.ik.kinematics import joint_local_matrix


def _chain_matrix(joints, indices):
    return mul(*[joint_local_matrix(joints[i]) for i in indices])


class TestConvertBonesToJoints:
    """Test bone to joint decomposition."""

    def test_joint_counts(self):
        bones = [
            Bone("static", static=True),
            Bone("regular", parent_index=0),
            Bone("slide", parent_index=1, slide=True),
        ]
        joints = convert_bones_to_joints(bones)

        assert len(joints) == 1 + 3 + 6
        assert [j.type for j in joints[:1]] == [JointType.STATIC]
        assert [j.type for j in joints[1:4]] == [JointType.REVOLUTION] * 3
        assert [j.type for j in joints[4:7]] == [JointType.SLIDE] * 3
        assert [j.type for j in joints[7:]] == [JointType.REVOLUTION] * 3
        assert [j.axis for j in joints[1:4]] == [0, 1, 2]
        assert [j.axis for j in joints[4:7]] == [0, 1, 2]

    def test_values_come_from_bone(self):
        bones = [Bone("b", offset=(1.0, 2.0, 3.0), rotation=(0.1, 0.2, 0.3), slide=True)]
        joints = convert_bones_to_joints(bones)
        assert [j.value for j in joints] == pytest.approx([1.0, 2.0, 3.0, 0.1, 0.2, 0.3])

    def test_fragments_on_chain_edges(self):
        """Offset rides on the X revolution, scale on the Z revolution."""
        bones = [Bone("b", offset=(1.0, 2.0, 3.0), scale=(2.0, 2.0, 2.0))]
        joints = convert_bones_to_joints(bones)
        assert np.allclose(joints[0].offset, [1.0, 2.0, 3.0])
        assert np.allclose(joints[1].offset, 0.0)
        assert np.allclose(joints[2].offset, 0.0)
        assert np.allclose(joints[0].scale, 1.0)
        assert np.allclose(joints[2].scale, 2.0)

    def test_parent_links(self):
        bones = [
            Bone("root"),
            Bone("a", parent_index=0),
            Bone("b", parent_index=0, slide=True),
        ]
        joints = convert_bones_to_joints(bones)

        assert joints[0].parent_index == -1
        assert [j.parent_index for j in joints[1:3]] == [0, 1]
        # First joint of a child hangs off the parent's last joint
        assert joints[3].parent_index == 2
        assert joints[6].parent_index == 2
        assert [j.parent_index for j in joints[7:]] == [6, 7, 8, 9, 10]

    def test_forest_has_two_roots(self):
        bones = [Bone("a"), Bone("b"), Bone("c", parent_index=1)]
        joints = convert_bones_to_joints(bones)
        roots = [i for i, j in enumerate(joints) if j.parent_index < 0]
        assert roots == [0, 3]
        assert joints[6].parent_index == 5

    def test_topological_order(self, humanoid):
        humanoid[0].slide = True
        humanoid[0].static = False
        joints = convert_bones_to_joints(humanoid)
        for i, joint in enumerate(joints):
            assert joint.parent_index < i
        assert all(j.dirty for j in joints)

    def test_static_bone_has_no_dof(self, humanoid):
        joints = convert_bones_to_joints(humanoid)
        hips = bone_joint_indices(joints, 0)
        assert len(hips) == 1
        assert not joints[hips[0]].is_dof

    def test_empty(self):
        assert convert_bones_to_joints([]) == []


class TestChainRoundTrip:
    """Composing a bone's joints reproduces the bone's local transform."""

    @pytest.mark.parametrize("slide", [False, True])
    def test_round_trip(self, slide):
        bone = Bone("b", offset=(0.3, -1.2, 0.8), rotation=(0.7, -0.4, 2.1),
                    scale=(1.5, 0.5, 2.0), slide=slide)
        joints = convert_bones_to_joints([bone])
        composed = _chain_matrix(joints, bone_joint_indices(joints, 0))
        assert np.allclose(composed, bone.local_matrix(), atol=1e-12)

    def test_static_round_trip(self):
        bone = Bone("b", offset=(1, 2, 3), rotation=(0.1, 0.2, 0.3), scale=(2, 2, 2), static=True)
        joints = convert_bones_to_joints([bone])
        assert np.allclose(joint_local_matrix(joints[0]), bone.local_matrix())


class TestBoneLookup:
    """Test bone to joint index resolution."""

    def test_last_joint_of_bone(self):
        bones = [Bone("root", static=True), Bone("a", parent_index=0, slide=True)]
        joints = convert_bones_to_joints(bones)
        assert bone_to_joint_index(joints, 0) == 0
        assert bone_to_joint_index(joints, 1) == 6

    def test_missing_bone(self):
        joints = convert_bones_to_joints([Bone("root")])
        assert bone_to_joint_index(joints, 5) == -1
        assert bone_to_joint_index([], 0) == -1


class TestApplyJointsToBones:
    """Test folding solved values back into bones."""

    def test_apply(self):
        bones = [Bone("s", static=True, rotation=(0.5, 0.5, 0.5)),
                 Bone("a", parent_index=0, slide=True)]
        joints = convert_bones_to_joints(bones)
        for i, joint in enumerate(joints):
            joint.value = float(i)

        apply_joints_to_bones(joints, bones)

        assert np.allclose(bones[0].rotation, [0.5, 0.5, 0.5])
        assert np.allclose(bones[1].offset, [1.0, 2.0, 3.0])
        assert np.allclose(bones[1].rotation, [4.0, 5.0, 6.0])
