"""
Tests for PoseChain storage and primitives.

Integration, identity-mode isolation, change of basis, update variants
and weight deflation.
"""

import numpy as np
import pytest

from chain_builders import make_random_chain, make_straight_chain
from cop_slam.backend.structures import PoseChain
from cop_slam.common.errors import IndexOutOfRange
from cop_slam.common.geometry import RigidTransform, axis_angle_transform
from cop_slam.config import UpdateChannel


def _fold(relative):
    """Left-to-right composition of relative poses from the identity."""
    pose = RigidTransform.identity()
    for rel in relative:
        pose = pose @ rel
    return pose


class TestConstruction:
    """Tests for building and copying chains."""

    def test_sizes(self, straight_chain):
        """Chain of N poses carries N-sized weight and scale arrays."""
        assert straight_chain.size == 5
        assert len(straight_chain) == 5
        assert straight_chain.rotation_info.shape == (5,)
        assert np.allclose(straight_chain.scale_factor, 1.0)

    def test_integrated_on_construction(self, straight_chain):
        """Absolute poses are available right after construction."""
        assert np.allclose(straight_chain.absolute[4].t, [4.0, 0.0, 0.0])

    def test_weight_count_mismatch(self):
        """Weight arrays must have one entry per relative pose."""
        rel = [RigidTransform.identity()] * 3
        with pytest.raises(ValueError):
            PoseChain(rel, np.ones(2), np.ones(3))

    def test_negative_weight_rejected(self):
        """Negative information weights are rejected."""
        rel = [RigidTransform.identity()] * 2
        with pytest.raises(ValueError):
            PoseChain(rel, np.array([1.0, -1.0]), np.ones(2))

    def test_scale_info_defaults_to_ones(self):
        """Omitted scale weights default to one."""
        chain = PoseChain([RigidTransform.identity()] * 2, np.ones(2), np.ones(2))
        assert np.allclose(chain.scale_info[1:], 1.0)

    def test_from_relative(self):
        """from_relative integrates the given relative poses."""
        rel = [RigidTransform.from_translation([0.0, 2.0, 0.0])] * 2
        chain = PoseChain.from_relative(rel, np.ones(2), np.ones(2))
        assert np.allclose(chain.absolute[2].t, [0.0, 4.0, 0.0])

    def test_from_absolute(self):
        """from_absolute reproduces the absolute trajectory it was built from."""
        absolute = [
            RigidTransform.from_rotvec([0.0, 0.0, 0.1 * i], [float(i), 0.5 * i, 0.0])
            for i in range(6)
        ]
        chain = PoseChain.from_absolute(absolute, np.ones(5), np.ones(5))
        for expected, actual in zip(absolute, chain.absolute):
            assert actual.allclose(expected)

    def test_metadata_is_carried(self):
        """Per-pose metadata is stored as given and must match the chain length."""
        meta = ["a", "b", "c"]
        chain = PoseChain([RigidTransform.identity()] * 2, np.ones(2), np.ones(2), metadata=meta)
        assert chain.metadata == meta
        with pytest.raises(ValueError):
            PoseChain([RigidTransform.identity()] * 2, np.ones(2), np.ones(2), metadata=["a"])

    def test_copy_is_independent(self, straight_chain):
        """Mutating a copy leaves the original chain untouched."""
        clone = straight_chain.copy()
        clone.relative[1] = RigidTransform.from_translation([5.0, 0.0, 0.0])
        clone.rotation_info[1] = 0.0
        assert np.allclose(straight_chain.relative[1].t, [1.0, 0.0, 0.0])
        assert straight_chain.rotation_info[1] == 1.0


class TestIntegration:
    """Tests for integrate() and its identity mode."""

    def test_absolute_is_fold_of_relative(self):
        """absolute[i] equals the composition of relative[1..i]."""
        chain = make_random_chain(10)
        for i in range(chain.size):
            assert chain.absolute[i].allclose(_fold(chain.relative[1:i + 1]))

    def test_anchor_offsets_chain(self):
        """A non-identity anchor prefixes every absolute pose."""
        anchor = RigidTransform.from_rotvec([0.0, 0.0, 0.5], [10.0, -3.0, 1.0])
        rel = [RigidTransform.from_translation([1.0, 0.0, 0.0])] * 3
        chain = PoseChain(rel, np.ones(3), np.ones(3), anchor=anchor)
        assert chain.absolute[3].allclose(anchor @ _fold(rel))

    def test_identity_mode_restores_start(self):
        """Identity mode leaves absolute[start] bit-identical."""
        anchor = RigidTransform.from_rotvec([0.1, 0.2, 0.3], [4.0, 5.0, 6.0])
        chain = make_random_chain(8)
        chain.absolute[2] = anchor
        chain.integrate(2, 6, identity=True)
        assert chain.absolute[2] is anchor
        assert np.array_equal(chain.absolute[2].t, anchor.t)
        assert np.array_equal(chain.absolute[2].R, anchor.R)

    def test_identity_mode_ignores_start_value(self):
        """Identity-mode poses do not depend on the true absolute[start]."""
        chain = make_random_chain(8)
        chain.integrate(2, 6, identity=True)
        first = [chain.absolute[i] for i in range(3, 7)]

        chain.absolute[2] = RigidTransform.from_rotvec([1.0, 0.0, 0.0], [100.0, 0.0, 0.0])
        chain.integrate(2, 6, identity=True)
        for before, after in zip(first, chain.absolute[3:7]):
            assert np.array_equal(before.R, after.R)
            assert np.array_equal(before.t, after.t)

        # Identity-mode poses are the motion relative to pose 2
        assert chain.absolute[6].allclose(_fold(chain.relative[3:7]))

    def test_idempotent(self):
        """Integrating twice gives bit-identical absolute poses."""
        chain = make_random_chain(8)
        chain.integrate(0, 7)
        first = [p.to_vector() for p in chain.absolute]
        chain.integrate(0, 7)
        assert np.array_equal(np.array(first), np.array([p.to_vector() for p in chain.absolute]))

    def test_partial_integration_leaves_rest(self, straight_chain):
        """Only absolute poses inside the integrated range are refreshed."""
        straight_chain.relative[2] = RigidTransform.from_translation([2.0, 0.0, 0.0])
        straight_chain.integrate(0, 2)
        assert np.allclose(straight_chain.absolute[2].t, [3.0, 0.0, 0.0])
        # Not yet propagated
        assert np.allclose(straight_chain.absolute[4].t, [4.0, 0.0, 0.0])
        straight_chain.integrate_all()
        assert np.allclose(straight_chain.absolute[4].t, [5.0, 0.0, 0.0])

    def test_relative_untouched(self):
        """Integration never modifies relative poses."""
        chain = make_random_chain(6)
        before = [r.to_vector() for r in chain.relative]
        chain.integrate(1, 5, identity=True)
        assert np.array_equal(np.array(before), np.array([r.to_vector() for r in chain.relative]))

    @pytest.mark.parametrize("start,end", [(3, 2), (-1, 2), (0, 5), (5, 5)])
    def test_out_of_range(self, straight_chain, start, end):
        """Ranges outside the chain or reversed raise IndexOutOfRange."""
        with pytest.raises(IndexOutOfRange):
            straight_chain.integrate(start, end)

    def test_zero_length_is_noop(self, straight_chain):
        """integrate(i, i) changes nothing."""
        before = [p.to_vector() for p in straight_chain.absolute]
        straight_chain.integrate(2, 2, identity=True)
        assert np.array_equal(np.array(before), np.array([p.to_vector() for p in straight_chain.absolute]))


class TestChangeOfBasis:
    """Tests for change_basis() on each channel."""

    def _chain_with_update(self):
        pose = RigidTransform.from_rotvec([0.0, 0.0, np.pi / 2], [1.0, 2.0, 0.0])
        chain = PoseChain([pose], np.ones(1), np.ones(1))
        update = RigidTransform.from_rotvec([0.1, 0.0, 0.0], [1.0, 0.0, 0.0])
        chain.set_update(1, update)
        return chain, pose, update

    def test_both_conjugates(self):
        """BOTH conjugates the full update by the pose."""
        chain, pose, update = self._chain_with_update()
        chain.change_basis(0, 1, UpdateChannel.BOTH)
        assert chain.get_update(1).allclose(pose.inverse() @ update @ pose)

    def test_rotation_conjugates_rotation_only(self):
        """ROTATION conjugates the rotation and keeps the translation."""
        chain, pose, update = self._chain_with_update()
        chain.change_basis(0, 1, UpdateChannel.ROTATION)
        result = chain.get_update(1)
        assert np.allclose(result.R, pose.R.T @ update.R @ pose.R)
        assert np.allclose(result.t, update.t)

    def test_translation_ignores_pose_position(self):
        """TRANSLATION rotates the increment into the pose frame only."""
        chain, pose, update = self._chain_with_update()
        chain.change_basis(0, 1, UpdateChannel.TRANSLATION)
        result = chain.get_update(1)
        # 90 degrees about z: world x becomes local -y
        assert np.allclose(result.t, [0.0, -1.0, 0.0])
        assert np.allclose(result.R, update.R)

    def test_scale_channel_rejected(self):
        """SCALE has no change of basis."""
        chain, _, _ = self._chain_with_update()
        with pytest.raises(ValueError):
            chain.change_basis(0, 1, UpdateChannel.SCALE)


class TestUpdate:
    """Tests for update() on each channel."""

    def test_both_composes(self):
        """BOTH right-composes the update onto the relative pose."""
        chain = make_straight_chain(3)
        inc = RigidTransform.from_rotvec([0.0, 0.0, 0.2], [0.1, 0.0, 0.0])
        chain.set_update(1, inc)
        chain.set_update(2, inc)
        chain.update(0, 2, UpdateChannel.BOTH)
        expected = RigidTransform.from_translation([1.0, 0.0, 0.0]) @ inc
        assert chain.relative[1].allclose(expected)
        assert chain.relative[2].allclose(expected)

    def test_rotation_keeps_translation(self):
        """ROTATION only changes the rotation of the relative pose."""
        chain = make_straight_chain(3)
        chain.set_update(2, axis_angle_transform(0.3, [0.0, 0.0, 1.0], [5.0, 5.0, 5.0]))
        chain.update(1, 2, UpdateChannel.ROTATION)
        assert np.allclose(chain.relative[2].t, [1.0, 0.0, 0.0])
        assert chain.relative[2].rotation_angle() == pytest.approx(0.3)

    def test_translation_is_additive(self):
        """TRANSLATION adds the update's translation and keeps the rotation."""
        chain = make_straight_chain(3)
        chain.set_update(2, axis_angle_transform(0.3, [0.0, 0.0, 1.0], [0.5, -0.5, 0.0]))
        chain.update(1, 2, UpdateChannel.TRANSLATION)
        assert np.allclose(chain.relative[2].t, [1.5, -0.5, 0.0])
        assert np.allclose(chain.relative[2].R, np.eye(3))

    def test_scale_is_cumulative(self):
        """SCALE multiplies translations by the running product of weighted factors."""
        chain = make_straight_chain(5)
        final = chain.update(0, 4, UpdateChannel.SCALE, scale_close_factor=2.0, scale_normalizer=4.0)
        expected = 2.0 ** (np.arange(1, 5) / 4.0)
        assert np.allclose(chain.scale_factor[1:], expected)
        assert final == pytest.approx(2.0)
        for i in range(1, 5):
            assert np.allclose(chain.relative[i].t, [expected[i - 1], 0.0, 0.0])

    def test_scale_with_zero_normalizer_is_identity(self):
        """A zero scale normalizer leaves scale unchanged."""
        chain = make_straight_chain(3)
        final = chain.update(0, 2, UpdateChannel.SCALE, scale_close_factor=3.0, scale_normalizer=0.0)
        assert final == 1.0
        assert np.allclose(chain.relative[2].t, [1.0, 0.0, 0.0])

    def test_outside_segment_untouched(self):
        """Poses outside (start, end] keep their relative transform."""
        chain = make_straight_chain(5)
        for i in range(1, 5):
            chain.set_update(i, RigidTransform.from_translation([1.0, 0.0, 0.0]))
        chain.update(1, 3, UpdateChannel.TRANSLATION)
        assert np.allclose(chain.relative[1].t, [1.0, 0.0, 0.0])
        assert np.allclose(chain.relative[4].t, [1.0, 0.0, 0.0])
        assert np.allclose(chain.relative[2].t, [2.0, 0.0, 0.0])


class TestDeflation:
    """Tests for weight sums and deflate_info()."""

    def test_deflate_segment_only(self, straight_chain):
        """Only the channel and segment given are deflated."""
        straight_chain.deflate_info(UpdateChannel.TRANSLATION, 1, 3, 0.5)
        assert np.allclose(straight_chain.translation_info[1:], [1.0, 0.5, 0.5, 1.0])
        assert np.allclose(straight_chain.rotation_info[1:], 1.0)

    def test_factor_above_one_is_clipped(self, straight_chain):
        """Weights never grow."""
        straight_chain.deflate_info(UpdateChannel.SCALE, 0, 4, 3.0)
        assert np.allclose(straight_chain.scale_info[1:], 1.0)

    def test_segment_sums(self, straight_chain):
        """Segment sums include the end pose unless asked not to."""
        straight_chain.rotation_info[4] = 3.0
        assert straight_chain.segment_info_sum(UpdateChannel.ROTATION, 0, 4) == pytest.approx(6.0)
        assert straight_chain.segment_info_sum(UpdateChannel.ROTATION, 0, 4, include_end=False) == pytest.approx(3.0)
