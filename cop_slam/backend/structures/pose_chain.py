"""
Pose chain: the single mutable structure corrected by COP-SLAM.

Storage is struct-of-arrays indexed by pose id i = 0..N-1:

- relative[i]   authoritative transform from pose i-1 to pose i
                (relative[0] is unused, pose 0 is the anchor)
- absolute[i]   cached absolute pose, recomputed by integrate()
- _updates[i]   per-closure incremental correction (scratch)
- metadata[i]   opaque per-pose payload from upstream, never read here
- rotation_info / translation_info / scale_info
                information weights attached to relative[i]; a larger
                value lets relative[i] absorb a larger share of a closure's
                discrepancy, and every correction deflates them
- scale_factor  cumulative scale correction from the last SCALE update

Primitives operate on the segment (start, end]: relative poses
start+1..end are the ones between the two closure ends.
"""

from __future__ import annotations

import copy
import logging
from typing import TYPE_CHECKING, Any, List, Optional, Sequence

import numpy as np

from cop_slam.common import constants
from cop_slam.common.errors import IndexOutOfRange
from cop_slam.common.geometry import RigidTransform, relative_transform
from cop_slam.config import CorrectionConfig, UpdateChannel

if TYPE_CHECKING:
    from cop_slam.backend.structures.loop_closure import LoopClosure
    from cop_slam.common.op_report import OpReport

logger = logging.getLogger(__name__)


def _weight_array(values, n_relative: int, name: str) -> np.ndarray:
    """Per-pose weights with an unused slot at index 0."""
    values = np.asarray(values, dtype=float).reshape(-1)
    if values.shape != (n_relative,):
        raise ValueError(f"Expected {n_relative} {name} values, got {values.shape[0]}")
    if not np.all(np.isfinite(values)) or np.any(values < 0.0):
        raise ValueError(f"{name} values must be finite and non-negative")
    return np.concatenate([[0.0], values])


class PoseChain:
    """
    Chain of N poses built from N-1 relative poses and their weights.

    Args:
        relative_poses: relative[1..N-1]
        rotation_info, translation_info: one weight per relative pose
        scale_info: one weight per relative pose (defaults to ones)
        config: correction strategy (defaults to one-pass, no scale)
        anchor: absolute pose of index 0 (defaults to identity)
        metadata: optional opaque payload per pose (length N)
    """

    def __init__(
        self,
        relative_poses: Sequence[RigidTransform],
        rotation_info,
        translation_info,
        scale_info=None,
        config: Optional[CorrectionConfig] = None,
        anchor: Optional[RigidTransform] = None,
        metadata: Optional[Sequence[Any]] = None,
    ):
        relative_poses = list(relative_poses)
        n_relative = len(relative_poses)
        n_poses = n_relative + 1

        self.config = config if config is not None else CorrectionConfig()

        identity = RigidTransform.identity()
        self.relative: List[RigidTransform] = [identity] + relative_poses
        self.absolute: List[RigidTransform] = [anchor if anchor is not None else identity] * n_poses
        self._updates: List[RigidTransform] = [identity] * n_poses

        if metadata is None:
            self.metadata: List[Any] = [None] * n_poses
        else:
            self.metadata = list(metadata)
            if len(self.metadata) != n_poses:
                raise ValueError(f"Expected {n_poses} metadata entries, got {len(self.metadata)}")

        self.rotation_info = _weight_array(rotation_info, n_relative, "rotation_info")
        self.translation_info = _weight_array(translation_info, n_relative, "translation_info")
        if scale_info is None:
            scale_info = np.ones(n_relative, dtype=float)
        self.scale_info = _weight_array(scale_info, n_relative, "scale_info")
        self.scale_factor = np.full(n_poses, constants.SCALE_FACTOR_DEFAULT, dtype=float)

        self.integrate_all()

    # -------------------------------------------------------------------------
    # Construction helpers
    # -------------------------------------------------------------------------

    @classmethod
    def from_relative(
        cls,
        relative_poses: Sequence[RigidTransform],
        rotation_info,
        translation_info,
        scale_info=None,
        config: Optional[CorrectionConfig] = None,
    ) -> "PoseChain":
        return cls(relative_poses, rotation_info, translation_info, scale_info=scale_info, config=config)

    @classmethod
    def from_absolute(
        cls,
        absolute_poses: Sequence[RigidTransform],
        rotation_info,
        translation_info,
        scale_info=None,
        config: Optional[CorrectionConfig] = None,
    ) -> "PoseChain":
        """Build a chain from an absolute trajectory; pose 0 becomes the anchor."""
        absolute_poses = list(absolute_poses)
        if not absolute_poses:
            raise ValueError("Cannot build a chain from an empty trajectory")
        relative = [
            relative_transform(absolute_poses[i - 1], absolute_poses[i])
            for i in range(1, len(absolute_poses))
        ]
        return cls(
            relative,
            rotation_info,
            translation_info,
            scale_info=scale_info,
            config=config,
            anchor=absolute_poses[0],
        )

    def copy(self) -> "PoseChain":
        return copy.deepcopy(self)

    # -------------------------------------------------------------------------
    # Bookkeeping
    # -------------------------------------------------------------------------

    @property
    def size(self) -> int:
        """Number of absolute poses."""
        return len(self.absolute)

    def __len__(self) -> int:
        return self.size

    def _check_range(self, start: int, end: int) -> None:
        if not (0 <= start <= end < self.size):
            raise IndexOutOfRange(f"Segment ({start}, {end}) outside chain of {self.size} poses")

    def _info(self, channel: UpdateChannel) -> np.ndarray:
        if channel is UpdateChannel.ROTATION:
            return self.rotation_info
        if channel is UpdateChannel.TRANSLATION:
            return self.translation_info
        if channel is UpdateChannel.SCALE:
            return self.scale_info
        raise ValueError(f"No information weights for channel {channel}")

    def segment_info(self, channel: UpdateChannel, start: int, end: int) -> np.ndarray:
        """View of the weights of relative poses start+1..end."""
        self._check_range(start, end)
        return self._info(channel)[start + 1:end + 1]

    def segment_info_sum(self, channel: UpdateChannel, start: int, end: int, include_end: bool = True) -> float:
        """Summed weights over (start, end], optionally leaving out relative[end]."""
        weights = self.segment_info(channel, start, end)
        if not include_end:
            weights = weights[:-1]
        return float(np.sum(weights))

    def set_update(self, pose: int, update: RigidTransform) -> None:
        self._updates[pose] = update

    def get_update(self, pose: int) -> RigidTransform:
        return self._updates[pose]

    # -------------------------------------------------------------------------
    # Integration
    # -------------------------------------------------------------------------

    def integrate(self, start: int, end: int, identity: bool = False) -> None:
        """
        Recompute absolute[start+1..end] from the relative poses.

        With identity=True, absolute[start] is treated as the identity for
        the duration of the pass, so the results are the motion relative to
        pose `start`; absolute[start] itself is restored afterwards.
        """
        self._check_range(start, end)
        saved = self.absolute[start]
        if identity:
            self.absolute[start] = RigidTransform.identity()
        try:
            for i in range(start + 1, end + 1):
                self.absolute[i] = self.absolute[i - 1] @ self.relative[i]
        finally:
            if identity:
                self.absolute[start] = saved

    def integrate_all(self) -> None:
        self.integrate(constants.ANCHOR_INDEX, self.size - 1, identity=False)

    # -------------------------------------------------------------------------
    # Change of basis and update
    # -------------------------------------------------------------------------

    def change_basis(self, start: int, end: int, channel: UpdateChannel) -> None:
        """
        Re-express the scratch updates of (start, end] in each pose's frame.

        Expects absolute[] to hold the identity-mode integration of the
        segment, i.e. the frame the updates were interpolated in.
        """
        self._check_range(start, end)
        channel = UpdateChannel(channel)
        for i in range(start + 1, end + 1):
            pose = self.absolute[i]
            update = self._updates[i]
            if channel is UpdateChannel.BOTH:
                update = pose.inverse() @ update @ pose
            elif channel is UpdateChannel.ROTATION:
                update = update.with_rotation(pose.R.T @ update.R @ pose.R)
            elif channel is UpdateChannel.TRANSLATION:
                # Only the orientation of the pose re-expresses a translation increment
                update = update.with_translation(pose.R.T @ update.t)
            else:
                raise ValueError(f"Change of basis is not defined for channel {channel}")
            self._updates[i] = update

    def update(
        self,
        start: int,
        end: int,
        channel: UpdateChannel,
        scale_close_factor: float = constants.SCALE_CLOSE_FACTOR_DEFAULT,
        scale_normalizer: float = 1.0,
    ) -> float:
        """
        Fold the scratch updates of (start, end] into the relative poses.

        For SCALE, the measured scale error `scale_close_factor` is spread
        geometrically: relative[i].t is multiplied by the running product of
        scale_close_factor ** (scale_info[i] / scale_normalizer), which is also
        recorded in scale_factor[i].

        Returns the final cumulative scale correction (1.0 unless SCALE).
        """
        self._check_range(start, end)
        channel = UpdateChannel(channel)
        scale_correction = 1.0
        for i in range(start + 1, end + 1):
            rel = self.relative[i]
            update = self._updates[i]
            if channel is UpdateChannel.BOTH:
                rel = rel @ update
            elif channel is UpdateChannel.ROTATION:
                rel = rel.with_rotation(rel.R @ update.R)
            elif channel is UpdateChannel.TRANSLATION:
                rel = rel.with_translation(rel.t + update.t)
            else:
                exponent = self.scale_info[i] / scale_normalizer if scale_normalizer > 0.0 else 0.0
                scale_correction = scale_correction * float(scale_close_factor) ** exponent
                self.scale_factor[i] = scale_correction
                rel = rel.scaled(scale_correction)
            self.relative[i] = rel

        if channel is UpdateChannel.SCALE:
            logger.info("Loop-closure final scale correction: %.6f", scale_correction)
        return scale_correction

    def deflate_info(self, channel: UpdateChannel, start: int, end: int, factor: float) -> None:
        """
        Shrink the weights of (start, end] by `factor`.

        Factors above one are clipped so weights never grow.
        """
        factor = min(max(float(factor), 0.0), 1.0)
        weights = self.segment_info(UpdateChannel(channel), start, end)
        weights *= factor

    # -------------------------------------------------------------------------
    # Correction
    # -------------------------------------------------------------------------

    def correct(self, closures: Sequence["LoopClosure"]) -> List["OpReport"]:
        """Run the loop-closure correction over `closures` (sorted by start)."""
        from cop_slam.backend.pipeline import run_cop_slam

        return run_cop_slam(self, closures)

    def __repr__(self) -> str:
        return f"PoseChain(size={self.size}, method={self.config.method.value})"
