"""
Configuration classes for COP-SLAM.

The correction strategy is an explicit value handed to the pose chain at
construction; nothing here is process-wide state.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from cop_slam.common import constants

if TYPE_CHECKING:
    from cop_slam.common.param_models import CopSlamParams


class CorrectionMethod(str, Enum):
    """How rotation and translation of a closure are corrected."""
    ONEPASS = "onepass"  # jointly, in a single interpolation
    TWOPASS = "twopass"  # rotation (and scale) first, then translation


class UpdateChannel(str, Enum):
    """Which part of a pose a change of basis or an update touches."""
    BOTH = "both"
    ROTATION = "rotation"
    TRANSLATION = "translation"
    SCALE = "scale"


@dataclass
class CorrectionConfig:
    """Loop-closure correction strategy."""
    method: CorrectionMethod = CorrectionMethod.ONEPASS
    scale_correction_enabled: bool = False
    global_normalizer: float = constants.GLOBAL_NORMALIZER_DEFAULT
    orientation_only_threshold: float = constants.ORIENTATION_ONLY_INFO_THRESHOLD
    identity_tolerance_rot: float = constants.IDENTITY_TOLERANCE_ROT
    identity_tolerance_trans: float = constants.IDENTITY_TOLERANCE_TRANS

    def __post_init__(self) -> None:
        self.method = CorrectionMethod(self.method)
        if not self.global_normalizer > 0.0:
            raise ValueError(f"global_normalizer must be positive, got {self.global_normalizer}")
        if not self.orientation_only_threshold > 0.0:
            raise ValueError("orientation_only_threshold must be positive")

    @property
    def two_pass(self) -> bool:
        return self.method is CorrectionMethod.TWOPASS

    def is_orientation_only(self, translation_info: float) -> bool:
        """Sentinel test: no usable translation observation in the closure."""
        return not (translation_info < self.orientation_only_threshold)

    @classmethod
    def from_params(cls, params: "CopSlamParams") -> "CorrectionConfig":
        """Create configuration from validated parameters."""
        return cls(
            method=CorrectionMethod(params.method),
            scale_correction_enabled=bool(params.scale_correction_enabled),
            global_normalizer=float(params.global_normalizer),
            orientation_only_threshold=float(params.orientation_only_threshold),
            identity_tolerance_rot=float(params.identity_tolerance_rot),
            identity_tolerance_trans=float(params.identity_tolerance_trans),
        )
