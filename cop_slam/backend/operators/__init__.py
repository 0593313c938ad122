"""
Closed-form operators of the COP-SLAM backend.

- interpolation: spread a loop-closure discrepancy over a segment
"""

from cop_slam.backend.operators.interpolation import (
    ROTATION_SLOT,
    TRANSLATION_SLOT,
    blend_factor,
    closure_normalizer,
    interpolate_motion,
    interpolate_rotation,
    interpolate_translation,
)

__all__ = [
    "ROTATION_SLOT",
    "TRANSLATION_SLOT",
    "blend_factor",
    "closure_normalizer",
    "interpolate_motion",
    "interpolate_rotation",
    "interpolate_translation",
]
