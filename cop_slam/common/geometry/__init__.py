"""
Geometry package for COP-SLAM.

SO(3) helpers and the RigidTransform value type (NumPy backend).

Usage:
    from cop_slam.common.geometry import (
        RigidTransform,
        rotvec_to_rotmat,
        rotmat_to_rotvec,
    )
"""

from __future__ import annotations

from cop_slam.common.geometry.se3_numpy import (
    # Constants
    ROTATION_EPSILON,
    SINGULARITY_EPSILON,
    # SO(3) operations
    skew,
    unskew,
    rotvec_to_rotmat,
    rotmat_to_rotvec,
    # SE(3) operations
    RigidTransform,
    relative_transform,
    axis_angle_transform,
)

__all__ = [
    # Constants
    "ROTATION_EPSILON",
    "SINGULARITY_EPSILON",
    # SO(3) operations
    "skew",
    "unskew",
    "rotvec_to_rotmat",
    "rotmat_to_rotvec",
    # SE(3) operations
    "RigidTransform",
    "relative_transform",
    "axis_angle_transform",
]
