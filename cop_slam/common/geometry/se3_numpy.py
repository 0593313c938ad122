"""
SE(3) geometry for pose chains.

Rigid transforms are stored as a rotation matrix R in SO(3) and a
translation t in R^3. Rotation vectors (axis-angle, so(3)) are used at the
boundaries: interpolating a fraction of a rotation, reporting residuals,
and the compact 6D form (x, y, z, rx, ry, rz).

Composition follows the usual convention for poses:

    (A @ B).R = A.R B.R
    (A @ B).t = A.R B.t + A.t

so that absolute_i = absolute_{i-1} @ relative_i.

Numerical Policy:
    Epsilon thresholds are chosen based on IEEE 754 double precision:
    - ROTATION_EPSILON = 1e-10: ~sqrt(machine_epsilon) for stable trig
    - SINGULARITY_EPSILON = 1e-6: threshold for π-singularity handling

    These are NUMERICAL STABILITY choices, not model parameters.

References:
- Barfoot (2017): State Estimation for Robotics
- Sola et al. (2018): A micro Lie theory for state estimation
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np


# =============================================================================
# Numerical Constants (stability, not policy)
# =============================================================================

# For small-angle approximations: use when θ < ε to avoid division by ~0
ROTATION_EPSILON: float = 1e-10

# For π-singularity handling: eigenvalue decomposition threshold
SINGULARITY_EPSILON: float = 1e-6


# =============================================================================
# Rotation vector <-> Rotation matrix conversions (so(3) <-> SO(3))
# =============================================================================


def skew(v: np.ndarray) -> np.ndarray:
    """Skew-symmetric matrix from 3-vector (hat operator)."""
    v = np.asarray(v, dtype=float).reshape(-1)
    return np.array([
        [0.0, -v[2], v[1]],
        [v[2], 0.0, -v[0]],
        [-v[1], v[0], 0.0]
    ], dtype=float)


def unskew(S: np.ndarray) -> np.ndarray:
    """Extract 3-vector from skew-symmetric matrix (vee operator)."""
    return np.array([S[2, 1], S[0, 2], S[1, 0]], dtype=float)


def rotvec_to_rotmat(rotvec: np.ndarray) -> np.ndarray:
    """
    Convert rotation vector (axis-angle) to rotation matrix.
    Uses Rodrigues' formula: R = I + sin(θ)[ω]_× + (1-cos(θ))[ω]_×²

    For θ < ROTATION_EPSILON, uses the first-order Taylor expansion.
    """
    rotvec = np.asarray(rotvec, dtype=float).reshape(-1)
    if len(rotvec) != 3:
        raise ValueError(f"Expected 3D rotation vector, got shape {rotvec.shape}")
    theta = np.linalg.norm(rotvec)

    if theta < ROTATION_EPSILON:
        return np.eye(3, dtype=float) + skew(rotvec)

    axis = rotvec / theta
    K = skew(axis)
    return np.eye(3, dtype=float) + math.sin(theta) * K + (1.0 - math.cos(theta)) * (K @ K)


def rotmat_to_rotvec(R: np.ndarray) -> np.ndarray:
    """
    Convert rotation matrix to rotation vector (axis-angle).
    This is the logarithmic map log: SO(3) -> so(3).

    Handles three cases:
    1. θ ≈ 0: Extract from skew-symmetric part
    2. θ ≈ π: Use eigenvalue decomposition (singularity)
    3. Otherwise: Standard formula
    """
    R = np.asarray(R, dtype=float)
    if R.shape != (3, 3):
        raise ValueError(f"Expected 3x3 matrix, got shape {R.shape}")

    RRT = R @ R.T
    if not np.allclose(RRT, np.eye(3), atol=1e-5):
        raise ValueError("Input matrix is not orthogonal (R @ R.T != I)")

    trace = np.trace(R)
    theta = math.acos(np.clip((trace - 1.0) / 2.0, -1.0, 1.0))

    if theta < ROTATION_EPSILON:
        S = (R - R.T) / 2.0
        return unskew(S)

    if abs(theta - math.pi) < SINGULARITY_EPSILON:
        # Eigenvector of eigenvalue 1 is the rotation axis
        eigenvals, eigenvecs = np.linalg.eig(R)
        idx = np.argmin(np.abs(eigenvals - 1.0))
        axis = np.real(eigenvecs[:, idx])
        axis = axis / np.linalg.norm(axis)
        return axis * math.pi

    S = (R - R.T) / 2.0
    rotvec = unskew(S)
    return rotvec * (theta / math.sin(theta))


# =============================================================================
# Rigid transform value type
# =============================================================================


@dataclass(frozen=True, eq=False)
class RigidTransform:
    """
    Element of SE(3): rotation matrix R (3, 3) and translation t (3,).

    Instances are treated as values; every operation returns a new
    transform and never mutates its operands.
    """
    R: np.ndarray
    t: np.ndarray

    def __post_init__(self) -> None:
        R = np.array(self.R, dtype=float)
        t = np.array(self.t, dtype=float).reshape(-1)
        if R.shape != (3, 3):
            raise ValueError(f"Expected 3x3 rotation, got shape {R.shape}")
        if t.shape != (3,):
            raise ValueError(f"Expected 3D translation, got shape {t.shape}")
        R.setflags(write=False)
        t.setflags(write=False)
        object.__setattr__(self, "R", R)
        object.__setattr__(self, "t", t)

    # -------------------------------------------------------------------------
    # Constructors
    # -------------------------------------------------------------------------

    @classmethod
    def identity(cls) -> "RigidTransform":
        return cls(np.eye(3), np.zeros(3))

    @classmethod
    def from_translation(cls, t) -> "RigidTransform":
        return cls(np.eye(3), t)

    @classmethod
    def from_rotvec(cls, rotvec, t=None) -> "RigidTransform":
        return cls(rotvec_to_rotmat(rotvec), np.zeros(3) if t is None else t)

    @classmethod
    def from_matrix(cls, M: np.ndarray) -> "RigidTransform":
        """Build from a 4x4 homogeneous or 3x4 [R|t] matrix."""
        M = np.asarray(M, dtype=float)
        if M.shape not in ((4, 4), (3, 4)):
            raise ValueError(f"Expected 4x4 or 3x4 matrix, got shape {M.shape}")
        return cls(M[:3, :3], M[:3, 3])

    @classmethod
    def from_vector(cls, T: np.ndarray) -> "RigidTransform":
        """Build from the 6D form (x, y, z, rx, ry, rz)."""
        T = np.asarray(T, dtype=float).reshape(-1)
        if len(T) != 6:
            raise ValueError(f"Expected 6D vector, got shape {T.shape}")
        return cls(rotvec_to_rotmat(T[3:6]), T[:3])

    # -------------------------------------------------------------------------
    # Group operations
    # -------------------------------------------------------------------------

    def __matmul__(self, other: "RigidTransform") -> "RigidTransform":
        if not isinstance(other, RigidTransform):
            return NotImplemented
        return RigidTransform(self.R @ other.R, self.R @ other.t + self.t)

    def inverse(self) -> "RigidTransform":
        R_inv = self.R.T
        return RigidTransform(R_inv, -R_inv @ self.t)

    def apply(self, p: np.ndarray) -> np.ndarray:
        """Apply to point(s) of shape (3,) or (N, 3)."""
        p = np.asarray(p, dtype=float)
        if p.ndim == 1:
            return self.R @ p + self.t
        return (self.R @ p.T).T + self.t

    # -------------------------------------------------------------------------
    # Components
    # -------------------------------------------------------------------------

    def rotation_only(self) -> "RigidTransform":
        return RigidTransform(self.R, np.zeros(3))

    def translation_only(self) -> "RigidTransform":
        return RigidTransform(np.eye(3), self.t)

    def with_rotation(self, R: np.ndarray) -> "RigidTransform":
        return RigidTransform(R, self.t)

    def with_translation(self, t: np.ndarray) -> "RigidTransform":
        return RigidTransform(self.R, t)

    def scaled(self, factor: float) -> "RigidTransform":
        """Same rotation, translation multiplied by a scalar."""
        return RigidTransform(self.R, float(factor) * self.t)

    def rotvec(self) -> np.ndarray:
        return rotmat_to_rotvec(self.R)

    def angle_axis(self) -> Tuple[float, np.ndarray]:
        """
        Rotation as (angle, unit axis), angle in [0, π].

        The axis is arbitrary (x) for a zero rotation, matching the
        convention that a zero angle about any axis is the identity.
        """
        rv = self.rotvec()
        angle = float(np.linalg.norm(rv))
        if angle < ROTATION_EPSILON:
            return 0.0, np.array([1.0, 0.0, 0.0])
        return angle, rv / angle

    def rotation_angle(self) -> float:
        return self.angle_axis()[0]

    def as_matrix(self) -> np.ndarray:
        M = np.eye(4, dtype=float)
        M[:3, :3] = self.R
        M[:3, 3] = self.t
        return M

    def to_vector(self) -> np.ndarray:
        return np.concatenate([self.t, self.rotvec()])

    def allclose(self, other: "RigidTransform", rot_tol: float = 1e-9, trans_tol: float = 1e-9) -> bool:
        delta = self.inverse() @ other
        return delta.rotation_angle() <= rot_tol and float(np.linalg.norm(self.t - other.t)) <= trans_tol

    def __repr__(self) -> str:
        t = np.array2string(self.t, precision=4)
        r = np.array2string(self.rotvec(), precision=4)
        return f"RigidTransform(t={t}, rotvec={r})"


def relative_transform(T_from: RigidTransform, T_to: RigidTransform) -> RigidTransform:
    """Relative transform: T_from^{-1} ∘ T_to."""
    return T_from.inverse() @ T_to


def axis_angle_transform(angle: float, axis: np.ndarray, t=None) -> RigidTransform:
    """Rotation of `angle` about unit `axis`, optionally followed by translation t."""
    return RigidTransform.from_rotvec(np.asarray(axis, dtype=float) * float(angle), t)
