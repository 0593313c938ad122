"""
Text-file interchange for pose chains and loop closures.

Formats (whitespace separated, '#' starts a comment, quaternions xyzw):

  relative poses   x y z qx qy qz qw rot_info tra_info scale_info
                   one row per relative pose 1..N-1
  loop closures    start end x y z qx qy qz qw rot_info tra_info scale_info scale_close_factor
  trajectory       index x y z qx qy qz qw   (absolute poses, TUM style)
  chain state      relative-pose rows with the scale factor appended
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import numpy as np
from scipy.spatial.transform import Rotation

from cop_slam.backend.structures import LoopClosure, PoseChain
from cop_slam.common import constants
from cop_slam.common.geometry import RigidTransform
from cop_slam.config import CorrectionConfig


def _load_rows(path: str | Path, n_columns: int) -> np.ndarray:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    rows = []
    with path.open("r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.split("#", 1)[0].strip()
            if not line:
                continue
            values = line.split()
            if len(values) != n_columns:
                raise ValueError(f"{path}:{lineno}: expected {n_columns} columns, got {len(values)}")
            rows.append([float(v) for v in values])
    return np.array(rows, dtype=float).reshape(-1, n_columns)


def _transform_from_row(values: np.ndarray) -> RigidTransform:
    """x y z qx qy qz qw -> RigidTransform."""
    R = Rotation.from_quat(values[3:7]).as_matrix()
    return RigidTransform(R, values[0:3])


def _row_from_transform(T: RigidTransform) -> List[float]:
    quat = Rotation.from_matrix(T.R).as_quat()
    return [*T.t.tolist(), *quat.tolist()]


def load_pose_chain(path: str | Path, config: Optional[CorrectionConfig] = None) -> PoseChain:
    """Build a PoseChain (anchored at identity) from a relative-pose file."""
    data = _load_rows(path, constants.POSE_ROW_COLUMNS)
    relative = [_transform_from_row(row) for row in data]
    return PoseChain(
        relative,
        rotation_info=data[:, 7],
        translation_info=data[:, 8],
        scale_info=data[:, 9],
        config=config,
    )


def load_loop_closures(path: str | Path) -> List[LoopClosure]:
    """Load loop closures sorted by start index."""
    data = _load_rows(path, constants.CLOSURE_ROW_COLUMNS)
    closures = [
        LoopClosure(
            start=int(row[0]),
            end=int(row[1]),
            transform=_transform_from_row(row[2:9]),
            rotation_info=float(row[9]),
            translation_info=float(row[10]),
            scale_info=float(row[11]),
            scale_close_factor=float(row[12]),
        )
        for row in data
    ]
    # Stable sort keeps the file order among closures sharing a start
    return sorted(closures, key=lambda c: c.start)


def save_trajectory(path: str | Path, chain: PoseChain) -> None:
    """Write the absolute poses of the chain (TUM style, index as stamp)."""
    path = Path(path)
    with path.open("w", encoding="utf-8") as f:
        f.write(constants.TRAJECTORY_HEADER + "\n")
        for i, pose in enumerate(chain.absolute):
            values = " ".join(f"{v:.9f}" for v in _row_from_transform(pose))
            f.write(f"{i} {values}\n")


def load_trajectory(path: str | Path) -> List[RigidTransform]:
    """Read absolute poses written by save_trajectory()."""
    data = _load_rows(path, 8)
    return [_transform_from_row(row[1:8]) for row in data]


def save_chain_state(path: str | Path, chain: PoseChain) -> None:
    """Write relative poses, current weights and scale factors of poses 1..N-1."""
    path = Path(path)
    with path.open("w", encoding="utf-8") as f:
        f.write(constants.CHAIN_STATE_HEADER + "\n")
        for i in range(1, chain.size):
            values = _row_from_transform(chain.relative[i]) + [
                chain.rotation_info[i],
                chain.translation_info[i],
                chain.scale_info[i],
                chain.scale_factor[i],
            ]
            f.write(" ".join(f"{v:.9g}" for v in values) + "\n")


def load_chain_state(path: str | Path, config: Optional[CorrectionConfig] = None) -> PoseChain:
    """Reload a chain written by save_chain_state()."""
    data = _load_rows(path, constants.POSE_ROW_COLUMNS + 1)
    chain = PoseChain(
        [_transform_from_row(row) for row in data],
        rotation_info=data[:, 7],
        translation_info=data[:, 8],
        scale_info=data[:, 9],
        config=config,
    )
    chain.scale_factor[1:] = data[:, 10]
    return chain
