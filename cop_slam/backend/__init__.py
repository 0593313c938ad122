"""
Backend package for COP-SLAM.

Pose-chain storage, closed-form loop-closure operators and the correction
driver.

Subpackages:
- structures/: PoseChain, LoopClosure
- operators/: interpolation
"""

from __future__ import annotations

from cop_slam.backend.structures import LoopClosure, PoseChain
from cop_slam.backend.pipeline import closure_residual, correct_closure, run_cop_slam

__all__ = [
    "LoopClosure",
    "PoseChain",
    "closure_residual",
    "correct_closure",
    "run_cop_slam",
]
