"""
COP-SLAM: closed-form loop-closure correction for pose chains.

Usage:
    from cop_slam import CorrectionConfig, CorrectionMethod, LoopClosure, PoseChain

    chain = PoseChain(relative_poses, rotation_info, translation_info,
                      config=CorrectionConfig(method=CorrectionMethod.TWOPASS))
    reports = chain.correct(closures)
"""

from cop_slam.backend import LoopClosure, PoseChain, closure_residual, run_cop_slam
from cop_slam.common.errors import IndexOutOfRange, InvalidClosure
from cop_slam.common.geometry import RigidTransform
from cop_slam.config import CorrectionConfig, CorrectionMethod, UpdateChannel

__version__ = "0.1.0"

__all__ = [
    "CorrectionConfig",
    "CorrectionMethod",
    "IndexOutOfRange",
    "InvalidClosure",
    "LoopClosure",
    "PoseChain",
    "RigidTransform",
    "UpdateChannel",
    "closure_residual",
    "run_cop_slam",
]
