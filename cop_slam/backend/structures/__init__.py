"""
Data structures for the COP-SLAM backend.

- PoseChain: poses, weights and the correction primitives
- LoopClosure: measured transform between two chain indices
"""

from cop_slam.backend.structures.loop_closure import LoopClosure, validate_closure_order
from cop_slam.backend.structures.pose_chain import PoseChain

__all__ = [
    "LoopClosure",
    "PoseChain",
    "validate_closure_order",
]
