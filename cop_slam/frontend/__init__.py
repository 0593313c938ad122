"""
Frontend package for COP-SLAM.

File interchange between the correction backend and the tools that produce
odometry and loop closures.
"""

from cop_slam.frontend.chain_io import (
    load_chain_state,
    load_loop_closures,
    load_pose_chain,
    load_trajectory,
    save_chain_state,
    save_trajectory,
)

__all__ = [
    "load_chain_state",
    "load_loop_closures",
    "load_pose_chain",
    "load_trajectory",
    "save_chain_state",
    "save_trajectory",
]
