"""
Common package for COP-SLAM.

Shared constants, errors, audit reports and geometry used by the backend
and the file front end.

Subpackages:
- geometry/: SE(3) geometry operations
"""

from cop_slam.common.op_report import OpReport
from cop_slam.common import constants
from cop_slam.common import errors

__all__ = [
    "OpReport",
    "constants",
    "errors",
]
