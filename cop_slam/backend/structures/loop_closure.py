"""Loop-closure measurement between two chain indices."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List

from cop_slam.common import constants
from cop_slam.common.errors import InvalidClosure
from cop_slam.common.geometry import RigidTransform


@dataclass(frozen=True)
class LoopClosure:
    """
    Independent estimate of the transform from pose `start` to pose `end`.

    The information values weigh the closure against the segment it
    closes: the larger a closure's value relative to the segment's summed
    values, the less of its discrepancy is distributed into the segment.
    """
    start: int
    end: int
    transform: RigidTransform
    rotation_info: float
    translation_info: float
    scale_info: float = constants.CLOSURE_SCALE_INFO_DEFAULT
    scale_close_factor: float = constants.SCALE_CLOSE_FACTOR_DEFAULT

    def __post_init__(self) -> None:
        if self.start < 0 or self.end < 0:
            raise InvalidClosure(f"Closure indices must be non-negative, got ({self.start}, {self.end})")
        if self.start > self.end:
            raise InvalidClosure(f"Closure start {self.start} is after its end {self.end}")
        for name in ("rotation_info", "scale_info"):
            value = getattr(self, name)
            if math.isnan(value) or value < 0.0:
                raise InvalidClosure(f"Closure {name} must be non-negative, got {value}")
        # NaN is a valid "no translation observation" marker (orientation-only)
        if self.translation_info < 0.0:
            raise InvalidClosure(f"Closure translation_info must be non-negative, got {self.translation_info}")
        if not self.scale_close_factor > 0.0:
            raise InvalidClosure(f"Closure scale factor must be positive, got {self.scale_close_factor}")

    @property
    def length(self) -> int:
        """Number of relative poses inside the closed segment."""
        return self.end - self.start

    @property
    def degenerate(self) -> bool:
        return self.start == self.end


def validate_closure_order(closures: Iterable[LoopClosure], n_poses: int) -> List[LoopClosure]:
    """
    Check closures against a chain of n_poses and their causal ordering.

    Returns the closures as a list. Raises InvalidClosure on the first
    violation.
    """
    closures = list(closures)
    prev_start = -1
    for n, closure in enumerate(closures):
        if closure.end >= n_poses:
            raise InvalidClosure(
                f"Closure {n} ({closure.start}, {closure.end}) exceeds chain of {n_poses} poses"
            )
        if closure.start < prev_start:
            raise InvalidClosure(
                f"Closures must be sorted by start; closure {n} starts at {closure.start} "
                f"after a closure starting at {prev_start}"
            )
        prev_start = closure.start
    return closures
