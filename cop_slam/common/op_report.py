"""
Operator Report for audit compliance.

Every loop-closure correction emits an OpReport that:
1. Declares whether the correction was exact for the measured closure
2. Lists all approximation triggers (orientation-only closure, additive
   two-pass translation increments)
3. Records the closure residual before and after the correction
4. Records the blend factors used to deflate the segment's information

The correction is closed-form by construction; a report that names an
iterative solver is rejected by validate().
"""

import json
import time
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class OpReport:
    """
    Audit-compliant operation report.

    Attributes:
        name: Operator name (e.g., "LoopClosureCorrection")
        exact: True if the closure discrepancy is fully absorbed
        approximation_triggers: List of what caused approximation
        closed_form: True if no iterative solver was used
        solver_used: Name of solver if iterative
        domain_projection: Whether a normalizer saturated (zero weight guard)
        metrics: Additional metrics for debugging
        notes: Human-readable explanation
        timestamp: When the report was generated
    """
    name: str
    exact: bool
    approximation_triggers: list[str] = field(default_factory=list)
    closed_form: bool = True
    solver_used: Optional[str] = None
    domain_projection: bool = False
    metrics: dict = field(default_factory=dict)
    notes: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    def validate(self) -> None:
        """
        Validate the report satisfies audit requirements.

        Raises ValueError if validation fails.
        """
        if not self.name:
            raise ValueError("Report must name its operator.")

        # Exact operations cannot have approximation triggers
        if self.exact and self.approximation_triggers:
            raise ValueError("Exact op cannot declare approximation triggers.")

        # Closed-form ops should not have iterative solver
        if self.closed_form and self.solver_used is not None:
            raise ValueError("Closed-form op must not list a solver.")

        for key in ("residual_rot_before", "residual_rot_after",
                    "residual_trans_before", "residual_trans_after"):
            value = self.metrics.get(key)
            if value is not None and value < 0.0:
                raise ValueError(f"Residual metric '{key}' must be non-negative.")

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "exact": self.exact,
            "approximation_triggers": list(self.approximation_triggers),
            "closed_form": self.closed_form,
            "solver_used": self.solver_used,
            "domain_projection": self.domain_projection,
            "metrics": dict(self.metrics),
            "notes": self.notes,
            "timestamp": self.timestamp,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)
