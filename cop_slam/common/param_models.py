"""Pydantic parameter models for COP-SLAM."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cop_slam.common import constants


class CopSlamParams(BaseModel):
    """Flat, validated parameters for the loop-closure correction."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    method: Literal["onepass", "twopass"] = "onepass"
    scale_correction_enabled: bool = False
    global_normalizer: float = Field(constants.GLOBAL_NORMALIZER_DEFAULT, gt=0.0)
    orientation_only_threshold: float = Field(constants.ORIENTATION_ONLY_INFO_THRESHOLD, gt=0.0)

    identity_tolerance_rot: float = Field(constants.IDENTITY_TOLERANCE_ROT, gt=0.0)
    identity_tolerance_trans: float = Field(constants.IDENTITY_TOLERANCE_TRANS, gt=0.0)

    @field_validator("method", mode="before")
    @classmethod
    def _lower_method(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value
