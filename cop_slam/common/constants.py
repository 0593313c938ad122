"""
COP-SLAM constants.

Conventions shared with upstream data producers and numerical tolerances.
Algorithmic policy (one-pass vs two-pass, scale correction, global
normalizer) lives in cop_slam.config, not here.
"""

# =============================================================================
# DATA CONVENTIONS
# =============================================================================

# Closures whose translation information is at or above this value carry no
# usable translation observation and are corrected for orientation (and
# optionally scale) only. This is a convention of the data producer, not a
# derived quantity.
ORIENTATION_ONLY_INFO_THRESHOLD = 4.5e9

# Index of the chain anchor; its absolute pose is the global reference.
ANCHOR_INDEX = 0

# =============================================================================
# CORRECTION DEFAULTS
# =============================================================================

GLOBAL_NORMALIZER_DEFAULT = 1.0
SCALE_FACTOR_DEFAULT = 1.0
SCALE_CLOSE_FACTOR_DEFAULT = 1.0
CLOSURE_SCALE_INFO_DEFAULT = 1.0

# =============================================================================
# TOLERANCES
# =============================================================================

# A degenerate closure (start == end) must measure the identity within these
IDENTITY_TOLERANCE_ROT = 1e-5  # radians
IDENTITY_TOLERANCE_TRANS = 1e-4  # distance units

# =============================================================================
# FILE FORMATS
# =============================================================================

# x y z qx qy qz qw rot_info tra_info scale_info
POSE_ROW_COLUMNS = 10
# start end x y z qx qy qz qw rot_info tra_info scale_info scale_close_factor
CLOSURE_ROW_COLUMNS = 13
TRAJECTORY_HEADER = "# index x y z qx qy qz qw"
CHAIN_STATE_HEADER = "# x y z qx qy qz qw rot_info tra_info scale_info scale_factor"
