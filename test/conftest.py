import numpy as np
import pytest

from chain_builders import make_straight_chain
from cop_slam.common.geometry import RigidTransform
from cop_slam.config import CorrectionConfig


@pytest.fixture
def numpy_seed():
    """Set numpy random seed for reproducible tests."""
    np.random.seed(42)
    yield


@pytest.fixture
def identity_pose():
    return RigidTransform.identity()


@pytest.fixture
def random_pose():
    """A small random SE(3) pose."""
    rng = np.random.default_rng(7)
    return RigidTransform.from_rotvec(rng.normal(scale=0.3, size=3), rng.normal(size=3))


@pytest.fixture
def straight_chain():
    """Five poses one unit apart along x, all weights 1."""
    return make_straight_chain()


@pytest.fixture
def onepass_config():
    return CorrectionConfig(method="onepass")


@pytest.fixture
def twopass_config():
    return CorrectionConfig(method="twopass")
