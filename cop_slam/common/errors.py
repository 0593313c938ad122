"""Contract violations raised by the pose chain and the correction driver."""


class InvalidClosure(ValueError):
    """A loop closure that cannot be applied to the chain."""


class IndexOutOfRange(IndexError):
    """Pose index (or index range) outside the chain."""
