"""
Exceptions
=====================================
Error types raised by the SU(2) HMC code.
"""


class SU2HMCError(Exception):
    """Base class for all errors raised by su2hmc."""


class ConfigurationError(SU2HMCError):
    """A required configuration key is missing or malformed."""

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(f"{key}: {message}")


class InvariantViolation(SU2HMCError):
    """
    A field left the manifold it has to live on.

    Non-unitary links or non-Hermitian momenta mean the integrator or the
    arithmetic is broken, and the sampled distribution is no longer the
    right one.
    """

    def __init__(self, report):
        self.report = report
        super().__init__(str(report))


class GateStateError(SU2HMCError):
    """A Metropolis gate transition was requested from the wrong state."""


class SnapshotError(SU2HMCError):
    """A snapshot file does not match the lattice it is loaded into."""


class OutputExistsError(SU2HMCError):
    """Output from an earlier run is already present."""

    def __init__(self, paths):
        self.paths = list(paths)
        listing = ", ".join(str(p) for p in self.paths)
        super().__init__(f"refusing to overwrite existing output: {listing}")
