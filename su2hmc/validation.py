"""
Sanity checks
=====================================
Predicates on single matrices and field-wide invariant checks.

The field-wide checks return a `ValidationReport` instead of asserting, so
tests can inspect them and the HMC loop can turn them on or off with an
explicit flag (`run.check_invariants` or SU2HMC_CHECK_INVARIANTS=1).
"""


import os
from dataclasses import dataclass
from typing import Optional, Tuple

import torch

from .errors import InvariantViolation
from .lattice import LatticeField
from .su2 import dagger, identity, trace


TOLERANCE = 1e-5
FIELD_TOLERANCE = 1e-10

ENV_FLAG = 'SU2HMC_CHECK_INVARIANTS'


def invariant_checks_enabled() -> bool:
    """True when the SU2HMC_CHECK_INVARIANTS environment flag is set."""
    return os.environ.get(ENV_FLAG, '').strip().lower() in ('1', 'true', 'yes', 'on')


def is_zero(mat: torch.Tensor, tolerance: float = TOLERANCE) -> bool:
    """Every real and imaginary part below `tolerance` in magnitude."""
    return bool((mat.real.abs() <= tolerance).all() and (mat.imag.abs() <= tolerance).all())


def is_equal(mat1: torch.Tensor, mat2: torch.Tensor, tolerance: float = TOLERANCE) -> bool:
    return is_zero(mat1 - mat2, tolerance)


def is_hermitian(mat: torch.Tensor, tolerance: float = TOLERANCE) -> bool:
    return is_zero(mat - dagger(mat), tolerance)


def is_unity(mat: torch.Tensor, tolerance: float = TOLERANCE) -> bool:
    return is_zero(mat - identity(device=mat.device), tolerance)


def is_unitary(mat: torch.Tensor, tolerance: float = TOLERANCE) -> bool:
    return is_unity(mat @ dagger(mat), tolerance)


@dataclass
class ValidationReport:
    """Outcome of a field-wide check."""

    ok: bool
    max_deviation: float
    worst_index: Optional[Tuple[int, ...]]
    description: str

    def __bool__(self) -> bool:
        return self.ok

    def __str__(self) -> str:
        status = 'ok' if self.ok else 'VIOLATED'
        return (f"{self.description}: {status} "
                f"(max deviation {self.max_deviation:.3e} at {self.worst_index})")


def _report(deviation: torch.Tensor, tolerance: float, description: str) -> ValidationReport:
    """Build a report from per-link deviations of shape (Lt, Ls, Ls, Ls, 4)."""
    flat_index = int(torch.argmax(deviation))
    worst = tuple(int(i) for i in torch.unravel_index(torch.tensor(flat_index), deviation.shape))
    max_deviation = float(deviation.reshape(-1)[flat_index])
    ok = max_deviation <= tolerance
    return ValidationReport(ok, max_deviation, worst, f"{description} (tolerance {tolerance:g})")


def check_unitary(field: LatticeField, tolerance: float = FIELD_TOLERANCE) -> ValidationReport:
    """max |U U^dag - I| over all links."""
    U = field.data
    residual = U @ dagger(U) - identity(device=U.device)
    deviation = residual.abs().amax(dim=(-2, -1))
    return _report(deviation, tolerance, 'U U^dag = I')


def check_special(field: LatticeField, tolerance: float = FIELD_TOLERANCE) -> ValidationReport:
    """max |det U - 1| over all links."""
    U = field.data
    det = U[..., 0, 0] * U[..., 1, 1] - U[..., 0, 1] * U[..., 1, 0]
    deviation = (det - 1).abs()
    return _report(deviation, tolerance, 'det U = 1')


def check_algebra(field: LatticeField, tolerance: float = FIELD_TOLERANCE) -> ValidationReport:
    """Every matrix Hermitian and traceless."""
    X = field.data
    hermiticity = (X - dagger(X)).abs().amax(dim=(-2, -1))
    tracelessness = trace(X).abs()
    deviation = torch.maximum(hermiticity, tracelessness)
    return _report(deviation, tolerance, 'X = X^dag, Tr X = 0')


def ensure(report: ValidationReport) -> ValidationReport:
    """Raise InvariantViolation for a failed report, pass it through otherwise."""
    if not report.ok:
        raise InvariantViolation(report)
    return report
