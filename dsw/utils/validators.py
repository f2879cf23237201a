"""
Validation utilities for the simulation helpers.

Validators return a ``_ValidationResult``; callers decide whether to raise
(``raise_if_invalid``) and forward warnings to the user.
"""

import warnings as _warnings
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple, Union

import numpy as np

__all__ = []


@dataclass
class _ValidationResult:
    """Outcome of a validation check, carrying errors and warnings.

    Attributes:
        is_valid: ``True`` if no errors were found.
        errors: List of error messages (empty when valid).
        warnings: List of non-fatal warning messages.
    """

    is_valid: bool
    errors: List[str]
    warnings: List[str]

    def raise_if_invalid(self):
        """Raise ``ValueError`` if the validation failed."""
        if not self.is_valid:
            error_msg = "Validation failed:\n" + "\n".join(f"• {err}" for err in self.errors)
            raise ValueError(error_msg)

    def emit_warnings(self, stacklevel: int = 3):
        for msg in self.warnings:
            _warnings.warn(msg, stacklevel=stacklevel)


class _Validator:
    """Static helpers for type and range checks used by all validators."""

    @staticmethod
    def _check_type(value: Any, expected_types: tuple, name: str) -> Optional[str]:
        """Check if value has expected type."""
        # bool is an int subclass but never a sensible numeric argument here
        if isinstance(value, bool) or not isinstance(value, expected_types):
            actual_type = type(value).__name__
            expected = expected_types[0].__name__ if len(expected_types) == 1 else f"one of {[t.__name__ for t in expected_types]}"
            return f"{name} must be {expected}, got {actual_type}"
        return None

    @staticmethod
    def _check_range(
        value: Union[int, float],
        min_val: Optional[float],
        max_val: Optional[float],
        name: str,
    ) -> Optional[str]:
        """Check if value is within range."""
        if min_val is not None and value < min_val:
            return f"{name} must be >= {min_val}, got {value}"
        if max_val is not None and value > max_val:
            return f"{name} must be <= {max_val}, got {value}"
        return None


_validator = _Validator()


def _validate_numeric_parameter(
    value: Any,
    name: str,
    expected_types: tuple = (int, float),
    min_val: Optional[float] = None,
    max_val: Optional[float] = None,
) -> _ValidationResult:
    """Generic validation for numeric parameters."""
    errors: List[str] = []
    warnings: List[str] = []

    type_error = _validator._check_type(value, expected_types, name)
    if type_error:
        errors.append(type_error)
        return _ValidationResult(False, errors, warnings)

    range_error = _validator._check_range(value, min_val, max_val, name)
    if range_error:
        errors.append(range_error)

    return _ValidationResult(len(errors) == 0, errors, warnings)


def _validate_alpha(alpha: Any) -> _ValidationResult:
    """Validate alpha level parameter (0-0.25, exclusive of 0)."""
    result = _validate_numeric_parameter(alpha, "alpha", min_val=0, max_val=0.25)
    if result.is_valid and alpha == 0:
        return _ValidationResult(False, ["alpha must be greater than 0"], [])
    return result


def _validate_reps(reps: Any) -> _ValidationResult:
    """Validate the number of replications for a power simulation."""
    result = _validate_numeric_parameter(reps, "reps", expected_types=(int, np.integer), min_val=1)
    if result.is_valid and reps < 100:
        result.warnings.append(f"Low replication count ({reps}). Consider using at least 100 for stable power estimates.")
    return result


def _validate_sample_size(n: Any, name: str = "n") -> _ValidationResult:
    """Validate a per-cell sample size (positive integer)."""
    return _validate_numeric_parameter(n, name, expected_types=(int, np.integer), min_val=1)


def _validate_positive(value: Any, name: str) -> _ValidationResult:
    """Validate a standard deviation or other non-negative scale parameter."""
    return _validate_numeric_parameter(value, name, expected_types=(int, float, np.number), min_val=0)


def _validate_correlation_matrix(
    corr_matrix: Optional[np.ndarray],
) -> _ValidationResult:
    """Validate correlation matrix meets mathematical requirements."""
    errors = []

    if corr_matrix is None:
        errors.append("Correlation matrix is None")
        return _ValidationResult(False, errors, [])

    if corr_matrix.ndim != 2 or corr_matrix.shape[0] != corr_matrix.shape[1]:
        errors.append("Correlation matrix must be square")
        return _ValidationResult(False, errors, [])

    if not np.allclose(np.diag(corr_matrix), 1.0):
        errors.append("Diagonal elements of correlation matrix must be 1")

    if not np.allclose(corr_matrix, corr_matrix.T):
        errors.append("Correlation matrix must be symmetric")

    if np.any(np.abs(corr_matrix) > 1):
        errors.append("All correlations must be between -1 and 1")

    try:
        eigenvals = np.linalg.eigvalsh(corr_matrix)
        if np.any(eigenvals < -1e-8):  # Tolerance for floating point noise
            errors.append("Correlation matrix must be positive semi-definite")
    except np.linalg.LinAlgError:
        errors.append("Cannot compute eigenvalues of correlation matrix")

    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_cell_values(values: Any, n_cells: int, name: str) -> Tuple[np.ndarray, _ValidationResult]:
    """Broadcast a scalar or sequence of per-cell values to ``n_cells``.

    Returns:
        ``(array, result)``; the array is empty when invalid.
    """
    arr = np.atleast_1d(np.asarray(values, dtype=float))

    if arr.ndim != 1:
        return np.array([]), _ValidationResult(False, [f"{name} must be a scalar or 1-D sequence"], [])

    if arr.size == 1:
        arr = np.repeat(arr, n_cells)
    elif arr.size != n_cells:
        return np.array([]), _ValidationResult(
            False,
            [f"{name} has {arr.size} values but the design has {n_cells} cells"],
            [],
        )

    return arr, _ValidationResult(True, [], [])
