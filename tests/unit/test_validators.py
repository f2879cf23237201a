"""
Tests for validation utilities.
"""

import numpy as np
import pytest

from dsw.utils.validators import (
    _validate_alpha,
    _validate_cell_values,
    _validate_correlation_matrix,
    _validate_positive,
    _validate_reps,
    _validate_sample_size,
    _ValidationResult,
)


class TestValidationResult:
    """Test _ValidationResult behaviour."""

    def test_raise_if_invalid(self):
        result = _ValidationResult(False, ["first", "second"], [])
        with pytest.raises(ValueError, match="Validation failed:\n• first\n• second"):
            result.raise_if_invalid()

    def test_valid_does_not_raise(self):
        _ValidationResult(True, [], []).raise_if_invalid()

    def test_emit_warnings(self):
        with pytest.warns(UserWarning, match="careful"):
            _ValidationResult(True, [], ["careful"]).emit_warnings()


class TestValidateAlpha:
    """Test _validate_alpha."""

    @pytest.mark.parametrize("alpha", [0.05, 0.01, 0.25])
    def test_valid(self, alpha):
        assert _validate_alpha(alpha).is_valid

    @pytest.mark.parametrize("alpha", [0, -0.1, 0.3, "0.05", None, True])
    def test_invalid(self, alpha):
        assert not _validate_alpha(alpha).is_valid


class TestValidateReps:
    """Test _validate_reps."""

    def test_valid(self):
        result = _validate_reps(500)
        assert result.is_valid
        assert result.warnings == []

    def test_low_count_warns(self):
        result = _validate_reps(20)
        assert result.is_valid
        assert "Low replication count" in result.warnings[0]

    @pytest.mark.parametrize("reps", [0, -5, 10.0, "100"])
    def test_invalid(self, reps):
        assert not _validate_reps(reps).is_valid

    def test_numpy_integer(self):
        assert _validate_reps(np.int64(200)).is_valid


class TestValidateScalars:
    """Test sample size and scale validators."""

    def test_sample_size(self):
        assert _validate_sample_size(1).is_valid
        assert not _validate_sample_size(0).is_valid
        assert not _validate_sample_size(2.0).is_valid

    def test_sample_size_name_in_message(self):
        result = _validate_sample_size(0, "n_subj")
        assert "n_subj" in result.errors[0]

    def test_positive(self):
        assert _validate_positive(0, "sd").is_valid
        assert _validate_positive(np.float64(2.5), "sd").is_valid
        assert not _validate_positive(-1, "sd").is_valid


class TestValidateCorrelationMatrix:
    """Test _validate_correlation_matrix."""

    def test_valid(self):
        corr = np.array([[1.0, 0.3], [0.3, 1.0]])
        assert _validate_correlation_matrix(corr).is_valid

    def test_none(self):
        assert not _validate_correlation_matrix(None).is_valid

    def test_not_square(self):
        result = _validate_correlation_matrix(np.ones((2, 3)))
        assert "square" in result.errors[0]

    def test_bad_diagonal(self):
        result = _validate_correlation_matrix(np.array([[2.0, 0.0], [0.0, 1.0]]))
        assert any("Diagonal" in e for e in result.errors)

    def test_asymmetric(self):
        result = _validate_correlation_matrix(np.array([[1.0, 0.2], [0.4, 1.0]]))
        assert any("symmetric" in e for e in result.errors)

    def test_out_of_range(self):
        result = _validate_correlation_matrix(np.array([[1.0, 1.5], [1.5, 1.0]]))
        assert any("between -1 and 1" in e for e in result.errors)

    def test_not_positive_semidefinite(self):
        corr = np.array([[1.0, 0.9, -0.9], [0.9, 1.0, 0.9], [-0.9, 0.9, 1.0]])
        result = _validate_correlation_matrix(corr)
        assert any("positive semi-definite" in e for e in result.errors)


class TestValidateCellValues:
    """Test broadcasting of per-cell values."""

    def test_scalar_broadcast(self):
        arr, result = _validate_cell_values(5, 3, "mu")
        assert result.is_valid
        assert arr.tolist() == [5.0, 5.0, 5.0]

    def test_sequence(self):
        arr, _ = _validate_cell_values([1, 2], 2, "mu")
        assert arr.tolist() == [1.0, 2.0]

    def test_wrong_length(self):
        _, result = _validate_cell_values([1, 2, 3], 2, "sd")
        assert "sd has 3 values but the design has 2 cells" in result.errors[0]

    def test_two_dimensional(self):
        _, result = _validate_cell_values([[1, 2], [3, 4]], 4, "mu")
        assert not result.is_valid
