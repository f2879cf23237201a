"""
Tests for factorial design simulation.
"""

import numpy as np
import pandas as pd
import pytest

from tests.config import CORR_ATOL, N_LARGE, SEED
from dsw.stats.design import cormat, rnorm_multi, sim_design, wide_to_long


class TestCormat:
    """Test correlation matrix construction."""

    def test_scalar(self):
        mat = cormat(0.3, 3)
        assert mat.shape == (3, 3)
        assert np.allclose(np.diag(mat), 1.0)
        assert np.allclose(mat[np.triu_indices(3, 1)], 0.3)

    def test_upper_triangle_row_wise(self):
        mat = cormat([0.1, 0.2, 0.3], 3)
        assert mat[0, 1] == pytest.approx(0.1)
        assert mat[0, 2] == pytest.approx(0.2)
        assert mat[1, 2] == pytest.approx(0.3)
        assert np.allclose(mat, mat.T)

    def test_full_matrix(self):
        full = np.array([[1.0, 0.5], [0.5, 1.0]])
        assert np.array_equal(cormat(full, 2), full)

    def test_flat_full_matrix(self):
        mat = cormat([1.0, 0.4, 0.4, 1.0], 2)
        assert mat[0, 1] == pytest.approx(0.4)

    def test_out_of_range(self):
        with pytest.raises(ValueError, match="between -1 and 1"):
            cormat(1.5, 2)

    def test_wrong_length(self):
        with pytest.raises(ValueError, match="r has 2 values"):
            cormat([0.1, 0.2], 3)

    def test_wrong_shape(self):
        with pytest.raises(ValueError, match="must be 3x3"):
            cormat(np.eye(2), 3)

    def test_not_positive_semidefinite(self):
        with pytest.raises(ValueError, match="positive semi-definite"):
            cormat([0.9, -0.9, 0.9], 3)


class TestRnormMulti:
    """Test multivariate normal sampling."""

    def test_shape_and_default_names(self):
        df = rnorm_multi(10, mu=[0, 0, 0], seed=SEED)
        assert df.shape == (10, 3)
        assert list(df.columns) == ["X1", "X2", "X3"]

    def test_varnames(self):
        df = rnorm_multi(5, varnames=["a", "b"], seed=SEED)
        assert list(df.columns) == ["a", "b"]

    def test_reproducible(self):
        a = rnorm_multi(20, mu=[1, 2], r=0.3, seed=SEED)
        b = rnorm_multi(20, mu=[1, 2], r=0.3, seed=SEED)
        pd.testing.assert_frame_equal(a, b)

    def test_different_seeds(self):
        a = rnorm_multi(20, mu=[1, 2], seed=1)
        b = rnorm_multi(20, mu=[1, 2], seed=2)
        assert not np.allclose(a.to_numpy(), b.to_numpy())

    def test_accepts_generator(self):
        rng = np.random.default_rng(SEED)
        df = rnorm_multi(5, mu=[0, 0], seed=rng)
        assert df.shape == (5, 2)

    def test_moments_recovered(self):
        df = rnorm_multi(N_LARGE, mu=[10, 20], sd=[2, 5], r=0.6, seed=SEED)
        assert df["X1"].mean() == pytest.approx(10, abs=0.15)
        assert df["X2"].mean() == pytest.approx(20, abs=0.3)
        assert df["X1"].std() == pytest.approx(2, rel=0.05)
        assert df["X2"].std() == pytest.approx(5, rel=0.05)
        assert df["X1"].corr(df["X2"]) == pytest.approx(0.6, abs=CORR_ATOL)

    def test_empirical_exact(self):
        df = rnorm_multi(30, mu=[10, 20, 30], sd=[1, 2, 3], r=[0.2, 0.4, 0.6], empirical=True, seed=SEED)
        assert np.allclose(df.mean().to_numpy(), [10, 20, 30])
        assert np.allclose(df.std().to_numpy(), [1, 2, 3])
        corr = df.corr().to_numpy()
        assert corr[0, 1] == pytest.approx(0.2)
        assert corr[0, 2] == pytest.approx(0.4)
        assert corr[1, 2] == pytest.approx(0.6)

    def test_empirical_single_variable(self):
        df = rnorm_multi(10, mu=5, sd=2, empirical=True, seed=SEED)
        assert df["X1"].mean() == pytest.approx(5)
        assert df["X1"].std() == pytest.approx(2)

    def test_empirical_needs_more_rows(self):
        with pytest.raises(ValueError, match="more rows than variables"):
            rnorm_multi(2, mu=[0, 0], empirical=True)

    def test_perfect_correlation(self):
        df = rnorm_multi(50, mu=[0, 0], r=1, seed=SEED)
        assert np.allclose(df["X1"], df["X2"], atol=1e-6)

    def test_mismatched_lengths(self):
        with pytest.raises(ValueError, match="sd has 2 values"):
            rnorm_multi(10, mu=[0, 0, 0], sd=[1, 2])

    def test_negative_sd(self):
        with pytest.raises(ValueError, match="non-negative"):
            rnorm_multi(10, sd=-1)

    def test_bad_n(self):
        with pytest.raises(ValueError, match="n must be >= 1"):
            rnorm_multi(0)

    def test_varnames_length(self):
        with pytest.raises(ValueError, match="varnames has 1 names"):
            rnorm_multi(10, mu=[0, 0], varnames=["a"])


class TestSimDesign:
    """Test factorial design simulation."""

    def test_no_factors(self):
        df = sim_design(n=25, mu=100, sd=15, seed=SEED)
        assert list(df.columns) == ["id", "y"]
        assert len(df) == 25

    def test_within_only_wide(self):
        df = sim_design(within="pet=cat|dog", n=50, mu=[50, 55], sd=10, r=0.5, seed=SEED)
        assert list(df.columns) == ["id", "cat", "dog"]
        assert len(df) == 50

    def test_between_only(self):
        df = sim_design(between="pet=cat|dog", n=30, mu=[1, 2], seed=SEED)
        assert list(df.columns) == ["id", "pet", "y"]
        assert len(df) == 60
        assert list(df["pet"].cat.categories) == ["cat", "dog"]
        assert (df["pet"] == "cat").sum() == 30

    def test_mixed_design_columns(self, pet_design):
        df = sim_design(n=20, seed=SEED, **pet_design)
        assert list(df.columns) == ["id", "pet", "am", "pm"]
        assert len(df) == 40

    def test_subject_ids_unique(self, pet_design):
        df = sim_design(n=60, seed=SEED, **pet_design)
        assert df["id"].is_unique
        assert df["id"].iloc[0] == "S001"
        assert df["id"].iloc[-1] == "S120"

    def test_cell_means_exact(self, pet_design):
        df = sim_design(n=20, empirical=True, seed=SEED, **pet_design)
        means = df.groupby("pet", observed=True)[["am", "pm"]].mean()
        assert means.loc["cat"].tolist() == pytest.approx([10, 12])
        assert means.loc["dog"].tolist() == pytest.approx([14, 16])
        cat = df[df["pet"] == "cat"]
        assert cat["am"].corr(cat["pm"]) == pytest.approx(0.5)
        assert cat["am"].std() == pytest.approx(3)

    def test_flat_mu_between_major(self):
        df = sim_design(
            within="time=am|pm", between="pet=cat|dog", n=10, mu=[1, 2, 3, 4], empirical=True, seed=SEED
        )
        dog = df[df["pet"] == "dog"]
        assert dog["am"].mean() == pytest.approx(3)
        assert dog["pm"].mean() == pytest.approx(4)

    def test_mu_by_cell_name_string(self):
        df = sim_design(
            within="time=am|pm",
            between="pet=cat|dog",
            n=10,
            mu="cat_am=1, cat_pm=2, dog_am=3, dog_pm=4",
            empirical=True,
            seed=SEED,
        )
        assert df[df["pet"] == "cat"]["pm"].mean() == pytest.approx(2)

    def test_mu_by_between_cell_without_within(self):
        df = sim_design(between="pet=cat|dog", n=10, mu="cat=5, dog=9", empirical=True, seed=SEED)
        assert df.groupby("pet", observed=True)["y"].mean().tolist() == pytest.approx([5, 9])

    def test_n_per_between_cell(self):
        df = sim_design(between="pet=cat|dog", n={"cat": 5, "dog": 8}, seed=SEED)
        assert df["pet"].value_counts().to_dict() == {"dog": 8, "cat": 5}

    def test_integer_factors(self):
        df = sim_design(within=2, between=2, n=5, seed=SEED)
        assert list(df.columns) == ["id", "B", "A1", "A2"]
        assert set(df["B"]) == {"B1", "B2"}

    def test_long_format(self, pet_design):
        df = sim_design(n=10, long=True, seed=SEED, **pet_design)
        assert list(df.columns) == ["id", "pet", "time", "y"]
        assert len(df) == 40
        first = df[df["id"] == "S01"]
        assert first["time"].tolist() == ["am", "pm"]

    def test_long_custom_names(self):
        df = sim_design(within="time=am|pm", n=5, dv="score", id="subj", long=True, seed=SEED)
        assert list(df.columns) == ["subj", "time", "score"]

    def test_design_attrs(self, pet_design):
        df = sim_design(n=10, seed=SEED, **pet_design)
        design = df.attrs["design"]
        assert design["within"] == {"time": ["am", "pm"]}
        assert design["between"] == {"pet": ["cat", "dog"]}
        assert design["mu"] == [[10.0, 12.0], [14.0, 16.0]]
        assert design["n"] == {"cat": 10, "dog": 10}

    def test_reproducible(self, pet_design):
        a = sim_design(n=10, seed=SEED, **pet_design)
        b = sim_design(n=10, seed=SEED, **pet_design)
        pd.testing.assert_frame_equal(a, b)

    def test_mu_wrong_length(self):
        with pytest.raises(ValueError, match="mu has 3 values but the design has 4 cells"):
            sim_design(within="time=am|pm", between="pet=cat|dog", mu=[1, 2, 3])

    def test_mu_missing_cell(self):
        with pytest.raises(ValueError, match="missing cells: cat_pm"):
            sim_design(within="time=am|pm", between="pet=cat|dog", mu="cat_am=1, dog_am=1, dog_pm=1")

    def test_factor_in_both(self):
        with pytest.raises(ValueError, match="both within and between"):
            sim_design(within="pet=cat|dog", between="pet=a|b")

    def test_factor_clashes_with_dv(self):
        with pytest.raises(ValueError, match="clash"):
            sim_design(between="y=a|b")

    def test_bad_factor_spec(self):
        with pytest.raises(ValueError, match="at least 2 levels"):
            sim_design(within="pet=cat")

    def test_n_missing_between_cell(self):
        with pytest.raises(ValueError, match="n missing between cells: dog"):
            sim_design(between="pet=cat|dog", n={"cat": 5})

    def test_n_wrong_length(self):
        with pytest.raises(ValueError, match="n has 3 values"):
            sim_design(between="pet=cat|dog", n=[5, 5, 5])

    def test_underscore_levels_duplicate_cells(self):
        with pytest.raises(ValueError, match="within levels produce duplicate cell names: x_y_z"):
            sim_design(within={"a": ["x_y", "x"], "b": ["z", "y_z"]}, n=5)

    def test_underscore_levels_duplicate_between_cells(self):
        with pytest.raises(ValueError, match="between levels produce duplicate cell names: x_y_z"):
            sim_design(between={"a": ["x_y", "x"], "b": ["z", "y_z"]}, n=5)

    def test_underscore_levels_allowed_when_unique(self):
        data = sim_design(within={"a": ["x_y", "w"], "b": ["z", "v"]}, n=5, seed=SEED)
        assert {"x_y_z", "x_y_v", "w_z", "w_v"} <= set(data.columns)


class TestWideToLong:
    """Test reshaping."""

    def test_round_trip_values(self):
        wide = pd.DataFrame({"id": ["S1", "S2"], "am": [1.0, 2.0], "pm": [3.0, 4.0]})
        long = wide_to_long(wide, "time=am|pm")
        assert long["y"].tolist() == [1.0, 3.0, 2.0, 4.0]
        assert long["time"].tolist() == ["am", "pm", "am", "pm"]

    def test_two_within_factors(self):
        wide = sim_design(within="time=am|pm, cond=x|y", n=3, seed=SEED)
        long = wide_to_long(wide, {"time": ["am", "pm"], "cond": ["x", "y"]}, dv="score")
        assert list(long.columns) == ["id", "time", "cond", "score"]
        assert len(long) == 12
        row = long.iloc[1]
        assert (row["time"], row["cond"]) == ("am", "y")
        assert row["score"] == wide.loc[0, "am_y"]

    def test_missing_columns(self):
        wide = pd.DataFrame({"id": ["S1"], "am": [1.0]})
        with pytest.raises(KeyError, match="pm"):
            wide_to_long(wide, "time=am|pm")

    def test_duplicate_cell_names(self):
        wide = pd.DataFrame({"id": ["S1"], "x_y_z": [1.0], "x_z": [2.0], "x_y_y_z": [3.0]})
        with pytest.raises(ValueError, match="duplicate cell names: x_y_z"):
            wide_to_long(wide, {"a": ["x_y", "x"], "b": ["z", "y_z"]})
