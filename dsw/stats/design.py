"""
Factorial design simulation.

Draws correlated normal data for within/between-subject factorial designs
in the style of the faux package:

- ``cormat`` builds a correlation matrix from a scalar, an upper triangle,
  or a full matrix.
- ``rnorm_multi`` samples ``n`` rows from a multivariate normal.
- ``sim_design`` assembles a full data set with one row per subject (wide)
  or one row per observation (long).
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from ..utils.parsers import cell_levels, cell_names, duplicate_cell_names, parse_cell_values, parse_factors
from ..utils.validators import (
    _validate_cell_values,
    _validate_correlation_matrix,
    _validate_sample_size,
    _ValidationResult,
)

__all__ = ["cormat", "rnorm_multi", "sim_design", "wide_to_long"]

SeedLike = Union[None, int, np.random.Generator]


def cormat(r: Any = 0, n_vars: int = 2) -> np.ndarray:
    """Build an ``n_vars x n_vars`` correlation matrix.

    Args:
        r: A scalar (all pairs share it), the upper triangle as a flat
            sequence of length ``n_vars * (n_vars - 1) / 2`` (row-wise), or a
            full matrix.
        n_vars: Number of variables.

    Raises:
        ValueError: If the result is not a valid correlation matrix.
    """
    arr = np.asarray(r, dtype=float)

    if arr.ndim == 0:
        mat = np.full((n_vars, n_vars), float(arr))
        np.fill_diagonal(mat, 1.0)
    elif arr.ndim == 1:
        n_upper = n_vars * (n_vars - 1) // 2
        if arr.size == n_vars * n_vars:
            mat = arr.reshape(n_vars, n_vars)
        elif arr.size == n_upper:
            mat = np.eye(n_vars)
            iu = np.triu_indices(n_vars, k=1)
            mat[iu] = arr
            mat[(iu[1], iu[0])] = arr
        else:
            raise ValueError(f"r has {arr.size} values; expected 1, {n_upper} (upper triangle) or {n_vars * n_vars} (full matrix)")
    else:
        mat = arr
        if mat.shape != (n_vars, n_vars):
            raise ValueError(f"r must be {n_vars}x{n_vars}, got {mat.shape[0]}x{mat.shape[1]}")

    _validate_correlation_matrix(mat).raise_if_invalid()
    return mat


def _covariance_factor(cov: np.ndarray) -> np.ndarray:
    """Return ``A`` with ``A @ A.T == cov``; tolerates singular (PSD) matrices."""
    w, v = np.linalg.eigh(cov)
    return v * np.sqrt(np.clip(w, 0, None))


def rnorm_multi(
    n: int,
    mu: Any = 0,
    sd: Any = 1,
    r: Any = 0,
    varnames: Optional[Sequence[str]] = None,
    empirical: bool = False,
    seed: SeedLike = None,
) -> pd.DataFrame:
    """Sample ``n`` rows from a multivariate normal distribution.

    Args:
        n: Number of rows.
        mu: Means (scalar or one per variable).
        sd: Standard deviations (scalar or one per variable).
        r: Correlations, anything ``cormat`` accepts.
        varnames: Column names; defaults to ``X1..Xk``.
        empirical: Rescale so the sample means, SDs and correlations equal
            the requested values exactly.
        seed: Integer seed or an existing ``numpy.random.Generator``.

    Returns:
        DataFrame with ``n`` rows and one column per variable.
    """
    _validate_sample_size(n).raise_if_invalid()

    mu_arr = np.atleast_1d(np.asarray(mu, dtype=float))
    sd_arr = np.atleast_1d(np.asarray(sd, dtype=float))
    r_arr = np.asarray(r, dtype=float)

    candidates = [mu_arr.size, sd_arr.size]
    if varnames is not None:
        candidates.append(len(varnames))
    if r_arr.ndim == 2:
        candidates.append(r_arr.shape[0])
    n_vars = max(candidates)

    mu_arr, mu_check = _validate_cell_values(mu_arr, n_vars, "mu")
    sd_arr, sd_check = _validate_cell_values(sd_arr, n_vars, "sd")
    for check in (mu_check, sd_check):
        check.raise_if_invalid()
    if np.any(sd_arr < 0):
        raise ValueError("Validation failed:\n• sd must be non-negative")
    if varnames is not None and len(varnames) != n_vars:
        raise ValueError(f"varnames has {len(varnames)} names but there are {n_vars} variables")
    if empirical and n <= n_vars:
        raise ValueError(f"empirical=True needs more rows than variables (n={n}, variables={n_vars})")

    corr = cormat(r, n_vars)
    cov = np.outer(sd_arr, sd_arr) * corr
    rng = np.random.default_rng(seed)

    if empirical:
        z = rng.standard_normal((n, n_vars))
        z -= z.mean(axis=0)
        # Whiten so the sample covariance is exactly the identity
        sample_cov = np.cov(z, rowvar=False).reshape(n_vars, n_vars)
        z = z @ np.linalg.inv(np.linalg.cholesky(sample_cov)).T
        values = mu_arr + z @ _covariance_factor(cov).T
    else:
        values = rng.multivariate_normal(mu_arr, cov, size=n, method="eigh")

    if varnames is None:
        varnames = [f"X{i + 1}" for i in range(n_vars)]
    return pd.DataFrame(values, columns=list(varnames))


def _cell_matrix(
    values: Any,
    between_names: List[str],
    within_names: List[str],
    name: str,
) -> Tuple[np.ndarray, _ValidationResult]:
    """Lay out ``mu`` or ``sd`` as a ``(n_between_cells, n_within_cells)`` array.

    Accepts a scalar, a flat sequence ordered between-major, a dict keyed by
    between cell (scalar or per-within-cell sequence), or a dict / string
    keyed by full cell name (``"<between>_<within>"``).
    """
    n_b, n_w = len(between_names), len(within_names)
    has_between = between_names != [""]

    if isinstance(values, dict) and has_between and set(values) <= set(between_names):
        missing = [b for b in between_names if b not in values]
        if missing:
            return np.array([]), _ValidationResult(False, [f"{name} missing between cells: {', '.join(missing)}"], [])
        rows = []
        for b in between_names:
            row, check = _validate_cell_values(values[b], n_w, f"{name}[{b}]")
            if not check.is_valid:
                return np.array([]), check
            rows.append(row)
        return np.vstack(rows), _ValidationResult(True, [], [])

    if isinstance(values, (dict, str)):
        full_names = [_join_cell(b, w) for b in between_names for w in within_names]
        parsed, errors = parse_cell_values(values, full_names)
        missing = [c for c in full_names if c not in parsed]
        if missing and not errors:
            errors.append(f"{name} missing cells: {', '.join(missing)}")
        if errors:
            return np.array([]), _ValidationResult(False, errors, [])
        return np.array([parsed[c] for c in full_names]).reshape(n_b, n_w), _ValidationResult(True, [], [])

    flat, check = _validate_cell_values(values, n_b * n_w, name)
    if not check.is_valid:
        return flat, check
    return flat.reshape(n_b, n_w), check


def _join_cell(between: str, within: str) -> str:
    return "_".join(part for part in (between, within) if part)


def _subject_ids(total: int) -> List[str]:
    width = len(str(total))
    return [f"S{i + 1:0{width}d}" for i in range(total)]


def sim_design(
    within: Any = None,
    between: Any = None,
    n: Any = 100,
    mu: Any = 0,
    sd: Any = 1,
    r: Any = 0,
    dv: str = "y",
    id: str = "id",
    long: bool = False,
    empirical: bool = False,
    seed: SeedLike = None,
) -> pd.DataFrame:
    """Simulate data for a factorial design.

    Args:
        within: Within-subject factors (dict, ``"name=a|b"`` string, level
            count or list of level counts).
        between: Between-subject factors, same forms as *within*.
        n: Subjects per between cell (int, sequence, or dict by between cell).
        mu: Cell means (see ``_cell_matrix`` for the accepted forms).
        sd: Cell standard deviations, same forms as *mu*.
        r: Correlation between within-subject cells, anything ``cormat``
            accepts.
        dv: Name of the dependent variable (long format, or wide format with
            no within factors).
        id: Name of the subject id column.
        long: Return one row per observation instead of one per subject.
        empirical: Make sample moments match the parameters exactly.
        seed: Integer seed or ``numpy.random.Generator``.

    Returns:
        DataFrame. The design is stored in ``df.attrs["design"]``.

    Example:
        >>> sim_design(within="time=am|pm", between="pet=cat|dog",
        ...            n=50, mu=[10, 12, 10, 15], sd=3, r=0.5, seed=8)
    """
    within_f, errors = parse_factors(within)
    between_f, between_errors = parse_factors(between, prefix_start=len(within_f))
    errors += between_errors

    overlap = set(within_f) & set(between_f)
    if overlap:
        errors.append(f"Factor names used for both within and between: {', '.join(sorted(overlap))}")
    reserved = {dv, id} & (set(within_f) | set(between_f))
    if reserved:
        errors.append(f"Factor names clash with dv/id columns: {', '.join(sorted(reserved))}")
    for label, factors in (("within", within_f), ("between", between_f)):
        dupes = duplicate_cell_names(factors)
        if dupes:
            errors.append(f"{label} levels produce duplicate cell names: {', '.join(dupes)}; avoid '_' in level names")
    if errors:
        _ValidationResult(False, errors, []).raise_if_invalid()

    within_names = cell_names(within_f) or [dv]
    between_names = cell_names(between_f) or [""]
    between_tuples = cell_levels(between_f) or [()]
    n_b = len(between_names)

    if isinstance(n, dict):
        missing = [b for b in between_names if b not in n]
        if missing:
            raise ValueError(f"n missing between cells: {', '.join(missing)}")
        n_per_cell = [n[b] for b in between_names]
    elif np.ndim(n) == 0:
        n_per_cell = [n] * n_b
    else:
        n_per_cell = list(n)
        if len(n_per_cell) != n_b:
            raise ValueError(f"n has {len(n_per_cell)} values but the design has {n_b} between cells")
    for count in n_per_cell:
        _validate_sample_size(count).raise_if_invalid()

    cell_within = within_names if within_f else [""]
    mu_mat, mu_check = _cell_matrix(mu, between_names, cell_within, "mu")
    mu_check.raise_if_invalid()
    sd_mat, sd_check = _cell_matrix(sd, between_names, cell_within, "sd")
    sd_check.raise_if_invalid()

    rng = np.random.default_rng(seed)
    ids = _subject_ids(sum(n_per_cell))

    frames = []
    start = 0
    for b_idx, (b_levels, count) in enumerate(zip(between_tuples, n_per_cell)):
        cell = rnorm_multi(
            count,
            mu=mu_mat[b_idx],
            sd=sd_mat[b_idx],
            r=r,
            varnames=within_names,
            empirical=empirical,
            seed=rng,
        )
        for factor, level in zip(between_f, b_levels):
            cell.insert(len(cell.columns) - len(within_names), factor, level)
        cell.insert(0, id, ids[start : start + count])
        start += count
        frames.append(cell)

    data = pd.concat(frames, ignore_index=True)
    for factor, levels in between_f.items():
        data[factor] = pd.Categorical(data[factor], categories=levels)

    design = {
        "within": within_f,
        "between": between_f,
        "dv": dv,
        "id": id,
        "n": dict(zip(between_names, n_per_cell)),
        "mu": mu_mat.tolist(),
        "sd": sd_mat.tolist(),
        "r": np.asarray(r, dtype=float).tolist(),
    }

    if long and within_f:
        data = wide_to_long(data, within_f, dv=dv, id=id)
    data.attrs["design"] = design
    return data


def wide_to_long(
    data: pd.DataFrame,
    within: Any,
    dv: str = "y",
    id: str = "id",
) -> pd.DataFrame:
    """Reshape one-row-per-subject data to one row per within cell.

    Args:
        data: Wide data with one column per within cell.
        within: Within-subject factors (any form ``parse_factors`` accepts).
        dv: Name for the value column.
        id: Subject id column.

    Returns:
        Long DataFrame with ``id``, the remaining columns, one column per
        within factor, and ``dv``; sorted by subject then cell.
    """
    within_f, errors = parse_factors(within)
    dupes = duplicate_cell_names(within_f)
    if dupes:
        errors.append(f"within levels produce duplicate cell names: {', '.join(dupes)}; avoid '_' in level names")
    if errors:
        _ValidationResult(False, errors, []).raise_if_invalid()

    names = cell_names(within_f)
    missing = [c for c in names + [id] if c not in data.columns]
    if missing:
        raise KeyError(f"Columns not found in data: {', '.join(missing)}")

    id_vars = [c for c in data.columns if c not in names]
    long_df = data.melt(id_vars=id_vars, value_vars=names, var_name="_cell", value_name=dv)

    lookup: Dict[str, Tuple[str, ...]] = dict(zip(names, cell_levels(within_f)))
    for pos, (factor, levels) in enumerate(within_f.items()):
        long_df[factor] = pd.Categorical([lookup[c][pos] for c in long_df["_cell"]], categories=levels)

    long_df["_cell"] = pd.Categorical(long_df["_cell"], categories=names)
    long_df = long_df.sort_values([id, "_cell"], kind="stable").drop(columns="_cell")
    return long_df[id_vars + list(within_f) + [dv]].reset_index(drop=True)
