"""
Fixed-effects analysis of simulated factorial data.

Between-subject designs are analysed with OLS and ``anova_lm`` using
sum-to-zero contrasts (so Type III tests are meaningful); within-subject
designs with ``AnovaRM``. Both return the same tidy table.
"""

import re
import warnings
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from ..utils.parsers import parse_factors
from .design import sim_design

__all__ = ["anova", "sim_factorial", "partial_eta_squared"]

_TIDY_COLUMNS = ["term", "df", "df_resid", "F", "p_value", "partial_eta_sq"]
_FACTOR_NAME = re.compile(r"^[^\W\d]\w*$")


def partial_eta_squared(F: Any, df1: Any, df2: Any) -> Any:
    """Partial eta squared recovered from an F statistic."""
    F = np.asarray(F, dtype=float)
    return F * df1 / (F * df1 + df2)


def _factor_names(spec: Any) -> List[str]:
    if spec is None:
        return []
    if isinstance(spec, str) and "=" not in spec:
        return [spec]
    if isinstance(spec, (list, tuple)) and all(isinstance(f, str) for f in spec):
        return list(spec)
    factors, errors = parse_factors(spec)
    if errors:
        raise ValueError("Validation failed:\n" + "\n".join(f"• {err}" for err in errors))
    return list(factors)


def anova(
    data: pd.DataFrame,
    dv: str = "y",
    between: Any = None,
    within: Any = None,
    id: str = "id",
    typ: int = 3,
) -> pd.DataFrame:
    """Run a factorial ANOVA on long-format data.

    Args:
        data: Long data, one row per observation.
        dv: Dependent variable column.
        between: Between-subject factor names (or any factor spec).
        within: Within-subject factor names (or any factor spec).
        id: Subject id column (within-subject designs only).
        typ: Sum of squares type for between-subject designs.

    Returns:
        DataFrame with columns ``term, df, df_resid, F, p_value,
        partial_eta_sq``; one row per main effect / interaction.

    Raises:
        ValueError: For designs with both within and between factors (fit a
            mixed model with ``dsw.stats.mixed.lmm`` instead), or unknown
            columns.
    """
    between_names = _factor_names(between)
    within_names = _factor_names(within)

    if not between_names and not within_names:
        raise ValueError("anova needs at least one between or within factor")
    if between_names and within_names:
        raise ValueError("Mixed within/between designs are not supported by anova(); fit a mixed model with lmm() instead")

    required = [dv] + between_names + within_names + ([id] if within_names else [])
    missing = [c for c in required if c not in data.columns]
    if missing:
        raise KeyError(f"Columns not found in data: {', '.join(missing)}")
    bad = [f for f in between_names + within_names if not _FACTOR_NAME.match(f)]
    if bad:
        raise ValueError(f"Factor names must be valid identifiers: {', '.join(bad)}")

    if within_names:
        return _anova_within(data, dv, within_names, id)
    return _anova_between(data, dv, between_names, typ)


def _anova_between(data: pd.DataFrame, dv: str, factors: List[str], typ: int) -> pd.DataFrame:
    import statsmodels.formula.api as smf
    from statsmodels.stats.anova import anova_lm

    wrapped = {f: f"C({f}, Sum)" for f in factors}
    formula = f"{dv} ~ " + " * ".join(wrapped.values())

    fit = smf.ols(formula, data=data).fit()
    table = anova_lm(fit, typ=typ)

    resid_df = float(table.loc["Residual", "df"])
    table = table.drop(index=[t for t in ("Intercept", "Residual") if t in table.index])

    terms = []
    for term in table.index:
        for name, wrapper in wrapped.items():
            term = term.replace(wrapper, name)
        terms.append(term)

    out = pd.DataFrame(
        {
            "term": terms,
            "df": table["df"].to_numpy(dtype=float),
            "df_resid": resid_df,
            "F": table["F"].to_numpy(dtype=float),
            "p_value": table["PR(>F)"].to_numpy(dtype=float),
        }
    )
    out["partial_eta_sq"] = partial_eta_squared(out["F"], out["df"], out["df_resid"])
    return out[_TIDY_COLUMNS]


def _anova_within(data: pd.DataFrame, dv: str, factors: List[str], id: str) -> pd.DataFrame:
    from statsmodels.stats.anova import AnovaRM

    # AnovaRM refuses categorical dtypes with unused levels
    frame = data[[id, dv] + factors].copy()
    for f in factors + [id]:
        frame[f] = frame[f].astype(str)

    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        table = AnovaRM(frame, depvar=dv, subject=id, within=factors).fit().anova_table

    out = pd.DataFrame(
        {
            "term": list(table.index),
            "df": table["Num DF"].to_numpy(dtype=float),
            "df_resid": table["Den DF"].to_numpy(dtype=float),
            "F": table["F Value"].to_numpy(dtype=float),
            "p_value": table["Pr > F"].to_numpy(dtype=float),
        }
    )
    out["partial_eta_sq"] = partial_eta_squared(out["F"], out["df"], out["df_resid"])
    return out[_TIDY_COLUMNS]


def sim_factorial(
    n: Any,
    mu: Any,
    sd: Any = 1,
    factors: Optional[Dict[str, List[str]]] = None,
    dv: str = "y",
    seed: Any = None,
) -> pd.DataFrame:
    """Simulate a between-subjects factorial design (2x2 by default).

    Args:
        n: Subjects per cell.
        mu: Cell means, a sequence in cell order or a mapping keyed by cell
            name (``{"A1_B1": 0, "A1_B2": 0, "A2_B1": 0.5, "A2_B2": 0.5}``).
        sd: Cell standard deviations.
        factors: Between-subject factors; defaults to ``A`` and ``B`` with two
            levels each.
        dv: Dependent variable name.
        seed: Integer seed or ``numpy.random.Generator``.
    """
    if factors is None:
        factors = {"A": ["A1", "A2"], "B": ["B1", "B2"]}
    return sim_design(between=factors, n=n, mu=mu, sd=sd, dv=dv, seed=seed)
