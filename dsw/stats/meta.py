"""
Analytic power for meta-analyses of standardized mean differences.

For ``k`` two-group studies with ``n`` participants per group and true
effect ``d``, the sampling variance of each study's effect is

    v = 2 / n + d**2 / (4 * n)

Random-effects models add between-study variance ``tau2 = h * v``, where the
heterogeneity multiplier ``h`` is 0.33, 1 or 3 for small, moderate or large
heterogeneity. The summary effect has variance ``(v + tau2) / k`` and the
two-tailed z test has power

    1 - Phi(z_crit - lambda) + Phi(-z_crit - lambda),   lambda = d / sqrt((v + tau2) / k)
"""

from typing import Any, Dict, Iterable, Optional, Sequence, Union

import numpy as np
import pandas as pd
from scipy import stats

from ..utils.validators import _validate_alpha, _validate_numeric_parameter, _validate_sample_size

__all__ = ["HETEROGENEITY", "meta_power", "meta_power_curve"]

HETEROGENEITY: Dict[str, float] = {
    "fixed": 0.0,
    "small": 0.33,
    "moderate": 1.0,
    "large": 3.0,
}


def _heterogeneity_multiplier(heterogeneity: Union[str, float]) -> float:
    if isinstance(heterogeneity, str):
        key = heterogeneity.lower().strip()
        if key not in HETEROGENEITY:
            raise ValueError(f"Unknown heterogeneity {heterogeneity!r}. Choose from: {', '.join(HETEROGENEITY)} or a number")
        return HETEROGENEITY[key]
    _validate_numeric_parameter(heterogeneity, "heterogeneity", min_val=0).raise_if_invalid()
    return float(heterogeneity)


def meta_power(
    effect_size: float,
    study_size: int,
    k: int,
    heterogeneity: Union[str, float] = "fixed",
    alpha: float = 0.05,
) -> float:
    """Power (0-1) to detect the summary effect of a meta-analysis.

    Args:
        effect_size: True standardized mean difference (Cohen's d).
        study_size: Participants per group in each study.
        k: Number of studies.
        heterogeneity: ``"fixed"``, ``"small"``, ``"moderate"``, ``"large"``
            or a multiplier of the within-study variance.
        alpha: Two-tailed significance level.

    Example:
        >>> round(meta_power(0.3, 20, 10), 3)
        0.847
    """
    _validate_numeric_parameter(effect_size, "effect_size", expected_types=(int, float, np.number)).raise_if_invalid()
    _validate_sample_size(study_size, "study_size").raise_if_invalid()
    _validate_sample_size(k, "k").raise_if_invalid()
    _validate_alpha(alpha).raise_if_invalid()

    h = _heterogeneity_multiplier(heterogeneity)
    d = float(effect_size)
    v = 2.0 / study_size + d**2 / (4.0 * study_size)
    tau2 = h * v
    summary_se = np.sqrt((v + tau2) / k)

    z_crit = stats.norm.ppf(1 - alpha / 2)
    lam = d / summary_se
    return float(1 - stats.norm.cdf(z_crit - lam) + stats.norm.cdf(-z_crit - lam))


def meta_power_curve(
    effect_size: float,
    study_size: int,
    k_range: Iterable[int],
    heterogeneity: Optional[Sequence[Union[str, float]]] = None,
    alpha: float = 0.05,
) -> pd.DataFrame:
    """Power across numbers of studies and heterogeneity levels.

    Returns:
        Long DataFrame with columns ``k, heterogeneity, power``.
    """
    levels = list(heterogeneity) if heterogeneity is not None else list(HETEROGENEITY)
    k_values = list(k_range)
    rows = [
        {"k": k, "heterogeneity": level, "power": meta_power(effect_size, study_size, k, level, alpha)}
        for level in levels
        for k in k_values
    ]
    return pd.DataFrame(rows, columns=["k", "heterogeneity", "power"])
