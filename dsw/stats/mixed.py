"""
Mixed-effects simulation and fitting.

Simulates the classic subjects-by-items design (every subject responds to
every item; items belong to one of two categories) with by-subject random
intercepts and slopes, by-item random intercepts and residual noise:

    RT = beta_0 + T_0s + O_0i + (beta_1 + T_1s) * X_i + e_si

Fitting is delegated to statsmodels ``MixedLM``. Crossed random effects are
expressed as variance components on a single all-encompassing group, so the
by-subject intercept/slope correlation is not estimated.
"""

import warnings
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from ..utils.validators import _validate_positive, _validate_sample_size

__all__ = ["CrossedParams", "sim_crossed", "fit_crossed", "lmm", "tidy_mixed"]


@dataclass(frozen=True)
class CrossedParams:
    """Parameters for ``sim_crossed`` (defaults in milliseconds).

    Attributes:
        n_subj: Number of subjects.
        n_ingroup: Number of ingroup items.
        n_outgroup: Number of outgroup items.
        beta_0: Grand mean.
        beta_1: Effect of category (outgroup minus ingroup).
        omega_0: By-item random intercept SD.
        tau_0: By-subject random intercept SD.
        tau_1: By-subject random slope SD.
        rho: Correlation between by-subject intercepts and slopes.
        sigma: Residual SD.
    """

    n_subj: int = 100
    n_ingroup: int = 25
    n_outgroup: int = 25
    beta_0: float = 800.0
    beta_1: float = 50.0
    omega_0: float = 80.0
    tau_0: float = 100.0
    tau_1: float = 40.0
    rho: float = 0.2
    sigma: float = 200.0

    def validate(self):
        for name in ("n_subj", "n_ingroup", "n_outgroup"):
            _validate_sample_size(getattr(self, name), name).raise_if_invalid()
        for name in ("omega_0", "tau_0", "tau_1", "sigma"):
            _validate_positive(getattr(self, name), name).raise_if_invalid()
        if not -1 <= self.rho <= 1:
            raise ValueError(f"Validation failed:\n• rho must be between -1 and 1, got {self.rho}")


def sim_crossed(params: Optional[CrossedParams] = None, seed: Any = None, **overrides) -> pd.DataFrame:
    """Simulate a subjects-by-items data set.

    Args:
        params: Base parameters; defaults to ``CrossedParams()``.
        seed: Integer seed or ``numpy.random.Generator``.
        **overrides: Individual ``CrossedParams`` fields to replace
            (e.g. ``n_subj=50, beta_1=0``).

    Returns:
        Long DataFrame with columns ``subj_id, item_id, category, X_i,
        T_0s, T_1s, O_0i, e_si, RT``; one row per subject and item.
    """
    params = replace(params or CrossedParams(), **overrides)
    params.validate()
    rng = np.random.default_rng(seed)

    n_items = params.n_ingroup + params.n_outgroup
    items = pd.DataFrame(
        {
            "item_id": np.arange(1, n_items + 1),
            "category": np.repeat(["ingroup", "outgroup"], [params.n_ingroup, params.n_outgroup]),
            "O_0i": rng.normal(0, params.omega_0, n_items),
        }
    )
    # Deviation coding: ingroup -0.5, outgroup +0.5
    items["X_i"] = np.where(items["category"] == "outgroup", 0.5, -0.5)

    cov = [
        [params.tau_0**2, params.rho * params.tau_0 * params.tau_1],
        [params.rho * params.tau_0 * params.tau_1, params.tau_1**2],
    ]
    subj_re = rng.multivariate_normal([0, 0], cov, size=params.n_subj, method="eigh")
    subjects = pd.DataFrame(
        {
            "subj_id": np.arange(1, params.n_subj + 1),
            "T_0s": subj_re[:, 0],
            "T_1s": subj_re[:, 1],
        }
    )

    trials = subjects.merge(items, how="cross")
    trials["e_si"] = rng.normal(0, params.sigma, len(trials))
    trials["RT"] = (
        params.beta_0 + trials["T_0s"] + trials["O_0i"] + (params.beta_1 + trials["T_1s"]) * trials["X_i"] + trials["e_si"]
    )

    trials["category"] = pd.Categorical(trials["category"], categories=["ingroup", "outgroup"])
    trials = trials[["subj_id", "item_id", "category", "X_i", "T_0s", "T_1s", "O_0i", "e_si", "RT"]]
    trials.attrs["params"] = asdict(params)
    return trials


# Optimizer attempts in order; an empty dict is statsmodels' default fit
_FIT_ATTEMPTS = (
    {"method": "lbfgs"},
    {"method": "powell"},
    {},
)


def _fit(model, reml: bool):
    """Fit *model*, moving to the next optimizer when an attempt raises or fails to converge."""
    result = None
    last_error: Optional[Exception] = None

    for options in _FIT_ATTEMPTS:
        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore")
                attempt = model.fit(reml=reml, **options)
        except Exception as e:
            last_error = e
            continue

        result = attempt
        if getattr(result, "converged", True):
            return result

    if result is None:
        raise last_error
    warnings.warn("Mixed model did not converge with any optimizer; estimates may be unreliable", stacklevel=3)
    return result


def fit_crossed(
    data: pd.DataFrame,
    dv: str = "RT",
    predictor: str = "X_i",
    subject: str = "subj_id",
    item: str = "item_id",
    reml: bool = True,
):
    """Fit ``dv ~ predictor`` with crossed subject and item random effects.

    Random effects: by-subject intercepts and slopes for *predictor*, and
    by-item intercepts, each as an independent variance component.

    Returns:
        ``statsmodels`` ``MixedLMResults``.
    """
    from statsmodels.regression.mixed_linear_model import MixedLM

    missing = [c for c in (dv, predictor, subject, item) if c not in data.columns]
    if missing:
        raise KeyError(f"Columns not found in data: {', '.join(missing)}")

    frame = data[[dv, predictor, subject, item]].copy()
    frame["_all"] = 1
    vc_formula = {
        subject: f"0 + C({subject})",
        f"{subject}:{predictor}": f"0 + C({subject}):{predictor}",
        item: f"0 + C({item})",
    }
    model = MixedLM.from_formula(f"{dv} ~ {predictor}", groups="_all", vc_formula=vc_formula, data=frame)
    return _fit(model, reml)


def lmm(
    data: pd.DataFrame,
    formula: str,
    groups: str = "id",
    re_formula: Optional[str] = None,
    reml: bool = True,
):
    """Fit a linear mixed model with random effects for one grouping factor.

    Args:
        data: Long data.
        formula: Fixed-effects formula, e.g. ``"y ~ pet * time"``.
        groups: Grouping column (usually the subject id).
        re_formula: Random-effects formula; ``None`` for random intercepts.
        reml: Use REML rather than ML.

    Returns:
        ``statsmodels`` ``MixedLMResults``.
    """
    from statsmodels.regression.mixed_linear_model import MixedLM

    if groups not in data.columns:
        raise KeyError(f"Columns not found in data: {groups}")

    model = MixedLM.from_formula(formula, groups=groups, re_formula=re_formula, data=data)
    return _fit(model, reml)


def tidy_mixed(result, group_name: str = "Group") -> pd.DataFrame:
    """Summarise a ``MixedLMResults`` as one row per parameter.

    Fixed effects get ``effect="fixed"`` with estimate, standard error,
    z statistic and p-value. Random-effect SDs and correlations get
    ``effect="ran_pars"`` with ``term`` ``sd__<name>`` / ``cor__<a>.<b>``,
    and the residual SD is reported under group ``Residual``.
    """
    k_fe = result.model.k_fe
    fe_names = list(result.model.exog_names)

    rows: List[Dict[str, Any]] = []
    for i, name in enumerate(fe_names):
        rows.append(
            {
                "effect": "fixed",
                "group": None,
                "term": name,
                "estimate": float(np.asarray(result.fe_params)[i]),
                "std_error": float(np.asarray(result.bse_fe)[i]),
                "statistic": float(np.asarray(result.tvalues)[:k_fe][i]),
                "p_value": float(np.asarray(result.pvalues)[:k_fe][i]),
            }
        )

    cov_re = np.atleast_2d(np.asarray(result.cov_re, dtype=float))
    exog_re_names = getattr(result.model.data, "exog_re_names", None) or []
    re_names = [_re_label(n) for n in exog_re_names] if cov_re.size else []
    for i, name in enumerate(re_names):
        rows.append(_ran_par(group_name, f"sd__{name}", np.sqrt(max(cov_re[i, i], 0.0))))
    for i in range(len(re_names)):
        for j in range(i + 1, len(re_names)):
            denom = np.sqrt(cov_re[i, i] * cov_re[j, j])
            corr = cov_re[i, j] / denom if denom > 0 else np.nan
            rows.append(_ran_par(group_name, f"cor__{re_names[i]}.{re_names[j]}", corr))

    vc_names = list(getattr(result.model.exog_vc, "names", []) or [])
    for name, var in zip(vc_names, np.atleast_1d(np.asarray(result.vcomp, dtype=float))):
        group, _, slope = name.partition(":")
        rows.append(_ran_par(group, f"sd__{slope or '(Intercept)'}", np.sqrt(max(var, 0.0))))

    rows.append(_ran_par("Residual", "sd__Observation", float(np.sqrt(result.scale))))
    return pd.DataFrame(rows, columns=["effect", "group", "term", "estimate", "std_error", "statistic", "p_value"])


def _ran_par(group: str, term: str, estimate: float) -> Dict[str, Any]:
    return {
        "effect": "ran_pars",
        "group": group,
        "term": term,
        "estimate": float(estimate),
        "std_error": np.nan,
        "statistic": np.nan,
        "p_value": np.nan,
    }


def _re_label(name: str) -> str:
    return "(Intercept)" if name in ("Group", "Intercept") else name
