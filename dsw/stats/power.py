"""
Power analysis by simulation.

A power simulation repeats two user-supplied steps many times:

1. ``simulate(seed=..., **params)`` returns a data set;
2. ``analyse(data)`` returns a tidy table with ``term`` and ``p_value``
   columns (and optionally ``estimate``).

Power for each term is the percentage of replications with
``p_value < alpha``. ``power_grid`` repeats this across every combination
of a parameter grid (e.g. sample sizes by effect sizes).
"""

import warnings
from dataclasses import dataclass, field
from itertools import product
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from ..progress import PrintReporter, ProgressReporter, SimulationCancelled
from ..utils.validators import _validate_alpha, _validate_reps

__all__ = ["DEFAULT_ALPHA", "DEFAULT_REPS", "PowerResult", "PowerGridResult", "simulate_power", "power_grid"]

DEFAULT_ALPHA = 0.05
DEFAULT_REPS = 100
MAX_FAILED_FRACTION = 0.1


@dataclass
class PowerResult:
    """Outcome of ``simulate_power``.

    Attributes:
        power: Power per term, as a percentage (0-100).
        mean_estimate: Mean estimate per term, when ``analyse`` reports
            one.
        reps: Number of replications requested.
        n_failed: Replications where ``simulate`` or ``analyse`` raised.
        alpha: Significance level.
        params: Keyword arguments passed to ``simulate``.
    """

    power: Dict[str, float]
    mean_estimate: Dict[str, float]
    reps: int
    n_failed: int
    alpha: float
    params: Dict[str, Any] = field(default_factory=dict)

    def to_frame(self) -> pd.DataFrame:
        terms = list(self.power)
        return pd.DataFrame(
            {
                "term": terms,
                "power": [self.power[t] for t in terms],
                "mean_estimate": [self.mean_estimate.get(t, np.nan) for t in terms],
                "reps": self.reps - self.n_failed,
            }
        )

    def __getitem__(self, term: str) -> float:
        return self.power[term]


@dataclass
class PowerGridResult:
    """Outcome of ``power_grid``: one row per parameter combination and term."""

    data: pd.DataFrame
    grid: Dict[str, List[Any]]
    reps: int
    alpha: float

    def plot(self, x: Optional[str] = None, terms: Optional[Sequence[str]] = None, target_power: float = 80.0, title: Optional[str] = None):
        """Plot power against the grid parameter *x*, one line per term.

        Other grid parameters (if any) split the lines further and are shown
        in the legend.
        """
        from ..utils.visualization import _create_power_plot

        if x is None:
            x = next(iter(self.grid))
        if x not in self.grid:
            raise ValueError(f"'{x}' is not a grid parameter. Available: {', '.join(self.grid)}")

        frame = self.data
        if terms is not None:
            frame = frame[frame["term"].isin(list(terms))]

        x_values = sorted(frame[x].unique().tolist())
        others = [p for p in self.grid if p != x]
        powers_by_line: Dict[str, List[float]] = {}

        for keys, sub in frame.groupby(others + ["term"], sort=False) if others else frame.groupby("term", sort=False):
            keys = keys if isinstance(keys, tuple) else (keys,)
            term = keys[-1]
            label = term
            if others:
                label += " (" + ", ".join(f"{p}={v}" for p, v in zip(others, keys[:-1])) + ")"
            by_x = dict(zip(sub[x], sub["power"]))
            powers_by_line[label] = [by_x.get(v, np.nan) for v in x_values]

        first_achieved = {}
        for label, powers in powers_by_line.items():
            hits = [v for v, p in zip(x_values, powers) if p >= target_power]
            first_achieved[label] = hits[0] if hits else -1

        return _create_power_plot(
            x_values=x_values,
            powers_by_term=powers_by_line,
            first_achieved=first_achieved,
            terms=list(powers_by_line),
            target_power=target_power,
            title=title or f"Power by {x}",
            xlabel=x,
        )


def _as_pvalues(analysis: Any) -> pd.DataFrame:
    """Normalise the output of ``analyse`` to a frame with ``term``/``p_value``."""
    if isinstance(analysis, pd.DataFrame):
        missing = [c for c in ("term", "p_value") if c not in analysis.columns]
        if missing:
            raise ValueError(f"analyse() must return columns 'term' and 'p_value'; missing {', '.join(missing)}")
        return analysis
    if isinstance(analysis, (Mapping, pd.Series)):
        items = dict(analysis)
        return pd.DataFrame({"term": list(items), "p_value": list(items.values())})
    raise TypeError(f"analyse() must return a DataFrame or a term -> p-value mapping, got {type(analysis).__name__}")


def _run_replications(
    simulate: Callable[..., Any],
    analyse: Callable[[Any], Any],
    reps: int,
    alpha: float,
    seed_seq: np.random.SeedSequence,
    params: Dict[str, Any],
    reporter: Optional[ProgressReporter],
    cancel_check: Optional[Callable[[], bool]],
) -> PowerResult:
    significant: Dict[str, int] = {}
    estimates: Dict[str, List[float]] = {}
    n_failed = 0
    last_error: Optional[BaseException] = None

    for child in seed_seq.spawn(reps):
        if cancel_check is not None and cancel_check():
            raise SimulationCancelled("Simulation cancelled by user")

        try:
            data = simulate(seed=np.random.default_rng(child), **params)
            analysis = analyse(data)
        except Exception as e:
            # Failed fits count against the replication budget, not as errors
            n_failed += 1
            last_error = e
            analysis = None

        if analysis is not None:
            table = _as_pvalues(analysis)
            for term, p in zip(table["term"], table["p_value"]):
                significant.setdefault(term, 0)
                if pd.notna(p) and p < alpha:
                    significant[term] += 1
            if "estimate" in table.columns:
                for term, est in zip(table["term"], table["estimate"]):
                    estimates.setdefault(term, []).append(float(est))

        if reporter is not None:
            reporter.advance()

    if n_failed == reps:
        raise RuntimeError(f"All {reps} replications failed; last error: {last_error!r}")
    if n_failed / reps > MAX_FAILED_FRACTION:
        raise RuntimeError(f"{n_failed} of {reps} replications failed (more than {MAX_FAILED_FRACTION:.0%}); last error: {last_error!r}")
    if n_failed:
        warnings.warn(f"{n_failed} of {reps} replications failed and were excluded", stacklevel=3)

    n_used = reps - n_failed
    return PowerResult(
        power={t: 100.0 * k / n_used for t, k in significant.items()},
        mean_estimate={t: float(np.mean(v)) for t, v in estimates.items()},
        reps=reps,
        n_failed=n_failed,
        alpha=alpha,
        params=dict(params),
    )


def _resolve_reporter(progress_callback: Any, reps: int, n_combinations: int = 1) -> Optional[ProgressReporter]:
    if progress_callback is None or progress_callback is False:
        return None
    if progress_callback is True:
        progress_callback = PrintReporter()
    return ProgressReporter(reps, progress_callback, n_combinations=n_combinations)


def _check_settings(reps: Any, alpha: Any):
    for check in (_validate_reps(reps), _validate_alpha(alpha)):
        check.raise_if_invalid()
        check.emit_warnings(stacklevel=4)


def simulate_power(
    simulate: Callable[..., Any],
    analyse: Callable[[Any], Any],
    reps: int = DEFAULT_REPS,
    alpha: float = DEFAULT_ALPHA,
    seed: Optional[int] = None,
    progress_callback: Any = None,
    cancel_check: Optional[Callable[[], bool]] = None,
    **params,
) -> PowerResult:
    """Estimate power by repeated simulation and analysis.

    Args:
        simulate: Called as ``simulate(seed=<Generator>, **params)``.
        analyse: Called with each simulated data set; returns a DataFrame
            with ``term`` and ``p_value`` columns (or a term -> p mapping).
        reps: Number of replications.
        alpha: Significance level.
        seed: Base seed; each replication gets an independent child stream.
        progress_callback: ``(current, total)`` callable (see
            ``dsw.progress``), ``True`` for a console reporter, or
            ``None``/``False`` for none.
        cancel_check: Returns ``True`` to abort with ``SimulationCancelled``.
        **params: Passed through to ``simulate``.

    Returns:
        ``PowerResult``.

    Raises:
        RuntimeError: If every replication fails, or more than 10% do.
    """
    _check_settings(reps, alpha)

    reporter = _resolve_reporter(progress_callback, reps)
    if reporter is not None:
        reporter.start()
        reporter.begin_combination(params)

    result = _run_replications(simulate, analyse, reps, alpha, np.random.SeedSequence(seed), params, reporter, cancel_check)

    if reporter is not None:
        reporter.finish()
    return result


def power_grid(
    simulate: Callable[..., Any],
    analyse: Callable[[Any], Any],
    grid: Dict[str, Sequence[Any]],
    reps: int = DEFAULT_REPS,
    alpha: float = DEFAULT_ALPHA,
    seed: Optional[int] = None,
    progress_callback: Any = None,
    cancel_check: Optional[Callable[[], bool]] = None,
    **params,
) -> PowerGridResult:
    """Run ``simulate_power`` for every combination of *grid* values.

    Args:
        grid: Parameter name -> list of values, crossed in full.
        **params: Fixed keyword arguments passed to every ``simulate`` call.

    Returns:
        ``PowerGridResult`` whose ``data`` has one column per grid parameter
        plus ``term``, ``power``, ``mean_estimate`` and ``reps``.
    """
    _check_settings(reps, alpha)
    if not grid:
        raise ValueError("grid must contain at least one parameter")
    clash = set(grid) & set(params)
    if clash:
        raise ValueError(f"Parameters given both in grid and as fixed values: {', '.join(sorted(clash))}")

    names = list(grid)
    values = [list(grid[name]) for name in names]
    combos = list(product(*values))

    reporter = _resolve_reporter(progress_callback, reps, len(combos))
    if reporter is not None:
        reporter.start()

    children = np.random.SeedSequence(seed).spawn(len(combos))
    frames = []
    for combo, child in zip(combos, children):
        combo_params = dict(zip(names, combo))
        if reporter is not None:
            reporter.begin_combination(combo_params)
        result = _run_replications(
            simulate, analyse, reps, alpha, child, {**params, **combo_params}, reporter, cancel_check
        )
        frame = result.to_frame()
        for name in reversed(names):
            frame.insert(0, name, combo_params[name])
        frames.append(frame)

    if reporter is not None:
        reporter.finish()

    data = pd.concat(frames, ignore_index=True)
    return PowerGridResult(data=data, grid={n: v for n, v in zip(names, values)}, reps=reps, alpha=alpha)
