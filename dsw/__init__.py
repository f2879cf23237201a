"""dsw - Data Simulation Workshops.

Workshop exercises and small helpers for simulating factorial and
mixed-effects data for power analysis and pre-registration.

Example:
    >>> import dsw
    >>>
    >>> dsw.exercise("faux")            # copies faux-stub.md here and opens it
    >>>
    >>> data = dsw.sim_design(within="time=am|pm", between="pet=cat|dog",
    ...                       n=50, mu=[10, 12, 10, 15], sd=3, r=0.5)
    >>> long = dsw.wide_to_long(data, "time=am|pm")
    >>> dsw.tidy_mixed(dsw.lmm(long, "y ~ pet * time", groups="id"))
"""

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _get_version

from .exercises import EXERCISES, ExerciseNotFoundError, exercise, list_exercises
from .progress import PrintReporter, ProgressReporter, SimulationCancelled, TqdmReporter
from .stats.design import cormat, rnorm_multi, sim_design, wide_to_long
from .stats.fixed import anova, sim_factorial
from .stats.meta import meta_power, meta_power_curve
from .stats.mixed import CrossedParams, fit_crossed, lmm, sim_crossed, tidy_mixed
from .stats.power import PowerGridResult, PowerResult, power_grid, simulate_power

try:
    __version__ = _get_version("dsw")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "EXERCISES",
    "ExerciseNotFoundError",
    "exercise",
    "list_exercises",
    "cormat",
    "rnorm_multi",
    "sim_design",
    "wide_to_long",
    "anova",
    "sim_factorial",
    "meta_power",
    "meta_power_curve",
    "CrossedParams",
    "sim_crossed",
    "fit_crossed",
    "lmm",
    "tidy_mixed",
    "simulate_power",
    "power_grid",
    "PowerResult",
    "PowerGridResult",
    "SimulationCancelled",
    "ProgressReporter",
    "PrintReporter",
    "TqdmReporter",
]
