"""
Progress reporting for power simulations.

A power run is a sequence of blocks, one per parameter combination, each of
``reps`` replications (``simulate_power`` runs a single block,
``power_grid`` one block per grid point). Progress is reported to a
``(current, total)`` callback counting replications over the whole run.
A callback that also defines ``on_combination(index, n_combinations,
params)`` is told which grid point is starting, so it can label its output.
"""

import sys
from typing import Any, Callable, Dict, Optional


class SimulationCancelled(Exception):
    """Raised to stop a running power simulation."""


class ProgressReporter:
    """Counts replications across grid combinations and drives a callback.

    The callback fires after every *update_every* replications and always
    at the end of each combination.

    Args:
        reps: Replications per combination.
        callback: ``callback(current, total)``.
        n_combinations: Number of parameter combinations in the run.
        update_every: Replications between updates; defaults to
            ``max(1, reps // 20)``.
    """

    def __init__(
        self,
        reps: int,
        callback: Callable[[int, int], None],
        n_combinations: int = 1,
        update_every: Optional[int] = None,
    ):
        self.reps = reps
        self.n_combinations = n_combinations
        self.total = reps * n_combinations
        self.update_every = update_every if update_every is not None else max(1, reps // 20)
        self._callback = callback
        self._current = 0
        self._combination = 0

    @property
    def current(self) -> int:
        return self._current

    @property
    def combination(self) -> int:
        """1-based index of the running combination (0 before the first)."""
        return self._combination

    def start(self):
        self._current = 0
        self._combination = 0
        self._callback(0, self.total)

    def begin_combination(self, params: Optional[Dict[str, Any]] = None):
        if self._combination >= self.n_combinations:
            raise ValueError(f"All {self.n_combinations} combinations have already started")
        self._combination += 1
        hook = getattr(self._callback, "on_combination", None)
        if hook is not None:
            hook(self._combination, self.n_combinations, dict(params or {}))

    def advance(self):
        self._current += 1
        if self._current % self.reps == 0 or self._current % self.update_every == 0:
            self._callback(self._current, self.total)

    def finish(self):
        if self._current < self.total:
            self._current = self.total
            self._callback(self.total, self.total)


def _describe(params: Dict[str, Any]) -> str:
    return ", ".join(f"{name}={value}" for name, value in params.items())


class PrintReporter:
    """Console reporter writing a single, rewritten status line.

    For a grid run the line is prefixed with the running combination,
    e.g. ``n=40, d=0.5 [3/8] Progress:  31.2% (250/800 replications)``.

    Args:
        stream: Where to write; defaults to ``sys.stderr`` at call time.
    """

    def __init__(self, stream=None):
        self._stream = stream
        self._prefix = ""
        self._width = 0

    def on_combination(self, index: int, n_combinations: int, params: Dict[str, Any]):
        if n_combinations > 1:
            self._prefix = f"{_describe(params)} [{index}/{n_combinations}] "

    def __call__(self, current: int, total: int):
        if total <= 0:
            return
        stream = self._stream or sys.stderr
        line = f"{self._prefix}Progress: {100.0 * current / total:5.1f}% ({current}/{total} replications)"
        # Pad over a longer previous line
        stream.write("\r" + line.ljust(self._width))
        self._width = max(self._width, len(line))
        if current >= total:
            stream.write("\n")
            self._prefix = ""
            self._width = 0
        stream.flush()


class TqdmReporter:
    """tqdm progress bar; grid combinations are shown as the bar's postfix.

    Usage::

        from dsw.progress import TqdmReporter
        power_grid(sim, analyse, grid={"n": [20, 40]}, progress_callback=TqdmReporter())
    """

    def __init__(self, **tqdm_kwargs):
        self._tqdm_kwargs = tqdm_kwargs
        self._bar = None
        self._postfix: Dict[str, Any] = {}

    def on_combination(self, index: int, n_combinations: int, params: Dict[str, Any]):
        self._postfix = params
        if self._bar is not None and params:
            self._bar.set_postfix(params)

    def __call__(self, current: int, total: int):
        if self._bar is None:
            try:
                from tqdm import tqdm
            except ImportError:
                raise ImportError("tqdm required for TqdmReporter: pip install dsw[progress]") from None
            self._bar = tqdm(total=total, unit="rep", **self._tqdm_kwargs)
            if self._postfix:
                self._bar.set_postfix(self._postfix)

        delta = current - self._bar.n
        if delta > 0:
            self._bar.update(delta)

        if current >= total:
            self._bar.close()
            self._bar = None
            self._postfix = {}
