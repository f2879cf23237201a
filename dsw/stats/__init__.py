"""Simulation and analysis helpers used by the workshop exercises."""

from . import design as design
from . import fixed as fixed
from . import meta as meta
from . import mixed as mixed
from . import power as power
