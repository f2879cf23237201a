"""
Parsing utilities for experimental design specifications.

Factors can be given as a dict, as an assignment string
(``"pet=cat|dog, time=am|pm"``), or as level counts (``2`` or ``[2, 3]``).
Per-cell values can be given as a dict or an assignment string
(``"cat_am=10, dog_am=12"``).
"""

import re
import string
from itertools import product
from typing import Any, Dict, List, Optional, Tuple

__all__ = []

# Unicode-aware identifier pattern: letter or underscore, then word characters
_IDENT = r"[^\W\d]\w*"
_IDENT_RE = re.compile(rf"^{_IDENT}$")


class _AssignmentParser:
    """Parses comma-separated ``name=value`` assignment strings.

    Supports two parse types: ``"factor"`` (``name=level1|level2``) and
    ``"value"`` (``name=number``). A module-level singleton ``_parser`` is
    used throughout the package.
    """

    def __init__(self):
        self.handlers = {
            "factor": self._parse_factor_value,
            "value": self._parse_numeric_value,
        }

    def _parse(self, input_string: str, parse_type: str, available_items: Optional[List[str]] = None) -> Tuple[Dict, List[str]]:
        """Parse a comma-separated assignment string.

        Args:
            input_string: Raw user input.
            parse_type: ``"factor"`` or ``"value"``.
            available_items: Names allowed on the left-hand side. ``None``
                accepts any identifier.

        Returns:
            Tuple of ``(parsed_dict, error_list)``.
        """
        if parse_type not in self.handlers:
            return {}, [f"Unknown parse type: {parse_type}"]

        parsed_items: Dict[str, Any] = {}
        errors: List[str] = []

        for assignment in self._split_assignments(input_string):
            try:
                name, value = self._parse_assignment(assignment)
            except ValueError as e:
                errors.append(str(e))
                continue

            if available_items is not None and name not in available_items:
                errors.append(f"'{name}' not found. Available: {', '.join(available_items)}")
                continue
            if name in parsed_items:
                errors.append(f"'{name}' assigned more than once")
                continue

            parsed_value, error = self.handlers[parse_type](value)
            if error:
                errors.append(f"{name}: {error}")
                continue

            parsed_items[name] = parsed_value

        return parsed_items, errors

    def _split_assignments(self, input_string: str) -> List[str]:
        """Split on commas, ignoring empty pieces."""
        return [part.strip() for part in input_string.split(",") if part.strip()]

    def _parse_assignment(self, assignment: str) -> Tuple[str, str]:
        if "=" not in assignment:
            raise ValueError(f"Invalid format: '{assignment}'. Expected 'name=value'")

        name, value = assignment.split("=", 1)
        name = name.strip()
        if not _IDENT_RE.match(name):
            raise ValueError(f"Invalid name: '{name}'")
        return name, value.strip()

    def _parse_factor_value(self, value: str) -> Tuple[List[str], Optional[str]]:
        levels = [lvl.strip() for lvl in value.split("|")]
        if any(not lvl for lvl in levels):
            return [], "empty level name"
        if len(levels) < 2:
            return [], "a factor needs at least 2 levels separated by '|'"
        if len(set(levels)) != len(levels):
            return [], "duplicate level names"
        return levels, None

    def _parse_numeric_value(self, value: str) -> Tuple[float, Optional[str]]:
        try:
            return float(value), None
        except ValueError:
            return 0.0, f"Invalid numeric value '{value}'"


_parser = _AssignmentParser()


def _letter_name(index: int) -> str:
    """``0 -> A``, ``25 -> Z``, ``26 -> AA``."""
    letters = string.ascii_uppercase
    name = ""
    index += 1
    while index > 0:
        index, rem = divmod(index - 1, 26)
        name = letters[rem] + name
    return name


def parse_factors(spec: Any, prefix_start: int = 0) -> Tuple[Dict[str, List[str]], List[str]]:
    """Normalise a factor specification to ``{factor: [levels]}``.

    Args:
        spec: ``None``, a dict of factor to levels, an assignment string
            (``"pet=cat|dog"``), an int number of levels, or a list of ints.
        prefix_start: Index of the first letter used to name integer factors
            (so between factors continue after within factors: ``A``, ``B``).

    Returns:
        Tuple of ``(factors, errors)``.
    """
    if spec is None:
        return {}, []

    if isinstance(spec, str):
        if not spec.strip():
            return {}, []
        return _parser._parse(spec, "factor")

    if isinstance(spec, dict):
        factors: Dict[str, List[str]] = {}
        errors: List[str] = []
        for name, levels in spec.items():
            if isinstance(levels, str):
                levels = [lvl.strip() for lvl in levels.split("|")]
            if isinstance(levels, int) and not isinstance(levels, bool):
                levels = [f"{name}{i + 1}" for i in range(levels)]
            levels = [str(lvl).strip() for lvl in levels]
            if any(not lvl for lvl in levels):
                errors.append(f"{name}: empty level name")
            elif len(levels) < 2:
                errors.append(f"{name}: a factor needs at least 2 levels")
            elif len(set(levels)) != len(levels):
                errors.append(f"{name}: duplicate level names")
            else:
                factors[str(name)] = levels
        return factors, errors

    if isinstance(spec, int) and not isinstance(spec, bool):
        spec = [spec]

    if isinstance(spec, (list, tuple)) and all(isinstance(k, int) and not isinstance(k, bool) for k in spec):
        factors = {}
        errors = []
        for offset, n_levels in enumerate(spec):
            name = _letter_name(prefix_start + offset)
            if n_levels < 2:
                errors.append(f"{name}: a factor needs at least 2 levels, got {n_levels}")
                continue
            factors[name] = [f"{name}{i + 1}" for i in range(n_levels)]
        return factors, errors

    return {}, [f"Unsupported factor specification: {spec!r}"]


def parse_cell_values(spec: Any, cells: List[str]) -> Tuple[Dict[str, float], List[str]]:
    """Parse per-cell values given as a dict or ``"cell=value"`` string."""
    if isinstance(spec, str):
        return _parser._parse(spec, "value", cells)

    errors = []
    values = {}
    for name, value in dict(spec).items():
        if name not in cells:
            errors.append(f"'{name}' not found. Available: {', '.join(cells)}")
            continue
        values[name] = float(value)
    return values, errors


def cell_names(factors: Dict[str, List[str]]) -> List[str]:
    """Crossed level combinations joined with ``_``, last factor varying fastest."""
    if not factors:
        return []
    return ["_".join(combo) for combo in product(*factors.values())]


def cell_levels(factors: Dict[str, List[str]]) -> List[Tuple[str, ...]]:
    """Crossed level combinations as tuples, in the same order as ``cell_names``."""
    if not factors:
        return []
    return list(product(*factors.values()))


def duplicate_cell_names(factors: Dict[str, List[str]]) -> List[str]:
    """Cell names produced by more than one level combination (e.g. ``x_y`` + ``z`` and ``x`` + ``y_z``)."""
    names = cell_names(factors)
    return sorted({name for name in names if names.count(name) > 1})
