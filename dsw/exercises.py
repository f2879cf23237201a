"""
Workshop exercise fetcher.

Each workshop ships a partially completed "stub" document inside the
package (``dsw/stubs/<name>-stub.md``). ``exercise()`` copies the stub into
the working directory and opens it so attendees can start filling it in.
"""

import warnings
import webbrowser
from importlib.resources import files
from pathlib import Path
from typing import List, Optional, Union

__all__ = ["EXERCISES", "ExerciseNotFoundError", "exercise", "exercise_path", "list_exercises"]

EXERCISES = ("faux", "fixed", "mixed", "calories")

_STUB_DIR = "stubs"
_STUB_PATTERN = "{name}-stub.md"


class ExerciseNotFoundError(ValueError):
    """Raised when an exercise name has no bundled stub."""

    pass


def list_exercises() -> List[str]:
    """Return the names accepted by ``exercise()``."""
    return list(EXERCISES)


def exercise_path(name: str):
    """Resolve *name* to its bundled stub resource.

    Raises:
        ExerciseNotFoundError: If *name* is not a known exercise or its stub
            is missing from the installation.
    """
    if name not in EXERCISES:
        raise ExerciseNotFoundError(f"Exercise {name!r} doesn't exist. Available: {', '.join(EXERCISES)}")

    resource = files("dsw") / _STUB_DIR / _STUB_PATTERN.format(name=name)
    if not resource.is_file():
        raise ExerciseNotFoundError(f"Exercise {name!r} doesn't exist in this installation")
    return resource


def exercise(
    name: str = EXERCISES[0],
    filename: Optional[Union[str, Path]] = None,
    open_file: bool = True,
) -> Path:
    """Copy a workshop exercise into the working directory and open it.

    Args:
        name: One of ``EXERCISES``.
        filename: Destination path. Defaults to the stub's own file name
            (e.g. ``faux-stub.md``) in the current working directory.
        open_file: Open the copied file with the platform's default handler.

    Returns:
        Path of the written file.

    Raises:
        ExerciseNotFoundError: If *name* is not a known exercise. Nothing is
            written in that case.
        OSError: If the destination cannot be written.

    Example:
        >>> exercise("faux")                      # writes ./faux-stub.md
        >>> exercise("fixed", "exercises/fixed.md")
    """
    resource = exercise_path(name)

    if filename is None:
        filename = resource.name
    destination = Path(filename)

    # Overwrites an existing file of the same name
    destination.write_bytes(resource.read_bytes())

    if open_file:
        _open_in_viewer(destination)

    return destination


def _open_in_viewer(path: Path) -> None:
    """Best-effort open of *path*; failures only warn."""
    try:
        opened = webbrowser.open(path.resolve().as_uri())
    except webbrowser.Error as e:
        warnings.warn(f"Could not open {path}: {e}", stacklevel=3)
        return

    if not opened:
        warnings.warn(f"No viewer available to open {path}; the file was saved anyway.", stacklevel=3)
